"""Model corpus primitives: block extraction, splitting, scanning and back-references."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set

from .logging import get_logger
from .models import ModelFile

MODEL_FILE_SUFFIX = ".sysml"

_FILE_MARKER = re.compile(r"^=== (.+?) ===", re.MULTILINE)
_SOURCE_FILE_PATTERN = re.compile(r'@SourceFile\s*\{\s*(?::>>\s*)?path\s*=\s*"([^"]+)"')

logger = get_logger("corpus")


def normalize_path(path: str) -> str:
    """Return a comparable repository path: forward slashes, no leading ``./``."""
    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def extract_block(text: str, start: int = 0) -> str:
    """Return the content of the first brace block at or after ``start``.

    Nesting is tracked by depth. Braces inside quoted strings, ``//`` line
    comments and ``/* ... */`` block comments are not counted. When the block
    never closes, the remainder of the text after the opening brace is
    returned; when there is no opening brace at all, the remainder from
    ``start`` is returned.
    """
    index = max(start, 0)
    length = len(text)
    depth = 0
    block_start: Optional[int] = None

    while index < length:
        char = text[index]
        if char == "/" and text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline < 0 else newline + 1
            continue
        if char == "/" and text.startswith("/*", index):
            close = text.find("*/", index + 2)
            index = length if close < 0 else close + 2
            continue
        if char in ('"', "'"):
            index = _skip_string(text, index)
            continue
        if char == "{":
            if block_start is None:
                block_start = index + 1
            depth += 1
        elif char == "}" and block_start is not None:
            depth -= 1
            if depth == 0:
                return text[block_start:index]
        index += 1

    return text[block_start if block_start is not None else max(start, 0):]


def _skip_string(text: str, index: int) -> int:
    quote = text[index]
    cursor = index + 1
    while cursor < len(text):
        char = text[cursor]
        if char == "\\":
            cursor += 2
            continue
        if char == quote:
            return cursor + 1
        if char == "\n":
            # Unterminated literal: resume scanning on the next line.
            return cursor
        cursor += 1
    return cursor


def split_corpus(text: str) -> List[ModelFile]:
    """Split a concatenated corpus on ``=== path ===`` marker lines."""
    parts = _FILE_MARKER.split(text)
    files: List[ModelFile] = []
    # parts: [preamble, path1, content1, path2, content2, ...]
    for offset in range(1, len(parts), 2):
        content = parts[offset + 1] if offset + 1 < len(parts) else ""
        files.append(ModelFile(path=parts[offset].strip(), content=content))
    return files


def join_corpus(files: Iterable[ModelFile]) -> str:
    """Concatenate model files into the marker-delimited corpus form."""
    chunks = []
    for model_file in files:
        body = model_file.content
        if not body.startswith("\n"):
            body = "\n" + body
        chunks.append(f"=== {model_file.path} ==={body}")
    return "\n".join(chunks)


def iter_model_paths(model_root: Path) -> Iterator[str]:
    """Yield model-root-relative paths of every ``.sysml`` file, sorted."""
    if not model_root.is_dir():
        return
    collected: List[str] = []
    for dirpath, dirnames, filenames in os.walk(model_root):
        dirnames.sort()
        current = Path(dirpath)
        for filename in filenames:
            if not filename.endswith(MODEL_FILE_SUFFIX):
                continue
            collected.append((current / filename).relative_to(model_root).as_posix())
    yield from sorted(collected)


def scan_corpus(model_root: Path) -> List[ModelFile]:
    """Read every ``.sysml`` file below ``model_root``; unreadable files are skipped."""
    files: List[ModelFile] = []
    for rel_path in iter_model_paths(model_root):
        try:
            content = (model_root / rel_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable model file %s: %s", rel_path, exc)
            continue
        files.append(ModelFile(path=rel_path, content=content))
    logger.debug("Scanned %d model files under %s", len(files), model_root)
    return files


def extract_source_references(text: str) -> List[str]:
    """Return the normalised source paths named by ``@SourceFile`` blocks."""
    references: List[str] = []
    for match in _SOURCE_FILE_PATTERN.finditer(text):
        source_path = normalize_path(match.group(1))
        if source_path:
            references.append(source_path)
    return references


def find_covered_files(
    files: Iterable[ModelFile], subtree: Optional[str] = None
) -> Set[str]:
    """Union the back-references of ``files``, optionally limited to a subtree."""
    prefix = None
    if subtree:
        prefix = normalize_path(subtree).rstrip("/") + "/"
    covered: Set[str] = set()
    for model_file in files:
        if prefix is not None and not normalize_path(model_file.path).startswith(prefix):
            continue
        covered.update(extract_source_references(model_file.content))
    return covered


__all__ = [
    "MODEL_FILE_SUFFIX",
    "extract_block",
    "extract_source_references",
    "find_covered_files",
    "iter_model_paths",
    "join_corpus",
    "normalize_path",
    "scan_corpus",
    "split_corpus",
]
