"""Repository walking: source discovery, ignore rules and glob expansion."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Pattern, Sequence, Set

from .corpus import normalize_path
from .logging import get_logger

# Directories never entered when expanding manifest patterns.
PATTERN_EXCLUDED_DIRS = frozenset(
    {"node_modules", "vendor", "target", "dist", "build", ".git", ".sysml"}
)

# Directories never entered when discovering repository source files.
SOURCE_EXCLUDED_DIRS = PATTERN_EXCLUDED_DIRS | {
    "coverage",
    "scripts",
    "migrations",
    "__mocks__",
    "__fixtures__",
    "fixtures",
    ".next",
    ".nuxt",
    ".output",
}

SOURCE_EXCLUDED_FILES = (
    "pnpm-lock.yaml",
    "package-lock.json",
    "yarn.lock",
    "*.d.ts",
)

_GLOB_CHARS = ("*", "?", "{")

logger = get_logger("repo_scanner")


@dataclass
class IgnoreRule:
    """A gitignore-style exclusion pattern from defaults or .sysmlcheck.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        has_slash="/" in pattern,
    )


def build_ignore_rules(patterns: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for pattern in patterns:
        rule = build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    return any(rule.matches(rel_path, is_dir) for rule in rules)


def iter_files(
    root: Path,
    *,
    excluded_dirs: Iterable[str] = PATTERN_EXCLUDED_DIRS,
    rules: Sequence[IgnoreRule] = (),
    include_dotfiles: bool = True,
) -> Iterator[str]:
    """Yield repository-relative POSIX paths of files below ``root``."""
    excluded = set(excluded_dirs)

    def _on_error(exc: OSError) -> None:
        logger.debug("Skipping unreadable directory: %s", exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        kept_dirs = []
        for name in sorted(dirnames):
            if name in excluded:
                continue
            if not include_dotfiles and name.startswith("."):
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept_dirs.append(name)
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            if not include_dotfiles and filename.startswith("."):
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield rel_path


def is_glob(pattern: str) -> bool:
    return any(char in pattern for char in _GLOB_CHARS)


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` alternatives, innermost groups included."""
    depth = 0
    open_index = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                open_index = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                head = pattern[:open_index]
                tail = pattern[index + 1 :]
                expanded: List[str] = []
                for option in _split_top_level(pattern[open_index + 1 : index]):
                    expanded.extend(expand_braces(f"{head}{option}{tail}"))
                return expanded
    return [pattern]


def _split_top_level(body: str) -> List[str]:
    options: List[str] = []
    depth = 0
    current: List[str] = []
    for char in body:
        if char == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current.append(char)
    options.append("".join(current))
    return options


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> Pattern[str]:
    """Translate a brace-free glob into a regex over POSIX relative paths."""
    parts: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            close = pattern.find("]", index + 1)
            if close < 0:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                index = close + 1
                continue
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts) + r"\Z")


def pattern_matches(path: str, pattern: str) -> bool:
    """Return True when ``path`` matches the glob ``pattern`` (braces allowed)."""
    normalized = normalize_path(path)
    for alternative in expand_braces(normalize_path(pattern)):
        if not _allows_hidden(alternative) and _is_hidden(normalized):
            continue
        if glob_to_regex(alternative).match(normalized):
            return True
    return False


def _allows_hidden(pattern: str) -> bool:
    return pattern.startswith(".") or "/." in pattern


def _is_hidden(path: str) -> bool:
    return any(part.startswith(".") for part in path.split("/"))


def _stat_or_absent(check: Callable[[], bool], path: Path) -> bool:
    try:
        return check()
    except OSError as exc:
        logger.debug("Treating %s as absent: %s", path, exc)
        return False


def file_exists(path: Path) -> bool:
    """``Path.is_file`` that treats unreadable locations as absent."""
    return _stat_or_absent(path.is_file, path)


def dir_exists(path: Path) -> bool:
    return _stat_or_absent(path.is_dir, path)


def path_exists(path: Path) -> bool:
    return _stat_or_absent(path.exists, path)


def expand_patterns(
    root: Path,
    patterns: Iterable[str],
    *,
    excluded_dirs: Iterable[str] = PATTERN_EXCLUDED_DIRS,
) -> List[str]:
    """Resolve literal paths and glob patterns into sorted, deduplicated files.

    Literal paths are kept only when they name an existing file. Glob patterns
    are matched against one walk of ``root`` that skips ``excluded_dirs``.
    """
    resolved: Set[str] = set()
    globs: List[str] = []
    for pattern in patterns:
        if is_glob(pattern):
            globs.append(pattern)
            continue
        literal = normalize_path(pattern)
        if literal and file_exists(root / literal):
            resolved.add(literal)

    if globs:
        for rel_path in iter_files(root, excluded_dirs=excluded_dirs):
            if any(pattern_matches(rel_path, pattern) for pattern in globs):
                resolved.add(rel_path)

    return sorted(resolved)


class SourceScanner:
    """Discovers the repository source files a manifest is expected to cover."""

    def __init__(
        self,
        extensions: Sequence[str] = (".ts", ".tsx", ".js", ".jsx", ".json"),
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.extensions = tuple(ext.lower() for ext in extensions)
        self._rules = build_ignore_rules([*SOURCE_EXCLUDED_FILES, *exclude_paths])

    def scan(self, root: str | Path) -> List[str]:
        """Return sorted repository-relative paths of discovered source files."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")

        files = [
            rel_path
            for rel_path in iter_files(
                root_path,
                excluded_dirs=SOURCE_EXCLUDED_DIRS,
                rules=self._rules,
                include_dotfiles=False,
            )
            if rel_path.lower().endswith(self.extensions)
        ]
        logger.debug("Discovered %d source files under %s", len(files), root_path)
        return sorted(files)


__all__ = [
    "IgnoreRule",
    "PATTERN_EXCLUDED_DIRS",
    "SOURCE_EXCLUDED_DIRS",
    "SourceScanner",
    "build_ignore_rule",
    "build_ignore_rules",
    "dir_exists",
    "expand_braces",
    "expand_patterns",
    "file_exists",
    "glob_to_regex",
    "is_glob",
    "iter_files",
    "path_exists",
    "pattern_matches",
]
