"""Adapter for the external ``sysml2`` grammar-level validator."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .logging import get_logger
from .models import Diagnostic

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_LOCATED_PATTERN = re.compile(
    r"^(.+?):(\d+):(\d+):\s*(error|warning)(?:\[([A-Z]\d+)\])?:\s*(.+)$"
)
_UNLOCATED_PATTERN = re.compile(r"^(error|warning)\[([A-Z]\d+)\]:\s*(.+)$")

UNKNOWN_FILE = "<unknown>"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

logger = get_logger("grammar")


@dataclass
class GrammarReport:
    """Outcome of one grammar validator invocation."""

    success: bool
    exit_code: int
    diagnostics: List[Diagnostic] = field(default_factory=list)
    output: str = ""


def strip_ansi(text: str) -> str:
    return _ANSI_PATTERN.sub("", text)


def parse_diagnostics(output: str) -> List[Diagnostic]:
    """Parse line-anchored diagnostics from validator output."""
    diagnostics: List[Diagnostic] = []
    for raw_line in strip_ansi(output).splitlines():
        line = raw_line.strip()
        if not line:
            continue
        located = _LOCATED_PATTERN.match(line)
        if located:
            diagnostics.append(
                Diagnostic(
                    file=located.group(1),
                    line=int(located.group(2)),
                    column=int(located.group(3)),
                    severity=located.group(4),
                    code=located.group(5),
                    message=located.group(6).strip(),
                )
            )
            continue
        unlocated = _UNLOCATED_PATTERN.match(line)
        if unlocated:
            diagnostics.append(
                Diagnostic(
                    file=UNKNOWN_FILE,
                    line=0,
                    column=0,
                    severity=unlocated.group(1),
                    code=unlocated.group(2),
                    message=unlocated.group(3).strip(),
                )
            )
    return diagnostics


class GrammarValidator:
    """Runs the grammar validator once against a root file that imports the model."""

    def __init__(
        self,
        command: str = "sysml2",
        include_paths: Sequence[str | Path] = (),
        library_path: Optional[str] = None,
        runner: Runner | None = None,
    ) -> None:
        self.command = command
        self.include_paths = [Path(path) for path in include_paths]
        self.library_path = library_path
        self._runner = runner or self._default_runner

    def validate(self, root_file: Path, model_root: Path, *, cwd: Path | None = None) -> GrammarReport:
        """Validate ``root_file``; tool absence or crashes become one diagnostic."""
        args = [self.command, "--color=never", "-I", str(model_root)]
        for include in self.include_paths:
            args.extend(["-I", str(include)])
        args.append(str(root_file))

        env = dict(os.environ)
        env["SYSML2_LIBRARY_PATH"] = self.library_path or ""

        try:
            completed = self._runner(args, cwd=cwd or model_root.parent, env=env)
        except FileNotFoundError:
            logger.warning("%s not found in PATH; skipping grammar validation", self.command)
            return self._failure(root_file, f"{self.command} not found in PATH")
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            logger.warning("%s could not be run: %s", self.command, exc)
            return self._failure(root_file, f"{self.command} failed to run: {exc}")

        output = strip_ansi(f"{completed.stderr or ''}\n{completed.stdout or ''}")
        diagnostics = parse_diagnostics(output)
        success = completed.returncode == 0
        if not success and not diagnostics:
            diagnostics = [
                _synthetic(root_file, f"{self.command} exited with code {completed.returncode}")
            ]
        logger.debug(
            "%s exited with %d and %d diagnostics", self.command, completed.returncode, len(diagnostics)
        )
        return GrammarReport(
            success=success,
            exit_code=completed.returncode,
            diagnostics=diagnostics,
            output=output.strip(),
        )

    def _failure(self, root_file: Path, message: str) -> GrammarReport:
        return GrammarReport(success=False, exit_code=-1, diagnostics=[_synthetic(root_file, message)])

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(
            list(args),
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            check=False,
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
            stdin=subprocess.DEVNULL,
        )


def group_by_file(diagnostics: Iterable[Diagnostic], model_root: Path) -> Dict[str, List[Diagnostic]]:
    """Group diagnostics under model-root-relative file paths, in first-seen order."""
    grouped: Dict[str, List[Diagnostic]] = {}
    for diagnostic in diagnostics:
        grouped.setdefault(relative_model_path(diagnostic.file, model_root), []).append(diagnostic)
    return grouped


def relative_model_path(path: str, model_root: Path) -> str:
    if path == UNKNOWN_FILE:
        return path
    candidate = Path(path)
    for base in (model_root, model_root.resolve()):
        try:
            return candidate.relative_to(base).as_posix()
        except ValueError:
            continue
    if not candidate.is_absolute():
        prefix = model_root.name + "/"
        posix = candidate.as_posix()
        if posix.startswith(prefix):
            return posix[len(prefix):]
        return posix
    return candidate.as_posix()


def _synthetic(root_file: Path, message: str) -> Diagnostic:
    return Diagnostic(file=str(root_file), line=0, column=0, severity="error", message=message)


__all__ = [
    "GrammarReport",
    "GrammarValidator",
    "UNKNOWN_FILE",
    "group_by_file",
    "parse_diagnostics",
    "relative_model_path",
    "strip_ansi",
]
