"""Tests for the sysml2 grammar validator adapter."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

from sysmlcheck.grammar import GrammarValidator, group_by_file, parse_diagnostics


class _StubRunner:
    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, args, *, cwd, env=None):
        self.calls.append({"args": list(args), "cwd": cwd, "env": env})
        return subprocess.CompletedProcess(
            args=list(args), returncode=self.returncode, stdout=self.stdout, stderr=self.stderr
        )


def _missing_executable(args, *, cwd, env=None):
    raise FileNotFoundError(args[0])


def _crashing_runner(args, *, cwd, env=None):
    raise ValueError("embedded null byte")


def test_parse_diagnostics_reads_located_and_unlocated_lines() -> None:
    output = (
        "\x1b[31m.sysml/context/system.sysml:12:5: error[E001]: unexpected token '}'\x1b[0m\n"
        ".sysml/data/entities.sysml:3:1: warning: unused import\n"
        "error[E100]: could not resolve library\n"
        "note: something informational\n"
    )

    diagnostics = parse_diagnostics(output)

    assert len(diagnostics) == 3
    first, second, third = diagnostics
    assert (first.file, first.line, first.column) == (".sysml/context/system.sysml", 12, 5)
    assert first.severity == "error"
    assert first.code == "E001"
    assert first.message == "unexpected token '}'"
    assert second.severity == "warning"
    assert second.code is None
    assert (third.file, third.line, third.column, third.code) == ("<unknown>", 0, 0, "E100")


def test_validate_invokes_tool_with_include_paths(tmp_path: Path) -> None:
    runner = _StubRunner()
    validator = GrammarValidator(
        command="sysml2",
        include_paths=[tmp_path / "lib"],
        library_path="/opt/sysml",
        runner=runner,
    )
    model_root = tmp_path / ".sysml"

    report = validator.validate(model_root / "_model.sysml", model_root, cwd=tmp_path)

    assert report.success is True
    assert report.diagnostics == []
    call = runner.calls[0]
    assert call["args"] == [
        "sysml2",
        "--color=never",
        "-I",
        str(model_root),
        "-I",
        str(tmp_path / "lib"),
        str(model_root / "_model.sysml"),
    ]
    assert call["cwd"] == tmp_path
    assert call["env"]["SYSML2_LIBRARY_PATH"] == "/opt/sysml"


def test_validate_reports_missing_executable_once(tmp_path: Path) -> None:
    validator = GrammarValidator(command="sysml2", runner=_missing_executable)

    report = validator.validate(tmp_path / "_model.sysml", tmp_path)

    assert report.success is False
    assert len(report.diagnostics) == 1
    assert report.diagnostics[0].message == "sysml2 not found in PATH"
    assert report.diagnostics[0].line == 0


def test_validate_nonzero_exit_without_diagnostics(tmp_path: Path) -> None:
    validator = GrammarValidator(runner=_StubRunner(returncode=2, stderr="panic\n"))

    report = validator.validate(tmp_path / "_model.sysml", tmp_path)

    assert report.exit_code == 2
    assert [d.message for d in report.diagnostics] == ["sysml2 exited with code 2"]


def test_validate_turns_runner_errors_into_one_diagnostic(tmp_path: Path) -> None:
    validator = GrammarValidator(runner=_crashing_runner)

    report = validator.validate(tmp_path / "_model.sysml", tmp_path)

    assert report.success is False
    assert [d.message for d in report.diagnostics] == ["sysml2 failed to run: embedded null byte"]


@pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell script")
def test_validate_tolerates_undecodable_tool_output(tmp_path: Path) -> None:
    tool = tmp_path / "fake-sysml2"
    tool.write_text(
        "#!/bin/sh\nprintf '_model.sysml:1:1: error: bad \\377\\376 byte\\n' >&2\nexit 1\n",
        encoding="utf-8",
    )
    tool.chmod(0o755)
    model_root = tmp_path / ".sysml"
    model_root.mkdir()

    report = GrammarValidator(command=str(tool)).validate(model_root / "_model.sysml", model_root, cwd=tmp_path)

    assert report.exit_code == 1
    assert len(report.diagnostics) == 1
    assert report.diagnostics[0].line == 1
    assert report.diagnostics[0].message.startswith("bad ")
    assert "\ufffd" in report.diagnostics[0].message


def test_group_by_file_relativises_to_model_root(tmp_path: Path) -> None:
    model_root = tmp_path / ".sysml"
    diagnostics = parse_diagnostics(
        f"{model_root}/data/a.sysml:1:1: error: bad\n"
        ".sysml/data/a.sysml:2:1: error: worse\n"
        "error[E1]: global\n"
    )

    grouped = group_by_file(diagnostics, model_root)

    assert list(grouped) == ["data/a.sysml", "<unknown>"]
    assert [d.line for d in grouped["data/a.sysml"]] == [1, 2]
