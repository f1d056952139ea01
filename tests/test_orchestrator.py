"""Tests for the Auditor facade."""

from __future__ import annotations

import subprocess
from typing import List

import pytest

from sysmlcheck.manifest import ManifestError
from sysmlcheck.models import DiagramKind
from sysmlcheck.orchestrator import Auditor
from tests._fixtures.repo_builder import RepoBuilder, write_sample_project


class _RecordingRunner:
    def __init__(self, stdout: str = "", returncode: int = 0) -> None:
        self.stdout = stdout
        self.returncode = returncode
        self.calls: List[List[str]] = []

    def __call__(self, args, *, cwd, env=None):
        self.calls.append(list(args))
        return subprocess.CompletedProcess(args=list(args), returncode=self.returncode, stdout=self.stdout, stderr="")


def test_run_validate_uses_configured_grammar_tool(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    repo_builder.write(
        {
            ".sysmlcheck.yml": """
            grammar:
              command: "sysml2-nightly"
              include_paths: ["vendor/lib"]
            """
        }
    )
    runner = _RecordingRunner(stdout=".sysml/behavior/order.sysml:4:5: error: bad transition\n", returncode=1)

    result = Auditor(grammar_runner=runner).run_validate(repo_builder.path())

    assert len(runner.calls) == 1
    args = runner.calls[0]
    assert args[0] == "sysml2-nightly"
    assert str(repo_builder.path() / "vendor" / "lib") in args
    assert [issue.file for issue in result.syntax_errors] == ["behavior/order.sysml"]
    assert result.issue_count == 1


def test_run_validate_skips_grammar_when_disabled(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    runner = _RecordingRunner()

    result = Auditor(grammar_runner=runner).run_validate(repo_builder.path())

    assert runner.calls == []
    assert result.issue_count == 0


def test_run_validate_reports_crashing_grammar_tool(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    repo_builder.write({".sysmlcheck.yml": "grammar:\n  enabled: true\n"})

    def crashing_runner(args, *, cwd, env=None):
        raise ValueError("embedded null byte")

    result = Auditor(grammar_runner=crashing_runner).run_validate(repo_builder.path())

    assert [issue.file for issue in result.syntax_errors] == ["_model.sysml"]
    assert result.syntax_errors[0].diagnostics[0].message == "sysml2 failed to run: embedded null byte"


def test_run_cycle_coverage_accepts_numeric_cycle(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)

    result = Auditor().run_cycle_coverage(repo_builder.path(), "1")

    assert result.cycle == "cycle1"
    assert result.expected_files == ["src/app.ts", "src/order.ts"]
    assert result.coverage_percent == 100


def test_run_cycle_coverage_propagates_manifest_errors(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    repo_builder.write_model({"_manifest.json": "[]"})

    with pytest.raises(ManifestError):
        Auditor().run_cycle_coverage(repo_builder.path(), 1)


def test_run_manifest_check_uses_configured_threshold(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    repo_builder.write(
        {
            ".sysmlcheck.yml": "coverage:\n  min_manifest_coverage: 60\n",
            "lib/extra.ts": "",
        }
    )

    gate = Auditor().run_manifest_check(repo_builder.path())

    assert gate.threshold == 60
    assert gate.coverage.coverage_percent == 67
    assert gate.accepted is True


def test_run_manifest_check_requires_manifest(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/app.ts": ""})

    with pytest.raises(FileNotFoundError, match="Manifest not found"):
        Auditor().run_manifest_check(repo_builder.path())


def test_run_diagrams_honours_enabled_passes(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)
    repo_builder.write({".sysmlcheck.yml": "diagrams:\n  enabled: [state]\n"})

    run = Auditor().run_diagrams(repo_builder.path(), write=False)

    assert [d.kind for d in run.diagrams] == [DiagramKind.STATE]
    assert run.written == []
    assert not (repo_builder.model_root / "_diagrams").exists()


def test_run_diagrams_writes_to_default_output(repo_builder: RepoBuilder) -> None:
    write_sample_project(repo_builder)

    run = Auditor().run_diagrams(repo_builder.path())

    assert run.output_dir == repo_builder.model_root.resolve() / "_diagrams"
    assert len(run.written) == 2
    assert all(path.suffix == ".d2" for path in run.written)


def test_missing_repository_raises(repo_builder: RepoBuilder) -> None:
    with pytest.raises(FileNotFoundError):
        Auditor().run_validate(repo_builder.path() / "nope")
