"""Tests for sysmlcheck.repo_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from sysmlcheck.repo_scanner import (
    SourceScanner,
    build_ignore_rule,
    expand_braces,
    expand_patterns,
    pattern_matches,
)
from tests._fixtures.repo_builder import RepoBuilder


def test_expand_braces_handles_nested_groups() -> None:
    assert expand_braces("src/*.{ts,tsx}") == ["src/*.ts", "src/*.tsx"]
    assert expand_braces("{a,b{1,2}}.ts") == ["a.ts", "b1.ts", "b2.ts"]
    assert expand_braces("plain.ts") == ["plain.ts"]


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("src/app.ts", "src/*.ts", True),
        ("src/lib/app.ts", "src/*.ts", False),
        ("src/lib/app.ts", "src/**/*.ts", True),
        ("src/app.ts", "src/**/*.ts", True),
        ("src/app.tsx", "src/*.{ts,tsx}", True),
        ("src/.hidden/app.ts", "src/**/*.ts", False),
        ("src/.hidden/app.ts", "src/.hidden/*.ts", True),
        ("src/app1.ts", "src/app?.ts", True),
    ],
)
def test_pattern_matches(path: str, pattern: str, expected: bool) -> None:
    assert pattern_matches(path, pattern) is expected


def test_ignore_rule_matches_any_segment_without_slash() -> None:
    rule = build_ignore_rule("*.d.ts")

    assert rule is not None
    assert rule.matches("src/types/index.d.ts", is_dir=False)
    assert not rule.matches("src/types/index.ts", is_dir=False)


def test_ignore_rule_directory_only() -> None:
    rule = build_ignore_rule("generated/")

    assert rule is not None
    assert rule.matches("generated", is_dir=True)
    assert not rule.matches("generated", is_dir=False)


def test_expand_patterns_keeps_existing_literals_only(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/app.ts": "", "src/lib/util.ts": "", "README.md": ""})

    expanded = expand_patterns(
        repo_builder.path(), ["./src/app.ts", "src/missing.ts", "src/lib/*.ts", "src/app.ts"]
    )

    assert expanded == ["src/app.ts", "src/lib/util.ts"]


def test_expand_patterns_treats_unreadable_literals_as_absent(
    repo_builder: RepoBuilder, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write({"src/app.ts": "", "locked/secret.ts": ""})
    original_is_file = Path.is_file

    def guarded_is_file(self: Path) -> bool:
        if "locked" in self.parts:
            raise PermissionError(13, "Permission denied", str(self))
        return original_is_file(self)

    monkeypatch.setattr(Path, "is_file", guarded_is_file)

    assert expand_patterns(repo_builder.path(), ["locked/secret.ts", "src/app.ts"]) == ["src/app.ts"]


def test_expand_patterns_skips_excluded_directories(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/app.ts": "",
            "node_modules/pkg/index.ts": "",
            "dist/app.ts": "",
        }
    )

    assert expand_patterns(repo_builder.path(), ["**/*.ts"]) == ["src/app.ts"]


def test_source_scanner_filters_extensions_and_exclusions(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/app.ts": "",
            "src/view.tsx": "",
            "src/types.d.ts": "",
            "src/style.css": "",
            "package.json": "{}",
            "package-lock.json": "{}",
            "scripts/build.js": "",
            "coverage/report.js": "",
            ".github/workflow.json": "{}",
            "src/legacy/old.ts": "",
        }
    )

    scanner = SourceScanner(exclude_paths=["src/legacy/"])
    files = scanner.scan(repo_builder.path())

    assert files == ["package.json", "src/app.ts", "src/view.tsx"]


def test_source_scanner_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SourceScanner().scan(tmp_path / "missing")
