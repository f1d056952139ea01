"""Structural validation of a model corpus against its manifest and source tree."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from ..corpus import extract_source_references, find_covered_files, scan_corpus
from ..grammar import GrammarValidator, group_by_file
from ..logging import get_logger
from ..manifest import (
    ManifestError,
    manifest_errors,
    manifest_path,
    parse_manifest,
    read_manifest_document,
)
from ..models import (
    BrokenReference,
    CoverageIssue,
    ExpectedOutput,
    FileCoverageMismatch,
    SyntaxIssue,
    ValidationResult,
)
from ..repo_scanner import dir_exists, expand_patterns, file_exists, path_exists
from .base import (
    DIRECTORY_INDEX_FILE,
    MODEL_INDEX_FILE,
    SYSTEM_FILES,
    Check,
    ValidationContext,
)
from .references import ModelIndexCheck, ReferenceIntegrityCheck

logger = get_logger("validators.structure")


class ExpectedOutputsCheck:
    """Every declared expected output must exist below the model root."""

    name = "expected_outputs"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        if context.manifest is None:
            return
        for output in context.manifest.expected_outputs():
            result.expected_outputs.append(
                ExpectedOutput(path=output, exists=file_exists(context.model_root / output))
            )


class SyntaxCheck:
    """Delegates grammar validation of the model index to the external tool."""

    name = "syntax"

    def __init__(self, grammar: Optional[GrammarValidator]) -> None:
        self.grammar = grammar

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        result.total_file_count = len(context.corpus)
        if self.grammar is not None and context.corpus:
            report = self.grammar.validate(
                context.model_root / MODEL_INDEX_FILE, context.model_root, cwd=context.root
            )
            grouped = group_by_file(report.diagnostics, context.model_root)
            for path, diagnostics in grouped.items():
                result.syntax_errors.append(SyntaxIssue(file=path, diagnostics=diagnostics))
        result.valid_file_count = max(0, result.total_file_count - len(result.syntax_errors))


class FileCoverageCheck:
    """Each cycle's expanded source files should carry a back-reference somewhere."""

    name = "file_coverage"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        if context.manifest is None:
            return
        covered = find_covered_files(context.corpus)
        for key, spec in context.manifest.cycles.items():
            if not spec.source_files:
                continue
            expected = expand_patterns(context.root, spec.source_files)
            if not expected:
                continue
            uncovered = [path for path in expected if path not in covered]
            if uncovered:
                result.file_coverage_mismatches.append(
                    FileCoverageMismatch(
                        cycle=key,
                        patterns=list(spec.source_files),
                        expected=len(expected),
                        covered=len(expected) - len(uncovered),
                        uncovered_files=uncovered,
                    )
                )


class OrphanCheck:
    """Model files no cycle claims as an expected output."""

    name = "orphans"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        if context.manifest is None:
            return
        expected = set(SYSTEM_FILES)
        expected.update(context.manifest.expected_outputs())
        for path in context.model_paths:
            if path.startswith("_"):
                continue
            if path == DIRECTORY_INDEX_FILE or path.endswith(f"/{DIRECTORY_INDEX_FILE}"):
                continue
            if path not in expected and path not in result.orphaned_files:
                result.orphaned_files.append(path)


class BrokenReferenceCheck:
    """Back-references must name files that exist in the repository."""

    name = "broken_references"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        for model_file in context.corpus:
            seen: Set[str] = set()
            for source_path in extract_source_references(model_file.content):
                if source_path in seen:
                    continue
                seen.add(source_path)
                if not file_exists(context.root / source_path):
                    result.broken_references.append(
                        BrokenReference(file=model_file.path, path=source_path)
                    )


class CoverageTargetsCheck:
    """Target files, assigned directories and their patterns must resolve on disk."""

    name = "coverage_targets"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        manifest = context.manifest
        if manifest is None:
            return
        for key, spec in manifest.cycles.items():
            for target in spec.target_files:
                if not file_exists(context.root / target):
                    result.coverage_issues.append(
                        CoverageIssue(cycle=key, kind="missing-file", path=target)
                    )

        for directory in manifest.directories:
            dir_path = context.root / directory.path
            if not path_exists(dir_path):
                result.coverage_issues.append(
                    CoverageIssue(cycle="directories", kind="missing-directory", path=directory.path)
                )
                continue
            prefix = directory.path.rstrip("/")
            for key, patterns in directory.cycles.items():
                for pattern in patterns:
                    joined = f"{prefix}/{pattern}" if prefix not in ("", ".") else pattern
                    if not expand_patterns(context.root, [joined]):
                        result.coverage_issues.append(
                            CoverageIssue(
                                cycle=key,
                                kind="pattern-no-match",
                                path=f"{directory.path}/{pattern}",
                                detail="Pattern does not match any files",
                            )
                        )


def default_checks(grammar: Optional[GrammarValidator]) -> List[Check]:
    return [
        ExpectedOutputsCheck(),
        SyntaxCheck(grammar),
        FileCoverageCheck(),
        OrphanCheck(),
        ReferenceIntegrityCheck(),
        BrokenReferenceCheck(),
        CoverageTargetsCheck(),
        ModelIndexCheck(),
    ]


class StructuralValidator:
    """Runs every structural check over a repository's model corpus.

    Checks are independent and additive: a check that raises is logged and
    recorded in ``check_errors`` while the others still run. A missing model
    directory or an unusable manifest is recorded as a manifest error and the
    manifest-dependent checks are skipped.
    """

    def __init__(
        self,
        model_dir: str = ".sysml",
        grammar: Optional[GrammarValidator] = None,
        checks: Optional[Iterable[Check]] = None,
    ) -> None:
        self.model_dir = model_dir
        self.grammar = grammar
        self._checks: Optional[Sequence[Check]] = list(checks) if checks is not None else None

    def validate(self, root: str | Path) -> ValidationResult:
        root_path = Path(root).expanduser().resolve()
        model_root = root_path / self.model_dir
        result = ValidationResult()

        if not dir_exists(model_root):
            result.manifest_errors.append(f"No {self.model_dir} directory found")
            return result

        path = manifest_path(model_root)
        result.manifest_exists = file_exists(path)
        manifest = None
        if not result.manifest_exists:
            result.manifest_errors.append(
                f"Manifest not found at {self.model_dir}/{path.name}"
            )
        else:
            try:
                document = read_manifest_document(path)
            except ManifestError as exc:
                result.manifest_errors.append(str(exc))
            else:
                result.manifest_errors.extend(manifest_errors(document))
                manifest = parse_manifest(document)

        context = ValidationContext(
            root=root_path,
            model_root=model_root,
            corpus=scan_corpus(model_root),
            manifest=manifest,
        )
        checks = self._checks if self._checks is not None else default_checks(self.grammar)
        for check in checks:
            logger.debug("Running %s check", check.name)
            try:
                check.run(context, result)
            except Exception as exc:
                logger.exception("%s check failed", check.name)
                result.check_errors.append(f"{check.name} check failed: {exc}")

        logger.info(
            "Validated %d model files: %d issue(s)", result.total_file_count, result.issue_count
        )
        return result


__all__ = [
    "BrokenReferenceCheck",
    "CoverageTargetsCheck",
    "ExpectedOutputsCheck",
    "FileCoverageCheck",
    "OrphanCheck",
    "StructuralValidator",
    "SyntaxCheck",
    "default_checks",
]
