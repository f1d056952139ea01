"""Back-reference coverage per cycle and manifest coverage of the repository."""

from __future__ import annotations

import math
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from .config import DEFAULT_MIN_MANIFEST_COVERAGE
from .corpus import find_covered_files, normalize_path
from .logging import get_logger
from .manifest import cycle_key, cycle_output_dir
from .models import (
    CoverageResult,
    Manifest,
    ManifestCoverageResult,
    ManifestGateResult,
    ModelFile,
)
from .repo_scanner import SourceScanner, expand_patterns

_DISPLAY_LIMIT = 20
_REJECTION_LIST_LIMIT = 30
_SUGGESTION_LIMIT = 10

logger = get_logger("coverage")


class ManifestRejected(RuntimeError):
    """Raised when a manifest fails the coverage acceptance gate."""

    def __init__(self, result: ManifestGateResult) -> None:
        super().__init__(result.message)
        self.result = result


def coverage_percent(total: int, missing: int) -> int:
    """Percentage of ``total`` not ``missing``, rounded half up; 100 when empty."""
    if total <= 0:
        return 100
    return int(math.floor(100 * (total - missing) / total + 0.5))


def clamp_threshold(threshold: Union[int, float]) -> int:
    """Round half up like ``coverage_percent`` and clamp to [0, 100]."""
    return int(max(0, min(100, math.floor(threshold + 0.5))))


def check_cycle_coverage(
    root: Path,
    manifest: Optional[Manifest],
    cycle: Union[int, str],
    corpus: Sequence[ModelFile],
) -> CoverageResult:
    """Measure how many of a cycle's expected files its own outputs claim.

    Only back-references inside the cycle's output subtree count, so files
    documented by an earlier cycle cannot inflate a later cycle's score.
    """
    key = cycle_key(cycle)
    result = CoverageResult(cycle=key)
    if manifest is None:
        return result

    spec = manifest.cycle(key)
    if spec is None or not spec.source_files:
        return result

    expected = expand_patterns(root, spec.source_files)
    result.expected_files = expected
    if not expected:
        return result

    subtree = cycle_output_dir(key)
    covered = find_covered_files(corpus, subtree)
    result.covered_files = sorted(covered)
    result.missing_files = [path for path in expected if path not in covered]
    result.coverage_percent = coverage_percent(len(expected), len(result.missing_files))
    logger.debug(
        "Cycle %s coverage: %d/%d files (%s%%)",
        key,
        len(expected) - len(result.missing_files),
        len(expected),
        result.coverage_percent,
    )
    return result


def expand_manifest_patterns(manifest: Manifest, root: Path) -> Set[str]:
    """Union of every cycle's ``sourceFiles`` patterns expanded against ``root``."""
    patterns: List[str] = []
    for spec in manifest.cycles.values():
        patterns.extend(spec.source_files)
    return set(expand_patterns(root, patterns))


def check_manifest_coverage(
    manifest: Manifest,
    root: Path,
    *,
    scanner: Optional[SourceScanner] = None,
) -> ManifestCoverageResult:
    """Compare the manifest's declared patterns with every discovered source file."""
    scanner = scanner or SourceScanner()
    discovered = scanner.scan(root)
    covered = expand_manifest_patterns(manifest, root)

    not_covered = [path for path in discovered if path not in covered]
    return ManifestCoverageResult(
        discovered_files=discovered,
        covered_by_patterns=sorted(covered),
        not_covered_files=not_covered,
        coverage_percent=coverage_percent(len(discovered), len(not_covered)),
        suggestions=suggest_patterns(not_covered),
    )


def suggest_patterns(uncovered_files: Iterable[str]) -> List[str]:
    """Propose one glob per directory holding two or more uncovered files."""
    files = [normalize_path(path) for path in uncovered_files]
    counts: Counter[str] = Counter()
    for path in files:
        if "/" in path:
            counts[path.rsplit("/", 1)[0]] += 1

    ranked = sorted(
        ((directory, count) for directory, count in counts.items() if count >= 2),
        key=lambda item: (-item[1], item[0]),
    )[:_SUGGESTION_LIMIT]

    suggestions: List[str] = []
    for directory, count in ranked:
        extensions: Dict[str, None] = {}
        for path in files:
            if path.startswith(f"{directory}/") and "." in path.rsplit("/", 1)[-1]:
                extensions[path.rsplit(".", 1)[-1]] = None
        if len(extensions) == 1:
            glob = f"*.{next(iter(extensions))}"
        elif len(extensions) == 2:
            glob = "{" + ",".join(f"*.{ext}" for ext in extensions) + "}"
        else:
            glob = "*"
        suggestions.append(f"{directory}/{glob} ({count} files)")
    return suggestions


def accept_manifest(
    manifest: Manifest,
    root: Path,
    *,
    threshold: Union[int, float] = DEFAULT_MIN_MANIFEST_COVERAGE,
    scanner: Optional[SourceScanner] = None,
) -> ManifestGateResult:
    """Gate a manifest on how much of the repository its patterns cover."""
    limit = clamp_threshold(threshold)
    coverage = check_manifest_coverage(manifest, root, scanner=scanner)

    if coverage.coverage_percent >= limit:
        message = (
            f"Manifest coverage {coverage.coverage_percent}% meets the {limit}% threshold "
            f"({len(coverage.covered_by_patterns)} files covered)"
        )
        return ManifestGateResult(accepted=True, threshold=limit, coverage=coverage, message=message)

    lines = [
        f"ERROR: Manifest coverage too low ({coverage.coverage_percent}% < {limit}% threshold)",
        "",
        f"{len(coverage.not_covered_files)} of {len(coverage.discovered_files)} source files "
        "are not matched by any cycle's sourceFiles:",
    ]
    for path in coverage.not_covered_files[:_REJECTION_LIST_LIMIT]:
        lines.append(f"  - {path}")
    remaining = len(coverage.not_covered_files) - _REJECTION_LIST_LIMIT
    if remaining > 0:
        lines.append(f"  ... and {remaining} more")
    if coverage.suggestions:
        lines.append("")
        lines.append("Suggested patterns:")
        lines.extend(f"  - {suggestion}" for suggestion in coverage.suggestions)

    logger.warning(
        "Manifest rejected: coverage %s%% below %s%%", coverage.coverage_percent, limit
    )
    return ManifestGateResult(
        accepted=False, threshold=limit, coverage=coverage, message="\n".join(lines)
    )


def ensure_manifest_accepted(
    manifest: Manifest,
    root: Path,
    *,
    threshold: Union[int, float] = DEFAULT_MIN_MANIFEST_COVERAGE,
    scanner: Optional[SourceScanner] = None,
) -> ManifestGateResult:
    """Like :func:`accept_manifest` but raise :class:`ManifestRejected` on failure."""
    result = accept_manifest(manifest, root, threshold=threshold, scanner=scanner)
    if not result.accepted:
        raise ManifestRejected(result)
    return result


def format_coverage_result(result: CoverageResult) -> str:
    lines = [
        f"Coverage: {result.coverage_percent}%",
        f"Expected: {len(result.expected_files)} files",
        f"Covered: {len(result.expected_files) - len(result.missing_files)} files",
        f"Missing: {len(result.missing_files)} files",
    ]
    lines.extend(_bounded_listing("Missing files:", result.missing_files))
    return "\n".join(lines)


def format_manifest_coverage_result(result: ManifestCoverageResult) -> str:
    lines = [
        f"Manifest Coverage: {result.coverage_percent}%",
        f"Discovered: {len(result.discovered_files)} source files in repository",
        f"Covered by patterns: {len(result.covered_by_patterns)} files",
        f"Not covered: {len(result.not_covered_files)} files",
    ]
    lines.extend(_bounded_listing("Uncovered files:", result.not_covered_files))
    return "\n".join(lines)


def _bounded_listing(heading: str, paths: Sequence[str]) -> List[str]:
    if not paths:
        return []
    lines = ["", heading]
    lines.extend(f"  - {path}" for path in paths[:_DISPLAY_LIMIT])
    if len(paths) > _DISPLAY_LIMIT:
        lines.append(f"  ... and {len(paths) - _DISPLAY_LIMIT} more")
    return lines


__all__ = [
    "ManifestRejected",
    "accept_manifest",
    "check_cycle_coverage",
    "check_manifest_coverage",
    "clamp_threshold",
    "coverage_percent",
    "ensure_manifest_accepted",
    "expand_manifest_patterns",
    "format_coverage_result",
    "format_manifest_coverage_result",
    "suggest_patterns",
]
