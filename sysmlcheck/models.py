"""Core data models shared across sysmlcheck components."""

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

_CYCLE_KEY_PATTERN = re.compile(r"^(?:cycle)?(\d+)$", re.IGNORECASE)


def cycle_key(value: Union[int, str]) -> str:
    """Return the canonical "cycleN" spelling for a cycle number or key."""
    text = str(value).strip()
    match = _CYCLE_KEY_PATTERN.match(text)
    if match:
        return f"cycle{int(match.group(1))}"
    return text


def cycle_number(key: str) -> Optional[int]:
    match = _CYCLE_KEY_PATTERN.match(key.strip())
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class ModelFile:
    """One file of the model corpus, keyed by its model-root-relative path."""

    path: str
    content: str


@dataclass
class ProjectInfo:
    """Project metadata recorded in the manifest."""

    name: str
    primary_language: Optional[str] = None
    framework: Optional[str] = None
    architecture_style: Optional[str] = None


@dataclass
class CycleSpec:
    """A generation phase: its source scope and the model files it produces."""

    key: str
    name: str
    source_files: List[str] = field(default_factory=list)
    expected_outputs: List[str] = field(default_factory=list)
    target_files: List[str] = field(default_factory=list)


@dataclass
class DirectoryAssignment:
    """Assigns glob patterns below a repository directory to cycles."""

    path: str
    purpose: Optional[str] = None
    cycles: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Manifest:
    """Parsed view of .sysml/_manifest.json with canonical cycle keys."""

    version: Optional[str]
    project: Optional[ProjectInfo]
    cycles: Dict[str, CycleSpec] = field(default_factory=dict)
    directories: List[DirectoryAssignment] = field(default_factory=list)
    discovered_at: Optional[str] = None
    statistics: Dict[str, Any] = field(default_factory=dict)

    def cycle(self, key: Union[int, str]) -> Optional[CycleSpec]:
        return self.cycles.get(cycle_key(key))

    def expected_outputs(self) -> List[str]:
        outputs: List[str] = []
        for spec in self.cycles.values():
            outputs.extend(spec.expected_outputs)
        return outputs


@dataclass
class CoverageResult:
    """Back-reference coverage of one cycle's expected source files."""

    cycle: str
    expected_files: List[str] = field(default_factory=list)
    covered_files: List[str] = field(default_factory=list)
    missing_files: List[str] = field(default_factory=list)
    coverage_percent: int = 100


@dataclass
class ManifestCoverageResult:
    """How much of the repository the manifest's source patterns reach."""

    discovered_files: List[str] = field(default_factory=list)
    covered_by_patterns: List[str] = field(default_factory=list)
    not_covered_files: List[str] = field(default_factory=list)
    coverage_percent: int = 100
    suggestions: List[str] = field(default_factory=list)


@dataclass
class ManifestGateResult:
    """Outcome of the manifest acceptance gate."""

    accepted: bool
    threshold: int
    coverage: ManifestCoverageResult
    message: str


@dataclass(frozen=True)
class Diagnostic:
    """A single finding reported by the external grammar validator."""

    file: str
    line: int
    column: int
    severity: str
    message: str
    code: Optional[str] = None

    def render(self) -> str:
        return f"Line {self.line}:{self.column}: {self.message}"


@dataclass
class SyntaxIssue:
    """Grammar diagnostics grouped under one model file."""

    file: str
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> List[str]:
        return [diagnostic.render() for diagnostic in self.diagnostics]


@dataclass
class ExpectedOutput:
    path: str
    exists: bool


@dataclass
class FileCoverageMismatch:
    cycle: str
    patterns: List[str]
    expected: int
    covered: int
    uncovered_files: List[str]


@dataclass
class MissingReference:
    file: str
    line: int
    kind: str
    reference: str
    context: Optional[str] = None


@dataclass
class BrokenReference:
    """A back-reference naming a source path that is not a file in the repository."""

    file: str
    path: str


@dataclass
class CoverageIssue:
    cycle: str
    kind: str
    path: str
    detail: Optional[str] = None


@dataclass
class ModelIndexMismatch:
    imported_but_missing: List[str] = field(default_factory=list)
    existing_but_not_imported: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Aggregate of independent structural checks over a model corpus."""

    manifest_exists: bool = False
    manifest_errors: List[str] = field(default_factory=list)
    expected_outputs: List[ExpectedOutput] = field(default_factory=list)
    syntax_errors: List[SyntaxIssue] = field(default_factory=list)
    file_coverage_mismatches: List[FileCoverageMismatch] = field(default_factory=list)
    orphaned_files: List[str] = field(default_factory=list)
    missing_references: List[MissingReference] = field(default_factory=list)
    broken_references: List[BrokenReference] = field(default_factory=list)
    coverage_issues: List[CoverageIssue] = field(default_factory=list)
    model_index_mismatches: Optional[ModelIndexMismatch] = None
    check_errors: List[str] = field(default_factory=list)
    valid_file_count: int = 0
    total_file_count: int = 0

    @property
    def missing_outputs(self) -> List[ExpectedOutput]:
        return [output for output in self.expected_outputs if not output.exists]

    @property
    def issue_count(self) -> int:
        count = len(self.manifest_errors)
        count += len(self.missing_outputs)
        count += len(self.syntax_errors)
        count += len(self.file_coverage_mismatches)
        count += len(self.orphaned_files)
        count += len(self.missing_references)
        count += len(self.broken_references)
        count += len(self.coverage_issues)
        if self.model_index_mismatches is not None:
            count += len(self.model_index_mismatches.imported_but_missing)
            count += len(self.model_index_mismatches.existing_but_not_imported)
        count += len(self.check_errors)
        return count

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        for entry, issue in zip(payload["syntax_errors"], self.syntax_errors):
            entry["errors"] = issue.errors
        payload["issue_count"] = self.issue_count
        return payload


class DiagramKind(str, Enum):
    ENTITY = "entity"
    STATE = "state"
    FLOW = "flow"
    ARCHITECTURE = "architecture"


@dataclass
class Diagram:
    """A renderable D2 graph description derived from the corpus."""

    kind: DiagramKind
    title: str
    body: str
    source_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "body": self.body,
            "source_files": list(self.source_files),
        }
