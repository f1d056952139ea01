"""Reference integrity and model index consistency checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from ..logging import get_logger
from ..models import MissingReference, ModelIndexMismatch, ValidationResult
from .base import MODEL_INDEX_FILE, ValidationContext

# Names resolvable without any corpus definition.
STANDARD_LIBRARY_NAMES = frozenset(
    {
        "SysMLPrimitives",
        "ISQ",
        "SI",
        "Base",
        "Metaobjects",
        "Links",
        "Objects",
        "Performances",
        "Occurrences",
        "Items",
        "Parts",
        "Ports",
        "Connections",
        "Interfaces",
        "Actions",
        "States",
        "Calculations",
        "Constraints",
        "Requirements",
        "Cases",
        "Analysis",
        "Allocations",
        "Metadata",
        "Views",
        "ScalarValues",
    }
)

DEFINITION_KINDS = (
    "item",
    "part",
    "enum",
    "action",
    "state",
    "requirement",
    "interface",
    "port",
    "attribute",
    "analysis",
    "verification",
    "metadata",
    "constraint",
    "connection",
    "allocation",
)

_PACKAGE_PATTERN = re.compile(r"(?:standard\s+library\s+)?package\s+(\w+)")
_DATATYPE_PATTERN = re.compile(r"datatype\s+(\w+)")
_DEFINITION_PATTERN = re.compile(rf"(?:{'|'.join(DEFINITION_KINDS)})\s+def\s+(\w+)")
_IMPORT_PATTERN = re.compile(r"^\s*import\s+(\w+)(::[^;]+)?;?")
_SPECIALIZATION_PATTERN = re.compile(r":>\s+(\w+)(?!\s*>)")
_INDEX_IMPORT_PATTERN = re.compile(r"import\s+(\w+)::")
_ROOT_PACKAGE_PATTERN = re.compile(
    r"^\s*(?:(?:standard\s+)?library\s+)?package\s+(\w+)", re.MULTILINE
)
_COMMENT_PATTERN = re.compile(r"/\*.*?\*/|//[^\n]*", re.DOTALL)

_CONTEXT_WIDTH = 60

logger = get_logger("validators.references")


@dataclass(frozen=True)
class ImportRef:
    line: int
    package: str
    statement: str


@dataclass(frozen=True)
class SpecializationRef:
    line: int
    base_type: str
    context: str


def extract_defined_names(content: str) -> Set[str]:
    """Return package, datatype and ``<kind> def`` names declared in ``content``."""
    names: Set[str] = set()
    for pattern in (_PACKAGE_PATTERN, _DATATYPE_PATTERN, _DEFINITION_PATTERN):
        names.update(match.group(1) for match in pattern.finditer(content))
    return names


def extract_imports(content: str) -> List[ImportRef]:
    imports: List[ImportRef] = []
    for number, line in enumerate(content.split("\n"), start=1):
        match = _IMPORT_PATTERN.match(line)
        if match:
            imports.append(ImportRef(line=number, package=match.group(1), statement=match.group(0).strip()))
    return imports


def extract_specializations(content: str) -> List[SpecializationRef]:
    """Return ``:> Base`` references; redefinitions (``:>>``) are not included."""
    found: List[SpecializationRef] = []
    for number, line in enumerate(content.split("\n"), start=1):
        context = line.strip()[:_CONTEXT_WIDTH]
        for match in _SPECIALIZATION_PATTERN.finditer(line):
            found.append(SpecializationRef(line=number, base_type=match.group(1), context=context))
    return found


def strip_comments(content: str) -> str:
    return _COMMENT_PATTERN.sub("", content)


def root_package(content: str) -> Optional[str]:
    """Return the first package declared outside comments, if any."""
    match = _ROOT_PACKAGE_PATTERN.search(strip_comments(content))
    return match.group(1) if match else None


def index_imports(content: str) -> List[str]:
    """Return top-level package names imported by the model index, in order."""
    seen: dict[str, None] = {}
    for match in _INDEX_IMPORT_PATTERN.finditer(strip_comments(content)):
        seen.setdefault(match.group(1), None)
    return list(seen)


def collect_defined_names(contents: Iterable[str]) -> Set[str]:
    names: Set[str] = set(STANDARD_LIBRARY_NAMES)
    for content in contents:
        names.update(extract_defined_names(content))
    return names


class ReferenceIntegrityCheck:
    """Flags imports and user-type specializations that name nothing defined."""

    name = "references"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        defined = collect_defined_names(context.contents.values())
        for path in sorted(context.contents):
            content = context.contents[path]
            for ref in extract_imports(content):
                if ref.package not in defined:
                    result.missing_references.append(
                        MissingReference(
                            file=path,
                            line=ref.line,
                            kind="import",
                            reference=ref.package,
                            context=ref.statement,
                        )
                    )
            for spec in extract_specializations(content):
                if spec.base_type[:1].isupper() and spec.base_type not in defined:
                    result.missing_references.append(
                        MissingReference(
                            file=path,
                            line=spec.line,
                            kind="specialization",
                            reference=spec.base_type,
                            context=spec.context,
                        )
                    )
        logger.debug("Reference check found %d unresolved names", len(result.missing_references))


class ModelIndexCheck:
    """Compares the model index imports with packages declared across the corpus."""

    name = "model_index"

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        index_content = context.contents.get(MODEL_INDEX_FILE)
        if index_content is None:
            return

        imported = index_imports(index_content)
        declared: List[str] = []
        for path in sorted(context.contents):
            if path == MODEL_INDEX_FILE:
                continue
            package = root_package(context.contents[path])
            if package and package not in declared:
                declared.append(package)

        imported_but_missing = [
            name for name in imported if name not in declared and name not in STANDARD_LIBRARY_NAMES
        ]
        existing_but_not_imported = [name for name in declared if name not in imported]
        if imported_but_missing or existing_but_not_imported:
            result.model_index_mismatches = ModelIndexMismatch(
                imported_but_missing=imported_but_missing,
                existing_but_not_imported=existing_but_not_imported,
            )


__all__ = [
    "DEFINITION_KINDS",
    "ModelIndexCheck",
    "ReferenceIntegrityCheck",
    "STANDARD_LIBRARY_NAMES",
    "collect_defined_names",
    "extract_defined_names",
    "extract_imports",
    "extract_specializations",
    "index_imports",
    "root_package",
]
