"""Loading and shape checking for the model manifest (.sysml/_manifest.json)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft202012Validator, ValidationError

from .logging import get_logger
from .models import (
    CycleSpec,
    DirectoryAssignment,
    Manifest,
    ProjectInfo,
    cycle_key,
    cycle_number,
)

MANIFEST_FILENAME = "_manifest.json"
REQUIRED_FIELDS = ("version", "project", "cycles")

# Output subtree of each numbered cycle, relative to the model root.
CYCLE_OUTPUT_DIRS: Dict[int, str] = {
    1: "context",
    2: "structure",
    3: "data",
    4: "behavior",
    5: "verification",
    6: "analysis",
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": list(REQUIRED_FIELDS),
    "properties": {
        "version": {"type": ["string", "number"]},
        "discoveredAt": {"type": "string"},
        "project": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "primaryLanguage": {"type": "string"},
                "framework": {"type": ["string", "null"]},
                "architectureStyle": {"type": ["string", "null"]},
            },
        },
        "cycles": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "sourceFiles": _STRING_LIST,
                    "expectedOutputs": _STRING_LIST,
                    "coverage": {
                        "type": "object",
                        "properties": {
                            "targetFiles": _STRING_LIST,
                            "totalCount": {"type": "integer"},
                        },
                    },
                },
            },
        },
        "directories": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path"],
                "properties": {
                    "path": {"type": "string"},
                    "purpose": {"type": "string"},
                    "cycles": {
                        "type": "object",
                        "additionalProperties": {
                            "type": "object",
                            "required": ["patterns"],
                            "properties": {
                                "patterns": _STRING_LIST,
                                "reason": {"type": "string"},
                            },
                        },
                    },
                },
            },
        },
        "statistics": {"type": "object"},
    },
}

logger = get_logger("manifest")


class ManifestError(RuntimeError):
    """Raised when the manifest file cannot be read or decoded."""


def manifest_path(model_root: Path) -> Path:
    return model_root / MANIFEST_FILENAME


def cycle_output_dir(key: "int | str") -> Optional[str]:
    """Return the model subtree written by a cycle, or None when unknown."""
    number = key if isinstance(key, int) else cycle_number(cycle_key(key))
    if number is None:
        return None
    return CYCLE_OUTPUT_DIRS.get(number)


def read_manifest_document(path: Path) -> Dict[str, Any]:
    """Return the decoded JSON object stored at ``path``."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Failed to read manifest: {exc}") from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Failed to parse manifest: {exc}") from exc
    if not isinstance(document, dict):
        raise ManifestError("Failed to parse manifest: root must be a JSON object")
    return document


def manifest_errors(document: Mapping[str, Any]) -> List[str]:
    """Return human-readable shape problems; an empty list means well formed."""
    errors: List[str] = []
    missing = set()
    for field_name in REQUIRED_FIELDS:
        if not document.get(field_name):
            missing.add(field_name)
            errors.append(f"Manifest missing {field_name} field")

    validator = Draft202012Validator(MANIFEST_SCHEMA)
    for error in sorted(validator.iter_errors(document), key=_error_path):
        if error.validator == "required" and not error.absolute_path:
            # Missing top-level fields are reported above.
            continue
        if error.absolute_path and error.absolute_path[0] in missing:
            continue
        errors.append(f"{_error_path(error)}: {error.message}")
    return errors


def _error_path(error: ValidationError) -> str:
    return "$" + "".join(f".{part}" for part in error.absolute_path)


def parse_manifest(document: Mapping[str, Any]) -> Manifest:
    """Build a Manifest, normalising every cycle key to ``cycleN``."""
    project_data = document.get("project")
    project = None
    if isinstance(project_data, dict):
        project = ProjectInfo(
            name=str(project_data.get("name") or ""),
            primary_language=_as_optional_str(project_data.get("primaryLanguage")),
            framework=_as_optional_str(project_data.get("framework")),
            architecture_style=_as_optional_str(project_data.get("architectureStyle")),
        )

    cycles: Dict[str, CycleSpec] = {}
    cycles_data = document.get("cycles")
    if isinstance(cycles_data, dict):
        for raw_key, cycle_data in cycles_data.items():
            if not isinstance(cycle_data, dict):
                continue
            key = cycle_key(raw_key)
            if key in cycles:
                logger.warning("Manifest declares cycle %s more than once; using %r", key, raw_key)
            coverage = cycle_data.get("coverage")
            cycles[key] = CycleSpec(
                key=key,
                name=str(cycle_data.get("name") or key),
                source_files=_as_str_list(cycle_data.get("sourceFiles")),
                expected_outputs=_as_str_list(cycle_data.get("expectedOutputs")),
                target_files=_as_str_list(coverage.get("targetFiles"))
                if isinstance(coverage, dict)
                else [],
            )

    directories: List[DirectoryAssignment] = []
    directories_data = document.get("directories")
    if isinstance(directories_data, list):
        for entry in directories_data:
            if not isinstance(entry, dict) or not isinstance(entry.get("path"), str):
                continue
            assignments: Dict[str, List[str]] = {}
            entry_cycles = entry.get("cycles")
            if isinstance(entry_cycles, dict):
                for raw_key, assignment in entry_cycles.items():
                    if isinstance(assignment, dict):
                        patterns = _as_str_list(assignment.get("patterns"))
                        assignments.setdefault(cycle_key(raw_key), []).extend(patterns)
            directories.append(
                DirectoryAssignment(
                    path=entry["path"],
                    purpose=_as_optional_str(entry.get("purpose")),
                    cycles=assignments,
                )
            )

    version = document.get("version")
    statistics = document.get("statistics")
    return Manifest(
        version=str(version) if version not in (None, "") else None,
        project=project,
        cycles=cycles,
        directories=directories,
        discovered_at=_as_optional_str(document.get("discoveredAt")),
        statistics=dict(statistics) if isinstance(statistics, dict) else {},
    )


def load_manifest(model_root: Path) -> Optional[Manifest]:
    """Load the manifest below ``model_root``; None when the file is absent."""
    path = manifest_path(model_root)
    if not path.is_file():
        return None
    return parse_manifest(read_manifest_document(path))


def _as_optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


__all__ = [
    "CYCLE_OUTPUT_DIRS",
    "MANIFEST_FILENAME",
    "MANIFEST_SCHEMA",
    "ManifestError",
    "cycle_key",
    "cycle_output_dir",
    "load_manifest",
    "manifest_errors",
    "manifest_path",
    "parse_manifest",
    "read_manifest_document",
]
