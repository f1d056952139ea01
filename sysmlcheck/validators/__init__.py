"""Structural validation package for generated model corpora."""

from .base import SYSTEM_FILES, Check, ValidationContext
from .references import (
    STANDARD_LIBRARY_NAMES,
    ModelIndexCheck,
    ReferenceIntegrityCheck,
    extract_defined_names,
    extract_imports,
    extract_specializations,
)
from .structure import (
    BrokenReferenceCheck,
    CoverageTargetsCheck,
    ExpectedOutputsCheck,
    FileCoverageCheck,
    OrphanCheck,
    StructuralValidator,
    SyntaxCheck,
    default_checks,
)

__all__ = [
    "BrokenReferenceCheck",
    "Check",
    "CoverageTargetsCheck",
    "ExpectedOutputsCheck",
    "FileCoverageCheck",
    "ModelIndexCheck",
    "OrphanCheck",
    "ReferenceIntegrityCheck",
    "STANDARD_LIBRARY_NAMES",
    "SYSTEM_FILES",
    "StructuralValidator",
    "SyntaxCheck",
    "ValidationContext",
    "default_checks",
    "extract_defined_names",
    "extract_imports",
    "extract_specializations",
]
