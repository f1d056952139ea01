"""Core validation data structures shared by the structural checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from ..models import Manifest, ModelFile, ValidationResult

# Files the generator owns; they are never expected outputs of a cycle.
SYSTEM_FILES = frozenset(
    {
        "_manifest.json",
        "_model.sysml",
        "_project.sysml",
        "SysMLPrimitives.sysml",
    }
)
MODEL_INDEX_FILE = "_model.sysml"
DIRECTORY_INDEX_FILE = "_index.sysml"


@dataclass
class ValidationContext:
    """Everything a check may read; checks only ever write to the result."""

    root: Path
    model_root: Path
    corpus: Sequence[ModelFile]
    manifest: Optional[Manifest] = None
    contents: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.contents:
            self.contents = {model_file.path: model_file.content for model_file in self.corpus}

    @property
    def model_paths(self) -> List[str]:
        return [model_file.path for model_file in self.corpus]


class Check(Protocol):
    """Protocol implemented by independent structural checks."""

    name: str

    def run(self, context: ValidationContext, result: ValidationResult) -> None:
        """Append findings to ``result``; never raise for model content problems."""
