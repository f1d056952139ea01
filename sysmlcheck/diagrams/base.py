"""Base class for diagram extraction passes."""

from abc import ABC, abstractmethod
from typing import ClassVar, List, Sequence

from ..models import Diagram, DiagramKind, ModelFile


class DiagramPass(ABC):
    """Contract for passes that turn corpus files into diagrams."""

    kind: ClassVar[DiagramKind]

    @abstractmethod
    def extract(self, files: Sequence[ModelFile]) -> List[Diagram]:
        """Return the diagrams found in ``files``; malformed input yields none."""
