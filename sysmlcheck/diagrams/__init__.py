"""Diagram extraction passes and the extraction entry points."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from ..corpus import split_corpus
from ..logging import get_logger
from ..models import Diagram, DiagramKind, ModelFile
from .architecture import ArchitecturePass
from .base import DiagramPass
from .entities import EntityPass
from .flows import FlowPass
from .states import StatePass

# Extraction order is the order of this mapping.
PASS_TYPES: Dict[DiagramKind, Callable[[], DiagramPass]] = {
    DiagramKind.ENTITY: EntityPass,
    DiagramKind.STATE: StatePass,
    DiagramKind.FLOW: FlowPass,
    DiagramKind.ARCHITECTURE: ArchitecturePass,
}

_SLUG_UNSAFE = re.compile(r"[^a-z0-9]+")

logger = get_logger("diagrams")


def build_passes(kinds: Optional[Iterable[str]] = None) -> List[DiagramPass]:
    """Instantiate the passes for ``kinds`` in extraction order; all four by default.

    Kind names are case-insensitive. Unknown names raise ``ValueError``.
    """
    if kinds is None:
        return [factory() for factory in PASS_TYPES.values()]

    requested: Set[DiagramKind] = set()
    unknown: List[str] = []
    for name in kinds:
        try:
            requested.add(DiagramKind(name.strip().lower()))
        except ValueError:
            unknown.append(name)
    if unknown:
        raise ValueError(f"Unknown diagram kinds requested: {', '.join(sorted(unknown))}")
    return [factory() for kind, factory in PASS_TYPES.items() if kind in requested]


def extract_diagrams(
    files: Sequence[ModelFile],
    passes: Optional[Sequence[DiagramPass]] = None,
) -> List[Diagram]:
    """Run every pass over ``files`` and concatenate their diagrams."""

    active = list(passes) if passes is not None else build_passes()
    diagrams: List[Diagram] = []
    for diagram_pass in active:
        found = diagram_pass.extract(files)
        logger.debug("%s pass produced %d diagram(s)", diagram_pass.kind.value, len(found))
        diagrams.extend(found)
    return diagrams


def extract_diagrams_from_text(
    text: str,
    passes: Optional[Sequence[DiagramPass]] = None,
) -> List[Diagram]:
    return extract_diagrams(split_corpus(text), passes)


def diagram_filename(diagram: Diagram) -> str:
    """``Order State Machine`` of kind ``state`` becomes ``state-order-state-machine.d2``."""
    slug = _SLUG_UNSAFE.sub("-", f"{diagram.kind.value} {diagram.title}".lower()).strip("-")
    return f"{slug}.d2"


def write_diagrams(diagrams: Iterable[Diagram], out_dir: Path) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for diagram in diagrams:
        target = out_dir / diagram_filename(diagram)
        target.write_text(diagram.body + "\n", encoding="utf-8")
        written.append(target)
    logger.info("Wrote %d diagram(s) to %s", len(written), out_dir)
    return written


__all__ = [
    "ArchitecturePass",
    "DiagramPass",
    "EntityPass",
    "FlowPass",
    "PASS_TYPES",
    "StatePass",
    "build_passes",
    "diagram_filename",
    "extract_diagrams",
    "extract_diagrams_from_text",
    "write_diagrams",
]
