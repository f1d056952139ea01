"""State machine diagrams from ``state def`` blocks."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from ..corpus import extract_block
from ..models import Diagram, DiagramKind, ModelFile
from .base import DiagramPass
from .d2 import d2_id, first_doc, state_color
from .records import StateDef, StateNode, Transition

_STATE_DEF_PATTERN = re.compile(r"state\s+def\s+(\w+)\s*\{")
_STATE_PATTERN = re.compile(r"state\s+(\w+)\s*(?:\{|;)")
_TRANSITION_PATTERN = re.compile(r"transition(?:\s+(\w+))?\s+first\s+(\w+)\s+then\s+(\w+)\s*;")


def parse_state_defs(files: Iterable[ModelFile]) -> List[StateDef]:
    state_defs: List[StateDef] = []
    for model_file in files:
        for match in _STATE_DEF_PATTERN.finditer(model_file.content):
            block = extract_block(model_file.content, match.start())

            states: List[StateNode] = []
            for state in _STATE_PATTERN.finditer(block):
                name = state.group(1)
                if name == "def":
                    continue
                body = extract_block(block, state.start()) if state.group(0).endswith("{") else ""
                states.append(StateNode(name=name, doc=first_doc(body)))

            transitions = [
                Transition(source=t.group(2), target=t.group(3), label=t.group(1) or None)
                for t in _TRANSITION_PATTERN.finditer(block)
            ]

            if states or transitions:
                state_defs.append(
                    StateDef(
                        name=match.group(1),
                        doc=first_doc(block),
                        states=states,
                        transitions=transitions,
                        file=model_file.path,
                    )
                )
    return state_defs


def render_state_machine(state_def: StateDef) -> str:
    lines = ["direction: right", ""]
    declared: List[str] = []
    for index, state in enumerate(state_def.states):
        lines.append(f'{d2_id(state.name)}: {state.name} {{style.fill: "{state_color(index)}"}}')
        if state.name not in declared:
            declared.append(state.name)

    # States only reachable through transitions still need a node.
    for transition in state_def.transitions:
        for name in (transition.source, transition.target):
            if name not in declared:
                lines.append(f'{d2_id(name)}: {name} {{style.fill: "{state_color(len(declared))}"}}')
                declared.append(name)

    lines.append("")
    for transition in state_def.transitions:
        label = f": {transition.label}" if transition.label else ""
        lines.append(f"{d2_id(transition.source)} -> {d2_id(transition.target)}{label}")
    return "\n".join(lines)


class StatePass(DiagramPass):
    kind = DiagramKind.STATE

    def extract(self, files: Sequence[ModelFile]) -> List[Diagram]:
        return [
            Diagram(
                kind=self.kind,
                title=f"{state_def.name} State Machine",
                body=render_state_machine(state_def),
                source_files=[state_def.file],
            )
            for state_def in parse_state_defs(files)
        ]


__all__ = ["StatePass", "parse_state_defs", "render_state_machine"]
