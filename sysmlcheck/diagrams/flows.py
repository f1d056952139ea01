"""Action flow diagrams from ``action def`` blocks with ``first ... then`` succession."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from ..corpus import extract_block
from ..models import Diagram, DiagramKind, ModelFile
from .base import DiagramPass
from .d2 import camel_to_title, d2_id, first_doc, quote, short_type
from .records import ActionDef, ActionStep, ControlFlow, Parameter

_ACTION_DEF_PATTERN = re.compile(r"^\s*action\s+def\s+(\w+)\s*\{", re.MULTILINE)
_IN_PATTERN = re.compile(r"^\s*in\s+(\w+)\s*:\s*([\w:]+)", re.MULTILINE)
_OUT_PATTERN = re.compile(r"^\s*out\s+(\w+)\s*:\s*([\w:]+)", re.MULTILINE)
_STEP_PATTERN = re.compile(r"^\s*action\s+(\w+)\s*(?:\{|;)", re.MULTILINE)
_SUCCESSION_PATTERN = re.compile(r"first\s+(\w+)\s+then\s+(\w+)\s*;")

# Output parameters carrying failures are not part of the happy path.
_ERROR_OUTPUT = "error"


def parse_action_defs(files: Iterable[ModelFile]) -> List[ActionDef]:
    action_defs: List[ActionDef] = []
    for model_file in files:
        for match in _ACTION_DEF_PATTERN.finditer(model_file.content):
            block = extract_block(model_file.content, match.start())
            # Event handlers without control flow have nothing to draw.
            if "first " not in block or " then " not in block:
                continue

            steps: List[ActionStep] = []
            for step in _STEP_PATTERN.finditer(block):
                name = step.group(1)
                if name == "def":
                    continue
                body = extract_block(block, step.start()) if step.group(0).rstrip().endswith("{") else ""
                steps.append(ActionStep(name=name, doc=first_doc(body)))

            control_flow = [
                ControlFlow(source=flow.group(1), target=flow.group(2))
                for flow in _SUCCESSION_PATTERN.finditer(block)
            ]
            if not steps or not control_flow:
                continue

            action_defs.append(
                ActionDef(
                    name=match.group(1),
                    doc=first_doc(block),
                    inputs=[Parameter(p.group(1), short_type(p.group(2))) for p in _IN_PATTERN.finditer(block)],
                    outputs=[Parameter(p.group(1), short_type(p.group(2))) for p in _OUT_PATTERN.finditer(block)],
                    steps=steps,
                    control_flow=control_flow,
                    file=model_file.path,
                )
            )
    return action_defs


def render_action_flow(action: ActionDef) -> str:
    lines = ["direction: down", ""]
    for param in action.inputs:
        lines.append(f"{d2_id(param.name)}: {{shape: parallelogram; {quote(param.type)}}}")
    for step in action.steps:
        lines.append(f"{d2_id(step.name)}: {quote(step.doc or camel_to_title(step.name))}")
    for param in action.outputs:
        lines.append(f"{d2_id(param.name)}: {{shape: parallelogram; {quote(param.type)}}}")
    lines.append("")

    first_step = action.control_flow[0].source
    last_step = action.control_flow[-1].target
    for param in action.inputs:
        lines.append(f"{d2_id(param.name)} -> {d2_id(first_step)}")
    for flow in action.control_flow:
        lines.append(f"{d2_id(flow.source)} -> {d2_id(flow.target)}")
    for param in action.outputs:
        if param.name != _ERROR_OUTPUT:
            lines.append(f"{d2_id(last_step)} -> {d2_id(param.name)}")
    return "\n".join(lines)


class FlowPass(DiagramPass):
    kind = DiagramKind.FLOW

    def extract(self, files: Sequence[ModelFile]) -> List[Diagram]:
        return [
            Diagram(
                kind=self.kind,
                title=f"{camel_to_title(action.name)} Flow",
                body=render_action_flow(action),
                source_files=[action.file],
            )
            for action in parse_action_defs(files)
        ]


__all__ = ["FlowPass", "parse_action_defs", "render_action_flow"]
