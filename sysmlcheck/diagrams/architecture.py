"""Module architecture diagram from ``part def`` modules and their connections."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence

from ..corpus import extract_block
from ..models import Diagram, DiagramKind, ModelFile
from .base import DiagramPass
from .d2 import capitalize, d2_id, quote, split_camel
from .records import ModuleConnection, ModuleDef, ModuleInstance, Port

_MODULE_PATTERN = re.compile(r"part\s+def\s+(\w+)\s*:>\s*([\w:]+)\s*\{")
_PATH_PATTERN = re.compile(r':>>\s*path\s*=\s*"([^"]+)"')
_RESPONSIBILITY_PATTERN = re.compile(r':>>\s*responsibility\s*=\s*"([^"]+)"')
_LAYER_PATTERN = re.compile(r':>>\s*layer\s*=\s*"([^"]+)"')
_PORT_PATTERN = re.compile(r"port\s+(\w+)\s*:\s*(~?)(\w+)")
_INSTANCE_PATTERN = re.compile(r"^\s*part\s+(\w+)\s*:\s*(\w+)\s*;", re.MULTILINE)
_CONNECTION_PATTERN = re.compile(r"connection\s+(\w+)\s+connect\s+([\w.]+)\s+to\s+([\w.]+)\s*;")

ARCHITECTURE_TITLE = "System Architecture"
INFRASTRUCTURE_GROUP = "Infrastructure"


def _first_group(pattern: "re.Pattern[str]", block: str) -> Optional[str]:
    match = pattern.search(block)
    return match.group(1) if match else None


def parse_modules(files: Iterable[ModelFile]) -> List[ModuleDef]:
    modules: List[ModuleDef] = []
    for model_file in files:
        for match in _MODULE_PATTERN.finditer(model_file.content):
            block = extract_block(model_file.content, match.start())
            modules.append(
                ModuleDef(
                    name=match.group(1),
                    parent=match.group(2),
                    path=_first_group(_PATH_PATTERN, block),
                    responsibility=_first_group(_RESPONSIBILITY_PATTERN, block),
                    layer=_first_group(_LAYER_PATTERN, block),
                    ports=[
                        Port(name=port.group(1), type=port.group(3), conjugated=port.group(2) == "~")
                        for port in _PORT_PATTERN.finditer(block)
                    ],
                    file=model_file.path,
                )
            )
    return modules


def parse_module_instances(files: Iterable[ModelFile]) -> List[ModuleInstance]:
    return [
        ModuleInstance(name=match.group(1), type=match.group(2), file=model_file.path)
        for model_file in files
        for match in _INSTANCE_PATTERN.finditer(model_file.content)
    ]


def parse_module_connections(files: Iterable[ModelFile]) -> List[ModuleConnection]:
    return [
        ModuleConnection(
            name=match.group(1),
            source=match.group(2),
            target=match.group(3),
            file=model_file.path,
        )
        for model_file in files
        for match in _CONNECTION_PATTERN.finditer(model_file.content)
    ]


def _label(module: ModuleDef) -> str:
    return quote(module.responsibility or module.name)


def render_architecture(
    modules: Sequence[ModuleDef],
    instances: Sequence[ModuleInstance],
    connections: Sequence[ModuleConnection],
) -> str:
    lines = ["direction: down", ""]

    layers: Dict[str, List[ModuleDef]] = {}
    unlayered: List[ModuleDef] = []
    for module in modules:
        if module.layer:
            layers.setdefault(module.layer, []).append(module)
        else:
            unlayered.append(module)

    for layer, members in layers.items():
        label = capitalize(layer)
        lines.append(f"{d2_id(label)}: {label} {{")
        for module in members:
            lines.append(f"  {d2_id(module.name)}: {_label(module)}")
        lines.append("}")
        lines.append("")

    if unlayered and layers:
        lines.append(f"{INFRASTRUCTURE_GROUP}: {{")
        for module in unlayered:
            lines.append(f"  {d2_id(module.name)}: {_label(module)}")
        lines.append("}")
        lines.append("")
    elif unlayered:
        for module in unlayered:
            lines.append(f"{d2_id(module.name)}: {_label(module)}")
        lines.append("")

    def qualified(module: ModuleDef) -> str:
        if module.layer:
            return f"{d2_id(capitalize(module.layer))}.{d2_id(module.name)}"
        if layers:
            return f"{INFRASTRUCTURE_GROUP}.{d2_id(module.name)}"
        return d2_id(module.name)

    by_name = {module.name: module for module in modules}
    instance_types: Dict[str, str] = {}
    for instance in instances:
        instance_types.setdefault(instance.name, instance.type)

    # Endpoints are ``instance.port``; unresolved endpoints drop the edge.
    for connection in connections:
        source = by_name.get(instance_types.get(connection.source.split(".")[0], ""))
        target = by_name.get(instance_types.get(connection.target.split(".")[0], ""))
        if source is None or target is None:
            continue
        lines.append(f"{qualified(source)} -> {qualified(target)}: {quote(split_camel(connection.name))}")

    return "\n".join(lines)


class ArchitecturePass(DiagramPass):
    kind = DiagramKind.ARCHITECTURE

    def extract(self, files: Sequence[ModelFile]) -> List[Diagram]:
        modules = parse_modules(files)
        if len(modules) < 2:
            return []
        connections = parse_module_connections(files)
        body = render_architecture(modules, parse_module_instances(files), connections)
        source_files = list(
            dict.fromkeys([m.file for m in modules] + [c.file for c in connections])
        )
        return [Diagram(kind=self.kind, title=ARCHITECTURE_TITLE, body=body, source_files=source_files)]


__all__ = [
    "ArchitecturePass",
    "parse_module_connections",
    "parse_module_instances",
    "parse_modules",
    "render_architecture",
]
