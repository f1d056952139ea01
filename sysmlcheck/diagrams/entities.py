"""Entity-relationship diagrams from ``item def`` and ``connection def`` blocks."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from ..corpus import extract_block
from ..models import Diagram, DiagramKind, ModelFile
from .base import DiagramPass
from .d2 import d2_id, first_doc, quote, short_type
from .records import Attribute, ConnectionDef, ConnectionEnd, EntityDef

_ENTITY_PATTERN = re.compile(r"item\s+def\s+(\w+)(?:\s*:>\s*([\w:]+))?\s*\{")
_ATTRIBUTE_PATTERN = re.compile(r"attribute\s+(\w+)\s*:\s*([\w:]+)(?:\s*\[([^\]]*)\])?")
_CONNECTION_PATTERN = re.compile(r"connection\s+def\s+(\w+)(?:\s*:>\s*\w+)?\s*\{")
_END_PATTERN = re.compile(r"end\s+(\w+)\s*:\s*(~?\w+)(?:\s*\[([^\]]*)\])?")

# Parents that mark API, event and error payloads rather than data entities.
_SKIPPED_PARENT = re.compile(r"APIEndpoint|Event$|Error$")
_DOMAIN_PARENT = re.compile(r"BaseEntity|Entity")
_DTO_PARENT = re.compile(r"BaseDTO|DTO|Request|Response")

ERD_TITLE = "Domain Entity Relationships"
DTO_TITLE = "Data Transfer Objects"


def parse_entities(files: Iterable[ModelFile]) -> List[EntityDef]:
    entities: List[EntityDef] = []
    for model_file in files:
        for match in _ENTITY_PATTERN.finditer(model_file.content):
            parent = match.group(2)
            if parent and _SKIPPED_PARENT.search(parent):
                continue
            block = extract_block(model_file.content, match.start())
            attributes = [
                Attribute(
                    name=attr.group(1),
                    type=short_type(attr.group(2)),
                    multiplicity=attr.group(3) or None,
                )
                for attr in _ATTRIBUTE_PATTERN.finditer(block)
            ]
            if attributes:
                entities.append(
                    EntityDef(name=match.group(1), parent=parent, attributes=attributes, file=model_file.path)
                )
    return entities


def parse_connections(files: Iterable[ModelFile]) -> List[ConnectionDef]:
    connections: List[ConnectionDef] = []
    for model_file in files:
        for match in _CONNECTION_PATTERN.finditer(model_file.content):
            block = extract_block(model_file.content, match.start())
            ends = [
                ConnectionEnd(
                    role=end.group(1),
                    type=end.group(2).lstrip("~"),
                    cardinality=end.group(3) or None,
                )
                for end in _END_PATTERN.finditer(block)
            ]
            if len(ends) >= 2:
                connections.append(
                    ConnectionDef(name=match.group(1), doc=first_doc(block), ends=ends, file=model_file.path)
                )
    return connections


def render_entities(entities: Sequence[EntityDef], connections: Sequence[ConnectionDef]) -> str:
    lines: List[str] = []
    for entity in entities:
        lines.append(f"{d2_id(entity.name)}: {{")
        lines.append("  shape: sql_table")
        for attr in entity.attributes:
            type_label = f"{attr.type} [{attr.multiplicity}]" if attr.multiplicity else attr.type
            if attr.name == "id":
                lines.append(f"  {attr.name}: {type_label} {{constraint: primary_key}}")
            elif attr.name.endswith("Id") or attr.name.endswith("_id"):
                lines.append(f"  {attr.name}: {type_label} {{constraint: foreign_key}}")
            else:
                lines.append(f"  {attr.name}: {type_label}")
        lines.append("}")
        lines.append("")

    names = {entity.name for entity in entities}
    for connection in connections:
        first, second = connection.ends[0], connection.ends[1]
        if first.type not in names and second.type not in names:
            continue
        source = d2_id(first.type if first.type in names else first.role)
        target = d2_id(second.type if second.type in names else second.role)
        label = connection.doc or f"{first.cardinality or '1'} to {second.cardinality or '1'}"
        lines.append(f"{source} <-> {target}: {quote(label)}")

    return "\n".join(lines)


def _unique_files(entities: Iterable[EntityDef]) -> List[str]:
    return list(dict.fromkeys(entity.file for entity in entities))


class EntityPass(DiagramPass):
    """Domain ERD plus an optional DTO overview."""

    kind = DiagramKind.ENTITY

    def extract(self, files: Sequence[ModelFile]) -> List[Diagram]:
        entities = parse_entities(files)
        if not entities:
            return []
        connections = parse_connections(files)

        domain = [e for e in entities if e.parent and _DOMAIN_PARENT.search(e.parent)]
        dtos = [e for e in entities if e.parent and _DTO_PARENT.search(e.parent)]
        classified = {id(e) for e in domain} | {id(e) for e in dtos}
        others = [e for e in entities if id(e) not in classified]

        diagrams: List[Diagram] = []
        erd = domain or others
        if erd:
            body = render_entities(erd, connections)
            if body.strip():
                diagrams.append(
                    Diagram(kind=self.kind, title=ERD_TITLE, body=body, source_files=_unique_files(erd))
                )

        if len(dtos) >= 2:
            body = render_entities(dtos, [])
            if body.strip():
                diagrams.append(
                    Diagram(kind=self.kind, title=DTO_TITLE, body=body, source_files=_unique_files(dtos))
                )
        return diagrams


__all__ = ["EntityPass", "parse_connections", "parse_entities", "render_entities"]
