"""Intermediate records parsed by the diagram passes; discarded after rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Union

from ..models import DiagramKind


@dataclass(frozen=True)
class Attribute:
    name: str
    type: str
    multiplicity: Optional[str] = None


@dataclass
class EntityDef:
    kind: ClassVar[DiagramKind] = DiagramKind.ENTITY

    name: str
    parent: Optional[str]
    attributes: List[Attribute]
    file: str


@dataclass(frozen=True)
class ConnectionEnd:
    role: str
    type: str
    cardinality: Optional[str] = None


@dataclass
class ConnectionDef:
    kind: ClassVar[DiagramKind] = DiagramKind.ENTITY

    name: str
    doc: Optional[str]
    ends: List[ConnectionEnd]
    file: str


@dataclass(frozen=True)
class StateNode:
    name: str
    doc: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    source: str
    target: str
    label: Optional[str] = None


@dataclass
class StateDef:
    kind: ClassVar[DiagramKind] = DiagramKind.STATE

    name: str
    doc: Optional[str]
    states: List[StateNode]
    transitions: List[Transition]
    file: str


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str


@dataclass(frozen=True)
class ActionStep:
    name: str
    doc: Optional[str] = None


@dataclass(frozen=True)
class ControlFlow:
    source: str
    target: str


@dataclass
class ActionDef:
    kind: ClassVar[DiagramKind] = DiagramKind.FLOW

    name: str
    doc: Optional[str]
    inputs: List[Parameter]
    outputs: List[Parameter]
    steps: List[ActionStep]
    control_flow: List[ControlFlow]
    file: str


@dataclass(frozen=True)
class Port:
    name: str
    type: str
    conjugated: bool = False


@dataclass
class ModuleDef:
    kind: ClassVar[DiagramKind] = DiagramKind.ARCHITECTURE

    name: str
    parent: Optional[str]
    path: Optional[str]
    responsibility: Optional[str]
    layer: Optional[str]
    ports: List[Port] = field(default_factory=list)
    file: str = ""


@dataclass
class ModuleInstance:
    kind: ClassVar[DiagramKind] = DiagramKind.ARCHITECTURE

    name: str
    type: str
    file: str


@dataclass
class ModuleConnection:
    kind: ClassVar[DiagramKind] = DiagramKind.ARCHITECTURE

    name: str
    source: str
    target: str
    file: str


DiagramRecord = Union[
    EntityDef,
    ConnectionDef,
    StateDef,
    ActionDef,
    ModuleDef,
    ModuleInstance,
    ModuleConnection,
]
