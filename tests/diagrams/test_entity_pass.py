"""Tests for the entity-relationship diagram pass."""

from __future__ import annotations

import textwrap

from sysmlcheck.diagrams.entities import DTO_TITLE, ERD_TITLE, EntityPass, parse_entities
from sysmlcheck.models import DiagramKind, ModelFile

DOMAIN = textwrap.dedent(
    """
    package Domain {
      item def User :> BaseEntity {
        attribute id : UUID;
        attribute email : String;
      }
      item def Order :> BaseEntity {
        attribute id : Types::UUID;
        attribute userId : UUID;
        attribute tags : String [0..*];
      }
      item def OrderCreated :> DomainEvent {
        attribute id : UUID;
      }
      item def Marker :> BaseEntity {
      }
      connection def UserOrders {
        end user : User [1];
        end orders : Order [*];
      }
    }
    """
)

DTOS = textwrap.dedent(
    """
    package Api {
      item def CreateOrderRequest :> BaseDTO {
        attribute total : Decimal;
      }
      item def OrderResponse :> BaseDTO {
        attribute orderId : UUID;
      }
    }
    """
)


def test_parse_entities_skips_events_and_empty_items() -> None:
    entities = parse_entities([ModelFile("data/domain.sysml", DOMAIN)])

    assert [entity.name for entity in entities] == ["User", "Order"]
    order = entities[1]
    assert [(a.name, a.type, a.multiplicity) for a in order.attributes] == [
        ("id", "UUID", None),
        ("userId", "UUID", None),
        ("tags", "String", "0..*"),
    ]


def test_entity_pass_renders_erd_with_relationship() -> None:
    diagrams = EntityPass().extract([ModelFile("data/domain.sysml", DOMAIN)])

    assert len(diagrams) == 1
    erd = diagrams[0]
    assert erd.kind is DiagramKind.ENTITY
    assert erd.title == ERD_TITLE
    assert erd.source_files == ["data/domain.sysml"]
    lines = erd.body.splitlines()
    assert lines[:5] == [
        "User: {",
        "  shape: sql_table",
        "  id: UUID {constraint: primary_key}",
        "  email: String",
        "}",
    ]
    assert "  userId: UUID {constraint: foreign_key}" in lines
    assert "  tags: String [0..*]" in lines
    assert lines[-1] == 'User <-> Order: "1 to *"'


def test_entity_pass_emits_dto_diagram_for_two_or_more_dtos() -> None:
    files = [ModelFile("data/domain.sysml", DOMAIN), ModelFile("data/api.sysml", DTOS)]

    diagrams = EntityPass().extract(files)

    assert [d.title for d in diagrams] == [ERD_TITLE, DTO_TITLE]
    dto = diagrams[1]
    assert "CreateOrderRequest: {" in dto.body
    assert "  orderId: UUID {constraint: foreign_key}" in dto.body
    assert "<->" not in dto.body
    assert dto.source_files == ["data/api.sysml"]


def test_entity_pass_falls_back_to_unclassified_entities() -> None:
    content = "item def Widget {\n  attribute name : String;\n}\n"

    diagrams = EntityPass().extract([ModelFile("a.sysml", content)])

    assert [d.title for d in diagrams] == [ERD_TITLE]
    assert diagrams[0].body.startswith("Widget: {")


def test_entity_pass_without_entities_yields_nothing() -> None:
    assert EntityPass().extract([ModelFile("a.sysml", "package Empty { part def P; }")]) == []
