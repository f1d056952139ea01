"""Tests for the action flow diagram pass."""

from __future__ import annotations

import textwrap

from sysmlcheck.diagrams.flows import FlowPass, parse_action_defs
from sysmlcheck.models import DiagramKind, ModelFile

CHECKOUT = textwrap.dedent(
    """
    package Behavior {
      action def PlaceOrder {
        doc /* Places an order */
        in request : Api::OrderRequest;
        out order : Order;
        out error : ApiError;
        action validate {
          doc /* Validate input */
        }
        action persistOrder;
        first validate then persistOrder;
      }

      action def OnOrderCreated {
        in event : OrderCreated;
        action notify;
      }
    }
    """
)


def test_parse_action_defs_skips_definitions_without_succession() -> None:
    actions = parse_action_defs([ModelFile("behavior/checkout.sysml", CHECKOUT)])

    assert [action.name for action in actions] == ["PlaceOrder"]
    action = actions[0]
    assert action.doc == "Places an order"
    assert [(p.name, p.type) for p in action.inputs] == [("request", "OrderRequest")]
    assert [(p.name, p.type) for p in action.outputs] == [("order", "Order"), ("error", "ApiError")]
    assert [(s.name, s.doc) for s in action.steps] == [
        ("validate", "Validate input"),
        ("persistOrder", None),
    ]


def test_flow_pass_renders_happy_path() -> None:
    (diagram,) = FlowPass().extract([ModelFile("behavior/checkout.sysml", CHECKOUT)])

    assert diagram.kind is DiagramKind.FLOW
    assert diagram.title == "Place Order Flow"
    assert diagram.source_files == ["behavior/checkout.sysml"]
    assert diagram.body.splitlines() == [
        "direction: down",
        "",
        'request: {shape: parallelogram; "OrderRequest"}',
        'validate: "Validate input"',
        'persistOrder: "Persist Order"',
        'order: {shape: parallelogram; "Order"}',
        'error: {shape: parallelogram; "ApiError"}',
        "",
        "request -> validate",
        "validate -> persistOrder",
        "persistOrder -> order",
    ]


def test_flow_pass_without_actions_yields_nothing() -> None:
    assert FlowPass().extract([ModelFile("a.sysml", "package Empty;")]) == []
