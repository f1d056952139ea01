"""Tests for the module architecture diagram pass."""

from __future__ import annotations

import textwrap

from sysmlcheck.diagrams.architecture import ArchitecturePass, parse_modules
from sysmlcheck.models import DiagramKind, ModelFile

LAYERED = textwrap.dedent(
    """
    package Architecture {
      part def OrderController :> Module {
        :>> path = "src/orders/controller.ts";
        :>> responsibility = "Handles order HTTP requests";
        :>> layer = "presentation";
        port api : ~OrderApi;
      }
      part def OrderService :> Module {
        :>> responsibility = "Order business logic";
        :>> layer = "application";
        port api : OrderApi;
      }
      part def Logger :> Module {
      }
    }
    """
)

WIRING = textwrap.dedent(
    """
    package System {
      part controller : OrderController;
      part service : OrderService;
      part logger : Logger;
      connection controllerToService connect controller.api to service.api;
      connection serviceToLogger connect service.log to logger.log;
      connection dangling connect nowhere.p to service.api;
    }
    """
)


def test_parse_modules_reads_attributes_and_ports() -> None:
    modules = parse_modules([ModelFile("structure/modules.sysml", LAYERED)])

    assert [m.name for m in modules] == ["OrderController", "OrderService", "Logger"]
    controller = modules[0]
    assert controller.parent == "Module"
    assert controller.path == "src/orders/controller.ts"
    assert controller.layer == "presentation"
    assert [(p.name, p.type, p.conjugated) for p in controller.ports] == [("api", "OrderApi", True)]
    assert modules[2].layer is None


def test_architecture_pass_groups_layers_and_qualifies_edges() -> None:
    files = [
        ModelFile("structure/modules.sysml", LAYERED),
        ModelFile("structure/system.sysml", WIRING),
    ]

    (diagram,) = ArchitecturePass().extract(files)

    assert diagram.kind is DiagramKind.ARCHITECTURE
    assert diagram.title == "System Architecture"
    assert diagram.source_files == ["structure/modules.sysml", "structure/system.sysml"]
    assert diagram.body.splitlines() == [
        "direction: down",
        "",
        "Presentation: Presentation {",
        '  OrderController: "Handles order HTTP requests"',
        "}",
        "",
        "Application: Application {",
        '  OrderService: "Order business logic"',
        "}",
        "",
        "Infrastructure: {",
        '  Logger: "Logger"',
        "}",
        "",
        'Presentation.OrderController -> Application.OrderService: "controller To Service"',
        'Application.OrderService -> Infrastructure.Logger: "service To Logger"',
    ]


def test_architecture_without_layers_is_flat() -> None:
    content = textwrap.dedent(
        """
        part def A :> Module {
        }
        part def B :> Module {
        }
        part a : A;
        part b : B;
        connection aToB connect a.out to b.in;
        """
    )

    (diagram,) = ArchitecturePass().extract([ModelFile("s.sysml", content)])

    assert diagram.body.splitlines() == [
        "direction: down",
        "",
        'A: "A"',
        'B: "B"',
        "",
        'A -> B: "a To B"',
    ]


def test_architecture_requires_two_modules() -> None:
    content = "part def Only :> Module {\n}\n"

    assert ArchitecturePass().extract([ModelFile("s.sysml", content)]) == []
