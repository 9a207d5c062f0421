"""
stv-gateway: unit tests for request action parsing

File: tests/unit/domain/test_actions.py

Purpose
- Validate strict parsing of the tagged ``Action`` and ``ModelParameters`` unions.

What this test file should cover
- Every action variant and model family parses from its camelCase wire form.
- ``reduced`` defaults to ``False``; ``file`` models may omit their tag.
- Unknown tags, unknown fields, missing fields and wrong types are rejected.
"""

from __future__ import annotations

import pytest

from stv_gateway.domain.actions import (
    BisimulationChecking,
    BisimulationModelsGeneration,
    BridgeEndplay,
    Castles,
    DominoDfs,
    DominoDfsHeuristic,
    Drones,
    FileModel,
    LowerApproximation,
    ModelGeneration,
    RequestFormatError,
    SimpleVoting,
    TianJi,
    UpperApproximation,
    parameter_values,
    parse_action,
    parse_model_parameters,
)


def _file(text: str) -> dict[str, object]:
    return {"type": "file", "modelString": text}


def test_parse_bisimulation_checking() -> None:
    action = parse_action(
        {
            "type": "bisimulationChecking",
            "model1Parameters": _file("a"),
            "model2Parameters": _file("b"),
            "specification": _file("x -> y"),
        }
    )

    assert action == BisimulationChecking(
        model1=FileModel("a"),
        model2=FileModel("b"),
        specification=FileModel("x -> y"),
    )


def test_parse_bisimulation_models_generation_accepts_untagged_file_models() -> None:
    action = parse_action(
        {
            "type": "bisimulationModelsGeneration",
            "model1Parameters": {"modelString": "a"},
            "model2Parameters": {"modelString": "b"},
        }
    )

    assert action == BisimulationModelsGeneration(model1=FileModel("a"), model2=FileModel("b"))


def test_bisimulation_rejects_parametric_model() -> None:
    with pytest.raises(RequestFormatError, match="model1Parameters"):
        parse_action(
            {
                "type": "bisimulationModelsGeneration",
                "model1Parameters": {"type": "tianJi", "horses": 2},
                "model2Parameters": _file("b"),
            }
        )


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"type": "bridgeEndplay", "deckSize": 4, "cardsInHand": 1}, BridgeEndplay(4, 1)),
        (
            {"type": "castles", "castle1Size": 1, "castle2Size": 2, "castle3Size": 1, "life": 2},
            Castles(1, 2, 1, 2),
        ),
        ({"type": "drones", "numberOfDrones": 2, "initialEnergy": 3}, Drones(2, 3)),
        ({"type": "simpleVoting", "voters": 2, "candidates": 3}, SimpleVoting(2, 3)),
        ({"type": "tianJi", "horses": 3}, TianJi(3)),
        ({"type": "file", "modelString": "Agent A[1]:"}, FileModel("Agent A[1]:")),
    ],
)
def test_parse_model_parameters_for_every_family(
    payload: dict[str, object], expected: object
) -> None:
    assert parse_model_parameters(payload) == expected


def test_parse_domino_dfs_with_heuristic() -> None:
    action = parse_action(
        {
            "type": "dominoDfs",
            "modelParameters": {"type": "tianJi", "horses": 3},
            "heuristic": "epistemic",
        }
    )

    assert action == DominoDfs(model_parameters=TianJi(3), heuristic=DominoDfsHeuristic.EPISTEMIC)
    assert action.heuristic.code == 2


def test_heuristic_codes() -> None:
    assert [item.code for item in DominoDfsHeuristic] == [0, 1, 2, 3]
    assert DominoDfsHeuristic("visitedStates").code == 3


def test_parse_approximations() -> None:
    lower = parse_action(
        {"type": "lowerApproximation", "modelParameters": {"type": "tianJi", "horses": 1}}
    )
    upper = parse_action(
        {"type": "upperApproximation", "modelParameters": {"type": "tianJi", "horses": 1}}
    )

    assert isinstance(lower, LowerApproximation)
    assert isinstance(upper, UpperApproximation)


def test_model_generation_reduced_defaults_false() -> None:
    action = parse_action({"type": "modelGeneration", "modelParameters": _file("x")})

    assert action == ModelGeneration(model_parameters=FileModel("x"), reduced=False)


def test_model_generation_reduced_true() -> None:
    action = parse_action(
        {"type": "modelGeneration", "modelParameters": _file("x"), "reduced": True}
    )

    assert isinstance(action, ModelGeneration)
    assert action.reduced is True


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ([], "expected object"),
        ({}, "missing or non-string type tag"),
        ({"type": "launchRockets"}, "unknown action type"),
        ({"type": "lowerApproximation"}, "missing required fields"),
        (
            {
                "type": "lowerApproximation",
                "modelParameters": {"type": "tianJi", "horses": 1},
                "extra": 1,
            },
            "unexpected fields",
        ),
        (
            {"type": "lowerApproximation", "modelParameters": {"type": "tianJi", "horses": "3"}},
            "expected integer",
        ),
        (
            {"type": "lowerApproximation", "modelParameters": {"type": "tianJi", "horses": True}},
            "expected integer",
        ),
        (
            {"type": "lowerApproximation", "modelParameters": {"type": "chess", "horses": 1}},
            "unknown model type",
        ),
        (
            {
                "type": "dominoDfs",
                "modelParameters": {"type": "tianJi", "horses": 1},
                "heuristic": "random",
            },
            "invalid heuristic",
        ),
        (
            {"type": "modelGeneration", "modelParameters": _file("x"), "reduced": "yes"},
            "expected boolean",
        ),
    ],
)
def test_malformed_payloads_are_rejected(payload: object, fragment: str) -> None:
    with pytest.raises(RequestFormatError, match=fragment):
        parse_action(payload)


def test_request_format_error_is_value_error() -> None:
    assert issubclass(RequestFormatError, ValueError)


def test_parameter_values_use_declaration_order_and_wire_names() -> None:
    values = parameter_values(Castles(1, 2, 3, 4))

    assert [(item.wire_name, item.value) for item in values] == [
        ("castle1Size", 1),
        ("castle2Size", 2),
        ("castle3Size", 3),
        ("life", 4),
    ]
