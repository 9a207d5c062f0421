"""
stv-gateway: unit tests for the model-file parser and validator

File: tests/unit/validation/test_model_file_validator.py

Purpose
- Validate DSL recognition (agents, transitions, array properties) and the
  fail-fast limit checks with their metric names.

What this test file should cover
- Each count at its ceiling passes; one above fails with the right metric.
- Duplicate array properties, empty property lists, malformed lines.
- Fixed check order independent of line order.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from stv_gateway.config.settings import FileModelLimits
from stv_gateway.constants import UNLIMITED
from stv_gateway.domain.errors import (
    DuplicatePropertyError,
    FileFormatError,
    FileSizeError,
    GatewayError,
    MaxNumberExceededError,
)
from stv_gateway.validation.model_file import (
    AgentDeclaration,
    ArrayProperty,
    ModelFileValidator,
    TransitionDeclaration,
    parse_agent_line,
    parse_array_property_line,
    parse_transition_line,
)

SAMPLE_MODEL = """
% Voter/coercer sketch
Agent Voter[2]:
init: q0
vote: q0 -> q1 [v=1]
shared give: q1 -> q2
Agent Coercer[1]:
init: c0
punish: c0 -> c1

PERSISTENT: [v, t]
COALITION: [Voter]
REDUCTION: []
GOAL: [v]
"""

UNLIMITED_LIMITS = FileModelLimits()


def _limits(**overrides: int) -> FileModelLimits:
    return replace(UNLIMITED_LIMITS, **overrides)


def _validate(content: str, limits: FileModelLimits, *, file_id: str = "model") -> None:
    ModelFileValidator(content, limits, file_id=file_id).validate()


def _exceeded(content: str, limits: FileModelLimits) -> MaxNumberExceededError:
    with pytest.raises(GatewayError) as excinfo:
        _validate(content, limits)
    kind = excinfo.value.kind
    assert isinstance(kind, MaxNumberExceededError)
    return kind


def test_summary_of_sample_model() -> None:
    summary = ModelFileValidator(SAMPLE_MODEL, UNLIMITED_LIMITS).summary

    assert summary.agents == (AgentDeclaration("Voter", 2), AgentDeclaration("Coercer", 1))
    assert summary.number_of_agent_types == 2
    assert summary.number_of_agents_total == 3
    assert len(summary.transitions) == 3
    assert summary.states == frozenset({"q0", "q1", "q2", "c0", "c1"})
    assert summary.properties_named("REDUCTION") == (ArrayProperty("REDUCTION", ()),)
    assert summary.properties_named("PERSISTENT") == (ArrayProperty("PERSISTENT", ("v", "t")),)


def test_sample_model_passes_default_like_limits() -> None:
    _validate(
        SAMPLE_MODEL,
        FileModelLimits(
            max_file_size_bytes=256 * 1024,
            max_number_of_agent_types=100,
            max_number_of_agents_per_type=100,
            max_number_of_agents_total=100,
            max_number_of_states=100,
            max_number_of_transitions=100,
            max_coalition_size=100,
            max_number_of_persistent_variables=100,
            max_number_of_reduction_variables=100,
            max_number_of_goal_variables=100,
        ),
    )


@pytest.mark.parametrize(
    ("limit_name", "ceiling", "metric"),
    [
        ("max_number_of_agent_types", 2, "numberOfAgentTypes"),
        ("max_number_of_agents_per_type", 2, "numberOfAgentsPerType"),
        ("max_number_of_agents_total", 3, "numberOfAgentsTotal"),
        ("max_number_of_states", 5, "numberOfStates"),
        ("max_number_of_transitions", 3, "numberOfTransitions"),
        ("max_coalition_size", 1, "coalitionSize"),
        ("max_number_of_persistent_variables", 2, "numberOfPersistentVariables"),
        ("max_number_of_reduction_variables", 0, "numberOfReductionVariables"),
        ("max_number_of_goal_variables", 1, "numberOfGoalVariables"),
    ],
)
def test_each_limit_passes_at_ceiling_and_fails_below(
    limit_name: str, ceiling: int, metric: str
) -> None:
    _validate(SAMPLE_MODEL, _limits(**{limit_name: ceiling}))

    if ceiling == 0:
        return
    kind = _exceeded(SAMPLE_MODEL, _limits(**{limit_name: ceiling - 1}))
    assert kind.metric_name == metric
    assert kind.actual_value == ceiling
    assert kind.max_value == ceiling - 1


def test_reduction_list_above_zero_ceiling_fails() -> None:
    content = "REDUCTION: [a]"

    kind = _exceeded(content, _limits(max_number_of_reduction_variables=0))

    assert (kind.metric_name, kind.actual_value, kind.max_value) == (
        "numberOfReductionVariables",
        1,
        0,
    )


def test_per_type_limit_reports_first_offending_line() -> None:
    content = "Agent A[3]:\nAgent B[5]:\n"

    kind = _exceeded(content, _limits(max_number_of_agents_per_type=2))

    assert kind.actual_value == 3


def test_duplicate_coalition_is_rejected() -> None:
    content = "COALITION: [a]\nCOALITION: [b]\n"

    with pytest.raises(GatewayError) as excinfo:
        _validate(content, UNLIMITED_LIMITS)

    assert excinfo.value.kind == DuplicatePropertyError(property_name="COALITION")


def test_check_order_is_independent_of_line_order() -> None:
    # Transitions come first in the file but agent types are checked first.
    content = "t1: a -> b\nt2: b -> c\nAgent A[1]:\nAgent B[1]:\n"
    limits = _limits(max_number_of_agent_types=1, max_number_of_transitions=1)

    kind = _exceeded(content, limits)

    assert kind.metric_name == "numberOfAgentTypes"


def test_duplicate_check_precedes_size_check_per_property() -> None:
    content = "GOAL: [a, b, c]\nGOAL: [d]\n"

    with pytest.raises(GatewayError) as excinfo:
        _validate(content, _limits(max_number_of_goal_variables=1))

    assert excinfo.value.kind == DuplicatePropertyError(property_name="GOAL")


def test_coalition_checked_before_goal() -> None:
    content = "GOAL: [a, b]\nCOALITION: [x, y]\n"
    limits = _limits(max_coalition_size=1, max_number_of_goal_variables=1)

    kind = _exceeded(content, limits)

    assert kind.metric_name == "coalitionSize"


def test_comments_and_blank_lines_are_not_counted() -> None:
    content = "% t0: x -> y\n\n   \n%Agent Hidden[50]:\nt1: a -> b\n"

    kind = _exceeded(content, _limits(max_number_of_states=1))

    assert kind.actual_value == 2


def test_unlimited_accepts_large_counts() -> None:
    content = "Agent Crowd[100000]:\n" + "\n".join(f"t{i}: s{i} -> s{i + 1}" for i in range(500))

    _validate(content, _limits(max_number_of_agents_per_type=UNLIMITED))


def test_file_size_checked_first() -> None:
    content = "Agent A[1]:\n" * 10

    with pytest.raises(GatewayError) as excinfo:
        _validate(content, _limits(max_file_size_bytes=5, max_number_of_agent_types=0), file_id="model2")

    assert excinfo.value.kind == FileSizeError(file_id="model2", actual_size=len(content), max_size=5)


@pytest.mark.parametrize(
    "line",
    [
        "Agent A[x]:",
        "Agent A[-1]:",
        "Agent A[1:",
        "Agent [2]:",
        "broken -> line",
        "t1: -> b",
        "t1: a ->",
        ": a -> b",
    ],
)
def test_malformed_lines_raise_file_format_error(line: str) -> None:
    with pytest.raises(GatewayError) as excinfo:
        _validate(line, UNLIMITED_LIMITS, file_id="model1")

    assert excinfo.value.kind == FileFormatError(file_id="model1")


def test_agent_without_count_declares_one() -> None:
    assert parse_agent_line("Agent Solo:", file_id="model") == AgentDeclaration("Solo", 1)
    assert parse_agent_line("Agent Pair[ 2 ]:", file_id="model") == AgentDeclaration("Pair", 2)
    assert parse_agent_line("Agents are people", file_id="model") is None


def test_transition_line_fields() -> None:
    shared = parse_transition_line("shared  give: q1 [a=1] -> q2 [b=2, c=3]", file_id="model")
    plain = parse_transition_line("sharedSecret: a -> b", file_id="model")

    assert shared == TransitionDeclaration(
        name="give",
        shared=True,
        left_state="q1",
        right_state="q2",
        left_extra="[a=1]",
        right_extra="[b=2, c=3]",
    )
    assert plain is not None
    assert plain.shared is False
    assert plain.name == "sharedSecret"
    assert parse_transition_line("init: q0", file_id="model") is None


def test_array_property_line() -> None:
    assert parse_array_property_line("COALITION: [a, b ,c]") == ArrayProperty(
        "COALITION", ("a", "b", "c")
    )
    assert parse_array_property_line("GOAL:[]") == ArrayProperty("GOAL", ())
    assert parse_array_property_line("FORMULA: <<a>>F p") is None
