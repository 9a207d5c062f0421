"""Model-file DSL parser and quantitative limit checks.

Recognized significant-line shapes::

    Agent <name>[<count>]:
    [shared ]<name>: <leftState>[ <extra>] -> <rightState>[ <extra>]
    <COALITION|GOAL|PERSISTENT|REDUCTION>: [v1, v2, ...]

Every other line is declarative content the gateway does not count and is
ignored. Limit checks are fail-fast and run in a fixed order, so the reported
error does not depend on line ordering.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Final

from stv_gateway.config.settings import FileModelLimits
from stv_gateway.constants import ARRAY_PROPERTY_NAMES, MODEL_FILE_ID, UNLIMITED
from stv_gateway.domain.errors import (
    DuplicatePropertyError,
    FileFormatError,
    GatewayError,
    MaxNumberExceededError,
)
from stv_gateway.validation.file_validator import FileValidator

_AGENT_PREFIX: Final[str] = "Agent "
_TRANSITION_ARROW: Final[str] = "->"
_SHARED_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r"^shared(?=[\s\[]|$)")
_AGENT_COUNT_RE: Final[re.Pattern[str]] = re.compile(r"^\[\s*(?P<count>[0-9]+)\s*\]$")
_ARRAY_PROPERTY_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<name>" + "|".join(ARRAY_PROPERTY_NAMES) + r"):\s*\[(?P<values>.*)\]$"
)

# Property -> (metric name, limit attribute); iteration order is the check order.
_PROPERTY_LIMITS: Final[dict[str, tuple[str, str]]] = {
    "COALITION": ("coalitionSize", "max_coalition_size"),
    "PERSISTENT": ("numberOfPersistentVariables", "max_number_of_persistent_variables"),
    "REDUCTION": ("numberOfReductionVariables", "max_number_of_reduction_variables"),
    "GOAL": ("numberOfGoalVariables", "max_number_of_goal_variables"),
}


@dataclass(frozen=True, slots=True)
class AgentDeclaration:
    name: str
    count: int


@dataclass(frozen=True, slots=True)
class TransitionDeclaration:
    name: str
    shared: bool
    left_state: str
    right_state: str
    left_extra: str = ""
    right_extra: str = ""


@dataclass(frozen=True, slots=True)
class ArrayProperty:
    name: str
    values: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ModelFileSummary:
    """Countable content of a model file, in line order."""

    agents: tuple[AgentDeclaration, ...] = ()
    transitions: tuple[TransitionDeclaration, ...] = ()
    properties: tuple[ArrayProperty, ...] = ()

    @property
    def number_of_agent_types(self) -> int:
        return len({agent.name for agent in self.agents})

    @property
    def number_of_agents_total(self) -> int:
        return sum(agent.count for agent in self.agents)

    @property
    def states(self) -> frozenset[str]:
        names: set[str] = set()
        for transition in self.transitions:
            names.add(transition.left_state)
            names.add(transition.right_state)
        return frozenset(names)

    def properties_named(self, name: str) -> tuple[ArrayProperty, ...]:
        return tuple(item for item in self.properties if item.name == name)


class ModelFileValidator(FileValidator):
    """Validate a model file against :class:`FileModelLimits`."""

    def __init__(
        self,
        content: str,
        limits: FileModelLimits,
        *,
        file_id: str = MODEL_FILE_ID,
    ) -> None:
        super().__init__(file_id, content, limits.max_file_size_bytes)
        self.limits = limits

    def validate(self) -> None:
        super().validate()
        summary = self.summary
        limits = self.limits

        self._check("numberOfAgentTypes", summary.number_of_agent_types, limits.max_number_of_agent_types)
        for agent in summary.agents:
            self._check("numberOfAgentsPerType", agent.count, limits.max_number_of_agents_per_type)
        self._check("numberOfAgentsTotal", summary.number_of_agents_total, limits.max_number_of_agents_total)
        self._check("numberOfStates", len(summary.states), limits.max_number_of_states)
        self._check("numberOfTransitions", len(summary.transitions), limits.max_number_of_transitions)

        for property_name, (metric_name, limit_attr) in _PROPERTY_LIMITS.items():
            occurrences = summary.properties_named(property_name)
            if len(occurrences) > 1:
                raise GatewayError(DuplicatePropertyError(property_name=property_name))
            for occurrence in occurrences:
                self._check(metric_name, len(occurrence.values), getattr(limits, limit_attr))

    @cached_property
    def summary(self) -> ModelFileSummary:
        return parse_model_lines(self.significant_lines, file_id=self.file_id)

    @staticmethod
    def _check(metric_name: str, actual: int, maximum: int) -> None:
        if maximum != UNLIMITED and actual > maximum:
            raise GatewayError(
                MaxNumberExceededError(
                    metric_name=metric_name,
                    actual_value=actual,
                    max_value=maximum,
                )
            )


def parse_model_lines(lines: tuple[str, ...] | list[str], *, file_id: str) -> ModelFileSummary:
    """Single pass over significant lines collecting agents, transitions and properties."""

    agents: list[AgentDeclaration] = []
    transitions: list[TransitionDeclaration] = []
    properties: list[ArrayProperty] = []

    for line in lines:
        agent = parse_agent_line(line, file_id=file_id)
        if agent is not None:
            agents.append(agent)
            continue
        array_property = parse_array_property_line(line)
        if array_property is not None:
            properties.append(array_property)
            continue
        transition = parse_transition_line(line, file_id=file_id)
        if transition is not None:
            transitions.append(transition)

    return ModelFileSummary(
        agents=tuple(agents),
        transitions=tuple(transitions),
        properties=tuple(properties),
    )


def parse_agent_line(line: str, *, file_id: str) -> AgentDeclaration | None:
    """Parse ``Agent <name>[<count>]:``; ``Agent <name>:`` declares a single agent."""

    if not line.startswith(_AGENT_PREFIX) or not line.endswith(":"):
        return None

    body = line[len(_AGENT_PREFIX) : -1].strip()
    name, bracket, rest = body.partition("[")
    name = name.strip()
    if not name:
        raise GatewayError(FileFormatError(file_id=file_id))
    if not bracket:
        return AgentDeclaration(name=name, count=1)

    match = _AGENT_COUNT_RE.match(bracket + rest.strip())
    if match is None:
        raise GatewayError(FileFormatError(file_id=file_id))
    return AgentDeclaration(name=name, count=int(match.group("count")))


def parse_transition_line(line: str, *, file_id: str) -> TransitionDeclaration | None:
    """Parse ``[shared ]<name>: <left>[ <extra>] -> <right>[ <extra>]``."""

    if _TRANSITION_ARROW not in line:
        return None

    definition, separator, states = line.partition(":")
    if not separator or _TRANSITION_ARROW not in states:
        raise GatewayError(FileFormatError(file_id=file_id))

    definition = definition.strip()
    shared = _SHARED_PREFIX_RE.match(definition) is not None
    name = definition[len("shared") :].strip() if shared else definition
    left, _, right = states.partition(_TRANSITION_ARROW)
    left_parts = left.strip().split(maxsplit=1)
    right_parts = right.strip().split(maxsplit=1)
    if not name or not left_parts or not right_parts:
        raise GatewayError(FileFormatError(file_id=file_id))

    return TransitionDeclaration(
        name=name,
        shared=shared,
        left_state=left_parts[0],
        right_state=right_parts[0],
        left_extra=left_parts[1] if len(left_parts) > 1 else "",
        right_extra=right_parts[1] if len(right_parts) > 1 else "",
    )


def parse_array_property_line(line: str) -> ArrayProperty | None:
    """Parse ``<PROPERTY>: [v1, v2, ...]``; ``[]`` holds no values."""

    match = _ARRAY_PROPERTY_RE.match(line)
    if match is None:
        return None
    values = tuple(
        value for value in (part.strip() for part in match.group("values").split(",")) if value
    )
    return ArrayProperty(name=match.group("name"), values=values)


__all__ = [
    "AgentDeclaration",
    "ArrayProperty",
    "ModelFileSummary",
    "ModelFileValidator",
    "TransitionDeclaration",
    "parse_agent_line",
    "parse_array_property_line",
    "parse_model_lines",
    "parse_transition_line",
]
