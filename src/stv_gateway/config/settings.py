"""Immutable runtime settings materialized once from a validated config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any

from stv_gateway.config.schema import FAMILY_FIELDS, assert_valid_config, default_config
from stv_gateway.constants import UNLIMITED
from stv_gateway.domain.actions import PARAMETRIC_MODEL_TYPES

_WIRE_FIELDS_BY_FAMILY: dict[str, dict[str, str]] = {
    model_cls.FAMILY: {item.name: item.metadata["wire"] for item in fields(model_cls)}
    for model_cls in PARAMETRIC_MODEL_TYPES
}
_TYPE_BY_FAMILY: dict[str, str] = {
    model_cls.FAMILY: model_cls.TYPE for model_cls in PARAMETRIC_MODEL_TYPES
}


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _limits_to_wire(limits: FileModelLimits | MappingFileLimits) -> dict[str, int]:
    return {_camel_case(item.name): getattr(limits, item.name) for item in fields(limits)}


@dataclass(frozen=True, slots=True)
class FamilyBounds:
    """Inclusive per-field bounds for one parametric model family."""

    family: str
    minimum: Mapping[str, int]
    maximum: Mapping[str, int]

    def min_for(self, field_name: str) -> int:
        return self.minimum.get(field_name, UNLIMITED)

    def max_for(self, field_name: str) -> int:
        return self.maximum.get(field_name, UNLIMITED)

    @property
    def model_type(self) -> str:
        return _TYPE_BY_FAMILY[self.family]

    def to_wire(self) -> dict[str, dict[str, int]]:
        """Bounds keyed by request field names, as echoed in ``ParameterRangeError``."""

        wire_names = _WIRE_FIELDS_BY_FAMILY[self.family]
        return {
            "min": {wire_names[name]: value for name, value in self.minimum.items()},
            "max": {wire_names[name]: value for name, value in self.maximum.items()},
        }


@dataclass(frozen=True, slots=True)
class FileModelLimits:
    max_file_size_bytes: int = UNLIMITED
    max_number_of_agent_types: int = UNLIMITED
    max_number_of_agents_per_type: int = UNLIMITED
    max_number_of_agents_total: int = UNLIMITED
    max_number_of_states: int = UNLIMITED
    max_number_of_transitions: int = UNLIMITED
    max_coalition_size: int = UNLIMITED
    max_number_of_persistent_variables: int = UNLIMITED
    max_number_of_reduction_variables: int = UNLIMITED
    max_number_of_goal_variables: int = UNLIMITED

    def to_wire(self) -> dict[str, int]:
        return _limits_to_wire(self)


@dataclass(frozen=True, slots=True)
class MappingFileLimits:
    max_file_size_bytes: int = UNLIMITED
    max_number_of_mappings: int = UNLIMITED

    def to_wire(self) -> dict[str, int]:
        return _limits_to_wire(self)


@dataclass(frozen=True, slots=True)
class EngineSettings:
    command: tuple[str, ...]
    working_dir: str | None = None
    max_execution_time_seconds: float = 0.0

    @property
    def timeout_seconds(self) -> float | None:
        """Wall-clock ceiling, or ``None`` when unbounded."""

        if self.max_execution_time_seconds <= 0:
            return None
        return self.max_execution_time_seconds


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Process-wide read-only configuration."""

    engine: EngineSettings
    bounds: Mapping[str, FamilyBounds]
    file_model: FileModelLimits
    mapping_file: MappingFileLimits
    server_host: str = "127.0.0.1"
    server_port: int = 3000
    observability: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> GatewaySettings:
        validated = assert_valid_config(config)
        engine = validated["engine"]
        families = validated["parameterized_models"]
        bounds = {
            family: FamilyBounds(
                family=family,
                minimum=MappingProxyType(dict(families[family]["min"])),
                maximum=MappingProxyType(dict(families[family]["max"])),
            )
            for family in FAMILY_FIELDS
        }
        return cls(
            engine=EngineSettings(
                command=tuple(engine["command"]),
                working_dir=engine["working_dir"],
                max_execution_time_seconds=engine["max_execution_time_seconds"],
            ),
            bounds=MappingProxyType(bounds),
            file_model=FileModelLimits(**validated["file_model"]),
            mapping_file=MappingFileLimits(**validated["mapping_file"]),
            server_host=validated["server"]["host"],
            server_port=validated["server"]["port"],
            observability=MappingProxyType(dict(validated["observability"])),
        )

    @classmethod
    def default(cls) -> GatewaySettings:
        return cls.from_config(default_config())

    def bounds_for(self, family: str) -> FamilyBounds:
        return self.bounds[family]

    def client_view(self) -> dict[str, Any]:
        """Limits exposed to clients for pre-validation; informational only.

        Keys use the request wire names: families by model ``type`` and fields
        by the names a request carries, so a ``ParameterRangeError`` parameter
        name can be looked up here directly.
        """

        return {
            "maxExecutionTimeSeconds": self.engine.max_execution_time_seconds,
            "parameterizedModels": {
                bounds.model_type: bounds.to_wire()
                for _, bounds in sorted(self.bounds.items())
            },
            "fileModel": self.file_model.to_wire(),
            "mappingFile": self.mapping_file.to_wire(),
            "unlimited": UNLIMITED,
        }


__all__ = [
    "EngineSettings",
    "FamilyBounds",
    "FileModelLimits",
    "GatewaySettings",
    "MappingFileLimits",
]
