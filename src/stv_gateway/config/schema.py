"""
stv-gateway: configuration schema and validation.

File: src/stv_gateway/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.

What is included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums, and numeric constraints.
- Per-family parameter bounds and per-file-kind limits, with ``UNLIMITED``.
- Deterministic deep-merge helper used by the loader.

Functional requirements
- Validate config payloads and return structured errors (field path + message).

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any, Final, Literal, TypedDict

from stv_gateway.constants import CONFIG_SCHEMA_VERSION, UNLIMITED
from stv_gateway.domain.actions import PARAMETRIC_MODEL_TYPES

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("engine", "working_dir"),
    ("observability", "log_dir"),
)

# Parametric family name -> field names in declaration order.
FAMILY_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    model_cls.FAMILY: tuple(item.name for item in fields(model_cls))
    for model_cls in PARAMETRIC_MODEL_TYPES
}

FILE_MODEL_LIMIT_KEYS: Final[tuple[str, ...]] = (
    "max_file_size_bytes",
    "max_number_of_agent_types",
    "max_number_of_agents_per_type",
    "max_number_of_agents_total",
    "max_number_of_states",
    "max_number_of_transitions",
    "max_coalition_size",
    "max_number_of_persistent_variables",
    "max_number_of_reduction_variables",
    "max_number_of_goal_variables",
)
MAPPING_FILE_LIMIT_KEYS: Final[tuple[str, ...]] = (
    "max_file_size_bytes",
    "max_number_of_mappings",
)


class MetaConfig(TypedDict):
    schema_version: int


class EngineConfig(TypedDict):
    command: list[str]
    working_dir: str
    max_execution_time_seconds: float


class FamilyBoundsConfig(TypedDict):
    min: dict[str, int]
    max: dict[str, int]


class FileModelConfig(TypedDict):
    max_file_size_bytes: int
    max_number_of_agent_types: int
    max_number_of_agents_per_type: int
    max_number_of_agents_total: int
    max_number_of_states: int
    max_number_of_transitions: int
    max_coalition_size: int
    max_number_of_persistent_variables: int
    max_number_of_reduction_variables: int
    max_number_of_goal_variables: int


class MappingFileConfig(TypedDict):
    max_file_size_bytes: int
    max_number_of_mappings: int


class ServerConfig(TypedDict):
    host: str
    port: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    log_dir: str
    log_to_file: bool


class GatewayConfig(TypedDict):
    meta: MetaConfig
    engine: EngineConfig
    parameterized_models: dict[str, FamilyBoundsConfig]
    file_model: FileModelConfig
    mapping_file: MappingFileConfig
    server: ServerConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[GatewayConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "engine": {
        "command": ["python3", "../stv-compute/gui.py"],
        "working_dir": ".",
        "max_execution_time_seconds": 3.0,
    },
    "parameterized_models": {
        "bridge_endplay": {
            "min": {"deck_size": 1, "cards_in_hand": 1},
            "max": {"deck_size": 15, "cards_in_hand": 2},
        },
        "castles": {
            "min": {"castle1_size": 1, "castle2_size": 1, "castle3_size": 1, "life": 1},
            "max": {"castle1_size": 2, "castle2_size": 2, "castle3_size": 2, "life": 2},
        },
        "drones": {
            "min": {"number_of_drones": 1, "initial_energy": 1},
            "max": {"number_of_drones": 2, "initial_energy": 3},
        },
        "simple_voting": {
            "min": {"voters": 1, "candidates": 1},
            "max": {"voters": 2, "candidates": 3},
        },
        "tian_ji": {
            "min": {"horses": 1},
            "max": {"horses": 4},
        },
    },
    "file_model": {
        "max_file_size_bytes": 256 * 1024,
        "max_number_of_agent_types": 100,
        "max_number_of_agents_per_type": 100,
        "max_number_of_agents_total": 100,
        "max_number_of_states": 100,
        "max_number_of_transitions": 100,
        "max_coalition_size": 100,
        "max_number_of_persistent_variables": 100,
        "max_number_of_reduction_variables": 100,
        "max_number_of_goal_variables": 100,
    },
    "mapping_file": {
        "max_file_size_bytes": 256 * 1024,
        "max_number_of_mappings": 100,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 3000,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "json",
        "log_dir": "logs/",
        "log_to_file": False,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> GatewayConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade stv_gateway.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the stv-gateway runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    validators: dict[str, Callable[[dict[str, object], str], dict[str, Any]]] = {
        "meta": lambda section, path: _validate_meta(section, path, issues),
        "engine": lambda section, path: _validate_engine(section, path, issues),
        "parameterized_models": lambda section, path: _validate_parameterized_models(
            section, path, issues
        ),
        "file_model": lambda section, path: _validate_limits(
            section, path, issues, keys=FILE_MODEL_LIMIT_KEYS
        ),
        "mapping_file": lambda section, path: _validate_limits(
            section, path, issues, keys=MAPPING_FILE_LIMIT_KEYS
        ),
        "server": lambda section, path: _validate_server(section, path, issues),
        "observability": lambda section, path: _validate_observability(section, path, issues),
    }
    _reject_unknown_keys(payload, set(validators), "", issues)
    _require_keys(payload, set(validators), "", issues)

    out: dict[str, Any] = {}
    for key, validator in validators.items():
        _section(payload, key=key, path="", issues=issues, validator=validator, out=out)
    return out


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    path: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        return
    section_path = _join(path, key)
    section_obj = _as_object(raw, section_path, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, section_path)


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_engine(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"command", "working_dir", "max_execution_time_seconds"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "command" in payload:
        parsed_command = _as_argv(payload["command"], _join(path, "command"), issues)
        if parsed_command is not None:
            out["command"] = parsed_command

    if "working_dir" in payload:
        parsed_dir = _as_path_text(payload["working_dir"], _join(path, "working_dir"), issues)
        if parsed_dir is not None:
            out["working_dir"] = parsed_dir

    if "max_execution_time_seconds" in payload:
        # Non-positive ceilings mean "unbounded".
        parsed_timeout = _as_float(
            payload["max_execution_time_seconds"],
            _join(path, "max_execution_time_seconds"),
            issues,
        )
        if parsed_timeout is not None:
            out["max_execution_time_seconds"] = parsed_timeout
    return out


def _validate_parameterized_models(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(FAMILY_FIELDS), path, issues)
    _require_keys(payload, set(FAMILY_FIELDS), path, issues)

    out: dict[str, Any] = {}
    for family in sorted(FAMILY_FIELDS):
        raw = payload.get(family)
        if raw is None:
            continue
        family_path = _join(path, family)
        family_obj = _as_object(raw, family_path, issues)
        if family_obj is None:
            continue
        out[family] = _validate_family_bounds(
            family_obj, family_path, issues, field_names=FAMILY_FIELDS[family]
        )
    return out


def _validate_family_bounds(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    field_names: tuple[str, ...],
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"min", "max"}, path, issues)
    _require_keys(payload, {"min", "max"}, path, issues)

    out: dict[str, Any] = {}
    for side in ("min", "max"):
        raw = payload.get(side)
        if raw is None:
            continue
        side_path = _join(path, side)
        side_obj = _as_object(raw, side_path, issues)
        if side_obj is None:
            continue
        out[side] = _validate_limits(side_obj, side_path, issues, keys=field_names)

    lower = out.get("min", {})
    upper = out.get("max", {})
    for name in field_names:
        low = lower.get(name)
        high = upper.get(name)
        if low is None or high is None or UNLIMITED in (low, high):
            continue
        if low > high:
            issues.add(_join(path, name), f"min {low} must be <= max {high}")
    return out


def _validate_limits(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    keys: Sequence[str],
) -> dict[str, Any]:
    allowed = set(keys)
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    for key in keys:
        if key not in payload:
            continue
        parsed = _as_int(payload[key], _join(path, key), issues, minimum=UNLIMITED)
        if parsed is not None:
            out[key] = parsed
    return out


def _validate_server(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"host", "port"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "host" in payload:
        parsed_host = _as_str(payload["host"], _join(path, "host"), issues)
        if parsed_host is not None:
            out["host"] = parsed_host
    if "port" in payload:
        parsed_port = _as_int(payload["port"], _join(path, "port"), issues, minimum=1)
        if parsed_port is not None:
            if parsed_port > 65535:
                issues.add(_join(path, "port"), "must be <= 65535")
            else:
                out["port"] = parsed_port
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_format", "log_dir", "log_to_file"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "log_level" in payload:
        parsed_log_level = _as_enum(
            payload["log_level"],
            _join(path, "log_level"),
            issues,
            allowed_values=("DEBUG", "INFO", "WARNING", "ERROR"),
        )
        if parsed_log_level is not None:
            out["log_level"] = parsed_log_level

    if "log_format" in payload:
        parsed_log_format = _as_enum(
            payload["log_format"],
            _join(path, "log_format"),
            issues,
            allowed_values=("json", "text"),
        )
        if parsed_log_format is not None:
            out["log_format"] = parsed_log_format

    if "log_dir" in payload:
        parsed_log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_log_dir is not None:
            out["log_dir"] = parsed_log_dir

    if "log_to_file" in payload:
        parsed_to_file = _as_bool(payload["log_to_file"], _join(path, "log_to_file"), issues)
        if parsed_to_file is not None:
            out["log_to_file"] = parsed_to_file

    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_argv(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if isinstance(value, str) or not isinstance(value, Sequence):
        issues.add(path, f"expected list of strings, got {type(value).__name__}")
        return None
    if not value:
        issues.add(path, "must not be empty")
        return None
    parsed: list[str] = []
    for index, item in enumerate(value):
        item_text = _as_str(item, f"{path}[{index}]", issues)
        if item_text is None:
            return None
        parsed.append(item_text)
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            elif isinstance(existing, Mapping):
                nested = _deep_copy_mapping(existing)
                _merge_into(nested, value)
                target[key] = nested
            else:
                nested_new: dict[str, Any] = {}
                _merge_into(nested_new, value)
                target[key] = nested_new
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        out[key] = copy.deepcopy(value[key])
    return out


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "FAMILY_FIELDS",
    "FILE_MODEL_LIMIT_KEYS",
    "GatewayConfig",
    "MAPPING_FILE_LIMIT_KEYS",
    "PATH_FIELDS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
