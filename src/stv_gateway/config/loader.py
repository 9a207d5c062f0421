"""
stv-gateway: runtime config loader.

File: src/stv_gateway/config/loader.py

Purpose
- Build the effective gateway config from four layers: built-in defaults, the
  TOML file, ``STV_`` environment variables and ``--set`` overrides.

Environment variables
- Every leaf the gateway knows has exactly one variable, named after its path:
  ``STV_ENGINE_COMMAND``, ``STV_SERVER_PORT``,
  ``STV_PARAMETERIZED_MODELS_TIAN_JI_MAX_HORSES``,
  ``STV_MAPPING_FILE_MAX_NUMBER_OF_MAPPINGS`` and so on.
- Family bounds and file limits are integers; the engine command is split
  with shell quoting rules; booleans accept true/false/1/0/yes/no/on/off.
- Relative ``working_dir``/``log_dir`` values resolve against the config file.
"""

from __future__ import annotations

import json
import os
import shlex
import tomllib
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from stv_gateway.config.schema import (
    FAMILY_FIELDS,
    FILE_MODEL_LIMIT_KEYS,
    MAPPING_FILE_LIMIT_KEYS,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "stv_gateway.toml"
ENV_PREFIX: Final[str] = "STV_"

_FLAG_VALUES: Final[Mapping[str, bool]] = {
    **dict.fromkeys(("1", "true", "t", "yes", "y", "on"), True),
    **dict.fromkeys(("0", "false", "f", "no", "n", "off"), False),
}


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def _parse_flag(raw: str) -> bool:
    try:
        return _FLAG_VALUES[raw.lower()]
    except KeyError:
        raise ValueError(raw) from None


@dataclass(frozen=True, slots=True)
class _EnvValue:
    """How one environment string becomes a config value."""

    parse: Callable[[str], object]
    expectation: str


_TEXT = _EnvValue(str, "a string")
_INTEGER = _EnvValue(int, "an integer")
_SECONDS = _EnvValue(float, "a number")
_FLAG = _EnvValue(_parse_flag, "a boolean (true/false/1/0/yes/no/on/off)")
_COMMAND = _EnvValue(shlex.split, "a shell-quoted command")

_SCALAR_KEYS: Final[Mapping[tuple[str, ...], _EnvValue]] = {
    ("meta", "schema_version"): _INTEGER,
    ("engine", "command"): _COMMAND,
    ("engine", "working_dir"): _TEXT,
    ("engine", "max_execution_time_seconds"): _SECONDS,
    ("server", "host"): _TEXT,
    ("server", "port"): _INTEGER,
    ("observability", "log_level"): _TEXT,
    ("observability", "log_format"): _TEXT,
    ("observability", "log_dir"): _TEXT,
    ("observability", "log_to_file"): _FLAG,
}


def _limit_paths() -> Iterator[tuple[str, ...]]:
    for family, names in FAMILY_FIELDS.items():
        for side in ("min", "max"):
            for name in names:
                yield ("parameterized_models", family, side, name)
    for key in FILE_MODEL_LIMIT_KEYS:
        yield ("file_model", key)
    for key in MAPPING_FILE_LIMIT_KEYS:
        yield ("mapping_file", key)


def env_var_name(path: tuple[str, ...]) -> str:
    """Environment variable that overrides the config leaf at ``path``."""

    return ENV_PREFIX + "_".join(part.upper() for part in path)


_ENV_BINDINGS: Final[Mapping[str, tuple[tuple[str, ...], _EnvValue]]] = {
    env_var_name(path): (path, kind)
    for path, kind in (
        *_SCALAR_KEYS.items(),
        *((path, _INTEGER) for path in _limit_paths()),
    )
}


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults.

    An explicit ``config_path`` must exist; without one ``stv_gateway.toml``
    in the working directory is read when present.
    """

    resolved_path = _resolve_config_path(config_path)
    file_layer = _read_config_file(resolved_path, required=config_path is not None)

    # The file is validated alone first so its issues are reported against it.
    effective = assert_valid_config(merge_config(default_config(), file_layer))
    for layer in (
        _env_layer(os.environ if environ is None else environ),
        _cli_layer(cli_overrides or {}),
    ):
        effective = merge_config(effective, layer)
    effective = assert_valid_config(effective)

    return assert_valid_config(normalize_paths(effective, base_dir=resolved_path.parent))


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve ``working_dir`` and ``log_dir`` relative to ``base_dir``."""

    materialized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = materialized.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), str):
            table[key] = _resolve_against(table[key], base_dir)
    return materialized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_cli_assignments(assignments: list[str] | tuple[str, ...]) -> dict[str, object]:
    """Parse ``section.key=value`` strings; values are decoded as JSON when possible."""

    overrides: dict[str, object] = {}
    for raw in assignments:
        key, sep, value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigLoadError(f"invalid override {raw!r}; expected section.key=value")
        try:
            overrides[key] = json.loads(value)
        except json.JSONDecodeError:
            overrides[key] = value.strip()
    return overrides


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _read_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for env_name in sorted(_ENV_BINDINGS.keys() & environ.keys()):
        path, kind = _ENV_BINDINGS[env_name]
        try:
            value = kind.parse(environ[env_name].strip())
        except ValueError as exc:
            raise ConfigLoadError(
                f"{env_name} -> {'.'.join(path)} must be {kind.expectation}"
            ) from exc
        _assign(layer, path, value)
    return layer


def _cli_layer(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for key in sorted(cli_overrides):
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _assign(layer, path, cli_overrides[key])
    return layer


def _assign(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    *parents, leaf = path
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = target[part] = {}
        target = child
    target[leaf] = value


def _resolve_against(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_var_name",
    "load_config",
    "normalize_paths",
    "parse_cli_assignments",
]
