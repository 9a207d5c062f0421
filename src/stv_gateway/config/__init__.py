"""
stv-gateway config package public API.

File: src/stv_gateway/config/__init__.py

Purpose
- Export config loading/validation entrypoints, runtime settings, and error types.

Functional requirements
- Support loading from ``stv_gateway.toml`` + ``STV_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from stv_gateway.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
    parse_cli_assignments,
)
from stv_gateway.config.schema import (
    DEFAULT_CONFIG,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    GatewayConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)
from stv_gateway.config.settings import (
    EngineSettings,
    FamilyBounds,
    FileModelLimits,
    GatewaySettings,
    MappingFileLimits,
)

__all__ = [
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "EngineSettings",
    "FamilyBounds",
    "FileModelLimits",
    "GatewayConfig",
    "GatewaySettings",
    "MappingFileLimits",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "normalize_paths",
    "parse_cli_assignments",
    "validate_config",
]
