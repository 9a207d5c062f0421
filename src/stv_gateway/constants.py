"""Stable constants shared by the validation, compute and config layers."""

from __future__ import annotations

from typing import Final

# Bounds sentinel: no constraint on this side of a min/max pair or size ceiling.
UNLIMITED: Final[int] = -1

# Schema version for ``stv_gateway.toml``.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Model-file DSL.
COMMENT_MARKER: Final[str] = "%"
ARRAY_PROPERTY_NAMES: Final[tuple[str, ...]] = ("COALITION", "GOAL", "PERSISTENT", "REDUCTION")

# File ids reported in structured errors.
MODEL_FILE_ID: Final[str] = "model"
MAPPING_FILE_ID: Final[str] = "mapping"

__all__ = [
    "ARRAY_PROPERTY_NAMES",
    "COMMENT_MARKER",
    "CONFIG_SCHEMA_VERSION",
    "MAPPING_FILE_ID",
    "MODEL_FILE_ID",
    "UNLIMITED",
]
