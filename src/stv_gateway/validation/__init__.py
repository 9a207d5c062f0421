"""Input validators run before any engine invocation."""

from stv_gateway.validation.bounds import validate_bounds
from stv_gateway.validation.file_validator import FileValidator
from stv_gateway.validation.mapping_file import MappingFileValidator
from stv_gateway.validation.model_file import (
    AgentDeclaration,
    ArrayProperty,
    ModelFileSummary,
    ModelFileValidator,
    TransitionDeclaration,
    parse_model_lines,
)

__all__ = [
    "AgentDeclaration",
    "ArrayProperty",
    "FileValidator",
    "MappingFileValidator",
    "ModelFileSummary",
    "ModelFileValidator",
    "TransitionDeclaration",
    "parse_model_lines",
    "validate_bounds",
]
