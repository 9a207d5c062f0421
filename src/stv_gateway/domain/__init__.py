"""Request and error domain types."""

from stv_gateway.domain.actions import (
    Action,
    DominoDfsHeuristic,
    FileModel,
    ModelParameters,
    RequestFormatError,
    parse_action,
    parse_model_parameters,
)
from stv_gateway.domain.errors import (
    ErrorKind,
    ErrorType,
    GatewayError,
    classify_exception,
    error_to_dict,
)

__all__ = [
    "Action",
    "DominoDfsHeuristic",
    "ErrorKind",
    "ErrorType",
    "FileModel",
    "GatewayError",
    "ModelParameters",
    "RequestFormatError",
    "classify_exception",
    "error_to_dict",
    "parse_action",
    "parse_model_parameters",
]
