"""Translation of actions to engine invocations and their guarded execution."""

from stv_gateway.compute.gateway import EngineGateway, normalize_engine_output
from stv_gateway.compute.service import ComputeService, error_envelope, success_envelope
from stv_gateway.compute.translator import (
    InvocationDescriptor,
    build_invocation,
    decode_model_string,
    encode_model_string,
)

__all__ = [
    "ComputeService",
    "EngineGateway",
    "InvocationDescriptor",
    "build_invocation",
    "decode_model_string",
    "encode_model_string",
    "error_envelope",
    "normalize_engine_output",
    "success_envelope",
]
