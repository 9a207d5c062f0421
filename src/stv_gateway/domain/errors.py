"""Structured error taxonomy shared by every layer of the gateway.

Each failure is one of a closed set of frozen error kinds. A kind carries only
its own fields and serializes through a single path (:func:`error_to_dict`) to
the flat JSON record returned to clients. Inside the process, kinds travel as
:class:`GatewayError` exceptions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import ClassVar

JSONScalar = str | int | float | bool | None


class ErrorType(StrEnum):
    """Wire discriminant for structured errors."""

    FILE_SIZE = "FileSizeError"
    PARAMETER_RANGE = "ParameterRangeError"
    MAX_NUMBER_EXCEEDED = "MaxNumberExceededError"
    DUPLICATE_PROPERTY = "DuplicatePropertyError"
    FILE_FORMAT = "FileFormatError"
    COMPUTE = "ComputeError"
    MAX_EXECUTION_TIME_EXCEEDED = "MaxExecutionTimeExceededError"
    UNKNOWN = "UnknownError"


def _wire(name: str) -> dict[str, str]:
    return {"wire": name}


@dataclass(frozen=True, slots=True)
class FileSizeError:
    type: ClassVar[ErrorType] = ErrorType.FILE_SIZE

    file_id: str = field(metadata=_wire("fileId"))
    actual_size: int = field(metadata=_wire("actualSize"))
    max_size: int = field(metadata=_wire("maxSize"))


@dataclass(frozen=True, slots=True)
class ParameterRangeError:
    type: ClassVar[ErrorType] = ErrorType.PARAMETER_RANGE

    parameter_name: str = field(metadata=_wire("parameterName"))
    value: int = field(metadata=_wire("value"))
    min: int = field(metadata=_wire("min"))
    max: int = field(metadata=_wire("max"))


@dataclass(frozen=True, slots=True)
class MaxNumberExceededError:
    type: ClassVar[ErrorType] = ErrorType.MAX_NUMBER_EXCEEDED

    metric_name: str = field(metadata=_wire("metricName"))
    actual_value: int = field(metadata=_wire("actualValue"))
    max_value: int = field(metadata=_wire("maxValue"))


@dataclass(frozen=True, slots=True)
class DuplicatePropertyError:
    type: ClassVar[ErrorType] = ErrorType.DUPLICATE_PROPERTY

    property_name: str = field(metadata=_wire("propertyName"))


@dataclass(frozen=True, slots=True)
class FileFormatError:
    type: ClassVar[ErrorType] = ErrorType.FILE_FORMAT

    file_id: str = field(metadata=_wire("fileId"))


@dataclass(frozen=True, slots=True)
class ComputeError:
    type: ClassVar[ErrorType] = ErrorType.COMPUTE

    message: str = field(metadata=_wire("message"))


@dataclass(frozen=True, slots=True)
class MaxExecutionTimeExceededError:
    type: ClassVar[ErrorType] = ErrorType.MAX_EXECUTION_TIME_EXCEEDED


@dataclass(frozen=True, slots=True)
class UnknownError:
    type: ClassVar[ErrorType] = ErrorType.UNKNOWN

    extra: str | None = field(default=None, metadata=_wire("extra"))


ErrorKind = (
    FileSizeError
    | ParameterRangeError
    | MaxNumberExceededError
    | DuplicatePropertyError
    | FileFormatError
    | ComputeError
    | MaxExecutionTimeExceededError
    | UnknownError
)


class GatewayError(Exception):
    """Exception carrying a structured error kind across internal layers."""

    def __init__(self, kind: ErrorKind) -> None:
        self.kind = kind
        super().__init__(error_to_json(kind))

    @property
    def error_type(self) -> ErrorType:
        return self.kind.type

    def to_dict(self) -> dict[str, JSONScalar]:
        return error_to_dict(self.kind)


def error_to_dict(kind: ErrorKind) -> dict[str, JSONScalar]:
    """Serialize an error kind to its flat wire record.

    ``None`` valued optional fields are omitted, so ``UnknownError()`` renders as
    ``{"type": "UnknownError"}``.
    """

    payload: dict[str, JSONScalar] = {"type": kind.type.value}
    for item in fields(kind):
        value = getattr(kind, item.name)
        if value is None:
            continue
        payload[item.metadata["wire"]] = value
    return payload


def error_to_json(kind: ErrorKind) -> str:
    return json.dumps(error_to_dict(kind), sort_keys=True, separators=(",", ":"))


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map any exception to a structured kind; unclassified errors become ``UnknownError``."""

    if isinstance(exc, GatewayError):
        return exc.kind
    return UnknownError()


__all__ = [
    "ComputeError",
    "DuplicatePropertyError",
    "ErrorKind",
    "ErrorType",
    "FileFormatError",
    "FileSizeError",
    "GatewayError",
    "MaxExecutionTimeExceededError",
    "MaxNumberExceededError",
    "ParameterRangeError",
    "UnknownError",
    "classify_exception",
    "error_to_dict",
    "error_to_json",
]
