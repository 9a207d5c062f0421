"""Request domain: the closed ``Action`` and ``ModelParameters`` unions.

Wire payloads are camelCase JSON objects tagged by ``type``. Parsing is strict:
unknown fields, missing fields, wrong types and unknown tags all raise
:class:`RequestFormatError`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import ClassVar, Final, NoReturn


class RequestFormatError(ValueError):
    """Raised when a request payload does not match the action schema."""


class DominoDfsHeuristic(StrEnum):
    BASIC = "basic"
    CONTROL = "control"
    EPISTEMIC = "epistemic"
    VISITED_STATES = "visitedStates"

    @property
    def code(self) -> int:
        return _HEURISTIC_CODES[self]


_HEURISTIC_CODES: Final[dict[DominoDfsHeuristic, int]] = {
    DominoDfsHeuristic.BASIC: 0,
    DominoDfsHeuristic.CONTROL: 1,
    DominoDfsHeuristic.EPISTEMIC: 2,
    DominoDfsHeuristic.VISITED_STATES: 3,
}


def _wire(name: str) -> dict[str, str]:
    return {"wire": name}


# ---------------------------------------------------------------------------
# Model parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileModel:
    """Raw model-file DSL text supplied by the client."""

    TYPE: ClassVar[str] = "file"

    model_string: str = field(metadata=_wire("modelString"))


@dataclass(frozen=True, slots=True)
class BridgeEndplay:
    TYPE: ClassVar[str] = "bridgeEndplay"
    FAMILY: ClassVar[str] = "bridge_endplay"

    deck_size: int = field(metadata=_wire("deckSize"))
    cards_in_hand: int = field(metadata=_wire("cardsInHand"))


@dataclass(frozen=True, slots=True)
class Castles:
    TYPE: ClassVar[str] = "castles"
    FAMILY: ClassVar[str] = "castles"

    castle1_size: int = field(metadata=_wire("castle1Size"))
    castle2_size: int = field(metadata=_wire("castle2Size"))
    castle3_size: int = field(metadata=_wire("castle3Size"))
    life: int = field(metadata=_wire("life"))


@dataclass(frozen=True, slots=True)
class Drones:
    TYPE: ClassVar[str] = "drones"
    FAMILY: ClassVar[str] = "drones"

    number_of_drones: int = field(metadata=_wire("numberOfDrones"))
    initial_energy: int = field(metadata=_wire("initialEnergy"))


@dataclass(frozen=True, slots=True)
class SimpleVoting:
    TYPE: ClassVar[str] = "simpleVoting"
    FAMILY: ClassVar[str] = "simple_voting"

    voters: int = field(metadata=_wire("voters"))
    candidates: int = field(metadata=_wire("candidates"))


@dataclass(frozen=True, slots=True)
class TianJi:
    TYPE: ClassVar[str] = "tianJi"
    FAMILY: ClassVar[str] = "tian_ji"

    horses: int = field(metadata=_wire("horses"))


ParametricModel = BridgeEndplay | Castles | Drones | SimpleVoting | TianJi
ModelParameters = FileModel | ParametricModel

PARAMETRIC_MODEL_TYPES: Final[tuple[type[ParametricModel], ...]] = (
    BridgeEndplay,
    Castles,
    Drones,
    SimpleVoting,
    TianJi,
)

_MODEL_TYPES: Final[dict[str, type[ModelParameters]]] = {
    model_cls.TYPE: model_cls for model_cls in (FileModel, *PARAMETRIC_MODEL_TYPES)
}


@dataclass(frozen=True, slots=True)
class ParameterValue:
    """One parametric field in declaration order."""

    name: str
    wire_name: str
    value: int


def parameter_values(model: ParametricModel) -> tuple[ParameterValue, ...]:
    """Return a parametric model's fields in declaration order."""

    return tuple(
        ParameterValue(
            name=item.name,
            wire_name=item.metadata["wire"],
            value=getattr(model, item.name),
        )
        for item in fields(model)
    )


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BisimulationChecking:
    TYPE: ClassVar[str] = "bisimulationChecking"

    model1: FileModel
    model2: FileModel
    specification: FileModel


@dataclass(frozen=True, slots=True)
class BisimulationModelsGeneration:
    TYPE: ClassVar[str] = "bisimulationModelsGeneration"

    model1: FileModel
    model2: FileModel


@dataclass(frozen=True, slots=True)
class DominoDfs:
    TYPE: ClassVar[str] = "dominoDfs"

    model_parameters: ModelParameters
    heuristic: DominoDfsHeuristic


@dataclass(frozen=True, slots=True)
class LowerApproximation:
    TYPE: ClassVar[str] = "lowerApproximation"

    model_parameters: ModelParameters


@dataclass(frozen=True, slots=True)
class UpperApproximation:
    TYPE: ClassVar[str] = "upperApproximation"

    model_parameters: ModelParameters


@dataclass(frozen=True, slots=True)
class ModelGeneration:
    TYPE: ClassVar[str] = "modelGeneration"

    model_parameters: ModelParameters
    reduced: bool = False


Action = (
    BisimulationChecking
    | BisimulationModelsGeneration
    | DominoDfs
    | LowerApproximation
    | UpperApproximation
    | ModelGeneration
)

ParameterizedAction = DominoDfs | LowerApproximation | UpperApproximation | ModelGeneration


def parse_action(payload: object) -> Action:
    """Parse a wire request payload into a typed :data:`Action`."""

    request, tag = _expect_tag(payload, "action")

    if tag == BisimulationChecking.TYPE:
        parsed = _expect_object(
            request,
            "action",
            required={"type", "model1Parameters", "model2Parameters", "specification"},
        )
        return BisimulationChecking(
            model1=_parse_file_model(parsed["model1Parameters"], "action.model1Parameters"),
            model2=_parse_file_model(parsed["model2Parameters"], "action.model2Parameters"),
            specification=_parse_file_model(parsed["specification"], "action.specification"),
        )

    if tag == BisimulationModelsGeneration.TYPE:
        parsed = _expect_object(
            request,
            "action",
            required={"type", "model1Parameters", "model2Parameters"},
        )
        return BisimulationModelsGeneration(
            model1=_parse_file_model(parsed["model1Parameters"], "action.model1Parameters"),
            model2=_parse_file_model(parsed["model2Parameters"], "action.model2Parameters"),
        )

    if tag == DominoDfs.TYPE:
        parsed = _expect_object(
            request, "action", required={"type", "modelParameters", "heuristic"}
        )
        return DominoDfs(
            model_parameters=parse_model_parameters(
                parsed["modelParameters"], "action.modelParameters"
            ),
            heuristic=_parse_heuristic(parsed["heuristic"], "action.heuristic"),
        )

    if tag in (LowerApproximation.TYPE, UpperApproximation.TYPE):
        parsed = _expect_object(request, "action", required={"type", "modelParameters"})
        model_parameters = parse_model_parameters(
            parsed["modelParameters"], "action.modelParameters"
        )
        if tag == LowerApproximation.TYPE:
            return LowerApproximation(model_parameters=model_parameters)
        return UpperApproximation(model_parameters=model_parameters)

    if tag == ModelGeneration.TYPE:
        parsed = _expect_object(
            request, "action", required={"type", "modelParameters"}, optional={"reduced"}
        )
        return ModelGeneration(
            model_parameters=parse_model_parameters(
                parsed["modelParameters"], "action.modelParameters"
            ),
            reduced=_as_bool(parsed.get("reduced", False), "action.reduced"),
        )

    _fail("action.type", f"unknown action type {tag!r}")


def parse_model_parameters(payload: object, path: str = "modelParameters") -> ModelParameters:
    """Parse a tagged ``modelParameters`` object."""

    request, tag = _expect_tag(payload, path)
    model_cls = _MODEL_TYPES.get(tag)
    if model_cls is None:
        _fail(f"{path}.type", f"unknown model type {tag!r}")

    wire_to_attr = {item.metadata["wire"]: item.name for item in fields(model_cls)}
    parsed = _expect_object(request, path, required={"type", *wire_to_attr})
    if model_cls is FileModel:
        return FileModel(
            model_string=_as_text(parsed["modelString"], f"{path}.modelString")
        )

    kwargs = {
        attr: _as_int(parsed[wire_name], f"{path}.{wire_name}")
        for wire_name, attr in wire_to_attr.items()
    }
    return model_cls(**kwargs)


def _parse_file_model(payload: object, path: str) -> FileModel:
    if isinstance(payload, Mapping) and "type" not in payload:
        payload = {**payload, "type": FileModel.TYPE}
    parsed = parse_model_parameters(payload, path)
    if not isinstance(parsed, FileModel):
        _fail(f"{path}.type", f"expected {FileModel.TYPE!r} model")
    return parsed


def _parse_heuristic(value: object, path: str) -> DominoDfsHeuristic:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    try:
        return DominoDfsHeuristic(value)
    except ValueError:
        expected = ", ".join(item.value for item in DominoDfsHeuristic)
        _fail(path, f"invalid heuristic {value!r}; expected one of: {expected}")


def _fail(path: str, message: str) -> NoReturn:
    raise RequestFormatError(f"{path}: {message}")


def _expect_tag(value: object, path: str) -> tuple[Mapping[object, object], str]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    tag = value.get("type")
    if not isinstance(tag, str):
        _fail(f"{path}.type", "missing or non-string type tag")
    return value, tag


def _expect_object(
    value: Mapping[object, object],
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_int(value: object, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    return value


def _as_bool(value: object, path: str) -> bool:
    if isinstance(value, bool):
        return value
    _fail(path, f"expected boolean, got {type(value).__name__}")


def _as_text(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    return value


__all__ = [
    "Action",
    "BisimulationChecking",
    "BisimulationModelsGeneration",
    "BridgeEndplay",
    "Castles",
    "DominoDfs",
    "DominoDfsHeuristic",
    "Drones",
    "FileModel",
    "LowerApproximation",
    "ModelGeneration",
    "ModelParameters",
    "PARAMETRIC_MODEL_TYPES",
    "ParameterValue",
    "ParameterizedAction",
    "ParametricModel",
    "RequestFormatError",
    "SimpleVoting",
    "TianJi",
    "UpperApproximation",
    "parameter_values",
    "parse_action",
    "parse_model_parameters",
]
