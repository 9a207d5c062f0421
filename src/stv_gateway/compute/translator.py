"""Translate a validated request action into the engine's positional argv.

The engine contract is ``[engine_name, method, *args]``, all strings. Every
input is validated here before a descriptor is built, so a descriptor always
describes an acceptable invocation.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import assert_never

from stv_gateway.config.settings import GatewaySettings
from stv_gateway.domain.actions import (
    Action,
    BisimulationChecking,
    BisimulationModelsGeneration,
    BridgeEndplay,
    Castles,
    DominoDfs,
    Drones,
    FileModel,
    LowerApproximation,
    ModelGeneration,
    ModelParameters,
    SimpleVoting,
    TianJi,
    UpperApproximation,
)
from stv_gateway.validation.bounds import validate_bounds
from stv_gateway.validation.mapping_file import MappingFileValidator
from stv_gateway.validation.model_file import ModelFileValidator


@dataclass(frozen=True, slots=True)
class InvocationDescriptor:
    engine_name: str
    method: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.engine_name, self.method, *self.args]


def encode_model_string(text: str) -> str:
    """Standard base64 of the UTF-8 bytes of ``text``."""

    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_model_string(encoded: str) -> str:
    return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")


def build_invocation(action: Action, settings: GatewaySettings) -> InvocationDescriptor:
    """Validate ``action`` and build its invocation descriptor.

    Raises:
        GatewayError: on the first failed validation; nothing is built.
    """

    match action:
        case BisimulationChecking(model1=model1, model2=model2, specification=specification):
            _validate_model_file(model1, settings, file_id="model1")
            _validate_model_file(model2, settings, file_id="model2")
            MappingFileValidator(specification.model_string, settings.mapping_file).validate()
            return InvocationDescriptor(
                "bisimulation",
                "check",
                (
                    encode_model_string(model1.model_string),
                    encode_model_string(model2.model_string),
                    encode_model_string(specification.model_string),
                ),
            )
        case BisimulationModelsGeneration(model1=model1, model2=model2):
            _validate_model_file(model1, settings, file_id="model1")
            _validate_model_file(model2, settings, file_id="model2")
            return InvocationDescriptor(
                "bisimulation",
                "run",
                (
                    encode_model_string(model1.model_string),
                    encode_model_string(model2.model_string),
                ),
            )
        case DominoDfs(model_parameters=parameters, heuristic=heuristic):
            engine_name, args = _model_arguments(parameters, settings, reduced=False)
            return InvocationDescriptor(engine_name, "domino", (*args, str(heuristic.code)))
        case LowerApproximation(model_parameters=parameters):
            engine_name, args = _model_arguments(parameters, settings, reduced=False)
            return InvocationDescriptor(engine_name, "verify", (*args, "1"))
        case UpperApproximation(model_parameters=parameters):
            engine_name, args = _model_arguments(parameters, settings, reduced=False)
            return InvocationDescriptor(engine_name, "verify", (*args, "0"))
        case ModelGeneration(model_parameters=parameters, reduced=reduced):
            engine_name, args = _model_arguments(parameters, settings, reduced=reduced)
            return InvocationDescriptor(engine_name, "run", args)
        case _:
            assert_never(action)


def _model_arguments(
    parameters: ModelParameters,
    settings: GatewaySettings,
    *,
    reduced: bool,
) -> tuple[str, tuple[str, ...]]:
    """Validate ``parameters`` and return the engine name and its base args."""

    match parameters:
        case FileModel(model_string=model_string):
            _validate_model_file(parameters, settings)
            return "global", ("reduced" if reduced else "global", encode_model_string(model_string))
        case BridgeEndplay(deck_size=deck_size, cards_in_hand=cards_in_hand):
            validate_bounds(parameters, settings.bounds_for(BridgeEndplay.FAMILY))
            return "bridge", (str(deck_size), str(cards_in_hand))
        case Castles():
            validate_bounds(parameters, settings.bounds_for(Castles.FAMILY))
            return "castles", (
                str(parameters.castle1_size),
                str(parameters.castle2_size),
                str(parameters.castle3_size),
                str(parameters.life),
            )
        case Drones(number_of_drones=number_of_drones, initial_energy=initial_energy):
            validate_bounds(parameters, settings.bounds_for(Drones.FAMILY))
            return "drone", (str(number_of_drones), str(initial_energy))
        case SimpleVoting(voters=voters, candidates=candidates):
            validate_bounds(parameters, settings.bounds_for(SimpleVoting.FAMILY))
            return "voting", (str(voters), str(candidates))
        case TianJi(horses=horses):
            validate_bounds(parameters, settings.bounds_for(TianJi.FAMILY))
            return "tian_ji", (str(horses),)
        case _:
            assert_never(parameters)


def _validate_model_file(
    model: FileModel,
    settings: GatewaySettings,
    *,
    file_id: str | None = None,
) -> None:
    if file_id is None:
        validator = ModelFileValidator(model.model_string, settings.file_model)
    else:
        validator = ModelFileValidator(model.model_string, settings.file_model, file_id=file_id)
    validator.validate()


__all__ = [
    "InvocationDescriptor",
    "build_invocation",
    "decode_model_string",
    "encode_model_string",
]
