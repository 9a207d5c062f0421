"""Numeric range checks for parametric model families."""

from __future__ import annotations

from stv_gateway.config.settings import FamilyBounds
from stv_gateway.constants import UNLIMITED
from stv_gateway.domain.actions import ParametricModel, parameter_values
from stv_gateway.domain.errors import GatewayError, ParameterRangeError


def validate_bounds(model: ParametricModel, bounds: FamilyBounds) -> None:
    """Check every field of ``model`` against ``bounds`` in declaration order.

    Fails on the first violation. An ``UNLIMITED`` side is not checked.

    Raises:
        GatewayError: carrying :class:`ParameterRangeError` with the wire field
            name and the configured bounds.
    """

    for parameter in parameter_values(model):
        minimum = bounds.min_for(parameter.name)
        maximum = bounds.max_for(parameter.name)
        below = minimum != UNLIMITED and parameter.value < minimum
        above = maximum != UNLIMITED and parameter.value > maximum
        if below or above:
            raise GatewayError(
                ParameterRangeError(
                    parameter_name=parameter.wire_name,
                    value=parameter.value,
                    min=minimum,
                    max=maximum,
                )
            )


__all__ = ["validate_bounds"]
