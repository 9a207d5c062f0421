"""Request pipeline: parse, validate, translate, invoke, wrap in the response envelope."""

from __future__ import annotations

import uuid
from typing import Any, Final

import structlog

from stv_gateway.compute.gateway import EngineGateway
from stv_gateway.compute.translator import InvocationDescriptor, build_invocation
from stv_gateway.config.settings import GatewaySettings
from stv_gateway.domain.actions import Action, RequestFormatError, parse_action
from stv_gateway.domain.errors import (
    ErrorKind,
    GatewayError,
    UnknownError,
    classify_exception,
    error_to_dict,
)
from stv_gateway.observability.logging import correlation_scope

STATUS_SUCCESS: Final[str] = "success"
STATUS_ERROR: Final[str] = "error"


def success_envelope(data: str) -> dict[str, Any]:
    return {"status": STATUS_SUCCESS, "data": data}


def error_envelope(kind: ErrorKind) -> dict[str, Any]:
    return {"status": STATUS_ERROR, "error": error_to_dict(kind)}


class ComputeService:
    """Serve compute requests against one engine configuration."""

    def __init__(
        self,
        settings: GatewaySettings,
        gateway: EngineGateway | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        self._settings = settings
        self._gateway = gateway if gateway is not None else EngineGateway(settings.engine)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    def parse_action(self, payload: object) -> Action:
        return parse_action(payload)

    def prepare(self, payload: object) -> InvocationDescriptor:
        """Parse, validate and translate ``payload`` without running the engine."""

        return build_invocation(self.parse_action(payload), self._settings)

    async def run(self, payload: object) -> str:
        descriptor = self.prepare(payload)
        return await self._gateway.invoke(descriptor)

    async def handle(self, payload: object, *, request_id: str | None = None) -> dict[str, Any]:
        """Run ``payload`` and always return a response envelope.

        ``GatewayError`` kinds pass through, a malformed payload becomes
        ``UnknownError`` with the parse message, anything else becomes a bare
        ``UnknownError`` and is logged with its traceback.
        """

        resolved_id = (request_id or "").strip() or uuid.uuid4().hex
        with correlation_scope(request_id=resolved_id):
            self._logger.info(
                "compute_request_received",
                action_type=_action_type(payload),
            )
            try:
                data = await self.run(payload)
            except GatewayError as exc:
                self._log_rejection(exc.kind)
                return error_envelope(exc.kind)
            except RequestFormatError as exc:
                kind = UnknownError(extra=str(exc))
                self._log_rejection(kind)
                return error_envelope(kind)
            except Exception as exc:
                self._logger.exception("compute_request_failed_unexpectedly")
                return error_envelope(classify_exception(exc))
            return success_envelope(data)

    def _log_rejection(self, kind: ErrorKind) -> None:
        self._logger.info("compute_request_rejected", error=error_to_dict(kind))


def _action_type(payload: object) -> str | None:
    if isinstance(payload, dict):
        tag = payload.get("type")
        if isinstance(tag, str):
            return tag
    return None


__all__ = [
    "ComputeService",
    "STATUS_ERROR",
    "STATUS_SUCCESS",
    "error_envelope",
    "success_envelope",
]
