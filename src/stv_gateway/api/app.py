"""
stv-gateway: HTTP surface.

File: src/stv_gateway/api/app.py

Purpose
- Expose the compute service over HTTP with FastAPI.

Routes
- ``POST /compute``: always HTTP 200 with the ``success``/``error`` envelope.
- ``GET /config``: limits clients may use to pre-validate input (informational).
- ``GET /health``: liveness check.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request

from stv_gateway import __version__
from stv_gateway.compute.service import ComputeService, error_envelope
from stv_gateway.config.settings import GatewaySettings
from stv_gateway.domain.errors import UnknownError


def create_app(
    settings: GatewaySettings,
    *,
    service: ComputeService | None = None,
) -> FastAPI:
    """Build the application around one immutable settings object."""

    compute_service = service if service is not None else ComputeService(settings)

    app = FastAPI(
        title="STV Gateway",
        description="Validation and dispatch gateway for the STV computation engine",
        version=__version__,
    )
    app.state.settings = settings
    app.state.compute_service = compute_service

    @app.post("/compute")
    async def compute(request: Request) -> dict[str, Any]:
        """Validate the action in the body and run it on the engine."""
        try:
            payload = await request.json()
        except ValueError:
            return error_envelope(UnknownError(extra="request body is not valid JSON"))
        return await compute_service.handle(
            payload,
            request_id=request.headers.get("x-request-id"),
        )

    @app.get("/config")
    async def get_config() -> dict[str, Any]:
        return settings.client_view()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


__all__ = ["create_app"]
