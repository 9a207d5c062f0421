"""HTTP application factory."""

from stv_gateway.api.app import create_app

__all__ = ["create_app"]
