"""
stv-gateway: validation and dispatch layer in front of the STV compute engine.

File: src/stv_gateway/__init__.py

Purpose
- Package root. Defines package-level metadata and import boundaries.

Import boundary rules
- No side effects at import time (no config loading, no logging init).
- Heavy submodules (FastAPI app, CLI) are imported lazily by their entrypoints.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
