"""Module entrypoint for ``python -m stv_gateway``."""

from __future__ import annotations

from stv_gateway.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
