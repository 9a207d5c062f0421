"""Executable CLI entrypoint for ``stv_gateway``.

Anything that escapes ``run_cli`` is mapped onto the exit-code contract by
walking its cause/context chain: config and file access problems are exit 2,
a request rejected by validation is exit 1, everything else is exit 4 with a
traceback on stderr.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    REQUEST_REJECTED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


_ExitRoutes = tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...]


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m stv_gateway`` and the ``stv-gateway`` script."""

    try:
        from stv_gateway.ui.cli import run_cli

        return _coerce_exit_status(run_cli(argv))
    except SystemExit as exc:
        return _coerce_exit_status(exc.code)
    except BaseException as exc:  # noqa: BLE001 - process boundary.
        exit_code = exit_code_for(exc)
        if exit_code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            _write_stderr(str(exc).strip() or type(exc).__name__)
        return int(exit_code)


def exit_code_for(exc: BaseException) -> ExitCode:
    """First route matching any exception in the chain of ``exc`` wins."""

    routes = _exit_routes()
    for linked in _exception_chain(exc):
        for exc_types, exit_code in routes:
            if isinstance(linked, exc_types):
                return exit_code
    return ExitCode.INTERNAL_ERROR


def _exit_routes() -> _ExitRoutes:
    from stv_gateway.config.loader import ConfigLoadError
    from stv_gateway.config.schema import ConfigValidationError
    from stv_gateway.domain.actions import RequestFormatError
    from stv_gateway.domain.errors import GatewayError

    return (
        (
            (ConfigLoadError, ConfigValidationError),
            ExitCode.CONFIG_ERROR,
        ),
        (
            (FileNotFoundError, NotADirectoryError, PermissionError),
            ExitCode.CONFIG_ERROR,
        ),
        ((GatewayError, RequestFormatError), ExitCode.REQUEST_REJECTED),
    )


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__


def _coerce_exit_status(raw_code: object) -> int:
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, int):
        try:
            return int(ExitCode(raw_code))
        except ValueError:
            return int(ExitCode.INTERNAL_ERROR)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint", "exit_code_for"]
