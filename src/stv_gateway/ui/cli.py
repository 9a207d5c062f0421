"""Command-line interface router for stv-gateway."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from stv_gateway.compute.service import STATUS_SUCCESS, ComputeService
from stv_gateway.config import (
    ConfigLoadError,
    ConfigValidationError,
    GatewaySettings,
    dump_effective_config,
    load_config,
    parse_cli_assignments,
)
from stv_gateway.domain.actions import RequestFormatError
from stv_gateway.domain.errors import GatewayError, UnknownError, error_to_dict
from stv_gateway.observability.logging import setup_logging, shutdown_logging

YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="stv-gateway",
        description=(
            "stv-gateway: validation and dispatch gateway for the STV engine.\n\n"
            "Common workflows:\n"
            "  stv-gateway serve                 Start the HTTP service\n"
            "  stv-gateway translate req.json    Show the engine argv for a request\n"
            "  stv-gateway compute req.yaml      Validate and run a request\n"
            "  stv-gateway config                Print the effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: ./stv_gateway.toml if present).",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="SECTION.KEY=VALUE",
        help="Override one config value; repeatable. Values are parsed as JSON when possible.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Write structured logs to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve ---------------------------------------------------------------
    serve_parser = subparsers.add_parser(
        "serve",
        parents=[common],
        help="Start the HTTP service",
    )
    serve_parser.add_argument("--host", default=None, help="Bind address (default: server.host).")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Bind port (default: server.port)."
    )
    serve_parser.set_defaults(handler=_cmd_serve)

    # translate -----------------------------------------------------------
    translate_parser = subparsers.add_parser(
        "translate",
        parents=[common],
        help="Validate a request and print the engine argv without running it",
        description=(
            "Validate a request file and print the engine invocation it maps to.\n"
            "Validation failures are printed as the structured error JSON (exit 1).\n\n"
            "Examples:\n"
            "  stv-gateway translate request.json\n"
            "  stv-gateway translate request.yaml --set parameterized_models.tian_ji.max.horses=8\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    translate_parser.add_argument("request", help="Request file (JSON, or YAML for .yaml/.yml).")
    translate_parser.set_defaults(handler=_cmd_translate)

    # compute -------------------------------------------------------------
    compute_parser = subparsers.add_parser(
        "compute",
        parents=[common],
        help="Validate a request, run the engine and print the response envelope",
    )
    compute_parser.add_argument("request", help="Request file (JSON, or YAML for .yaml/.yml).")
    compute_parser.set_defaults(handler=_cmd_compute)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration as JSON",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from stv_gateway.api.app import create_app

    config = _load_effective_config(args)
    settings = _settings_from_config(config)
    host = args.host if args.host is not None else settings.server_host
    port = args.port if args.port is not None else settings.server_port

    setup_logging(settings.observability, log_to_console=True)
    try:
        uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
    finally:
        shutdown_logging()
    return 0


def _cmd_translate(args: argparse.Namespace) -> int:
    settings = _settings_from_config(_load_effective_config(args))
    payload = _load_request(args.request)
    service = ComputeService(settings)

    setup_logging(settings.observability, log_to_console=args.verbose)
    try:
        descriptor = service.prepare(payload)
    except GatewayError as exc:
        _emit_json(exc.to_dict())
        return 1
    except RequestFormatError as exc:
        _emit_json(error_to_dict(UnknownError(extra=str(exc))))
        return 1
    finally:
        shutdown_logging()

    _emit_json(
        {
            "engine_name": descriptor.engine_name,
            "method": descriptor.method,
            "argv": descriptor.argv,
        }
    )
    return 0


def _cmd_compute(args: argparse.Namespace) -> int:
    settings = _settings_from_config(_load_effective_config(args))
    payload = _load_request(args.request)
    service = ComputeService(settings)

    setup_logging(settings.observability, log_to_console=args.verbose)
    try:
        envelope = asyncio.run(service.handle(payload))
    finally:
        shutdown_logging()

    _emit_json(envelope)
    return 0 if envelope["status"] == STATUS_SUCCESS else 1


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    print(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    try:
        overrides = parse_cli_assignments(args.overrides)
        return load_config(args.config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _settings_from_config(config: Mapping[str, Any]) -> GatewaySettings:
    try:
        return GatewaySettings.from_config(config)
    except ConfigValidationError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _load_request(path_arg: str) -> object:
    path = Path(path_arg).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"unable to read request file {path}: {exc}", exit_code=2) from exc

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise CLIError(f"invalid YAML in {path}: {exc}", exit_code=2) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CLIError(f"invalid JSON in {path}: {exc}", exit_code=2) from exc


__all__ = ["CLIError", "build_parser", "run_cli"]
