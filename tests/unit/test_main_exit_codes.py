"""
stv-gateway: unit tests for the process exit-code contract

File: tests/unit/test_main_exit_codes.py

Purpose
- Validate routing of CLI results and escaped exceptions to ``ExitCode`` values.
"""

from __future__ import annotations

import pytest

from stv_gateway import main
from stv_gateway.config.loader import ConfigLoadError
from stv_gateway.domain.errors import FileFormatError, GatewayError
from stv_gateway.main import ExitCode, cli_entrypoint


def _patch_run_cli(monkeypatch: pytest.MonkeyPatch, behavior: object) -> None:
    import stv_gateway.ui.cli as cli_module

    def fake_run_cli(argv: object = None) -> object:
        if isinstance(behavior, BaseException):
            raise behavior
        return behavior

    monkeypatch.setattr(cli_module, "run_cli", fake_run_cli)


@pytest.mark.parametrize("code", [0, 1, 2, 4])
def test_known_exit_codes_pass_through(monkeypatch: pytest.MonkeyPatch, code: int) -> None:
    _patch_run_cli(monkeypatch, code)

    assert cli_entrypoint([]) == code


def test_unknown_exit_code_becomes_internal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_run_cli(monkeypatch, 17)

    assert cli_entrypoint([]) == ExitCode.INTERNAL_ERROR


def test_config_errors_in_chain_route_to_config_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    try:
        try:
            raise ConfigLoadError("config file not found: /nowhere.toml")
        except ConfigLoadError as inner:
            raise RuntimeError("startup failed") from inner
    except RuntimeError as outer:
        _patch_run_cli(monkeypatch, outer)

    assert cli_entrypoint([]) == ExitCode.CONFIG_ERROR
    assert "startup failed" in capsys.readouterr().err


def test_missing_file_routes_to_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_run_cli(monkeypatch, FileNotFoundError("request.json"))

    assert cli_entrypoint([]) == ExitCode.CONFIG_ERROR


def test_unexpected_exception_prints_traceback(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _patch_run_cli(monkeypatch, KeyError("boom"))

    assert cli_entrypoint([]) == ExitCode.INTERNAL_ERROR
    assert "Traceback" in capsys.readouterr().err


def test_system_exit_codes_are_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_run_cli(monkeypatch, SystemExit(None))
    assert cli_entrypoint([]) == ExitCode.SUCCESS

    _patch_run_cli(monkeypatch, SystemExit("fatal"))
    assert cli_entrypoint([]) == ExitCode.INTERNAL_ERROR


def test_exception_chain_stops_on_cycles() -> None:
    first = RuntimeError("first")
    second = RuntimeError("second")
    first.__cause__ = second
    second.__cause__ = first

    assert list(main._exception_chain(first)) == [first, second]
    assert main.exit_code_for(first) is ExitCode.INTERNAL_ERROR


def test_suppressed_context_is_not_followed() -> None:
    try:
        try:
            raise ConfigLoadError("bad override")
        except ConfigLoadError:
            raise RuntimeError("unrelated") from None
    except RuntimeError as exc:
        assert main.exit_code_for(exc) is ExitCode.INTERNAL_ERROR


def test_rejected_request_routes_to_request_rejected(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _patch_run_cli(monkeypatch, GatewayError(FileFormatError(file_id="model")))

    assert cli_entrypoint([]) == ExitCode.REQUEST_REJECTED
    assert "FileFormatError" in capsys.readouterr().err
