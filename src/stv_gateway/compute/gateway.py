"""
stv-gateway: timeout-guarded engine invocation.

File: src/stv_gateway/compute/gateway.py

Purpose
- Launch the external computation engine once per request with the positional
  argv built by the translator, bounded by a wall-clock ceiling.

What is included in this file
- Race between the process-completion task and a timer task; the loser is
  cancelled. A timer win kills the process (SIGKILL).
- Normalization of engine output into a single response string.
- Structured event logs via ``structlog``.

Non-functional requirements
- Never leave a running engine process behind: timeout and caller
  cancellation both kill and reap the child.
"""

from __future__ import annotations

import asyncio
import json
import time
from contextlib import suppress
from typing import Any, Final

import structlog

from stv_gateway.compute.translator import InvocationDescriptor
from stv_gateway.config.settings import EngineSettings
from stv_gateway.domain.errors import ComputeError, GatewayError, MaxExecutionTimeExceededError

NO_RESPONSE_MESSAGE: Final[str] = "no response"


class _EngineTimeoutError(Exception):
    """Internal signal: the timer finished before the engine did."""


class EngineGateway:
    """Invoke the engine for one :class:`InvocationDescriptor` at a time per call.

    Calls are independent: each owns its own process and timer, so one gateway
    instance serves concurrent requests.
    """

    def __init__(self, engine: EngineSettings, *, logger: Any | None = None) -> None:
        if not engine.command:
            raise ValueError("engine command must not be empty")
        self._engine = engine
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def engine(self) -> EngineSettings:
        return self._engine

    def command_for(self, descriptor: InvocationDescriptor) -> list[str]:
        return [*self._engine.command, *descriptor.argv]

    async def invoke(self, descriptor: InvocationDescriptor) -> str:
        """Run the engine and return its normalized output.

        Raises:
            GatewayError: ``MaxExecutionTimeExceededError`` when the ceiling
                elapses first, ``ComputeError`` for launch failures, non-zero
                exits and empty output.
        """

        timeout = self._engine.timeout_seconds
        started_ns = time.monotonic_ns()
        self._logger.info(
            "engine_invocation_started",
            engine_name=descriptor.engine_name,
            method=descriptor.method,
            arg_count=len(descriptor.args),
            timeout_seconds=timeout,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command_for(descriptor),
                cwd=self._engine.working_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            self._logger.warning(
                "engine_invocation_finished",
                engine_name=descriptor.engine_name,
                method=descriptor.method,
                exit_code=None,
                duration_ms=_elapsed_ms(started_ns),
                error=str(exc),
            )
            raise GatewayError(ComputeError(message=f"failed to start engine: {exc}")) from exc

        try:
            stdout_bytes, stderr_bytes = await _communicate_or_kill(process, timeout)
        except _EngineTimeoutError as exc:
            self._logger.warning(
                "engine_invocation_timed_out",
                engine_name=descriptor.engine_name,
                method=descriptor.method,
                timeout_seconds=timeout,
                duration_ms=_elapsed_ms(started_ns),
            )
            raise GatewayError(MaxExecutionTimeExceededError()) from exc

        self._logger.info(
            "engine_invocation_finished",
            engine_name=descriptor.engine_name,
            method=descriptor.method,
            exit_code=process.returncode,
            duration_ms=_elapsed_ms(started_ns),
            stdout_bytes=len(stdout_bytes),
            stderr_bytes=len(stderr_bytes),
        )
        return normalize_engine_output(
            _decode(stdout_bytes),
            _decode(stderr_bytes),
            exit_code=process.returncode,
        )


def normalize_engine_output(stdout: str, stderr: str, *, exit_code: int | None) -> str:
    """Collapse engine output into the response string.

    One non-empty line is returned verbatim; several become a JSON array of
    lines. A non-zero exit reports the last stderr line.
    """

    if exit_code not in (0, None):
        diagnostics = _non_empty_lines(stderr)
        message = diagnostics[-1] if diagnostics else f"exited with code {exit_code}"
        raise GatewayError(ComputeError(message=message))

    lines = _non_empty_lines(stdout)
    if not lines:
        raise GatewayError(ComputeError(message=NO_RESPONSE_MESSAGE))
    if len(lines) == 1:
        return lines[0]
    return json.dumps(lines, ensure_ascii=False)


async def _communicate_or_kill(
    process: asyncio.subprocess.Process,
    timeout_seconds: float | None,
) -> tuple[bytes, bytes]:
    communicate_task = asyncio.create_task(process.communicate())
    if timeout_seconds is None:
        try:
            return await communicate_task
        except asyncio.CancelledError:
            await _kill_and_reap(process, communicate_task)
            raise

    timer_task = asyncio.create_task(asyncio.sleep(timeout_seconds))
    try:
        done, _ = await asyncio.wait(
            {communicate_task, timer_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        await _disarm(timer_task)
        await _kill_and_reap(process, communicate_task)
        raise

    if communicate_task in done:
        await _disarm(timer_task)
        return communicate_task.result()

    await _kill_and_reap(process, communicate_task)
    raise _EngineTimeoutError()


async def _disarm(timer_task: asyncio.Task[None]) -> None:
    timer_task.cancel()
    await asyncio.gather(timer_task, return_exceptions=True)


async def _kill_and_reap(
    process: asyncio.subprocess.Process,
    communicate_task: asyncio.Task[tuple[bytes, bytes]],
) -> None:
    communicate_task.cancel()
    with suppress(ProcessLookupError):
        process.kill()
    await asyncio.gather(communicate_task, return_exceptions=True)
    await process.wait()


def _non_empty_lines(text: str) -> list[str]:
    return [stripped for stripped in (line.strip() for line in text.splitlines()) if stripped]


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _elapsed_ms(started_ns: int) -> int:
    delta_ns = time.monotonic_ns() - started_ns
    if delta_ns < 0:
        return 0
    return delta_ns // 1_000_000


__all__ = ["EngineGateway", "NO_RESPONSE_MESSAGE", "normalize_engine_output"]
