"""Shell command execution service."""

from __future__ import annotations

import asyncio
import os
import shutil
import signal as signal_module
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from turnloop.cancellation import CancellationToken

BINARY_SAMPLE_BYTES = 512


@dataclass(frozen=True)
class ShellExecutionResult:
    """Structured outcome of one shell command."""

    output: str
    raw_output: bytes
    exit_code: int | None
    signal: str | None = None
    error: Exception | None = None
    aborted: bool = False


def is_binary(raw: bytes | None, sample_size: int = BINARY_SAMPLE_BYTES) -> bool:
    """Treat output as binary when its leading sample holds a NUL byte."""
    if not raw:
        return False
    return b"\x00" in raw[:sample_size]


async def execute_shell(
    command: str,
    cwd: Path,
    cancel: CancellationToken,
    *,
    timeout: float | None = None,
) -> ShellExecutionResult:
    """Run ``command`` through bash, merging stderr into stdout.

    Failures are reported in the result, never raised. A cancelled token kills the
    process and marks the result as aborted.
    """
    executable = shutil.which("bash") or "bash"
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "-c",
            command,
            cwd=str(cwd),
            start_new_session=True,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        logger.warning("shell.spawn.error command={} error={}", command, exc)
        return ShellExecutionResult(output="", raw_output=b"", exit_code=None, error=exc)

    communicate = asyncio.ensure_future(process.communicate())
    cancelled = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({communicate, cancelled}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        logger.info("shell.task_cancelled command={}", command)
        _kill(process)
        communicate.cancel()
        await process.wait()
        raise
    finally:
        cancelled.cancel()

    if communicate in done:
        raw, _ = communicate.result()
        return _build_result(raw, process.returncode)

    aborted = cancelled in done
    _kill(process)
    raw, _ = await communicate
    if aborted:
        logger.info("shell.cancelled command={}", command)
        return ShellExecutionResult(output=_decode(raw), raw_output=raw, exit_code=process.returncode, aborted=True)

    logger.warning("shell.timeout command={} timeout={}", command, timeout)
    return ShellExecutionResult(
        output=_decode(raw),
        raw_output=raw,
        exit_code=process.returncode,
        error=TimeoutError(f"Command timed out after {timeout}s."),
    )


def _build_result(raw: bytes, returncode: int | None) -> ShellExecutionResult:
    if returncode is not None and returncode < 0:
        return ShellExecutionResult(
            output=_decode(raw),
            raw_output=raw,
            exit_code=None,
            signal=_signal_name(-returncode),
        )
    return ShellExecutionResult(output=_decode(raw), raw_output=raw, exit_code=returncode)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    # Children of the command share the output pipe; kill the whole group.
    try:
        os.killpg(process.pid, signal_module.SIGKILL)
    except ProcessLookupError:
        pass


def _signal_name(number: int) -> str:
    try:
        return signal_module.Signals(number).name
    except ValueError:
        return str(number)


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace")
