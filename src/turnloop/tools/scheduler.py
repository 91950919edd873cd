"""Sequential tool execution with per-request failure isolation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from loguru import logger

from turnloop.cancellation import CancellationToken
from turnloop.tools.registry import ToolOutcome, ToolRegistry
from turnloop.tools.shell import ShellExecutionResult, is_binary
from turnloop.types import ToolCallRequest, ToolResult

BINARY_OUTPUT_PLACEHOLDER = "[Command produced binary output, which is not shown.]"
EMPTY_OUTPUT_PLACEHOLDER = "(Command produced no output)"


class ToolScheduler:
    """Runs tool-call requests one at a time through the registry."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def execute(
        self,
        requests: Sequence[ToolCallRequest],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[ToolResult]:
        token = cancel or CancellationToken()
        results: list[ToolResult] = []
        for request in requests:
            text = await self._execute_one(request, token)
            results.append(ToolResult(call_id=request.call_id, result=text))
        return results

    async def _execute_one(self, request: ToolCallRequest, cancel: CancellationToken) -> str:
        descriptor = self._registry.get(request.name)
        if descriptor is None:
            logger.warning("tool.missing name={} call_id={}", request.name, request.call_id)
            return f"[ERROR] Tool '{request.name}' is not implemented."

        try:
            invocation = descriptor.capability.build(request.args)
            outcome = await invocation.execute(cancel)
        except Exception as exc:
            return f"[ERROR] Tool '{request.name}' failed: {_error_message(exc)}"

        if isinstance(outcome, ShellExecutionResult):
            return format_shell_result(outcome)
        if isinstance(outcome, ToolOutcome):
            return normalize_content(outcome.content)
        return normalize_content(outcome)


def normalize_content(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, (list, tuple)):
        return "\n".join(str(part) for part in content)
    return str(content)


def format_shell_result(result: ShellExecutionResult) -> str:
    """Render a shell outcome; error and abort outrank signal and exit code."""
    if result.error is not None:
        return f"[ERROR] {_error_message(result.error)}\n{result.output}"
    if result.aborted:
        return f"[CANCELLED] Command was cancelled.\n{result.output}"
    if result.signal:
        return f"[ERROR] Command terminated by signal: {result.signal}.\n{result.output}"
    if result.exit_code != 0:
        return f"[ERROR] Command exited with code {result.exit_code}.\n{result.output}"
    if is_binary(result.raw_output):
        return BINARY_OUTPUT_PLACEHOLDER
    return result.output.strip() or EMPTY_OUTPUT_PLACEHOLDER


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__
