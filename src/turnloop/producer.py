"""Model producers feeding the conversation loop."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any, Protocol

from loguru import logger
from republic import LLM, Tool

from turnloop.cancellation import CancellationToken
from turnloop.errors import ModelTimeoutError
from turnloop.types import FunctionResponse, StreamEvent, ThoughtSummary, ToolCallRequest, TurnInput

DEFAULT_FINISH_REASON = "stop"
NOT_EXECUTED_MESSAGE = "Tool call was not executed."


class Producer(Protocol):
    def send_stream(
        self,
        turn_input: TurnInput,
        turn_id: str,
        cancel: CancellationToken,
    ) -> AsyncIterator[StreamEvent]: ...


class RepublicProducer:
    """Chat-completion producer on top of a Republic ``LLM``.

    The producer owns the conversation history. Each call to ``send_stream`` appends
    the turn input, asks the model once, records the assistant reply and yields it as
    stream events.
    """

    def __init__(
        self,
        llm: LLM,
        *,
        tools: list[Tool],
        max_tokens: int,
        system_prompt: str = "",
        timeout_seconds: int | None = None,
    ) -> None:
        self._llm = llm
        self._tools = tools
        self._max_tokens = max_tokens
        self._system_prompt = system_prompt.strip()
        self._timeout_seconds = timeout_seconds
        self._history: list[dict[str, Any]] = []

    @property
    def history(self) -> list[dict[str, Any]]:
        return list(self._history)

    def reset(self) -> None:
        self._history.clear()

    async def send_stream(
        self,
        turn_input: TurnInput,
        turn_id: str,
        cancel: CancellationToken,
    ) -> AsyncIterator[StreamEvent]:
        self._append_input(turn_input)
        if cancel.cancelled:
            yield StreamEvent("user_cancelled")
            return

        response = await self._chat(cancel, turn_id)
        if response is None:
            yield StreamEvent("user_cancelled")
            return

        choices = getattr(response, "choices", None)
        if not choices:
            yield StreamEvent("error", {"kind": "empty_response", "message": "model returned no choices"})
            return

        choice = choices[0]
        message = getattr(choice, "message", None)
        text = _extract_text(message)
        calls = _extract_tool_calls(message)
        self._history.append(_assistant_message(text, calls))

        reasoning = getattr(message, "reasoning_content", None)
        if isinstance(reasoning, str) and reasoning.strip():
            yield StreamEvent("thought", ThoughtSummary(description=reasoning.strip()))
        if text:
            yield StreamEvent("content", text)
        for call in calls:
            yield StreamEvent("tool_call_request", _to_request(call))
        yield StreamEvent("finished", getattr(choice, "finish_reason", None) or DEFAULT_FINISH_REASON)

    def _append_input(self, turn_input: TurnInput) -> None:
        if isinstance(turn_input, str):
            self._close_unanswered_calls()
            self._history.append({"role": "user", "content": turn_input})
            return
        self._history.extend(_tool_message(response) for response in turn_input)
        self._close_unanswered_calls()

    def _close_unanswered_calls(self) -> None:
        """Answer tool calls of the last assistant message that never got a reply.

        Every tool call must be answered before the next message; a loop stopped by the
        turn ceiling or by cancellation leaves its last calls open.
        """
        answered: set[str] = set()
        for message in reversed(self._history):
            if message["role"] == "tool":
                answered.add(message["tool_call_id"])
                continue
            if message["role"] != "assistant":
                return
            for call in message.get("tool_calls", []):
                if call["id"] not in answered:
                    logger.info("model.tool_call.unanswered call_id={}", call["id"])
                    self._history.append({
                        "role": "tool",
                        "tool_call_id": call["id"],
                        "name": call["function"]["name"],
                        "content": NOT_EXECUTED_MESSAGE,
                    })
            return

    async def _chat(self, cancel: CancellationToken, turn_id: str) -> Any | None:
        messages = list(self._history)
        if self._system_prompt:
            messages = [{"role": "system", "content": self._system_prompt}, *messages]

        logger.info("model.call.start turn={} messages={}", turn_id, len(messages))
        call = asyncio.ensure_future(
            asyncio.to_thread(
                self._llm.chat.raw,
                messages=messages,
                tools=self._tools,
                max_tokens=self._max_tokens,
            )
        )
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            async with asyncio.timeout(self._timeout_seconds):
                done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except TimeoutError as exc:
            call.cancel()
            raise ModelTimeoutError(f"model_timeout: no response within {self._timeout_seconds}s") from exc
        finally:
            waiter.cancel()

        if call not in done:
            call.cancel()
            logger.info("model.call.cancelled turn={}", turn_id)
            return None
        return call.result()


def _tool_message(response: FunctionResponse) -> dict[str, Any]:
    return {"role": "tool", "tool_call_id": response.call_id, "name": response.name, "content": response.content}


def _assistant_message(text: str, tool_calls: list[dict[str, Any]]) -> dict[str, Any]:
    content: str | None = text if text else None
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return message


def _extract_text(message: Any) -> str:
    if message is None:
        return ""
    return getattr(message, "content", "") or ""


def _extract_tool_calls(message: Any) -> list[dict[str, Any]]:
    if message is None:
        return []
    tool_calls = getattr(message, "tool_calls", None) or []
    calls: list[dict[str, Any]] = []
    for idx, tool_call in enumerate(tool_calls):
        function = getattr(tool_call, "function", None)
        if function is None:
            continue
        calls.append({
            "id": getattr(tool_call, "id", None) or str(idx),
            "type": "function",
            "function": {
                "name": getattr(function, "name", ""),
                "arguments": getattr(function, "arguments", "") or "",
            },
        })
    return calls


def _to_request(call: dict[str, Any]) -> ToolCallRequest:
    function = call["function"]
    return ToolCallRequest(call_id=call["id"], name=function["name"], args=_parse_arguments(function["arguments"]))


def _parse_arguments(arguments: object) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return dict(arguments)
    if not isinstance(arguments, str) or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning("model.tool_call.bad_arguments arguments={}", arguments)
        return {}
    return parsed if isinstance(parsed, dict) else {}
