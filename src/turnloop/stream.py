"""Producer stream classification."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable
from typing import Any

from loguru import logger

from turnloop.types import (
    ContentMessage,
    ErrorMessage,
    FinishedMessage,
    InfoMessage,
    MessageCallback,
    StreamEvent,
    ThoughtMessage,
    ToolCallRequest,
    ToolCallRequestMessage,
)

USER_CANCELLED_MESSAGE = "Request cancelled by user."
CHAT_COMPRESSED_MESSAGE = "Chat history was compressed."
LOOP_DETECTED_MESSAGE = "Loop detected. Halting execution."
PASSTHROUGH_EVENTS = frozenset({"tool_call_confirmation", "tool_call_response", "max_session_turns"})


async def classify_stream(
    stream: AsyncIterable[StreamEvent],
    emit: MessageCallback,
    *,
    turn_id: str,
) -> list[ToolCallRequest]:
    """Forward every event of one stream as an outward message.

    Returns the tool-call requests seen in the stream, in arrival order. Nothing is
    executed here.
    """
    requests: list[ToolCallRequest] = []
    async for event in stream:
        kind = event.type
        if kind == "thought":
            emit(ThoughtMessage(thought=event.value))
        elif kind == "content":
            emit(ContentMessage(content=event.value))
        elif kind == "tool_call_request":
            requests.append(event.value)
            emit(ToolCallRequestMessage(request=event.value))
        elif kind == "error":
            emit(ErrorMessage(error=_serialize(event.value)))
        elif kind == "finished":
            emit(FinishedMessage(reason=event.value, turn_id=turn_id))
        elif kind == "user_cancelled":
            emit(InfoMessage(message=USER_CANCELLED_MESSAGE))
        elif kind == "chat_compressed":
            emit(InfoMessage(message=CHAT_COMPRESSED_MESSAGE))
        elif kind == "loop_detected":
            emit(ErrorMessage(error=LOOP_DETECTED_MESSAGE))
        elif kind in PASSTHROUGH_EVENTS:
            continue
        else:
            logger.warning("stream.event.unknown type={} turn={}", kind, turn_id)
            emit(ErrorMessage(error=f"Unknown event type: {kind}"))
    return requests


def _serialize(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(value)
