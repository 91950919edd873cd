"""Shared turnloop data model."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from types import MappingProxyType
from typing import Any, Literal, TypeAlias


@dataclass(frozen=True)
class ToolCallRequest:
    """One tool invocation requested by the producer mid-stream."""

    call_id: str
    name: str
    args: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))


@dataclass(frozen=True)
class ToolResult:
    """Text outcome of one tool call, correlated by call id."""

    call_id: str
    result: str


@dataclass(frozen=True)
class ThoughtSummary:
    subject: str = ""
    description: str = ""


@dataclass(frozen=True)
class FunctionResponse:
    """Tool-response payload sent back to the producer on the next turn."""

    call_id: str
    name: str
    content: str


TurnInput: TypeAlias = str | list[FunctionResponse]


@dataclass(frozen=True)
class StreamEvent:
    """One event of a producer stream.

    ``type`` is kept as a plain string so that producers speaking a newer protocol
    still reach the classifier, which reports unknown types instead of dropping them.
    """

    type: str
    value: Any = None


class _Message:
    def to_dict(self) -> dict[str, Any]:
        return _plain(self)


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: _plain(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


@dataclass(frozen=True)
class ContentMessage(_Message):
    content: str
    type: Literal["content"] = field(default="content", init=False)


@dataclass(frozen=True)
class ThoughtMessage(_Message):
    thought: ThoughtSummary
    type: Literal["thought"] = field(default="thought", init=False)


@dataclass(frozen=True)
class ToolCallRequestMessage(_Message):
    request: ToolCallRequest
    type: Literal["tool_call_request"] = field(default="tool_call_request", init=False)


@dataclass(frozen=True)
class ToolResultMessage(_Message):
    request: ToolCallRequest
    result: ToolResult
    type: Literal["tool_result"] = field(default="tool_result", init=False)


@dataclass(frozen=True)
class ErrorMessage(_Message):
    error: str
    type: Literal["error"] = field(default="error", init=False)


@dataclass(frozen=True)
class InfoMessage(_Message):
    message: str
    type: Literal["info"] = field(default="info", init=False)


@dataclass(frozen=True)
class FinishedMessage(_Message):
    reason: str
    turn_id: str
    type: Literal["finished"] = field(default="finished", init=False)


OutwardMessage: TypeAlias = (
    ContentMessage
    | ThoughtMessage
    | ToolCallRequestMessage
    | ToolResultMessage
    | ErrorMessage
    | InfoMessage
    | FinishedMessage
)

MessageCallback: TypeAlias = Callable[[OutwardMessage], None]
