"""turnloop - multi-turn tool-calling conversation loop."""

from .cancellation import CancellationToken
from .loop import ConversationLoop, LoopResult
from .session import Session, initialize, run
from .stream import classify_stream
from .tools import ToolRegistry, ToolScheduler
from .types import (
    ContentMessage,
    ErrorMessage,
    FinishedMessage,
    FunctionResponse,
    InfoMessage,
    OutwardMessage,
    StreamEvent,
    ThoughtMessage,
    ThoughtSummary,
    ToolCallRequest,
    ToolCallRequestMessage,
    ToolResult,
    ToolResultMessage,
)

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "ContentMessage",
    "ConversationLoop",
    "ErrorMessage",
    "FinishedMessage",
    "FunctionResponse",
    "InfoMessage",
    "LoopResult",
    "OutwardMessage",
    "Session",
    "StreamEvent",
    "ThoughtMessage",
    "ThoughtSummary",
    "ToolCallRequest",
    "ToolCallRequestMessage",
    "ToolRegistry",
    "ToolResult",
    "ToolResultMessage",
    "ToolScheduler",
    "classify_stream",
    "initialize",
    "run",
]
