"""Multi-turn tool-calling conversation loop."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from loguru import logger

from turnloop.cancellation import CancellationToken
from turnloop.stream import USER_CANCELLED_MESSAGE, classify_stream
from turnloop.types import (
    ErrorMessage,
    FunctionResponse,
    InfoMessage,
    MessageCallback,
    ToolCallRequest,
    ToolResult,
    ToolResultMessage,
    TurnInput,
)

if TYPE_CHECKING:
    from turnloop.producer import Producer
    from turnloop.tools.scheduler import ToolScheduler

LoopStatus = Literal["completed", "max_turns", "cancelled", "failed"]


@dataclass(frozen=True)
class LoopResult:
    """Summary of one ``ConversationLoop.run`` call."""

    turns: int
    status: LoopStatus
    error: str | None = None


class ConversationLoop:
    """Send input, classify the stream, run requested tools, repeat.

    The loop stops when a turn requests no tools, when ``max_turns`` turns have run,
    or when the turn's cancellation token fires. Failures never escape ``run``; they
    are reported as one error message.
    """

    def __init__(
        self,
        *,
        producer: Producer,
        scheduler: ToolScheduler,
        session_id: str,
        max_turns: int,
    ) -> None:
        if max_turns < 1:
            raise ValueError(f"max_turns must be positive, got {max_turns}")
        self._producer = producer
        self._scheduler = scheduler
        self._session_id = session_id
        self._max_turns = max_turns
        self._issued_turn_ids: set[str] = set()
        self._current_token: CancellationToken | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the turn in flight, including its running tool."""
        if self._current_token is not None:
            self._current_token.cancel(reason)

    async def run(
        self,
        initial_input: TurnInput,
        emit: MessageCallback,
        *,
        cancel: CancellationToken | None = None,
    ) -> LoopResult:
        parent = cancel or CancellationToken()
        turns = 0
        try:
            turn_input = initial_input
            while True:
                if turns >= self._max_turns:
                    logger.warning("loop.max_turns max_turns={}", self._max_turns)
                    emit(ErrorMessage(error=f"Maximum session turns ({self._max_turns}) reached."))
                    return LoopResult(turns=turns, status="max_turns")

                turns += 1
                turn_id = self._new_turn_id()
                token = parent.child()
                self._current_token = token
                with logger.contextualize(turn=turn_id):
                    logger.info("loop.turn.start turn={} step={}", turn_id, turns)
                    stream = self._producer.send_stream(turn_input, turn_id, token)
                    requests = await classify_stream(stream, emit, turn_id=turn_id)
                    if not requests:
                        logger.info("loop.turn.finish turn={} tools=0", turn_id)
                        return LoopResult(turns=turns, status="cancelled" if token.cancelled else "completed")

                    results = await self._scheduler.execute(requests, cancel=token)
                    turn_input = self._emit_results(requests, results, emit)
                    logger.info("loop.turn.finish turn={} tools={}", turn_id, len(results))

                if token.cancelled:
                    emit(InfoMessage(message=USER_CANCELLED_MESSAGE))
                    return LoopResult(turns=turns, status="cancelled")
        except Exception as exc:
            logger.exception("loop.error")
            message = str(exc) or type(exc).__name__
            emit(ErrorMessage(error=message))
            return LoopResult(turns=turns, status="failed", error=message)
        finally:
            self._current_token = None

    def _emit_results(
        self,
        requests: list[ToolCallRequest],
        results: list[ToolResult],
        emit: MessageCallback,
    ) -> list[FunctionResponse]:
        by_call_id = {request.call_id: request for request in requests}
        responses: list[FunctionResponse] = []
        for result in results:
            request = by_call_id.get(result.call_id)
            if request is None:
                logger.warning("loop.result.orphan call_id={}", result.call_id)
                continue
            emit(ToolResultMessage(request=request, result=result))
            responses.append(FunctionResponse(call_id=result.call_id, name=request.name, content=result.result))
        return responses

    def _new_turn_id(self) -> str:
        # Random suffixes may collide; redraw rather than reuse an id within this loop.
        while True:
            turn_id = f"{self._session_id}#{uuid.uuid4().hex[:12]}"
            if turn_id not in self._issued_turn_ids:
                self._issued_turn_ids.add(turn_id)
                return turn_id
