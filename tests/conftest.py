from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field

import pytest

from turnloop.cancellation import CancellationToken
from turnloop.types import OutwardMessage, StreamEvent, TurnInput


async def iterate(events: Iterable[StreamEvent]) -> AsyncIterator[StreamEvent]:
    for event in events:
        yield event


@dataclass
class ScriptedProducer:
    """Replays one scripted event list per turn and records what it was sent."""

    turns: list[list[StreamEvent]]
    inputs: list[TurnInput] = field(default_factory=list)
    turn_ids: list[str] = field(default_factory=list)
    tokens: list[CancellationToken] = field(default_factory=list)

    async def send_stream(
        self, turn_input: TurnInput, turn_id: str, cancel: CancellationToken
    ) -> AsyncIterator[StreamEvent]:
        self.inputs.append(turn_input)
        self.turn_ids.append(turn_id)
        self.tokens.append(cancel)
        events = self.turns.pop(0)
        for event in events:
            yield event


@pytest.fixture
def messages() -> list[OutwardMessage]:
    return []
