"""Cooperative cancellation shared by one turn."""

from __future__ import annotations

import asyncio

from turnloop.errors import OperationCancelledError


class CancellationToken:
    """Signals cancellation to the producer call and every tool of a turn.

    A token created with a parent is also cancelled when the parent is.
    """

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._event = asyncio.Event()
        self._parent = parent
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def child(self) -> CancellationToken:
        return CancellationToken(parent=self)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self.reason or "Operation cancelled")

    async def wait(self) -> None:
        """Block until this token or one of its ancestors is cancelled."""
        waiters = [asyncio.ensure_future(event.wait()) for event in self._lineage()]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    def _lineage(self) -> list[asyncio.Event]:
        events: list[asyncio.Event] = []
        token: CancellationToken | None = self
        while token is not None:
            events.append(token._event)
            token = token._parent
        return events
