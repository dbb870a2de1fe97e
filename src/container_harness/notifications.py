"""
Completion notifications.

The engine exposes a single registration primitive: ``register_callback(fn)``
fires ``fn`` once, on the next completion event, in registration order. The
queue below mirrors those registrations one to one so that each call's
completion future is the one resolved by its own engine callback, and so the
ordering can be exercised without a real engine.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from typing import Any, Callable, Deque, Generator

from .utils.asyncio_compat import create_future, threadsafe_settle

logger = logging.getLogger(__name__)


class PendingNotification:
    """A one-shot completion signal owned by a single call."""

    def __init__(self, sequence: int, future: asyncio.Future[None]) -> None:
        self.sequence = sequence
        self.future = future

    def done(self) -> bool:
        return self.future.done()

    def resolve(self) -> None:
        if not self.future.done():
            self.future.set_result(None)

    def __await__(self) -> Generator[Any, None, None]:
        return self.future.__await__()

    def __repr__(self) -> str:
        state = "fired" if self.done() else "pending"
        return f"PendingNotification(#{self.sequence}, {state})"


class NotificationQueue:
    """FIFO of pending notifications registered against one engine."""

    def __init__(self, register_callback: Callable[[Callable[..., None]], None]) -> None:
        self._register_callback = register_callback
        self._pending: Deque[PendingNotification] = deque()
        self._sequence = itertools.count(1)

    def __len__(self) -> int:
        return len(self._pending)

    def register(self) -> PendingNotification:
        """
        Queue a notification and register its engine callback.

        Must be called before the call it belongs to is issued, otherwise a
        completion fired during the call would find nothing to resolve.
        """
        notification = PendingNotification(next(self._sequence), create_future())
        self._pending.append(notification)
        try:
            self._register_callback(lambda *_: self._fire(notification))
        except Exception as e:
            logger.error(f"Could not register completion callback: {e}")
            self._pending.remove(notification)
            raise
        logger.debug(f"Registered {notification!r}")
        return notification

    def _fire(self, notification: PendingNotification) -> None:
        threadsafe_settle(notification.future, self._resolve_head)

    def _resolve_head(self) -> None:
        if not self._pending:
            logger.warning("Engine fired a completion with no pending notification")
            return
        head = self._pending.popleft()
        head.resolve()
        logger.debug(f"Resolved {head!r}")


__all__ = ["PendingNotification", "NotificationQueue"]
