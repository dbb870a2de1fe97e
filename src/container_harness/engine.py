"""
Engine lifecycle wrapper.

EngineHandle owns exactly one native engine. It turns the engine's
``start(callback)`` convention into an awaitable shutdown future, exposes the
raw call primitive and the read-only identity queries, and keeps the
completion-notification queue for that engine. The native object is wrapped,
never modified.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from .binding import Engine
from .exceptions import HarnessMisuseError
from .notifications import NotificationQueue
from .utils.asyncio_compat import completion_callback, create_future, engine_error

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class EngineHandle:
    """
    Start/stop/call surface over one native engine.

    Only one ``start`` and one matching ``stop`` are valid per handle. The
    future returned by ``start`` settles when the engine reports shutdown,
    which is triggered by ``stop``.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._stopped: Optional[asyncio.Future[Any]] = None
        self.state = LifecycleState.CREATED
        self.notifications = NotificationQueue(self.register_callback)

    @property
    def engine(self) -> Engine:
        return self._engine

    def start(self) -> asyncio.Future[Any]:
        if self._stopped is not None:
            raise HarnessMisuseError("start() may only be called once per EngineHandle")

        future = create_future()
        future.add_done_callback(self._on_shutdown)
        self._stopped = future
        self.state = LifecycleState.STARTING

        settle = completion_callback(future)
        fired_during_start = []

        def callback(err: Any = None, val: Any = None) -> None:
            fired_during_start.append(err)
            settle(err, val)

        try:
            self._engine.start(callback)
        except Exception as e:
            logger.error(f"Engine failed to start: {e}")
            if not future.done():
                future.set_exception(engine_error(e))
            return future

        if fired_during_start:
            # Shutdown already reported; the settled future moves the state to STOPPED.
            logger.error(f"Engine reported shutdown during start: {fired_during_start[0]}")
            return future
        if self.state is LifecycleState.STARTING:
            self.state = LifecycleState.RUNNING
            logger.info("Engine started")
        return future

    def stop(self) -> asyncio.Future[Any]:
        if self._stopped is None:
            raise HarnessMisuseError("stop() called before start(); the engine was never started")
        if self.state in (LifecycleState.STOPPING, LifecycleState.STOPPED):
            logger.debug(f"stop() called again while {self.state.value}; returning the pending shutdown")
            return self._stopped

        self.state = LifecycleState.STOPPING
        try:
            self._engine.stop()
        except Exception as e:
            logger.error(f"Engine failed to stop: {e}")
            raise engine_error(e) from e
        return self._stopped

    def _on_shutdown(self, future: asyncio.Future[Any]) -> None:
        self.state = LifecycleState.STOPPED
        if future.cancelled():
            logger.warning("Stopped waiting for engine shutdown")
        elif future.exception() is not None:
            logger.error(f"Engine shut down with error: {future.exception()}")
        else:
            logger.info("Engine stopped")

    def call(self, instance_id: str, zome: str, fn: str, params: str) -> Any:
        if self.state is not LifecycleState.RUNNING:
            logger.warning(
                f"Calling {zome}/{fn} on '{instance_id}' while the engine is {self.state.value}"
            )
        try:
            return self._engine.call(instance_id, zome, fn, params)
        except Exception as e:
            logger.error(f"Exception occurred while calling zome function: {e}")
            raise

    def register_callback(self, callback: Callable[..., None]) -> None:
        self._engine.register_callback(callback)

    def agent_id(self, instance_id: str) -> str:
        return self._engine.agent_id(instance_id)

    def dna_address(self, instance_id: str) -> str:
        return self._engine.dna_address(instance_id)


__all__ = ["LifecycleState", "EngineHandle"]
