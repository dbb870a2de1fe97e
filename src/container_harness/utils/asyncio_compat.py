"""
Event-loop helpers shared by the engine handle, notification queue and call client.

The engine reports completion through plain callbacks, possibly from a thread the
event loop does not own. Everything that settles a future from such a callback
goes through :func:`completion_callback` or :func:`threadsafe_settle` so the
settlement happens on the loop that owns the future, in firing order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from ..exceptions import EngineError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def ensure_event_loop() -> asyncio.AbstractEventLoop:
    """
    Return the running loop, or a usable loop for the current thread.

    Outside of a running loop (plain synchronous test code), newer Python
    versions no longer create a default loop on demand, so one is created and
    installed here.
    """
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        pass
    try:
        loop = asyncio.get_event_loop_policy().get_event_loop()
    except RuntimeError:
        loop = None
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


def create_future() -> asyncio.Future[Any]:
    """Create a Future bound to a valid event loop."""
    return ensure_event_loop().create_future()


def ensure_task(coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
    """Schedule a coroutine as a Task on a valid event loop."""
    return ensure_event_loop().create_task(coro)


def failed_future(exc: BaseException) -> asyncio.Future[Any]:
    future = create_future()
    future.set_exception(exc)
    return future


def threadsafe_settle(future: asyncio.Future[Any], fn: Callable[..., None], *args: Any) -> None:
    """Run ``fn(*args)`` on the loop owning ``future``, from any thread."""
    try:
        future.get_loop().call_soon_threadsafe(fn, *args)
    except RuntimeError:
        # The owning loop is closed: nobody can await the future any more.
        logger.warning("Dropping engine completion for a future whose event loop is closed")


def engine_error(err: Any) -> EngineError:
    """Normalise the ``err`` argument of an engine callback into an EngineError."""
    if isinstance(err, EngineError):
        return err
    error = EngineError(str(err))
    if isinstance(err, BaseException):
        error.__cause__ = err
    return error


def completion_callback(future: asyncio.Future[Any]) -> Callable[..., None]:
    """
    Adapt the engine's ``(err, val)`` callback convention onto ``future``.

    A truthy ``err`` fails the future with :class:`EngineError`; otherwise the
    future resolves with ``val``. Only the first invocation has any effect.
    """

    def _settle(err: Any, val: Any) -> None:
        if future.done():
            return
        if err:
            future.set_exception(engine_error(err))
        else:
            future.set_result(val)

    def callback(err: Any = None, val: Any = None) -> None:
        threadsafe_settle(future, _settle, err, val)

    return callback


def resolve_after(settled: asyncio.Future[Any], value: T) -> asyncio.Future[T]:
    """
    Return a future that resolves to ``value`` once ``settled`` has resolved.

    Failure and cancellation of ``settled`` are relayed unchanged.
    """
    out: asyncio.Future[T] = settled.get_loop().create_future()

    def _relay(done: asyncio.Future[Any]) -> None:
        if out.done():
            return
        if done.cancelled():
            out.cancel()
        elif done.exception() is not None:
            out.set_exception(done.exception())
        else:
            out.set_result(value)

    settled.add_done_callback(_relay)
    return out


def mark_retrieved(future: asyncio.Future[Any]) -> None:
    """Consume the outcome of a future nobody will await, logging a failure."""

    def _consume(done: asyncio.Future[Any]) -> None:
        if not done.cancelled() and done.exception() is not None:
            logger.debug(f"Ignored failure of abandoned future: {done.exception()}")

    future.add_done_callback(_consume)


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
