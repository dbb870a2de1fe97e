"""
Run an engine for the lifetime of a closure.

Usage:
    async def body(stop, callers, handle):
        alice, bob = callers["alice"], callers["bob"]
        assert alice.call("blog", "count", {}) == bob.call("blog", "count", {})
        stop()

    await Runner().run([instance_alice, instance_bob], body)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from .binding import Engine, EngineBinding, get_binding
from .caller import InstanceCaller
from .client import CallClient
from .config import InstanceSpec, OptionsLike, container
from .exceptions import ConfigError
from .engine import EngineHandle, LifecycleState
from .utils.asyncio_compat import mark_retrieved, maybe_await

logger = logging.getLogger(__name__)

StopFn = Callable[[], "asyncio.Future[Any]"]
RunBody = Callable[[StopFn, Dict[str, InstanceCaller], EngineHandle], Any]
CallerFactory = Callable[[EngineHandle], Dict[str, InstanceCaller]]


class Runner:
    def __init__(self, binding: Optional[EngineBinding] = None) -> None:
        self._binding = binding

    @property
    def binding(self) -> EngineBinding:
        if self._binding is None:
            self._binding = get_binding()
        return self._binding

    def with_instances(
        self, instances: List[InstanceSpec], options: OptionsLike = None
    ) -> EngineHandle:
        """Build an engine for ``instances`` without starting it."""
        config = container(instances, options, binding=self.binding)
        engine = self.binding.create_engine(config)
        if not isinstance(engine, Engine):
            logger.error(f"Engine binding produced {type(engine).__name__}, which is not an engine")
            raise ConfigError(
                f"{type(engine).__name__} does not provide the engine interface "
                "(start, stop, call, register_callback, agent_id, dna_address)"
            )
        return EngineHandle(engine)

    def make_callers(
        self, handle: EngineHandle, instances: List[InstanceSpec]
    ) -> Dict[str, InstanceCaller]:
        client = CallClient(handle)
        return {spec.name: InstanceCaller(client, spec.name) for spec in instances}

    async def run(
        self,
        instances: List[InstanceSpec],
        body: RunBody,
        options: OptionsLike = None,
        callers: Optional[CallerFactory] = None,
    ) -> Any:
        """
        Start an engine for ``instances`` and hand it to ``body``.

        ``body(stop, callers, handle)`` may be a plain function or a coroutine
        function; its callers are keyed by instance name and address the engine
        by that name unless a ``callers`` factory builds them from the started
        handle instead. ``body`` is expected to call ``stop``. The run completes
        with the engine's shutdown value once the engine reports that it stopped.
        An engine that reports shutdown while starting fails the run without
        invoking ``body``.

        Raises:
            ConfigError: invalid instance declarations or a binding that does not
                produce an engine, before anything is started.
            EngineError: the engine failed to start or shut down with an error.
        """
        handle = self.with_instances(instances, options)
        stopped = handle.start()
        if stopped.done() or handle.state is not LifecycleState.RUNNING:
            return await stopped

        try:
            if callers is None:
                caller_map = self.make_callers(handle, instances)
            else:
                caller_map = callers(handle)
            await maybe_await(body(handle.stop, caller_map, handle))
        except (Exception, asyncio.CancelledError):
            self._teardown(handle, stopped)
            raise
        return await stopped

    @staticmethod
    def _teardown(handle: EngineHandle, stopped: asyncio.Future[Any]) -> None:
        mark_retrieved(stopped)
        if handle.state is not LifecycleState.RUNNING:
            return
        logger.info("Run body failed; stopping the engine")
        try:
            handle.stop()
        except Exception as e:
            logger.error(f"Engine did not stop cleanly after a failed run: {e}")


__all__ = ["Runner", "RunBody", "StopFn", "CallerFactory"]
