"""
Scenario: a fixed set of instances bound to a body of test code.

Usage:
    Scenario.set_tape(TapReporter())
    scenario = Scenario([instance(agent("alice"), dna("app.dna")),
                         instance(agent("bob"), dna("app.dna"))])

    async def ping(t, callers):
        result = await callers["alice"].call_sync("chat", "ping", {})
        t.equal(result, {"Ok": "pong"})

    await scenario.run_tape("ping", ping)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, ClassVar, Dict, List, Optional

from .caller import InstanceCaller
from .client import CallClient
from .config import InstanceSpec, OptionsLike, ensure_unique_names
from .engine import EngineHandle
from .exceptions import HarnessMisuseError
from .reporting import Tape, TestCase
from .runner import Runner, StopFn
from .settings import get_settings
from .utils.asyncio_compat import ensure_task, maybe_await

logger = logging.getLogger(__name__)

ScenarioBody = Callable[[StopFn, Dict[str, InstanceCaller]], Any]
TapeBody = Callable[[TestCase, Dict[str, InstanceCaller]], Any]


class Scenario:
    _tape: ClassVar[Optional[Tape]] = None

    def __init__(
        self,
        instances: List[InstanceSpec],
        options: OptionsLike = None,
        runner: Optional[Runner] = None,
    ) -> None:
        self.instances = list(instances)
        self.options = options
        self.runner = runner or Runner()

    @classmethod
    def set_tape(cls, tape: Optional[Tape]) -> None:
        """Register the test-reporting facility used by every Scenario."""
        cls._tape = tape

    def make_callers(self, handle: EngineHandle) -> Dict[str, InstanceCaller]:
        """One caller per declared instance, addressed by its derived instance id."""
        ensure_unique_names(self.instances)
        client = CallClient(handle)
        make_instance_id = self.runner.binding.make_instance_id
        return {
            spec.name: InstanceCaller(
                client, make_instance_id(spec.agent.name, spec.dna.name), name=spec.name
            )
            for spec in self.instances
        }

    async def run(self, body: ScenarioBody) -> Any:
        """
        Run ``body(stop, callers)`` against a fresh engine.

        Duplicate instance names fail the run with ConfigError before any
        engine is created.
        """
        ensure_unique_names(self.instances)

        async def _body(stop: StopFn, callers: Dict[str, InstanceCaller], _: EngineHandle) -> Any:
            return await maybe_await(body(stop, callers))

        return await self.runner.run(
            self.instances, _body, self.options, callers=self.make_callers
        )

    def run_tape(self, description: str, body: TapeBody, timeout: Optional[float] = None) -> Any:
        """
        Run ``body(t, callers)`` as one test case of the registered tape.

        The engine is stopped once ``body`` returns. Any failure is reported
        with ``t.fail`` and the case is always ended exactly once. ``timeout``
        (seconds, defaulting to the configured ``case_timeout``) bounds the
        whole case.

        Returns whatever the tape returns; the bundled TapReporter returns the
        scheduled case task.

        Raises:
            HarnessMisuseError: no tape has been registered with set_tape.
        """
        tape = Scenario._tape
        if tape is None:
            raise HarnessMisuseError(
                "must call Scenario.set_tape(...) before running tape-based tests"
            )
        limit = timeout if timeout is not None else get_settings().case_timeout

        def case(t: TestCase) -> "asyncio.Task[None]":
            return ensure_task(self._run_case(description, t, body, limit))

        return tape(description, case)

    async def _run_case(
        self, description: str, t: TestCase, body: TapeBody, timeout: Optional[float]
    ) -> None:
        async def _body(stop: StopFn, callers: Dict[str, InstanceCaller]) -> None:
            await maybe_await(body(t, callers))
            stop()

        try:
            await asyncio.wait_for(self.run(_body), timeout)
        except asyncio.TimeoutError:
            logger.error(f"Scenario '{description}' timed out after {timeout}s")
            t.fail(f"scenario '{description}' timed out after {timeout}s")
        except Exception as e:
            logger.error(f"Scenario '{description}' failed: {e}")
            t.fail(e)
        finally:
            t.end()


__all__ = ["Scenario", "ScenarioBody", "TapeBody"]
