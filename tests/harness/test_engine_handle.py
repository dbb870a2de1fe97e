"""Lifecycle tests for EngineHandle over the in-memory engine."""

import asyncio

import pytest

from container_harness.engine import EngineHandle, LifecycleState
from container_harness.exceptions import EngineError, HarnessMisuseError


@pytest.mark.asyncio
async def test_start_then_stop_resolves_with_engine_value(fake_engine):
    handle = EngineHandle(fake_engine)
    assert handle.state is LifecycleState.CREATED

    stopped = handle.start()
    assert fake_engine.started
    assert handle.state is LifecycleState.RUNNING
    assert not stopped.done()

    assert handle.stop() is stopped
    assert await stopped == "stopped"
    assert handle.state is LifecycleState.STOPPED


@pytest.mark.asyncio
async def test_callback_error_fails_start_future(fake_engine):
    fake_engine.stop_error = "engine crashed"
    handle = EngineHandle(fake_engine)
    handle.start()
    with pytest.raises(EngineError, match="engine crashed"):
        await handle.stop()


@pytest.mark.asyncio
async def test_synchronous_start_failure_becomes_failed_future(fake_engine):
    boom = RuntimeError("no conductor binary")
    fake_engine.start_error = boom
    handle = EngineHandle(fake_engine)

    stopped = handle.start()  # must not raise
    assert stopped.done()
    with pytest.raises(EngineError) as ei:
        await stopped
    assert ei.value.__cause__ is boom


@pytest.mark.asyncio
async def test_shutdown_reported_during_start_never_reaches_running(fake_engine, caplog):
    fake_engine.start = lambda callback: callback("bad config", None)
    handle = EngineHandle(fake_engine)

    stopped = handle.start()
    assert handle.state is not LifecycleState.RUNNING
    with pytest.raises(EngineError, match="bad config"):
        await stopped
    assert handle.state is LifecycleState.STOPPED
    assert "shutdown during start: bad config" in caplog.text


@pytest.mark.asyncio
async def test_stop_before_start_is_misuse(fake_engine):
    handle = EngineHandle(fake_engine)
    with pytest.raises(HarnessMisuseError):
        handle.stop()
    assert not fake_engine.stopped


@pytest.mark.asyncio
async def test_start_twice_is_misuse_and_stop_is_idempotent(fake_engine):
    handle = EngineHandle(fake_engine)
    stopped = handle.start()
    with pytest.raises(HarnessMisuseError):
        handle.start()
    handle.stop()
    fake_engine.stopped = False
    assert handle.stop() is stopped
    assert fake_engine.stopped is False
    await stopped


@pytest.mark.asyncio
async def test_engine_stop_exception_is_engine_error(fake_engine):
    def broken_stop():
        raise RuntimeError("stuck")

    fake_engine.stop = broken_stop
    handle = EngineHandle(fake_engine)
    stopped = handle.start()
    with pytest.raises(EngineError, match="stuck"):
        handle.stop()
    stopped.cancel()


@pytest.mark.asyncio
async def test_call_propagates_engine_exception_unchanged(fake_engine, caplog):
    handle = EngineHandle(fake_engine)
    stopped = handle.start()
    with pytest.raises(RuntimeError, match="unknown instance"):
        handle.call("mallory", "chat", "ping", "{}")
    assert "Exception occurred while calling zome function" in caplog.text
    handle.stop()
    await stopped


@pytest.mark.asyncio
async def test_identity_queries_pass_through(fake_engine):
    handle = EngineHandle(fake_engine)
    assert handle.agent_id("alice") == "HcAgent-alice"
    assert handle.dna_address("bob") == "QmDna-app.dna"


@pytest.mark.asyncio
async def test_completion_from_foreign_thread_settles_on_loop(fake_engine):
    handle = EngineHandle(fake_engine)
    stopped = handle.start()
    handle.state = LifecycleState.STOPPING
    await asyncio.get_running_loop().run_in_executor(None, fake_engine.stop)
    assert await asyncio.wait_for(stopped, 1.0) == "stopped"
