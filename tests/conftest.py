"""Shared fixtures: an in-memory engine honouring the native engine contract."""

from __future__ import annotations

import json
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import pytest

from container_harness import binding as binding_module
from container_harness import settings as settings_module
from container_harness.scenario import Scenario


def make_instance_id(agent_name: str, dna_name: str) -> str:
    return f"{agent_name}::{dna_name}"


def make_config(instances: List[Dict[str, Any]], options: Dict[str, Any]) -> Dict[str, Any]:
    return {"instances": instances, "options": options}


Handler = Callable[[str, Any], Any]


class FakeEngine:
    """
    Engine double.

    - ``start(cb)`` stores the callback; ``stop()`` fires it with ``(stop_error, "stopped")``.
    - ``call`` dispatches to a handler registered per ``(zome, fn)``; dict/list
      results are JSON-encoded, strings are returned raw. With ``auto_complete``
      every call fires the oldest registered completion callback after it returns.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = config
        self.instances: Dict[str, Dict[str, Any]] = {}
        for inst in config["instances"]:
            self.instances[inst["name"]] = inst
            self.instances[make_instance_id(inst["agent"]["name"], inst["dna"]["name"])] = inst
        self.handlers: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[Tuple[str, str, str, str]] = []
        self.registrations: Deque[Callable[..., None]] = deque()
        self.auto_complete = True
        self.start_error: Optional[Exception] = None
        self.stop_error: Any = None
        self.started = False
        self.stopped = False
        self._on_stop: Optional[Callable[..., None]] = None
        self.queries: List[Tuple[str, str]] = []

    def start(self, callback: Callable[..., None]) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        self._on_stop = callback

    def stop(self) -> None:
        self.stopped = True
        if self._on_stop is not None:
            self._on_stop(self.stop_error, "stopped")

    def call(self, instance_id: str, zome: str, fn: str, params: str) -> Any:
        if instance_id not in self.instances:
            raise RuntimeError(f"unknown instance {instance_id}")
        self.calls.append((instance_id, zome, fn, params))
        handler = self.handlers.get((zome, fn), lambda _id, p: {"Ok": p})
        result = handler(instance_id, json.loads(params))
        if self.auto_complete:
            self.complete()
        return result if isinstance(result, str) else json.dumps(result)

    def register_callback(self, callback: Callable[..., None]) -> None:
        self.registrations.append(callback)

    def complete(self) -> None:
        if self.registrations:
            self.registrations.popleft()()

    def forget_instance_names(self) -> None:
        """Answer only to derived instance ids, like a binding that never sees declared names."""
        derived = {make_instance_id(i["agent"]["name"], i["dna"]["name"]) for i in self.config["instances"]}
        self.instances = {k: v for k, v in self.instances.items() if k in derived}

    def agent_id(self, instance_id: str) -> str:
        self.queries.append(("agent_id", instance_id))
        return f"HcAgent-{self.instances[instance_id]['agent']['name']}"

    def dna_address(self, instance_id: str) -> str:
        self.queries.append(("dna_address", instance_id))
        return f"QmDna-{self.instances[instance_id]['dna']['name']}"


class FakeBinding:
    def __init__(self) -> None:
        self.engines: List[FakeEngine] = []
        self.configs: List[Dict[str, Any]] = []
        self.setup: Optional[Callable[[FakeEngine], None]] = None

    def make_config(self, instances: List[Dict[str, Any]], options: Dict[str, Any]) -> Dict[str, Any]:
        config = make_config(instances, options)
        self.configs.append(config)
        return config

    def make_instance_id(self, agent_name: str, dna_name: str) -> str:
        return make_instance_id(agent_name, dna_name)

    def create_engine(self, config: Dict[str, Any]) -> FakeEngine:
        engine = FakeEngine(config)
        if self.setup is not None:
            self.setup(engine)
        self.engines.append(engine)
        return engine

    @property
    def engine(self) -> FakeEngine:
        return self.engines[-1]


@pytest.fixture(autouse=True)
def _isolate_harness_state(monkeypatch, tmp_path):
    monkeypatch.delenv("HARNESS_ENGINE_MODULE", raising=False)
    monkeypatch.delenv("HARNESS_LOG_LEVEL", raising=False)
    monkeypatch.setenv("HARNESS_CONFIG_YAML", str(tmp_path / "missing-harness.yaml"))
    monkeypatch.setattr(settings_module, "_cached_settings", None)
    binding_module.clear_bindings()
    Scenario.set_tape(None)
    yield
    binding_module.clear_bindings()
    Scenario.set_tape(None)


@pytest.fixture
def fake_binding() -> FakeBinding:
    fb = FakeBinding()
    binding_module.register_binding("fake", fb)
    return fb


@pytest.fixture
def fake_engine(fake_binding) -> FakeEngine:
    """A standalone engine with alice and bob on the same DNA."""
    config = make_config(
        [
            {"agent": {"name": "alice"}, "dna": {"path": "app.dna", "name": "app.dna"}, "name": "alice"},
            {"agent": {"name": "bob"}, "dna": {"path": "app.dna", "name": "app.dna"}, "name": "bob"},
        ],
        {"debugLog": False},
    )
    return fake_binding.create_engine(config)


@pytest.fixture
def derived_id_binding(fake_binding) -> FakeBinding:
    """The fake binding, with engines that reject declared instance names."""
    fake_binding.setup = FakeEngine.forget_instance_names
    return fake_binding
