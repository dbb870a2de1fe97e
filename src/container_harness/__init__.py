"""
container_harness: orchestration and scenario test harness for a multi-instance
execution engine ("the container").

Public surface:
- Config builders: agent, dna, instance, container, load_instances
- Lifecycle and calls: EngineHandle, CallClient, InstanceCaller
- Runner and Scenario for closure-scoped engine runs and tape-style tests
"""

from .binding import load_binding, register_binding
from .caller import InstanceCaller
from .client import CallClient
from .config import (
    AgentSpec,
    ContainerOptions,
    DnaSpec,
    InstanceSpec,
    agent,
    container,
    dna,
    instance,
    load_instances,
)
from .engine import EngineHandle, LifecycleState
from .exceptions import (
    ConfigError,
    DecodeWarning,
    EngineError,
    HarnessError,
    HarnessMisuseError,
)
from .reporting import TapReporter
from .runner import Runner
from .scenario import Scenario
from .settings import configure_logging, get_settings

__version__ = "0.1.0"

__all__ = [
    "AgentSpec",
    "DnaSpec",
    "InstanceSpec",
    "ContainerOptions",
    "agent",
    "dna",
    "instance",
    "container",
    "load_instances",
    "register_binding",
    "load_binding",
    "EngineHandle",
    "LifecycleState",
    "CallClient",
    "InstanceCaller",
    "Runner",
    "Scenario",
    "TapReporter",
    "get_settings",
    "configure_logging",
    "HarnessError",
    "ConfigError",
    "EngineError",
    "HarnessMisuseError",
    "DecodeWarning",
]
