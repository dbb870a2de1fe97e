"""
Engine binding contract and registry.

An engine binding is the module that exposes the native engine: a config
assembler, an instance-id derivation function and the engine class itself.
Locating the right native artifact is the binding's job; this module only
imports it by name and checks that it provides the expected surface.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@runtime_checkable
class Engine(Protocol):
    """The opaque engine as consumed by EngineHandle."""

    def start(self, callback: Callable[..., None]) -> None: ...

    def stop(self) -> None: ...

    def call(self, instance_id: str, zome: str, fn: str, params: str) -> Any: ...

    def register_callback(self, callback: Callable[..., None]) -> None: ...

    def agent_id(self, instance_id: str) -> str: ...

    def dna_address(self, instance_id: str) -> str: ...


class EngineBinding(Protocol):
    def make_config(self, instances: List[Dict[str, Any]], options: Dict[str, Any]) -> Any: ...

    def make_instance_id(self, agent_name: str, dna_name: str) -> str: ...

    def create_engine(self, config: Any) -> Engine: ...


@dataclass(frozen=True)
class ModuleBinding:
    """EngineBinding backed by three plain callables."""

    make_config: Callable[[List[Dict[str, Any]], Dict[str, Any]], Any]
    make_instance_id: Callable[[str, str], str]
    create_engine: Callable[[Any], Engine]


# Attribute names looked up on a binding module, in order of preference.
_ENGINE_ATTRS = ("TestContainer", "Container", "create_engine")

_bindings: Dict[str, EngineBinding] = {}
_active: Optional[str] = None


def register_binding(name: str, binding: EngineBinding, activate: bool = True) -> None:
    """Register a binding under ``name`` and, by default, make it the active one."""
    global _active
    _bindings[name] = binding
    if activate:
        _active = name
    logger.debug(f"Registered engine binding '{name}' (active={activate})")


def list_bindings() -> List[str]:
    return list(_bindings.keys())


def clear_bindings() -> None:
    global _active
    _bindings.clear()
    _active = None


def load_binding(module_name: str) -> EngineBinding:
    """
    Import ``module_name`` and wrap it as an EngineBinding.

    The module must define ``make_config``, ``make_instance_id`` and one of
    ``TestContainer``, ``Container`` or ``create_engine``.
    """
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import engine binding '{module_name}': {e}") from e

    missing = [attr for attr in ("make_config", "make_instance_id") if not hasattr(module, attr)]
    factory = next((getattr(module, a) for a in _ENGINE_ATTRS if hasattr(module, a)), None)
    if factory is None:
        missing.append(" or ".join(_ENGINE_ATTRS))
    if missing:
        raise ConfigError(f"Engine binding '{module_name}' is missing: {', '.join(missing)}")

    return ModuleBinding(
        make_config=module.make_config,
        make_instance_id=module.make_instance_id,
        create_engine=factory,
    )


def get_binding(name: Optional[str] = None) -> EngineBinding:
    """
    Return a registered binding, the active one when ``name`` is omitted.

    With nothing registered, the binding module named in the harness settings
    is loaded and registered as active.
    """
    key = name or _active
    if key is not None:
        try:
            return _bindings[key]
        except KeyError:
            raise ConfigError(f"No engine binding registered under '{key}'") from None

    from .settings import get_settings

    module_name = get_settings().engine_module
    if not module_name:
        raise ConfigError(
            "No engine binding available: call register_binding(...) or set "
            "HARNESS_ENGINE_MODULE / engine_module in the harness settings"
        )
    binding = load_binding(module_name)
    register_binding(module_name, binding)
    return binding


__all__ = [
    "Engine",
    "EngineBinding",
    "ModuleBinding",
    "register_binding",
    "list_bindings",
    "clear_bindings",
    "load_binding",
    "get_binding",
]
