"""
Declarative configuration builders for the engine.

Agents, DNAs and instances are small immutable pydantic models. The only
transformation this module performs is name defaulting and duplicate-name
detection; the engine-native configuration itself is assembled by the
engine binding's ``make_config``.

Usage:
    from container_harness.config import agent, dna, instance, container
    alice = instance(agent("alice"), dna("dist/app.dna.json"))
    config = container([alice])
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .binding import EngineBinding

logger = logging.getLogger(__name__)


class AgentSpec(BaseModel):
    """An agent identity, addressed by name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)


class DnaSpec(BaseModel):
    """A loadable application definition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class InstanceSpec(BaseModel):
    """One agent/DNA pairing to be hosted by the engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    agent: AgentSpec
    dna: DnaSpec
    name: str = Field(..., min_length=1)

    def to_engine(self) -> Dict[str, Any]:
        return self.model_dump()


class ContainerOptions(BaseModel):
    """
    Top-level options forwarded to the engine.

    ``debug_log`` is sent as ``debugLog``; unknown keys are kept and passed
    through unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    debug_log: bool = Field(True, alias="debugLog")

    def to_engine(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


OptionsLike = Union[ContainerOptions, Dict[str, Any], None]


def default_dna_name(path: str, name: Optional[str] = None) -> str:
    """A DNA without an explicit name is named after its path."""
    return name or path


def default_instance_name(agent_spec: AgentSpec, name: Optional[str] = None) -> str:
    """An instance without an explicit name is named after its agent."""
    return name or agent_spec.name


def agent(name: str) -> AgentSpec:
    return AgentSpec(name=name)


def dna(path: str, name: Optional[str] = None) -> DnaSpec:
    return DnaSpec(path=path, name=default_dna_name(path, name))


def instance(agent_spec: AgentSpec, dna_spec: DnaSpec, name: Optional[str] = None) -> InstanceSpec:
    return InstanceSpec(
        agent=agent_spec, dna=dna_spec, name=default_instance_name(agent_spec, name)
    )


def coerce_options(options: OptionsLike) -> ContainerOptions:
    if options is None:
        from .settings import get_settings

        return ContainerOptions(debug_log=get_settings().debug_log)
    if isinstance(options, ContainerOptions):
        return options
    return ContainerOptions.model_validate(options)


def ensure_unique_names(instances: Iterable[InstanceSpec]) -> None:
    """Raise ConfigError on the first instance name that is declared twice."""
    seen = set()
    for spec in instances:
        if spec.name in seen:
            logger.error(f"Duplicate instance name: {spec.name}")
            raise ConfigError(
                f"instance with duplicate name '{spec.name}', please give one of these "
                f'instances a new name,\ne.g. instance(agent, dna, "newName")'
            )
        seen.add(spec.name)


def container(
    instances: List[InstanceSpec],
    options: OptionsLike = None,
    binding: Optional["EngineBinding"] = None,
) -> Any:
    """
    Assemble the engine-native configuration for ``instances``.

    Args:
        instances: Instance declarations; names must be unique.
        options: ContainerOptions or a plain mapping of engine options.
        binding: Engine binding to assemble with; defaults to the active binding.

    Returns:
        The opaque configuration object produced by the binding.
    """
    from .binding import get_binding

    ensure_unique_names(instances)
    opts = coerce_options(options)
    active = binding or get_binding()
    logger.debug(f"Assembling container config for instances {[i.name for i in instances]}")
    return active.make_config([spec.to_engine() for spec in instances], opts.to_engine())


def _instance_from_entry(entry: Any) -> InstanceSpec:
    if not isinstance(entry, dict) or "agent" not in entry or "dna" not in entry:
        raise ConfigError(f"instance declaration needs 'agent' and 'dna': {entry!r}")
    raw_dna = entry["dna"]
    if isinstance(raw_dna, dict):
        dna_spec = dna(raw_dna.get("path", ""), raw_dna.get("name"))
    else:
        dna_spec = dna(str(raw_dna))
    return instance(agent(str(entry["agent"])), dna_spec, entry.get("name"))


def load_instances(path: Union[str, Path]) -> List[InstanceSpec]:
    """
    Read instance declarations from a YAML file.

    The file holds either a list of declarations or a mapping with an
    ``instances`` key. Each declaration is ``{agent, dna, name?}`` where
    ``dna`` is a path string or ``{path, name?}``.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Instance declaration file not found: {path}")
        raise
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse instance declarations in {path}: {e}") from e

    entries = data.get("instances", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigError(f"Expected a list of instances in {path}")
    try:
        specs = [_instance_from_entry(entry) for entry in entries]
    except ValidationError as e:
        raise ConfigError(f"Invalid instance declaration in {path}: {e}") from e
    ensure_unique_names(specs)
    logger.info(f"Loaded {len(specs)} instance declarations from {path}")
    return specs


__all__ = [
    "AgentSpec",
    "DnaSpec",
    "InstanceSpec",
    "ContainerOptions",
    "default_dna_name",
    "default_instance_name",
    "agent",
    "dna",
    "instance",
    "coerce_options",
    "ensure_unique_names",
    "container",
    "load_instances",
]
