"""Per-instance call facade."""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Tuple

from .client import CallClient


class InstanceCaller:
    """
    CallClient bound to a single instance.

    ``agent_id`` and ``dna_address`` are read from the engine once, when the
    caller is built.
    """

    def __init__(self, client: CallClient, instance_id: str, name: Optional[str] = None) -> None:
        self._client = client
        self.instance_id = instance_id
        self.name = name or instance_id
        self.agent_id = client.handle.agent_id(instance_id)
        self.dna_address = client.handle.dna_address(instance_id)

    def call(self, zome: str, fn: str, params: Any = None) -> Any:
        return self._client.call(self.instance_id, zome, fn, params)

    def call_with_promise(
        self, zome: str, fn: str, params: Any = None
    ) -> Tuple[Optional[Any], asyncio.Future[None]]:
        return self._client.call_with_promise(self.instance_id, zome, fn, params)

    def call_sync(self, zome: str, fn: str, params: Any = None) -> asyncio.Future[Any]:
        return self._client.call_sync(self.instance_id, zome, fn, params)

    def __repr__(self) -> str:
        return f"InstanceCaller(name={self.name!r}, instance_id={self.instance_id!r})"


__all__ = ["InstanceCaller"]
