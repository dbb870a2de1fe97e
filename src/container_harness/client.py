"""
JSON call protocol over an EngineHandle.

Three flavours of the same call:
- ``call``: immediate, decoded return value.
- ``call_with_promise``: the immediate value plus a future that resolves when
  the engine reports that the work triggered by the call has settled.
- ``call_sync``: a future of the immediate value that only resolves once the
  work has settled.
"""

from __future__ import annotations

import asyncio
import json
import logging
import warnings
from typing import Any, Optional, Tuple

from .engine import EngineHandle
from .exceptions import DecodeWarning
from .utils.asyncio_compat import failed_future, resolve_after

logger = logging.getLogger(__name__)


def encode_params(params: Any) -> str:
    return json.dumps(params)


def decode_result(raw: Any) -> Any:
    """Decode a JSON engine result, returning ``raw`` unchanged if that fails."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Failed to parse the result as JSON. The raw value is: {raw!r}")
        warnings.warn(f"engine result is not valid JSON: {raw!r}", DecodeWarning, stacklevel=3)
        return raw


class CallClient:
    def __init__(self, handle: EngineHandle) -> None:
        self.handle = handle

    def call(self, instance_id: str, zome: str, fn: str, params: Any = None) -> Any:
        try:
            payload = encode_params(params)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not encode params for {zome}/{fn}: {e}")
            raise
        raw = self.handle.call(instance_id, zome, fn, payload)
        return decode_result(raw)

    def call_with_promise(
        self, instance_id: str, zome: str, fn: str, params: Any = None
    ) -> Tuple[Optional[Any], asyncio.Future[None]]:
        try:
            # Register first: the engine may fire the completion during the call.
            notification = self.handle.notifications.register()
            result = self.call(instance_id, zome, fn, params)
        except Exception as e:
            logger.error(f"Call to {zome}/{fn} on '{instance_id}' failed: {e}")
            return None, failed_future(e)
        return result, notification.future

    def call_sync(
        self, instance_id: str, zome: str, fn: str, params: Any = None
    ) -> asyncio.Future[Any]:
        result, settled = self.call_with_promise(instance_id, zome, fn, params)
        return resolve_after(settled, result)


__all__ = ["CallClient", "encode_params", "decode_result"]
