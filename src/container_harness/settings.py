from __future__ import annotations

"""
Harness settings.

- Strongly typed with Pydantic v2
- Optional YAML overlay at configs/harness.yaml (override the path via HARNESS_CONFIG_YAML)
- Environment overrides: HARNESS_ENGINE_MODULE, HARNESS_LOG_LEVEL
- Invalid values fall back to defaults with an error log

Usage:
    from container_harness.settings import get_settings
    settings = get_settings()
    settings.engine_module
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class HarnessSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    engine_module: Optional[str] = Field(
        None, description="Importable module exposing the native engine binding"
    )
    debug_log: bool = Field(True, description="Default for ContainerOptions.debug_log")
    log_level: LogLevel = LogLevel.INFO
    case_timeout: Optional[float] = Field(
        None, gt=0.0, description="Default timeout in seconds for run_tape test cases"
    )


_cached_settings: Optional[HarnessSettings] = None

_ENV_OVERRIDES = {
    "HARNESS_ENGINE_MODULE": "engine_module",
    "HARNESS_LOG_LEVEL": "log_level",
}


def _load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load harness settings YAML at {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Harness settings YAML at {path} is not a mapping; ignoring it")
        return {}
    return data


def _env_overlay() -> Dict[str, Any]:
    overlay: Dict[str, Any] = {}
    for var, key in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            overlay[key] = value.upper() if key == "log_level" else value
    return overlay


def get_settings(
    force_reload: bool = False, override: Optional[Dict[str, Any]] = None
) -> HarnessSettings:
    """
    Obtain the harness settings.

    Precedence:
      Built-in defaults < YAML overlay < environment < override dict
    """
    global _cached_settings
    if _cached_settings is not None and not force_reload and override is None:
        return _cached_settings

    merged = HarnessSettings().model_dump()
    yaml_path = os.getenv("HARNESS_CONFIG_YAML") or os.path.join("configs", "harness.yaml")
    merged.update(_load_yaml(yaml_path))
    merged.update(_env_overlay())
    if override:
        merged.update(override)

    try:
        settings = HarnessSettings.model_validate(merged)
    except ValidationError as e:
        logger.error(f"Invalid harness settings; using defaults. Error: {e}")
        settings = HarnessSettings()

    _cached_settings = settings
    return settings


def configure_logging(level: Optional[LogLevel] = None) -> None:
    """Apply the harness log format at ``level`` (defaults to the configured level)."""
    chosen = level or get_settings().log_level
    logging.basicConfig(level=getattr(logging, LogLevel(chosen).value), format=LOG_FORMAT)


__all__ = ["LogLevel", "HarnessSettings", "get_settings", "configure_logging"]
