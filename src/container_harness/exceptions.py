"""Exception hierarchy for the container harness."""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigError(HarnessError):
    """Invalid configuration detected before the engine is touched."""


class EngineError(HarnessError):
    """The engine failed to start, stop or execute a call."""


class HarnessMisuseError(HarnessError):
    """The harness was driven in an order it does not support."""


class DecodeWarning(UserWarning):
    """An engine result could not be decoded as JSON and was returned raw."""


__all__ = [
    "HarnessError",
    "ConfigError",
    "EngineError",
    "HarnessMisuseError",
    "DecodeWarning",
]
