"""Error taxonomy for connectivity checks."""

from typing import Any


class CheckerError(Exception):
    """Base class for all checker errors."""


class ConfigError(CheckerError):
    """Configuration could not be loaded or is invalid."""


class ConnectError(CheckerError):
    """Transport or authentication failure reaching the target."""


class SecurityConfigError(CheckerError):
    """TLS trust material is unreadable or malformed. Never retried."""


class QueryError(CheckerError):
    """Introspection query failed or exceeded its deadline."""


class QueryDecodeError(CheckerError):
    """Introspection query returned rows that could not be read."""


class RetriesExhausted(CheckerError):
    """Every attempt for one target failed."""

    def __init__(self, target: Any, last_reason: str):
        self.target = target
        self.last_reason = last_reason
        super().__init__(f"[{target.label}] connection attempts have failed: {last_reason}")
