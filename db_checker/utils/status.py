"""Availability status enumeration."""

from enum import Enum


class Availability(Enum):
    """Result of a single connectivity check."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"

    def to_gauge(self) -> float:
        """
        Convert status to its gauge value.

        Returns:
            float: 1.0 when reachable, 0.0 otherwise
        """
        return {
            Availability.AVAILABLE: 1.0,
            Availability.UNAVAILABLE: 0.0,
        }[self]


class RetryStatus(Enum):
    """Terminal state of a retry run for one target."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class ProberState(Enum):
    """Lifecycle state of the periodic prober."""

    STOPPED = "stopped"
    RUNNING = "running"
