"""Result data structures for probes, retry runs and cycles."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import time
from .status import Availability, RetryStatus


TargetIdentity = Tuple[str, int, str]


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one connectivity attempt."""

    status: Availability
    elapsed: float  # Seconds
    reason: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.status is Availability.AVAILABLE

    @classmethod
    def success(cls, elapsed: float) -> "ProbeOutcome":
        return cls(status=Availability.AVAILABLE, elapsed=elapsed)

    @classmethod
    def failure(cls, error: Exception, elapsed: float) -> "ProbeOutcome":
        return cls(
            status=Availability.UNAVAILABLE,
            elapsed=elapsed,
            reason=str(error),
            error_type=type(error).__name__,
        )


@dataclass(frozen=True)
class RetryOutcome:
    """Result of a retry run for one target."""

    status: RetryStatus
    attempts: int
    last_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is RetryStatus.SUCCEEDED


@dataclass(frozen=True)
class TargetResult:
    """One snapshot entry."""

    host: str
    port: int
    database: str
    status: Availability
    duration: float  # Seconds

    @property
    def available(self) -> bool:
        return self.status is Availability.AVAILABLE

    @property
    def identity(self) -> TargetIdentity:
        return (self.host, self.port, self.database)


@dataclass(frozen=True)
class ResultsSnapshot:
    """
    Immutable results of one probing cycle.

    Entries keep configuration order and are not deduplicated, so a target
    listed twice appears twice.
    """

    entries: Tuple[TargetResult, ...] = ()
    cycle: int = 0
    created_at: float = field(default_factory=time.time)

    def __len__(self) -> int:
        return len(self.entries)

    def as_dict(self) -> Dict[TargetIdentity, TargetResult]:
        """Identity-keyed view; for duplicates the last entry wins."""
        return {entry.identity: entry for entry in self.entries}
