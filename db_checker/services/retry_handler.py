"""Retry runner with linear backoff for one-shot readiness checks."""

import logging
import time
from typing import Callable

from ..config.models import TargetDescriptor
from ..probes.registry import DriverProbe
from ..utils.metrics import RetryOutcome
from ..utils.status import RetryStatus


def backoff_seconds(attempt: int) -> int:
    """Sleep before retrying after 1-indexed *attempt* failed: 4, 7, 10, ..."""
    return 3 * attempt + 1


class RetryRunner:
    """
    Probe a single target until it answers or the attempts run out.

    Attempts are strictly sequential. Transient probe failures are logged and
    turned into a sleep-and-retry; SecurityConfigError propagates at once.
    """

    def __init__(
        self,
        probe: DriverProbe,
        logger: logging.Logger,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize retry runner.

        Args:
            probe: Probe used for every attempt
            logger: Logger instance
            sleep: Blocking sleep function (injectable for tests)
        """
        self.probe = probe
        self.logger = logger.getChild(self.__class__.__name__)
        self.sleep = sleep

    def run_with_retry(self, target: TargetDescriptor, max_tries: int) -> RetryOutcome:
        """
        Probe *target* up to *max_tries* times.

        Args:
            target: Target to check
            max_tries: Maximum attempts, at least 1

        Returns:
            RetryOutcome: SUCCEEDED with the attempt count, or EXHAUSTED
            carrying the last failure reason

        Raises:
            ValueError: If max_tries is less than 1
            SecurityConfigError: If the target's TLS material is broken
        """
        if max_tries < 1:
            raise ValueError(f"max_tries must be at least 1, got {max_tries}")

        last_reason = None

        for attempt in range(1, max_tries + 1):
            outcome = self.probe.probe(target)

            if outcome.available:
                self.logger.info(
                    f"[{target.label}] Connect success",
                    extra={"target": target.label, "attempt": attempt, "max_tries": max_tries}
                )
                return RetryOutcome(status=RetryStatus.SUCCEEDED, attempts=attempt)

            last_reason = outcome.reason

            if attempt == max_tries:
                self.logger.error(
                    f"[{target.label}] Try ({attempt}/{max_tries}) error: {outcome.reason}",
                    extra={
                        "target": target.label,
                        "attempt": attempt,
                        "max_tries": max_tries,
                        "reason": outcome.reason,
                    }
                )
                break

            sleep_seconds = backoff_seconds(attempt)
            self.logger.warning(
                f"[{target.label}] Try ({attempt}/{max_tries}) sleep {sleep_seconds} seconds error: {outcome.reason}",
                extra={
                    "target": target.label,
                    "attempt": attempt,
                    "max_tries": max_tries,
                    "sleep_seconds": sleep_seconds,
                    "reason": outcome.reason,
                }
            )
            self.sleep(sleep_seconds)

        return RetryOutcome(
            status=RetryStatus.EXHAUSTED,
            attempts=max_tries,
            last_reason=last_reason
        )
