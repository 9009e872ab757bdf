"""Concurrent readiness check across all targets."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple

from ..config.models import TargetDescriptor
from ..errors import RetriesExhausted
from ..utils.metrics import RetryOutcome
from .retry_handler import RetryRunner


class FanOutCoordinator:
    """
    Run one RetryRunner per target in parallel threads and aggregate.

    Every runner is joined before returning, even after a failure is known,
    so the log holds the full attempt history of every target.
    """

    def __init__(self, runner: RetryRunner, logger: logging.Logger):
        """
        Initialize coordinator.

        Args:
            runner: Retry runner shared by all targets (stateless)
            logger: Logger instance
        """
        self.runner = runner
        self.logger = logger.getChild(self.__class__.__name__)

    async def check_all(self, targets: Sequence[TargetDescriptor], max_tries: int) -> None:
        """
        Wait until every target is reachable or has exhausted its retries.

        Args:
            targets: Targets to check; duplicates are checked twice
            max_tries: Attempts per target, at least 1

        Raises:
            ValueError: If max_tries is less than 1
            SecurityConfigError: If any target's TLS material is broken; checked
                for every target before the first probe
            RetriesExhausted: For the first target observed to exhaust its retries
        """
        targets = list(targets)
        if not targets:
            self.logger.info("No targets configured")
            return

        if max_tries < 1:
            raise ValueError(f"max_tries must be at least 1, got {max_tries}")

        # Unusable trust material fails the whole check before any target starts retrying
        for target in targets:
            self.runner.probe.verify_tls(target)

        self.logger.info(f"Checking {len(targets)} target(s), up to {max_tries} tries each")

        loop = asyncio.get_running_loop()
        first_failure: Optional[RetriesExhausted] = None
        fatal_error: Optional[Exception] = None

        # One thread per target: a hanging target must not hold up the others
        with ThreadPoolExecutor(max_workers=len(targets), thread_name_prefix="retry") as executor:

            async def run(target: TargetDescriptor) -> Tuple[TargetDescriptor, RetryOutcome]:
                outcome = await loop.run_in_executor(
                    executor, self.runner.run_with_retry, target, max_tries
                )
                return target, outcome

            for next_done in asyncio.as_completed([run(target) for target in targets]):
                try:
                    target, outcome = await next_done
                except Exception as e:
                    self.logger.error(f"Check aborted: {e}", exc_info=True)
                    if fatal_error is None:
                        fatal_error = e
                    continue

                if not outcome.succeeded and first_failure is None:
                    first_failure = RetriesExhausted(target, outcome.last_reason)

        if fatal_error is not None:
            raise fatal_error
        if first_failure is not None:
            raise first_failure

        self.logger.info(f"All {len(targets)} target(s) reachable")
