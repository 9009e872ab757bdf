"""Background prober that periodically re-checks every target."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.models import DEFAULT_CHECK_INTERVAL, TargetDescriptor
from ..probes.registry import DriverProbe
from ..utils.metrics import ResultsSnapshot, TargetResult
from ..utils.status import Availability, ProberState
from .publisher import ResultsPublisher


class PeriodicProber:
    """
    Probe every target once per interval and publish the results.

    start() runs one cycle synchronously, so the publisher holds a populated
    snapshot as soon as it returns, then schedules further cycles on a
    background scheduler. stop() sets the cancellation event checked at the
    start of each cycle; an in-flight cycle is left to finish.

    Calling start() twice without stop() in between is not supported.
    """

    def __init__(
        self,
        targets: Sequence[TargetDescriptor],
        probe: DriverProbe,
        publisher: ResultsPublisher,
        logger: logging.Logger,
        check_interval: float = DEFAULT_CHECK_INTERVAL
    ):
        """
        Initialize periodic prober.

        Args:
            targets: Targets probed each cycle
            probe: Probe used for every check (never retried within a cycle)
            publisher: Receives a fresh snapshot after each cycle
            logger: Logger instance
            check_interval: Seconds between cycles; non-positive selects the default
        """
        self.targets = list(targets)
        self.probe = probe
        self.publisher = publisher
        self.logger = logger.getChild(self.__class__.__name__)
        self.check_interval = check_interval if check_interval > 0 else DEFAULT_CHECK_INTERVAL

        self.state = ProberState.STOPPED
        self.cycle_count = 0
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._scheduler: Optional[BackgroundScheduler] = None

    def start(self) -> None:
        """Run the first cycle now, then one every check_interval seconds."""
        with self._lock:
            if self.state is ProberState.RUNNING:
                self.logger.warning("Prober already running, ignoring start()")
                return
            # A stop() from here on sets this token and cancels the start
            cancelled = threading.Event()
            self._cancelled = cancelled

        self.run_cycle(cancelled)

        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(seconds=self.check_interval),
            args=[cancelled],
            id='probe_cycle',
            name='Target probing cycle',
            max_instances=1,  # Prevent overlapping cycles
            coalesce=True  # If missed, run once
        )

        with self._lock:
            if cancelled.is_set():
                # stop() arrived during the first cycle
                return
            self._scheduler = scheduler
            scheduler.start()
            self.state = ProberState.RUNNING

        self.logger.info(
            f"Prober started for {len(self.targets)} target(s), interval {self.check_interval}s"
        )

    def stop(self) -> None:
        """Stop scheduling cycles. Safe from any thread and when not running."""
        with self._lock:
            self._cancelled.set()
            scheduler, self._scheduler = self._scheduler, None
            if scheduler is not None and scheduler.running:
                scheduler.shutdown(wait=False)
            was_running = self.state is ProberState.RUNNING
            self.state = ProberState.STOPPED

        if was_running:
            self.logger.info("Prober stopped")

    def run_cycle(self, cancelled: Optional[threading.Event] = None) -> Optional[ResultsSnapshot]:
        """
        Probe every target once and publish the new snapshot.

        Never raises: a failing probe becomes an unavailable entry.

        Returns:
            ResultsSnapshot: Published snapshot, or None if cancelled
        """
        if cancelled is not None and cancelled.is_set():
            return None

        start_time = time.monotonic()
        entries = self._probe_all()

        self.cycle_count += 1
        snapshot = ResultsSnapshot(entries=tuple(entries), cycle=self.cycle_count)
        self.publisher.publish(snapshot)

        available = sum(1 for entry in entries if entry.available)
        self.logger.debug(
            f"Cycle {self.cycle_count}: {available}/{len(entries)} available "
            f"in {time.monotonic() - start_time:.2f}s"
        )
        return snapshot

    def _probe_all(self) -> List[TargetResult]:
        if not self.targets:
            return []

        # One thread per target: a hanging target must not delay the others
        with ThreadPoolExecutor(max_workers=len(self.targets), thread_name_prefix="probe") as executor:
            return list(executor.map(self._probe_target, self.targets))

    def _probe_target(self, target: TargetDescriptor) -> TargetResult:
        start_time = time.monotonic()

        try:
            outcome = self.probe.probe(target)
            status, duration = outcome.status, outcome.elapsed
            if not outcome.available:
                self.logger.warning(f"[{target.label}] unavailable: {outcome.reason}")
        except Exception as e:
            self.logger.error(f"[{target.label}] Check failed: {e}")
            status, duration = Availability.UNAVAILABLE, time.monotonic() - start_time

        host, port, name = target.identity
        return TargetResult(
            host=host,
            port=port,
            database=name,
            status=status,
            duration=duration
        )
