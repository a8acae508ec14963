"""Polling loop that runs change-detection cycles on a fixed interval."""
import logging
import threading
import time
from typing import Callable

from processor.change_detector import ChangeDetector

logger = logging.getLogger(__name__)


class EventWatcher:
    """
    Runs a cycle immediately and then every ``interval_seconds``.

    Cycles never overlap: the next cycle starts only after the previous
    one finished. An overrunning cycle is followed immediately by the
    next one and missed ticks are dropped.
    """

    def __init__(self, detector: ChangeDetector, interval_seconds: float,
                 clock: Callable[[], float] = time.monotonic):
        self.detector = detector
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._stop_event = threading.Event()
        self._stopped = False

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Load state and run cycles until stop() is called."""
        logger.info(
            f"Starting IDA watcher. Interval: {round(self.interval_seconds / 60)} min."
        )
        self.detector.load_state()

        while not self._stop_event.is_set():
            started = self.clock()
            self.detector.run_cycle()
            elapsed = self.clock() - started

            if elapsed >= self.interval_seconds:
                logger.warning(
                    f"Cycle took {elapsed:.1f}s, longer than the "
                    f"{self.interval_seconds:.0f}s interval"
                )
            if self._stop_event.wait(max(0.0, self.interval_seconds - elapsed)):
                break

        logger.info("Watcher loop finished")

    def stop(self) -> None:
        """Cancel the next cycle and save the seen set. Safe to call twice."""
        self._stop_event.set()
        if self._stopped:
            return
        self._stopped = True

        if not self.detector.loaded:
            logger.info("Stopping before state was loaded, nothing to save")
            return

        logger.info("Stopping, saving state")
        self.detector.flush()
