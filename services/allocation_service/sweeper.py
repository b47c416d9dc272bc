"""
Background expiration sweeper.

Keeps the stored allocation statuses fresh between reads by running the
lifecycle sweep on a fixed interval.
"""

import threading
from typing import List, Optional

from services.allocation_service.lifecycle import AllocationManager
from utils.logging_config import ErrorTracker, get_logger


class ExpirationSweeper:
    """Runs AllocationManager.sweep every `interval_seconds` on a daemon thread"""

    def __init__(self, manager: AllocationManager, interval_seconds: float = 300.0,
                 error_tracker: Optional[ErrorTracker] = None):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self.error_tracker = error_tracker
        self.logger = get_logger(__name__)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> List[str]:
        """Run a single sweep; errors are tracked and swallowed so the loop survives"""
        try:
            transitioned = self.manager.sweep()
        except Exception as e:
            if self.error_tracker is not None:
                self.error_tracker.track_error(e, "expiration sweeper")
            else:
                self.logger.exception(f"Expiration sweep failed: {e}")
            return []
        finally:
            self.runs += 1
        return transitioned

    def _run(self):
        self.logger.info(f"Expiration sweeper started (every {self.interval_seconds}s)")
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
        self.logger.info("Expiration sweeper stopped")

    def start(self):
        """Start the background thread (no-op if already running)"""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="expiration-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        """Signal the thread to stop and wait for it"""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
