"""Background scheduler for reconciliation runs.

Runs reconcile_recent() on a fixed interval in a daemon thread.
Integrates with FastAPI lifespan for clean startup/shutdown.
"""

import logging
import threading
from datetime import datetime

from gamerecon.consumers.reconciliation import GameReconciliationService
from gamerecon.core.errors import ReconciliationCancelledError

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """Periodic reconciliation of recent games.

    Usage:
        scheduler = ReconciliationScheduler(service, interval_minutes=360)
        scheduler.start()
        # ... application runs ...
        scheduler.stop()

    stop() also cancels a run in progress between games.
    """

    def __init__(
        self,
        service: GameReconciliationService,
        interval_minutes: int = 360,
        lookback_days: int = 7,
        run_on_start: bool = True,
    ):
        """Initialize the scheduler.

        Args:
            service: Reconciliation service to drive
            interval_minutes: Minutes between runs
            lookback_days: Days covered by each run
            run_on_start: Run immediately when started
        """
        self._service = service
        self._interval_minutes = interval_minutes
        self._lookback_days = lookback_days
        self._run_on_start = run_on_start

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._running = False
        self._last_run: datetime | None = None
        self._last_result: dict | None = None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running and self._thread is not None and self._thread.is_alive()

    @property
    def last_run(self) -> datetime | None:
        """Get time of last run."""
        return self._last_run

    @property
    def last_result(self) -> dict | None:
        return self._last_result

    def start(self) -> bool:
        """Start the scheduler.

        Returns:
            True if started, False if already running
        """
        if self.is_running:
            logger.warning("[SCHEDULER] Already running")
            return False

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._run_loop,
            name="reconciliation-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "[SCHEDULER] Started (interval: %d minutes, lookback: %d days)",
            self._interval_minutes,
            self._lookback_days,
        )
        return True

    def stop(self, timeout: float = 30.0) -> bool:
        """Stop the scheduler gracefully.

        Args:
            timeout: Maximum seconds to wait for thread to stop

        Returns:
            True if stopped, False if timeout
        """
        if not self.is_running:
            return True

        logger.info("[SCHEDULER] Stopping...")
        self._stop_event.set()
        self._running = False

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[SCHEDULER] Thread did not stop in time")
                return False

        logger.info("[SCHEDULER] Stopped")
        return True

    def run_once(self) -> dict:
        """Run one reconciliation now (for testing/manual trigger)."""
        return self._run_task()

    def _run_loop(self) -> None:
        """Main scheduler loop - runs in background thread."""
        interval_seconds = self._interval_minutes * 60

        if self._run_on_start:
            self._run_task()

        # wait() returns True as soon as stop() is called
        while not self._stop_event.wait(interval_seconds):
            self._run_task()

    def _run_task(self) -> dict:
        self._last_run = datetime.now()
        try:
            result = self._service.reconcile_recent(
                days=self._lookback_days,
                triggered_by="scheduler",
                cancel_event=self._stop_event,
            )
            self._last_result = result.to_dict(max_details=0)
        except ReconciliationCancelledError as e:
            self._last_result = {"cancelled": str(e)}
        except Exception as e:
            logger.exception("[SCHEDULER] Reconciliation run failed: %s", e)
            self._last_result = {"error": str(e)}
        return self._last_result
