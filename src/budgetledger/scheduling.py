"""Wall-clock triggers for the scheduled ledger jobs."""

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from budgetledger.config import LedgerSettings
from budgetledger.domain.jobs import DebitResult, JobService, RolloverResult
from budgetledger.logging_setup import get_logger

logger = get_logger(__name__)

ROLLOVER = "rollover"
FIXED_DEBIT = "fixed-debit"
LOG_PURGE = "log-purge"


def next_monthly_run(now: datetime, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """First moment strictly after now that falls on day/hour/minute of a month.

    Days past the end of a short month clamp to its last day.

    Examples:
        next_monthly_run(datetime(2024, 6, 2), 6) -> datetime(2024, 6, 6, 0, 0)
        next_monthly_run(datetime(2024, 6, 6), 6) -> datetime(2024, 7, 6, 0, 0)
    """
    target = relativedelta(day=day, hour=hour, minute=minute, second=0, microsecond=0)
    candidate = now + target
    if candidate <= now:
        candidate = now + relativedelta(months=1) + target
    return candidate


def rollover_cycle_id(moment: datetime) -> str:
    """Cycle key for the rollover: one per calendar month."""
    return moment.strftime("%Y-%m")


def debit_cycle_id(moment: datetime) -> str:
    """Cycle key for the fixed debit: the minute it was due."""
    return moment.strftime("%Y-%m-%dT%H:%M")


class LedgerScheduler:
    """Fire the rollover monthly and the fixed debit at a fixed interval.

    Each job runs on its own timer thread and is re-armed after it finishes,
    whether or not it succeeded. A failing job is logged; it never stops the
    schedule.
    """

    def __init__(
        self,
        job_service: JobService,
        rollover_day: int = 6,
        rollover_hour: int = 0,
        debit_interval: timedelta = timedelta(days=30),
        purge_interval: timedelta = timedelta(hours=1),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.job_service = job_service
        self.rollover_day = rollover_day
        self.rollover_hour = rollover_hour
        self.debit_interval = debit_interval
        self.purge_interval = purge_interval
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}
        self._stopped = threading.Event()
        self.next_runs: dict[str, datetime] = {}

    @classmethod
    def from_settings(cls, job_service: JobService, settings: LedgerSettings) -> "LedgerScheduler":
        return cls(
            job_service,
            rollover_day=settings.rollover_day,
            rollover_hour=settings.rollover_hour,
            debit_interval=timedelta(days=settings.debit_interval_days),
        )

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._timers)

    def start(self) -> None:
        """Arm every job relative to the current time."""
        now = self._clock()
        self._stopped.clear()
        self._arm(ROLLOVER, next_monthly_run(now, self.rollover_day, self.rollover_hour))
        self._arm(FIXED_DEBIT, now + self.debit_interval)
        self._arm(LOG_PURGE, now + self.purge_interval)
        logger.info(
            "Scheduled: rollover at %s, fixed debit at %s",
            self.next_runs[ROLLOVER],
            self.next_runs[FIXED_DEBIT],
        )

    def stop(self) -> None:
        """Cancel pending timers. A job already running finishes first."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self.next_runs.clear()
        for timer in timers:
            timer.cancel()
        self._stopped.set()
        logger.info("Scheduler stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called. Returns False on timeout."""
        return self._stopped.wait(timeout)

    # Callbacks, also usable directly for a manual run
    def fire_rollover(self, due: Optional[datetime] = None) -> Optional[RolloverResult]:
        """Run the rollover for the month of due. Returns None if it failed."""
        due = due or self._clock()
        try:
            return self.job_service.run_monthly_rollover(cycle_id=rollover_cycle_id(due))
        except Exception:
            logger.exception("Error running monthly rollover for %s", rollover_cycle_id(due))
            return None

    def fire_fixed_debit(self, due: Optional[datetime] = None) -> Optional[DebitResult]:
        """Run the fixed debit due at due. Returns None if it failed."""
        due = due or self._clock()
        try:
            return self.job_service.run_periodic_fixed_debit(cycle_id=debit_cycle_id(due))
        except Exception:
            logger.exception("Error running fixed debit for %s", debit_cycle_id(due))
            return None

    def fire_log_purge(self, due: Optional[datetime] = None) -> Optional[int]:
        """Sweep expired transaction log entries. Returns None if it failed."""
        try:
            return self.job_service.run_log_purge()
        except Exception:
            logger.exception("Error purging expired transaction log entries")
            return None

    def _next_after(self, job: str, due: datetime) -> datetime:
        if job == ROLLOVER:
            return next_monthly_run(due, self.rollover_day, self.rollover_hour)
        if job == FIXED_DEBIT:
            return due + self.debit_interval
        return due + self.purge_interval

    def _arm(self, job: str, due: datetime) -> None:
        delay = max((due - self._clock()).total_seconds(), 0.0)
        timer = threading.Timer(delay, self._on_timer, args=(job, due))
        timer.daemon = True
        with self._lock:
            self._timers[job] = timer
            self.next_runs[job] = due
        timer.start()

    def _on_timer(self, job: str, due: datetime) -> None:
        callbacks = {
            ROLLOVER: self.fire_rollover,
            FIXED_DEBIT: self.fire_fixed_debit,
            LOG_PURGE: self.fire_log_purge,
        }
        try:
            callbacks[job](due)
        finally:
            # timer threads own their own session
            self.job_service.db.disconnect()

        with self._lock:
            if self._stopped.is_set() or job not in self._timers:
                return
        self._arm(job, self._next_after(job, due))
