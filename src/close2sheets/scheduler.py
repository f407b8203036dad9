"""Daily scheduler for export runs."""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


def next_run_after(now: datetime, run_at: time) -> datetime:
    """
    Next occurrence of `run_at` strictly after `now`, in now's timezone.

    Built from wall-clock fields so DST changes keep the local time fixed.
    """
    candidate = datetime.combine(now.date(), run_at, tzinfo=now.tzinfo)
    if candidate <= now:
        candidate = datetime.combine(now.date() + timedelta(days=1), run_at, tzinfo=now.tzinfo)
    return candidate


class DailyScheduler:
    """Runs a job once a day at a fixed local time until stopped.

    A failing job is logged and the next run is still scheduled.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        run_at: time,
        tz: ZoneInfo,
        clock: Callable[[ZoneInfo], datetime] = datetime.now,
    ):
        self.job = job
        self.run_at = run_at
        self.tz = tz
        self._clock = clock
        self.state = SchedulerState.IDLE
        self.runs = 0
        self.failures = 0

    def now(self) -> datetime:
        return self._clock(self.tz)

    def _log_next_run(self, after: datetime | None = None) -> datetime:
        now = self.now()
        upcoming = next_run_after(max(now, after) if after else now, self.run_at)
        logger.info(f"Next scheduled run: {upcoming:%Y-%m-%d %H:%M %Z}")
        return upcoming

    async def run_once(self) -> bool:
        """Run the job now. Returns False if it raised."""
        self.state = SchedulerState.RUNNING
        self.runs += 1
        logger.info(f"Running scheduled export at {self.now():%Y-%m-%d %H:%M:%S %Z}")

        try:
            await self.job()
        except Exception:
            self.failures += 1
            logger.exception("Error in scheduled export")
            return False
        else:
            logger.info("Scheduled export completed successfully")
            return True
        finally:
            self.state = SchedulerState.IDLE

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Wait for each daily trigger and run the job until `stop` is set."""
        logger.info("Scheduler started")
        upcoming = self._log_next_run()

        while not stop.is_set():
            # Absolute time: same-zone datetime subtraction ignores DST offset changes
            delay = max(upcoming.timestamp() - self.now().timestamp(), 0.0)
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            await self.run_once()
            # Never fire twice for the same trigger
            upcoming = self._log_next_run(after=upcoming)

        logger.info("Scheduler stopped")
