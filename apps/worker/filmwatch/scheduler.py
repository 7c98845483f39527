"""
Cron scheduler that triggers periodic film checks
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import settings
from .exceptions import ConfigurationError, RunInProgressError
from .logging_config import setup_logging
from .pipeline import FilmPipeline

logger = setup_logging(__name__)

JOB_ID = "film_check"


class SchedulerService:
    """Runs ``pipeline.run("scheduled")`` on a crontab schedule"""

    def __init__(
        self,
        pipeline: FilmPipeline,
        cron_schedule: Optional[str] = None,
        enabled: Optional[bool] = None,
        run_immediately: bool = False,
    ):
        self.pipeline = pipeline
        self.cron_schedule = cron_schedule or settings.CRON_SCHEDULE
        self.enabled = enabled if enabled is not None else settings.ENABLE_SCHEDULER
        self.run_immediately = run_immediately
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._current: Optional[asyncio.Task] = None

        try:
            self.trigger = CronTrigger.from_crontab(self.cron_schedule)
        except ValueError as e:
            raise ConfigurationError(f"Invalid cron schedule: {self.cron_schedule} ({e})") from e

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    async def start(self):
        if not self.enabled:
            logger.info("Scheduler is disabled in configuration")
            return
        if self.is_running:
            logger.warning("Scheduler is already running")
            return

        job_options: Dict[str, Any] = {}
        if self.run_immediately:
            job_options["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler = AsyncIOScheduler()
        # The pipeline lock rejects overlaps too; this keeps missed ticks from piling up
        self.scheduler.add_job(
            self.run_scheduled_check,
            trigger=self.trigger,
            id=JOB_ID,
            name="Scheduled film check",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **job_options,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started with schedule: {self.cron_schedule} (next run {self.next_run_time()})")

    async def stop(self):
        """Stop triggering and cancel a check that is still in flight"""
        if self.scheduler is None:
            return

        task = self._current
        if task is not None and not task.done():
            logger.info("Cancelling in-flight scheduled check")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info("Scheduler stopped")

    async def run_scheduled_check(self):
        """One scheduled run; failures are logged and the schedule keeps going"""
        logger.info("Scheduled check triggered")
        self._current = asyncio.current_task()
        start_time = time.perf_counter()
        try:
            result = await self.pipeline.run("scheduled")
        except RunInProgressError:
            logger.warning("Skipping scheduled check - a run is already in progress")
            return None
        except Exception as e:
            logger.error(f"Error in scheduled check: {e}", exc_info=True)
            return None
        finally:
            self._current = None

        duration = time.perf_counter() - start_time
        if result.success:
            logger.info(
                f"Scheduled check completed in {duration:.2f}s - "
                f"Found {result.counters.published} new films"
            )
        else:
            logger.error(f"Scheduled check failed: {result.error}")
        return result

    def next_run_time(self) -> Optional[datetime]:
        if self.scheduler is None:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None)

    def status(self) -> Dict[str, Any]:
        next_run = self.next_run_time()
        return {
            "enabled": self.enabled,
            "running": self.is_running,
            "cron_schedule": self.cron_schedule,
            "next_run": next_run.isoformat() if next_run else None,
        }
