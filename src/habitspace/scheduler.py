"""Background scheduler for the daily analysis run and the midnight refresh."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.cron import CronTrigger

from .logging_config import get_logger

if TYPE_CHECKING:
    from .orchestrator import InsightEngine

logger = get_logger(__name__)

DAILY_ANALYSIS_JOB = "daily_analysis"
MIDNIGHT_REFRESH_JOB = "midnight_refresh"


class AnalysisScheduler:
    """Owns the APScheduler instance driving timed engine work."""

    def __init__(self, engine: InsightEngine):
        """Initialize the scheduler with the engine it drives.

        Args:
            engine: Insight engine whose config supplies the analysis hour
        """
        self.engine = engine
        self.scheduler: Optional[APScheduler] = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        hour = self.engine.config.DAILY_ANALYSIS_HOUR
        self.scheduler = APScheduler(daemon=True)

        self.scheduler.add_job(
            func=self._run_daily_analysis,
            trigger=CronTrigger(hour=hour, minute=0),
            id=DAILY_ANALYSIS_JOB,
            name="Daily Habit Analysis",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled daily analysis at {hour}:00")

        # Streaks and "today" counts go stale when the date rolls over.
        self.scheduler.add_job(
            func=self._refresh_at_midnight,
            trigger=CronTrigger(hour=0, minute=0, second=5),
            id=MIDNIGHT_REFRESH_JOB,
            name="Midnight Streak Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled midnight streak refresh")

        self.scheduler.start()
        logger.info("Background scheduler started")

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def job_ids(self) -> list[str]:
        if self.scheduler is None:
            return []
        return [job.id for job in self.scheduler.get_jobs()]

    def _run_daily_analysis(self) -> None:
        from .orchestrator import TriggerSource

        try:
            self.engine.run_analysis_cycle(trigger=TriggerSource.DAILY)
        except Exception as exc:
            logger.error(f"Scheduled analysis failed: {exc}", exc_info=True)

    def _refresh_at_midnight(self) -> None:
        try:
            self.engine.refresh()
        except Exception as exc:
            logger.error(f"Midnight refresh failed: {exc}", exc_info=True)


__all__ = ["AnalysisScheduler", "DAILY_ANALYSIS_JOB", "MIDNIGHT_REFRESH_JOB"]
