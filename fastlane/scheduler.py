"""APScheduler setup for background jobs"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from fastlane.utils.logger import get_logger

logger = get_logger(__name__)


class SchedulerService:
    """Scheduler service using APScheduler"""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    def initialize(self):
        """Initialize scheduler; jobs added before start() run once it starts"""
        try:
            # Device and request state is not persisted, so jobs are not either
            jobstores = {"default": MemoryJobStore()}
            executors = {"default": AsyncIOExecutor()}
            job_defaults = {
                "coalesce": True,  # Coalesce missed sweeps into one run
                "max_instances": 1,
                "misfire_grace_time": 30,
            }

            self.scheduler = AsyncIOScheduler(
                jobstores=jobstores,
                executors=executors,
                job_defaults=job_defaults,
                timezone="UTC",
            )

            logger.debug("Scheduler initialized")
        except Exception as e:
            logger.error(f"Failed to initialize scheduler: {e}")
            raise

    def start(self):
        """Start scheduler; must be called from a running event loop"""
        if not self.scheduler:
            raise RuntimeError("Scheduler not initialized. Call initialize() first.")

        try:
            self.scheduler.start()
            self.running = True
            logger.info("Scheduler started")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop scheduler"""
        if self.scheduler and self.running:
            try:
                self.scheduler.shutdown(wait=False)
                self.running = False
                logger.info("Scheduler stopped")
            except Exception as e:
                logger.error(f"Failed to stop scheduler: {e}")

    def add_job(self, func, trigger, job_id: Optional[str] = None, **kwargs):
        """Add a job to the scheduler"""
        if not self.scheduler:
            raise RuntimeError("Scheduler not initialized. Call initialize() first.")

        try:
            job = self.scheduler.add_job(
                func, trigger=trigger, id=job_id, replace_existing=True, **kwargs
            )
            logger.debug(f"Job added: {job_id or func.__name__}")
            return job
        except Exception as e:
            logger.error(f"Failed to add job: {e}")
            raise

    def add_interval_job(self, func, seconds: float, job_id: Optional[str] = None, **kwargs):
        """Add an interval job"""
        trigger = IntervalTrigger(seconds=seconds)
        return self.add_job(func, trigger, job_id=job_id, **kwargs)

    def add_delayed_job(self, func, delay_seconds: float, job_id: Optional[str] = None, args=()):
        """Run ``func(*args)`` once, ``delay_seconds`` from now"""
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        trigger = DateTrigger(run_date=run_date)
        return self.add_job(func, trigger, job_id=job_id, args=list(args))

    def get_jobs(self):
        """Get all scheduled jobs"""
        if not self.scheduler:
            return []
        return self.scheduler.get_jobs()
