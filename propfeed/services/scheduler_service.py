"""Recurring scrape schedules.

One cron job per fleet source plus one "full" fleet job, each at a distinct
offset so sources are never hit at the same time. The cron engine sits
behind ``CronBackend``; the default backend is APScheduler's
``AsyncIOScheduler`` running on the application event loop.
"""
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from propfeed.core.logging import get_logger
from propfeed.schemas.scraper_schema import Source
from propfeed.services.scraper_service import ScrapingManager

logger = get_logger(__name__)

FULL_JOB = "full"

Task = Callable[[], Awaitable[None]]


class CronBackend(Protocol):
    def schedule(self, job_id: str, cron_expr: str, task: Task) -> None:
        ...

    def start(self) -> None:
        ...

    def shutdown(self) -> None:
        ...

    def next_run(self, job_id: str) -> Optional[datetime]:
        ...


class APSchedulerBackend:
    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone
        self._scheduler = AsyncIOScheduler(timezone=timezone)

    def schedule(self, job_id: str, cron_expr: str, task: Task) -> None:
        self._scheduler.add_job(
            task,
            trigger=CronTrigger.from_crontab(cron_expr, timezone=self.timezone),
            id=job_id,
            name=f"Scheduled {job_id} scraping",
            replace_existing=True,
            misfire_grace_time=3600,
            coalesce=True,
            max_instances=1,
        )

    def start(self) -> None:
        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def next_run(self, job_id: str) -> Optional[datetime]:
        job = self._scheduler.get_job(job_id)
        if job is None:
            return None
        return getattr(job, "next_run_time", None)


class ScrapeScheduler:
    def __init__(
        self,
        manager: ScrapingManager,
        schedules: Mapping[str, str],
        backend_factory: Optional[Callable[[], CronBackend]] = None,
        timezone: str = "UTC",
    ):
        self.manager = manager
        self.schedules = dict(schedules)
        self._backend_factory = backend_factory or (lambda: APSchedulerBackend(timezone=timezone))
        self._backend: Optional[CronBackend] = None
        self._registered: list[str] = []

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    def start(self) -> None:
        if self._backend is not None:
            return
        backend = self._backend_factory()
        self._registered = []
        known = {source.value for source in self.manager.adapters}
        for job_id, cron_expr in self.schedules.items():
            if job_id != FULL_JOB and job_id not in known:
                logger.warning("No adapter for scheduled source %s, skipping", job_id)
                continue
            backend.schedule(job_id, cron_expr, self._job(job_id))
            self._registered.append(job_id)
        backend.start()
        self._backend = backend
        logger.info("Automatic scraping scheduled", extra={"status": "started"})

    def stop(self) -> None:
        if self._backend is None:
            return
        self._backend.shutdown()
        self._backend = None
        logger.info("Automatic scraping stopped", extra={"status": "stopped"})

    def status(self) -> Dict[str, Any]:
        jobs: Dict[str, Optional[str]] = {}
        if self._backend is not None:
            for job_id in self._registered:
                next_run = self._backend.next_run(job_id)
                jobs[job_id] = next_run.isoformat() if next_run else "scheduled"
        return {"enabled": self.enabled, "jobs": jobs}

    def _job(self, job_id: str) -> Task:
        async def run() -> None:
            await self.run_job(job_id)

        return run

    async def run_job(self, job_id: str) -> None:
        """Fire one scheduled job. Failures are logged and the job stays registered."""
        logger.info("Starting scheduled %s scraping", job_id, extra={"source": job_id})
        try:
            if job_id == FULL_JOB:
                await self.manager.scrape_all_sources()
            else:
                await self.manager.scrape_specific_source(Source(job_id))
        except Exception as e:
            logger.error("Scheduled %s scraping failed: %s", job_id, str(e), extra={"source": job_id})
