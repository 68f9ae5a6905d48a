"""Scan job lifecycle: run one job from processing to a terminal state."""

import logging
import time
from typing import Optional

from linkguard.models.job import ScanJob
from linkguard.models.scan import ScanReport
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.database import DatabaseService
from linkguard.services.orchestrator import DETAILS_START, BatchOrchestrator
from linkguard.utils.events import NullEventSink, ScanEventSink

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Write job progress, never lowering the last written value."""

    def __init__(self, db: DatabaseService, job_id: str, start: int = 0) -> None:
        self.db = db
        self.job_id = job_id
        self.value = start

    async def __call__(self, progress: int) -> None:
        progress = max(0, min(100, progress))
        if progress <= self.value:
            return
        self.value = progress
        await self.db.update_job_progress(self.job_id, progress)


class ScanJobManager:
    """Drive a scan job through queued -> processing -> completed/failed."""

    def __init__(
        self,
        db: DatabaseService,
        catalog: CatalogFetcher,
        orchestrator: BatchOrchestrator,
        events: Optional[ScanEventSink] = None,
    ) -> None:
        """
        Initialize the ScanJobManager.

        Args:
            db: Job and channel store
            catalog: Fetcher for channel uploads
            orchestrator: Batch orchestrator for link checks
            events: Event sink for job events
        """
        self.db = db
        self.catalog = catalog
        self.orchestrator = orchestrator
        self.events = events or NullEventSink()

    async def process(self, job: ScanJob, attempt: int = 1) -> ScanReport:
        """
        Run one attempt of a scan job.

        Args:
            job: The job to run
            attempt: Attempt number, starting at 1

        Returns:
            The ScanReport stored on the completed job

        Raises:
            Exception: Whatever failed the attempt, after the job is marked failed
        """
        data = job.data
        started = time.monotonic()

        logger.info(
            f"Job {job.job_id} attempt {attempt}: scanning {data.video_count} videos "
            f"of {data.channel_name} ({data.channel_id})"
        )
        self.events.emit("job.started", job_id=job.job_id, attempt=attempt)

        try:
            await self.db.mark_job_processing(job.job_id, attempt)
            progress = ProgressTracker(self.db, job.job_id)

            items = await self.catalog.list_items(
                data.channel_id, data.video_count, data.start_date, data.end_date
            )
            await progress(DETAILS_START)

            outcome = await self.orchestrator.scan(items, progress)

            report = ScanReport.build(
                channel_id=data.channel_id,
                scanned_videos=len(items),
                results=outcome.results,
                skipped_videos=len(outcome.skipped),
            )
            await self.db.record_channel_scan(data.channel_doc_id, report)
            await self.db.mark_job_completed(job.job_id, report)

        except Exception as e:
            logger.error(f"Job {job.job_id} attempt {attempt} failed: {e}")
            await self.db.mark_job_failed(job.job_id, str(e))
            self.events.emit(
                "job.failed", job_id=job.job_id, attempt=attempt, error=type(e).__name__
            )
            raise

        duration = time.monotonic() - started
        stats = report.statistics
        logger.info(
            f"Job {job.job_id} completed in {duration:.1f}s: {report.scanned_videos} videos, "
            f"{report.videos_with_links} with links, {stats.total_links} links "
            f"({stats.working_links} working, {stats.warning_links} warning, "
            f"{stats.broken_links} broken), {report.skipped_videos} skipped"
        )
        self.events.emit(
            "job.completed",
            job_id=job.job_id,
            total_links=stats.total_links,
            broken_links=stats.broken_links,
            seconds=round(duration, 3),
        )
        return report
