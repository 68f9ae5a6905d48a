"""Durable scan job queue backed by the ``scan_jobs`` table."""

import asyncio
import logging
from typing import Optional

from linkguard.models.job import ScanJob, ScanJobData
from linkguard.services.database import DatabaseService
from linkguard.services.scanner import ScanJobManager
from linkguard.utils.errors import QueueError
from linkguard.utils.events import NullEventSink, ScanEventSink
from linkguard.utils.retry import with_retry

logger = logging.getLogger(__name__)


class ScanQueue:
    """
    Queue of scan jobs with whole-job retries.

    Jobs are rows in the job store. ``add`` inserts a queued row; workers claim
    the oldest queued row and run it through the ScanJobManager, retrying a
    failed attempt with exponential backoff. Finished rows are kept.
    """

    def __init__(
        self,
        db: DatabaseService,
        manager: ScanJobManager,
        max_attempts: int = 3,
        backoff_seconds: float = 5.0,
        poll_interval: float = 2.0,
        events: Optional[ScanEventSink] = None,
    ) -> None:
        self.db = db
        self.manager = manager
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.poll_interval = poll_interval
        self.events = events or NullEventSink()

    async def add(self, data: ScanJobData) -> ScanJob:
        """
        Enqueue a scan.

        Args:
            data: Validated job payload

        Returns:
            The queued ScanJob

        Raises:
            QueueError: If the job could not be stored
        """
        job = ScanJob(job_id=data.job_id, data=data)
        try:
            await self.db.create_job(job)
        except Exception as e:
            raise QueueError(f"Failed to enqueue job {data.job_id}: {e}") from e

        logger.info(f"Queued job {job.job_id} for channel {data.channel_id}")
        self.events.emit("job.queued", job_id=job.job_id, channel_id=data.channel_id)
        return job

    async def get_status(self, job_id: str) -> Optional[ScanJob]:
        return await self.db.get_job(job_id)

    async def claim_next(self) -> Optional[ScanJob]:
        return await self.db.claim_next_job()

    async def run_job(self, job: ScanJob) -> bool:
        """
        Run a claimed job, retrying failed attempts.

        Returns:
            True if an attempt completed, False once every attempt failed
        """
        attempt = 0

        async def run_attempt() -> None:
            nonlocal attempt
            attempt += 1
            await self.manager.process(job, attempt)

        async def on_retry(number: int, error: Exception, delay: float) -> None:
            self.events.emit("job.retry", job_id=job.job_id, attempt=number, delay=delay)

        runner = with_retry(
            max_attempts=self.max_attempts,
            base_delay=self.backoff_seconds,
            on_retry=on_retry,
        )(run_attempt)

        try:
            await runner()
        except Exception as e:
            logger.error(f"Job {job.job_id} failed after {attempt} attempt(s): {e}")
            return False
        return True

    async def process_one(self) -> Optional[ScanJob]:
        """
        Claim and run the oldest queued job.

        Returns:
            The job as stored after the run, or None if the queue was empty
        """
        job = await self.claim_next()
        if job is None:
            return None
        await self.run_job(job)
        return await self.db.get_job(job.job_id)

    async def process(self, stop: asyncio.Event, once: bool = False) -> int:
        """
        Run queued jobs until ``stop`` is set.

        Args:
            stop: Event that ends the loop between jobs
            once: Return after the first job

        Returns:
            Number of jobs processed
        """
        processed = 0
        logger.info("Scan worker started")

        while not stop.is_set():
            job = await self.process_one()
            if job is not None:
                processed += 1
                if once:
                    break
                continue

            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Scan worker stopped after {processed} job(s)")
        return processed


def create_scan_queue(
    db: DatabaseService,
    manager: ScanJobManager,
    events: Optional[ScanEventSink] = None,
) -> ScanQueue:
    """
    Create a ScanQueue using application settings.

    Returns:
        Configured ScanQueue instance
    """
    from linkguard.config import get_settings

    settings = get_settings()
    return ScanQueue(
        db=db,
        manager=manager,
        max_attempts=settings.queue_max_attempts,
        backoff_seconds=settings.queue_backoff_seconds,
        poll_interval=settings.queue_poll_interval_seconds,
        events=events,
    )
