"""Database service for Supabase operations."""

import logging
from typing import Any, Dict, List, Optional

from linkguard.models.job import ScanJob, ScanJobData
from linkguard.models.scan import ScanReport, utc_now
from linkguard.utils.errors import DatabaseError

logger = logging.getLogger(__name__)

JOBS_TABLE = "scan_jobs"
CHANNELS_TABLE = "channels"


class DatabaseService:
    """Service for Supabase database operations."""

    def __init__(self, supabase_client: Any) -> None:
        """
        Initialize the DatabaseService.

        Args:
            supabase_client: Supabase client instance
        """
        self.supabase = supabase_client

    # ==================== SCAN JOBS ====================

    @staticmethod
    def _job_to_row(job: ScanJob) -> Dict[str, Any]:
        data = job.data
        return {
            "job_id": job.job_id,
            "user_id": data.user_id,
            "channel_id": data.channel_id,
            "channel_name": data.channel_name,
            "channel_doc_id": data.channel_doc_id,
            "video_count": data.video_count,
            "start_date": data.start_date.isoformat() if data.start_date else None,
            "end_date": data.end_date.isoformat() if data.end_date else None,
            "scan_mode": data.scan_mode,
            "status": job.status,
            "progress": job.progress,
            "attempts": job.attempts,
            "result": job.result.model_dump(mode="json", by_alias=True) if job.result else None,
            "error": job.error,
            "created_at": job.created_at.isoformat(),
            "started_at": job.started_at.isoformat() if job.started_at else None,
            "completed_at": job.completed_at.isoformat() if job.completed_at else None,
            "failed_at": job.failed_at.isoformat() if job.failed_at else None,
        }

    @staticmethod
    def _row_to_job(row: Dict[str, Any]) -> ScanJob:
        data = ScanJobData(
            job_id=row["job_id"],
            user_id=row["user_id"],
            channel_id=row["channel_id"],
            channel_name=row.get("channel_name") or "Unknown Channel",
            channel_doc_id=row["channel_doc_id"],
            video_count=row["video_count"],
            start_date=row.get("start_date"),
            end_date=row.get("end_date"),
            scan_mode=row.get("scan_mode") or "count",
        )
        result = row.get("result")
        return ScanJob(
            job_id=row["job_id"],
            data=data,
            status=row["status"],
            progress=row.get("progress") or 0,
            attempts=row.get("attempts") or 0,
            result=ScanReport.model_validate(result) if result else None,
            error=row.get("error"),
            created_at=row["created_at"],
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
            failed_at=row.get("failed_at"),
        )

    async def create_job(self, job: ScanJob) -> str:
        """
        Create a new scan job record.

        Args:
            job: ScanJob to persist

        Returns:
            The job_id of the created job

        Raises:
            DatabaseError: If creation fails
        """
        try:
            result = self.supabase.table(JOBS_TABLE).insert(self._job_to_row(job)).execute()

            if not result.data:
                raise DatabaseError("Failed to insert job into database")

            logger.info(f"Created scan job {job.job_id}")
            return job.job_id

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to create job: {e}")

    async def get_job(self, job_id: str) -> Optional[ScanJob]:
        """
        Retrieve a job by ID.

        Args:
            job_id: The job ID to retrieve

        Returns:
            ScanJob if found, None otherwise
        """
        try:
            result = self.supabase.table(JOBS_TABLE).select("*").eq("job_id", job_id).execute()

            if not result.data:
                return None

            return self._row_to_job(result.data[0])

        except Exception as e:
            logger.error(f"Failed to get job {job_id}: {e}")
            return None

    async def get_jobs_by_status(self, status: str, limit: Optional[int] = None) -> List[ScanJob]:
        """
        Retrieve jobs filtered by status, oldest first.

        Args:
            status: Status to filter by
            limit: Maximum number of jobs to return (optional)

        Returns:
            List of ScanJob records matching the status
        """
        try:
            query = (
                self.supabase.table(JOBS_TABLE)
                .select("*")
                .eq("status", status)
                .order("created_at")
            )
            if limit is not None:
                query = query.limit(limit)
            result = query.execute()

            return [self._row_to_job(row) for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to get jobs by status {status}: {e}")
            return []

    async def claim_next_job(self) -> Optional[ScanJob]:
        """
        Atomically move the oldest queued job to ``processing``.

        The update is conditional on the job still being queued, so two workers
        cannot claim the same job.

        Returns:
            The claimed ScanJob, or None if nothing is queued
        """
        for candidate in await self.get_jobs_by_status("queued", limit=5):
            try:
                result = (
                    self.supabase.table(JOBS_TABLE)
                    .update({"status": "processing", "started_at": utc_now().isoformat()})
                    .eq("job_id", candidate.job_id)
                    .eq("status", "queued")
                    .execute()
                )
            except Exception as e:
                raise DatabaseError(f"Failed to claim job {candidate.job_id}: {e}")

            if result.data:
                return self._row_to_job(result.data[0])
        return None

    async def _update_job(self, job_id: str, fields: Dict[str, Any]) -> bool:
        try:
            result = self.supabase.table(JOBS_TABLE).update(fields).eq("job_id", job_id).execute()
            return bool(result.data)
        except Exception as e:
            raise DatabaseError(f"Failed to update job {job_id}: {e}")

    async def mark_job_processing(self, job_id: str, attempt: int) -> bool:
        """Set a job to processing with progress reset for a new attempt."""
        return await self._update_job(
            job_id,
            {
                "status": "processing",
                "started_at": utc_now().isoformat(),
                "progress": 0,
                "attempts": attempt,
                "error": None,
                "failed_at": None,
            },
        )

    async def update_job_progress(self, job_id: str, progress: int) -> bool:
        """
        Raise a job's stored progress.

        The write only applies while the stored value is lower, so progress
        never moves backwards.

        Returns:
            True if the stored value changed
        """
        try:
            result = (
                self.supabase.table(JOBS_TABLE)
                .update({"progress": progress})
                .eq("job_id", job_id)
                .lt("progress", progress)
                .execute()
            )
            return bool(result.data)
        except Exception as e:
            logger.error(f"Failed to update progress of job {job_id}: {e}")
            return False

    async def mark_job_completed(self, job_id: str, report: ScanReport) -> bool:
        """Store the final report and mark the job completed."""
        return await self._update_job(
            job_id,
            {
                "status": "completed",
                "progress": 100,
                "completed_at": utc_now().isoformat(),
                "result": report.model_dump(mode="json", by_alias=True),
                "error": None,
            },
        )

    async def mark_job_failed(self, job_id: str, error_message: str) -> bool:
        """Record a failure message and mark the job failed."""
        return await self._update_job(
            job_id,
            {
                "status": "failed",
                "failed_at": utc_now().isoformat(),
                "error": error_message,
            },
        )

    # ==================== CHANNELS ====================

    async def get_channel(self, channel_doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a channel aggregate record.

        Returns:
            The channel row, or None if missing
        """
        try:
            return await self._read_channel(channel_doc_id)
        except DatabaseError as e:
            logger.error(str(e))
            return None

    async def _read_channel(self, channel_doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.supabase.table(CHANNELS_TABLE).select("*").eq("id", channel_doc_id).execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get channel {channel_doc_id}: {e}")
        return result.data[0] if result.data else None

    async def record_channel_scan(self, channel_doc_id: str, report: ScanReport) -> int:
        """
        Fold a finished scan into the channel aggregate.

        Increments ``total_scans`` and replaces the latest summary and full
        results. Read then write: callers must not scan the same channel
        concurrently.

        Returns:
            The new total_scans value

        Raises:
            DatabaseError: If the channel cannot be read or updated
        """
        channel = await self._read_channel(channel_doc_id)
        total_scans = int((channel or {}).get("total_scans") or 0) + 1
        scanned_at = report.scanned_at.isoformat()

        fields = {
            "total_scans": total_scans,
            "broken_links": report.statistics.broken_links,
            "last_scan": scanned_at,
            "last_scan_results": report.summary().model_dump(mode="json", by_alias=True),
            "scan_results": [
                r.model_dump(mode="json", by_alias=True) for r in report.results
            ],
            "last_updated": scanned_at,
        }

        try:
            if channel is None:
                result = (
                    self.supabase.table(CHANNELS_TABLE)
                    .insert({"id": channel_doc_id, "channel_id": report.channel_id, **fields})
                    .execute()
                )
            else:
                result = (
                    self.supabase.table(CHANNELS_TABLE)
                    .update(fields)
                    .eq("id", channel_doc_id)
                    .execute()
                )
        except Exception as e:
            raise DatabaseError(f"Failed to update channel {channel_doc_id}: {e}")

        if not result.data:
            raise DatabaseError(f"Channel {channel_doc_id} was not updated")

        logger.info(
            f"Channel {channel_doc_id}: scan #{total_scans}, "
            f"{report.statistics.broken_links} broken links"
        )
        return total_scans


# Factory function for creating DatabaseService with settings
def create_database_service() -> DatabaseService:
    """
    Create a DatabaseService instance using application settings.

    Returns:
        Configured DatabaseService instance
    """
    from supabase import create_client

    from linkguard.config import get_settings

    settings = get_settings()
    supabase_client = create_client(settings.supabase_url, settings.supabase_key)
    return DatabaseService(supabase_client=supabase_client)
