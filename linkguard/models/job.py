"""Scan job Pydantic models."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from linkguard.models.scan import ScanReport, utc_now

JobState = Literal["queued", "processing", "completed", "failed"]
ScanMode = Literal["count", "dateRange"]

TERMINAL_STATES = frozenset({"completed", "failed"})

MAX_VIDEO_COUNT = 10000


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScanJobData(BaseModel):
    """Payload submitted to the scan queue."""

    job_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    channel_name: str = "Unknown Channel"
    channel_doc_id: str = Field(min_length=1)
    video_count: int = Field(ge=1, le=MAX_VIDEO_COUNT)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    scan_mode: ScanMode = "count"

    @model_validator(mode="after")
    def check_date_window(self) -> "ScanJobData":
        """Reject windows that end before they start."""
        if self.start_date and self.end_date:
            if as_utc(self.end_date) < as_utc(self.start_date):
                raise ValueError("end_date must not be before start_date")
        return self


class ScanJob(BaseModel):
    """Status tracking for one scan job."""

    job_id: str = Field(min_length=1)
    data: ScanJobData
    status: JobState = "queued"
    progress: int = Field(default=0, ge=0, le=100)
    attempts: int = 0
    result: Optional[ScanReport] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES
