"""Scan result and report Pydantic models."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from linkguard.models.link import LinkCheckResult
from linkguard.models.video import VideoItem


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoScanResult(_CamelModel):
    """Checked links of one video that had at least one link."""

    video_id: str
    video_title: str
    video_url: str
    published_at: Optional[datetime] = None
    links: List[LinkCheckResult] = Field(min_length=1)

    @classmethod
    def for_video(cls, video: VideoItem, links: List[LinkCheckResult]) -> "VideoScanResult":
        return cls(
            video_id=video.video_id,
            video_title=video.title,
            video_url=video.url,
            published_at=video.published_at,
            links=links,
        )


class ScanStatistics(_CamelModel):
    """Link counters of a scan."""

    total_links: int = 0
    working_links: int = 0
    warning_links: int = 0
    broken_links: int = 0

    @classmethod
    def from_links(cls, links: Iterable[LinkCheckResult]) -> "ScanStatistics":
        """Count link classifications. Order independent."""
        total = working = warning = broken = 0
        for link in links:
            total += 1
            if link.status == "broken":
                broken += 1
            elif link.status == "warning":
                warning += 1
            else:
                working += 1
        return cls(
            total_links=total,
            working_links=working,
            warning_links=warning,
            broken_links=broken,
        )

    @classmethod
    def from_results(cls, results: Iterable[VideoScanResult]) -> "ScanStatistics":
        """Sum link classifications across video results."""
        return cls.from_links(link for result in results for link in result.links)


class ScanSummary(_CamelModel):
    """Channel-level summary of the most recent scan."""

    scanned_videos: int
    videos_with_links: int
    total_links: int
    broken_links: int
    warning_links: int
    working_links: int
    scanned_at: datetime


class ScanReport(_CamelModel):
    """Aggregated output of one scan job."""

    success: bool = True
    channel_id: str
    scanned_videos: int = 0
    videos_with_links: int = 0
    skipped_videos: int = 0
    statistics: ScanStatistics = Field(default_factory=ScanStatistics)
    results: List[VideoScanResult] = Field(default_factory=list)
    scanned_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def build(
        cls,
        channel_id: str,
        scanned_videos: int,
        results: List[VideoScanResult],
        skipped_videos: int = 0,
    ) -> "ScanReport":
        return cls(
            channel_id=channel_id,
            scanned_videos=scanned_videos,
            videos_with_links=len(results),
            skipped_videos=skipped_videos,
            statistics=ScanStatistics.from_results(results),
            results=results,
        )

    def summary(self) -> ScanSummary:
        return ScanSummary(
            scanned_videos=self.scanned_videos,
            videos_with_links=self.videos_with_links,
            total_links=self.statistics.total_links,
            broken_links=self.statistics.broken_links,
            warning_links=self.statistics.warning_links,
            working_links=self.statistics.working_links,
            scanned_at=self.scanned_at,
        )
