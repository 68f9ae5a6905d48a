"""Pydantic data models for LinkGuard."""

from linkguard.models.credential import ApiCredential, PoolStatus
from linkguard.models.job import ScanJob, ScanJobData
from linkguard.models.link import LinkCheckResult, LinkStatus
from linkguard.models.scan import ScanReport, ScanStatistics, ScanSummary, VideoScanResult
from linkguard.models.video import ChannelInfo, VideoItem

__all__ = [
    "ApiCredential",
    "PoolStatus",
    "ScanJob",
    "ScanJobData",
    "LinkCheckResult",
    "LinkStatus",
    "ScanReport",
    "ScanStatistics",
    "ScanSummary",
    "VideoScanResult",
    "ChannelInfo",
    "VideoItem",
]
