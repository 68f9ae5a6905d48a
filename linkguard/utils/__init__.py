"""Utility modules for LinkGuard."""

from linkguard.utils.errors import (
    AllCredentialsExhaustedError,
    ChannelNotFoundError,
    DatabaseError,
    LinkGuardError,
    NoCredentialsError,
    QueueError,
    QuotaExhaustedError,
    VideoDetailFetchError,
    YouTubeAPIError,
)
from linkguard.utils.retry import with_retry

__all__ = [
    "LinkGuardError",
    "YouTubeAPIError",
    "QuotaExhaustedError",
    "AllCredentialsExhaustedError",
    "NoCredentialsError",
    "ChannelNotFoundError",
    "VideoDetailFetchError",
    "DatabaseError",
    "QueueError",
    "with_retry",
]
