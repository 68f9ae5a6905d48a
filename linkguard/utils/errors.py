"""Custom exception classes for LinkGuard."""


class LinkGuardError(Exception):
    """Base exception for all application errors."""

    pass


class YouTubeAPIError(LinkGuardError):
    """YouTube Data API returned an error."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(f"YouTube API error {status_code}: {message}")


class QuotaExhaustedError(YouTubeAPIError):
    """A single API key hit its quota."""

    pass


class AllCredentialsExhaustedError(LinkGuardError):
    """Every API key in the pool has exceeded its quota."""

    def __init__(self, message: str = "All YouTube API keys have exceeded their quota") -> None:
        super().__init__(message)


class NoCredentialsError(LinkGuardError):
    """No YouTube API keys are configured."""

    def __init__(self, message: str = "No YouTube API keys available") -> None:
        super().__init__(message)


class ChannelNotFoundError(LinkGuardError):
    """The channel's uploads playlist could not be resolved."""

    def __init__(self, channel_id: str) -> None:
        self.channel_id = channel_id
        super().__init__(f"Could not find uploads playlist for channel {channel_id}")


class VideoDetailFetchError(LinkGuardError):
    """Fetching the full details of one video failed."""

    def __init__(self, video_id: str, reason: str) -> None:
        self.video_id = video_id
        super().__init__(f"Failed to fetch details for video {video_id}: {reason}")


class DatabaseError(LinkGuardError):
    """Errors from the job or channel store."""

    pass


class QueueError(LinkGuardError):
    """Errors from the scan job queue."""

    pass
