"""Video and channel Pydantic models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def watch_url(video_id: str) -> str:
    """Public watch URL for a video id."""
    return WATCH_URL.format(video_id=video_id)


class VideoItem(BaseModel):
    """Snapshot of one uploaded video, fetched once per scan."""

    model_config = ConfigDict(frozen=True)

    video_id: str = Field(min_length=1)
    title: str = ""
    url: str = ""
    published_at: Optional[datetime] = None
    description: str = ""

    @field_validator("video_id")
    @classmethod
    def not_whitespace(cls, v: str) -> str:
        """Validate that the id is not only whitespace."""
        if not v.strip():
            raise ValueError("video_id cannot be only whitespace")
        return v

    @classmethod
    def from_api(cls, video_id: str, snippet: dict) -> "VideoItem":
        """Build from a YouTube ``snippet`` object."""
        return cls(
            video_id=video_id,
            title=snippet.get("title") or "",
            url=watch_url(video_id),
            published_at=snippet.get("publishedAt"),
            description=snippet.get("description") or "",
        )


class ChannelInfo(BaseModel):
    """Channel details resolved from the API."""

    channel_id: str
    title: str = ""
    description: str = ""
    custom_url: str = ""
    thumbnail: str = ""
    uploads_playlist_id: Optional[str] = None
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0

    @classmethod
    def from_api(cls, item: dict) -> "ChannelInfo":
        """Build from a ``channels`` resource."""
        snippet = item.get("snippet") or {}
        statistics = item.get("statistics") or {}
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url", "")
        related = (item.get("contentDetails") or {}).get("relatedPlaylists") or {}
        return cls(
            channel_id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            custom_url=snippet.get("customUrl", ""),
            thumbnail=thumbnail,
            uploads_playlist_id=related.get("uploads"),
            subscriber_count=int(statistics.get("subscriberCount", 0) or 0),
            video_count=int(statistics.get("videoCount", 0) or 0),
            view_count=int(statistics.get("viewCount", 0) or 0),
        )
