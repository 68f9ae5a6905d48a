"""Channel upload listing through the YouTube Data API."""

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from linkguard.models.job import as_utc
from linkguard.models.video import ChannelInfo, VideoItem
from linkguard.services.credentials import CredentialPool
from linkguard.utils.errors import ChannelNotFoundError, VideoDetailFetchError, YouTubeAPIError
from linkguard.utils.events import NullEventSink, ScanEventSink

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
DETAILS_CHUNK_SIZE = 50

CHANNEL_ID_PATTERN = re.compile(r"^UC[\w-]{22}$")
CHANNEL_URL_PATTERNS = [
    ("id", re.compile(r"youtube\.com/channel/(UC[\w-]{22})")),
    ("custom", re.compile(r"youtube\.com/c/([\w-]+)")),
    ("handle", re.compile(r"youtube\.com/@([\w.-]+)")),
    ("user", re.compile(r"youtube\.com/user/([\w-]+)")),
]


def extract_channel_identifier(text: str) -> Optional[Tuple[str, str]]:
    """
    Work out what kind of channel reference a user typed.

    Returns:
        (kind, value) where kind is one of ``id``, ``custom``, ``handle`` or
        ``user``; None for blank input
    """
    text = (text or "").strip()
    if not text:
        return None
    if CHANNEL_ID_PATTERN.match(text):
        return "id", text
    for kind, pattern in CHANNEL_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return kind, match.group(1)
    if text.startswith("@"):
        return "handle", text[1:]
    return "user", text


def _in_window(
    published_at: Optional[datetime],
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    if start is None and end is None:
        return True
    if published_at is None:
        return False
    published = as_utc(published_at)
    if start is not None and published < as_utc(start):
        return False
    if end is not None and published > as_utc(end):
        return False
    return True


class CatalogFetcher:
    """Read channel and video data through a CredentialPool."""

    def __init__(self, pool: CredentialPool, events: Optional[ScanEventSink] = None) -> None:
        self.pool = pool
        self.events = events or NullEventSink()

    async def get_uploads_playlist_id(self, channel_id: str) -> Optional[str]:
        """Resolve the uploads playlist of a channel, None if it has none."""
        data = await self.pool.request("channels", {"part": "contentDetails", "id": channel_id})
        items = data.get("items") or []
        if not items:
            return None
        related = (items[0].get("contentDetails") or {}).get("relatedPlaylists") or {}
        return related.get("uploads")

    async def list_items(
        self,
        channel_id: str,
        max_results: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[VideoItem]:
        """
        List a channel's uploads, newest first.

        With a date window, items outside it are dropped before they count
        toward ``max_results``; paging continues until enough items match or
        the playlist ends.

        Args:
            channel_id: Channel to list
            max_results: Maximum number of items to return
            start_date: Earliest publish time to include (inclusive)
            end_date: Latest publish time to include (inclusive)

        Returns:
            At most ``max_results`` VideoItems

        Raises:
            ChannelNotFoundError: If the uploads playlist cannot be resolved
            AllCredentialsExhaustedError: If the key pool runs dry
            YouTubeAPIError: For other API errors
        """
        logger.info(f"Fetching up to {max_results} videos from channel {channel_id}")

        try:
            playlist_id = await self.get_uploads_playlist_id(channel_id)
        except YouTubeAPIError as e:
            if e.status_code == 404:
                raise ChannelNotFoundError(channel_id) from e
            raise
        if not playlist_id:
            raise ChannelNotFoundError(channel_id)

        videos: List[VideoItem] = []
        page_token: Optional[str] = None
        page = 0

        while len(videos) < max_results:
            page += 1
            params: Dict[str, str] = {
                "part": "snippet",
                "playlistId": playlist_id,
                "maxResults": str(PAGE_SIZE),
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self.pool.request("playlistItems", params)
            items = data.get("items") or []
            if not items:
                break

            matched = 0
            for item in items:
                snippet = item.get("snippet") or {}
                video_id = (snippet.get("resourceId") or {}).get("videoId")
                if not video_id:
                    continue
                video = VideoItem.from_api(video_id, snippet)
                if _in_window(video.published_at, start_date, end_date):
                    videos.append(video)
                    matched += 1

            self.events.emit(
                "catalog.page_fetched", channel_id=channel_id, page=page, count=matched
            )
            logger.debug(f"Page {page}: {matched} videos kept (total {len(videos)})")

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        videos = videos[:max_results]
        logger.info(f"Fetched {len(videos)} videos from channel {channel_id}")
        return videos

    async def get_video_details(self, video_id: str) -> Optional[VideoItem]:
        """
        Fetch one video's full snippet, including the description.

        Returns:
            VideoItem, or None if the video does not exist or is private

        Raises:
            VideoDetailFetchError: If the API call fails
            AllCredentialsExhaustedError: If the key pool runs dry
        """
        try:
            data = await self.pool.request("videos", {"part": "snippet", "id": video_id})
        except YouTubeAPIError as e:
            raise VideoDetailFetchError(video_id, str(e)) from e

        items = data.get("items") or []
        if not items:
            return None
        return VideoItem.from_api(video_id, items[0].get("snippet") or {})

    async def get_videos_details(self, video_ids: List[str]) -> List[VideoItem]:
        """Fetch many videos, 50 ids per request."""
        videos: List[VideoItem] = []
        for i in range(0, len(video_ids), DETAILS_CHUNK_SIZE):
            chunk = video_ids[i : i + DETAILS_CHUNK_SIZE]
            data = await self.pool.request("videos", {"part": "snippet", "id": ",".join(chunk)})
            for item in data.get("items") or []:
                videos.append(VideoItem.from_api(item["id"], item.get("snippet") or {}))
        return videos

    async def get_channel(self, channel_id: str) -> Optional[ChannelInfo]:
        data = await self.pool.request(
            "channels", {"part": "snippet,contentDetails,statistics", "id": channel_id}
        )
        items = data.get("items") or []
        return ChannelInfo.from_api(items[0]) if items else None

    async def get_channel_by_handle(self, handle: str) -> Optional[ChannelInfo]:
        data = await self.pool.request(
            "channels", {"part": "snippet,contentDetails,statistics", "forHandle": handle}
        )
        items = data.get("items") or []
        return ChannelInfo.from_api(items[0]) if items else None

    async def get_channel_by_username(self, username: str) -> Optional[ChannelInfo]:
        data = await self.pool.request(
            "channels", {"part": "snippet,contentDetails,statistics", "forUsername": username}
        )
        items = data.get("items") or []
        return ChannelInfo.from_api(items[0]) if items else None

    async def resolve_channel(self, text: str) -> Optional[ChannelInfo]:
        """Resolve a channel id, URL, handle or username to channel details."""
        identifier = extract_channel_identifier(text)
        if identifier is None:
            return None
        kind, value = identifier
        if kind == "id":
            return await self.get_channel(value)
        if kind == "handle":
            return await self.get_channel_by_handle(value)
        channel = await self.get_channel_by_username(value)
        if channel is None:
            channel = await self.get_channel_by_handle(value)
        return channel
