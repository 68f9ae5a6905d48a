"""Pytest fixtures for LinkGuard tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set

import httpx
import pytest

from linkguard.models.job import ScanJob, ScanJobData
from linkguard.services.credentials import CredentialPool
from linkguard.services.database import DatabaseService

CHANNEL_ID = "UC" + "a" * 22
UPLOADS_PLAYLIST_ID = "UU" + "a" * 22
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ==================== Mock Supabase Client ====================


class MockSupabaseResponse:
    """Mock response from Supabase operations."""

    def __init__(self, data: Optional[List[Dict[str, Any]]] = None) -> None:
        self.data = data or []


class MockSupabaseQuery:
    """One chained Supabase query against an in-memory table."""

    def __init__(self, rows: List[Dict[str, Any]]) -> None:
        self._rows = rows
        self._filters: List[tuple] = []
        self._action = "select"
        self._payload: Any = None
        self._order: Optional[str] = None
        self._limit_value: Optional[int] = None

    def select(self, columns: str = "*") -> "MockSupabaseQuery":
        self._action = "select"
        return self

    def insert(self, data: Dict[str, Any]) -> "MockSupabaseQuery":
        self._action = "insert"
        self._payload = data
        return self

    def update(self, data: Dict[str, Any]) -> "MockSupabaseQuery":
        self._action = "update"
        self._payload = data
        return self

    def eq(self, field: str, value: Any) -> "MockSupabaseQuery":
        self._filters.append(("eq", field, value))
        return self

    def lt(self, field: str, value: Any) -> "MockSupabaseQuery":
        self._filters.append(("lt", field, value))
        return self

    def order(self, field: str, desc: bool = False) -> "MockSupabaseQuery":
        self._order = field
        return self

    def limit(self, count: int) -> "MockSupabaseQuery":
        self._limit_value = count
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        for op, field, value in self._filters:
            if op == "eq" and row.get(field) != value:
                return False
            if op == "lt" and not (row.get(field) is not None and row[field] < value):
                return False
        return True

    def execute(self) -> MockSupabaseResponse:
        if self._action == "insert":
            row = dict(self._payload)
            self._rows.append(row)
            return MockSupabaseResponse([dict(row)])

        matched = [row for row in self._rows if self._matches(row)]

        if self._action == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse([dict(row) for row in matched])

        if self._order:
            matched.sort(key=lambda row: row.get(self._order) or "")
        if self._limit_value is not None:
            matched = matched[: self._limit_value]
        return MockSupabaseResponse([dict(row) for row in matched])


class MockSupabaseClient:
    """Mock Supabase client for testing."""

    def __init__(self) -> None:
        self._tables: Dict[str, List[Dict[str, Any]]] = {}

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self._tables.setdefault(name, []))

    def get_all_records(self, table_name: str) -> List[Dict[str, Any]]:
        """Get all records from a table (for testing)."""
        return [dict(row) for row in self._tables.get(table_name, [])]


# ==================== Fake YouTube Data API ====================


def make_video(
    index: int,
    description: str = "",
    published_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build a fake upload, newest first when index grows."""
    return {
        "video_id": f"vid{index:05d}",
        "title": f"Video {index}",
        "description": description,
        "published_at": published_at or (BASE_TIME - timedelta(days=index)),
    }


class FakeYouTube:
    """In-memory YouTube Data API served through ``httpx.MockTransport``."""

    def __init__(
        self,
        videos: Optional[List[Dict[str, Any]]] = None,
        channel_id: str = CHANNEL_ID,
        handle: str = "linkguard",
    ) -> None:
        self.videos = videos or []
        self.channel_id = channel_id
        self.handle = handle
        self.exhausted_keys: Set[str] = set()
        self.failing_videos: Set[str] = set()
        self.missing_videos: Set[str] = set()
        self.garbled_videos: Set[str] = set()
        self.calls: List[Dict[str, str]] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def keys_used(self, endpoint: Optional[str] = None) -> List[str]:
        return [c["key"] for c in self.calls if endpoint is None or c["endpoint"] == endpoint]

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        key = params.get("key", "")
        self.calls.append({"endpoint": endpoint, "key": key})

        if key in self.exhausted_keys:
            return httpx.Response(
                403,
                json={
                    "error": {
                        "code": 403,
                        "message": "The request cannot be completed because you have exceeded your quota.",
                        "errors": [{"reason": "quotaExceeded"}],
                    }
                },
            )

        if endpoint == "channels":
            return httpx.Response(200, json={"items": self._channels(params)})
        if endpoint == "playlistItems":
            return httpx.Response(200, json=self._playlist_page(params))
        if endpoint == "videos":
            ids = params.get("id", "").split(",")
            if any(video_id in self.failing_videos for video_id in ids):
                return httpx.Response(500, json={"error": {"code": 500, "message": "Backend Error"}})
            if any(video_id in self.garbled_videos for video_id in ids):
                return httpx.Response(200, text="<html><body>Service Unavailable</body></html>")
            return httpx.Response(200, json={"items": self._video_items(ids)})
        return httpx.Response(404, json={"error": {"code": 404, "message": "Not Found"}})

    def _channels(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        matches = (
            params.get("id") == self.channel_id
            or params.get("forHandle") == self.handle
            or params.get("forUsername") == self.handle
        )
        if not matches:
            return []
        return [
            {
                "id": self.channel_id,
                "snippet": {"title": "LinkGuard Test Channel", "customUrl": f"@{self.handle}"},
                "contentDetails": {"relatedPlaylists": {"uploads": UPLOADS_PLAYLIST_ID}},
                "statistics": {"subscriberCount": "1200", "videoCount": str(len(self.videos))},
            }
        ]

    def _snippet(self, video: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "title": video["title"],
            "description": video["description"],
            "publishedAt": video["published_at"].isoformat().replace("+00:00", "Z"),
            "resourceId": {"videoId": video["video_id"]},
        }

    def _playlist_page(self, params: Dict[str, str]) -> Dict[str, Any]:
        if params.get("playlistId") != UPLOADS_PLAYLIST_ID:
            return {"items": []}
        size = int(params.get("maxResults", "5"))
        offset = int(params.get("pageToken") or 0)
        page = self.videos[offset : offset + size]
        body: Dict[str, Any] = {"items": [{"snippet": self._snippet(v)} for v in page]}
        if offset + size < len(self.videos):
            body["nextPageToken"] = str(offset + size)
        return body

    def _video_items(self, ids: List[str]) -> List[Dict[str, Any]]:
        by_id = {v["video_id"]: v for v in self.videos}
        return [
            {"id": video_id, "snippet": self._snippet(by_id[video_id])}
            for video_id in ids
            if video_id in by_id and video_id not in self.missing_videos
        ]


def link_site(routes: Dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    """
    Build a MockTransport handler for link checks.

    ``routes`` maps a host to a status code, a list of status codes served in
    turn, or an exception class to raise.
    """
    served: Dict[str, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        route = routes.get(host, 200)
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("simulated failure", request=request)
        if isinstance(route, list):
            index = served.get(host, 0)
            served[host] = index + 1
            route = route[min(index, len(route) - 1)]
        return httpx.Response(route)

    return handler


# ==================== Fixtures ====================


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    return MockSupabaseClient()


@pytest.fixture
def db_service(mock_supabase: MockSupabaseClient) -> DatabaseService:
    return DatabaseService(mock_supabase)


@pytest.fixture
def fake_youtube() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def make_pool(fake_youtube: FakeYouTube) -> Callable[..., CredentialPool]:
    """Factory for pools talking to the fake API."""

    def factory(keys: Optional[List[str]] = None, **kwargs: Any) -> CredentialPool:
        return CredentialPool(
            keys=keys or ["key-1", "key-2", "key-3"],
            client=fake_youtube.client(),
            **kwargs,
        )

    return factory


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Patch out retry sleeps and record the requested delays."""
    delays: List[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("linkguard.services.link_checker.asyncio.sleep", fake_sleep)
    monkeypatch.setattr("linkguard.utils.retry.asyncio.sleep", fake_sleep)
    return delays


@pytest.fixture
def sample_job_data() -> ScanJobData:
    """Sample scan job payload for testing."""
    return ScanJobData(
        job_id="job-001",
        user_id="user-001",
        channel_id=CHANNEL_ID,
        channel_name="LinkGuard Test Channel",
        channel_doc_id="channel-doc-001",
        video_count=10,
    )


@pytest.fixture
def sample_job(sample_job_data: ScanJobData) -> ScanJob:
    return ScanJob(job_id=sample_job_data.job_id, data=sample_job_data)
