"""Property-based tests for API error handling.

Property 12: Invalid API Input Error Response
*For any* API request with invalid input (missing required fields, wrong types, invalid values),
the response SHALL have an HTTP status code in {400, 404, 422} and SHALL include a JSON body
with error details.
"""

from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient
from hypothesis import given, settings, strategies as st

from linkguard.api.deps import get_catalog, get_credential_pool, get_link_checker, get_scan_queue
from linkguard.main import app
from linkguard.models.job import MAX_VIDEO_COUNT
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.credentials import CredentialPool
from linkguard.services.database import DatabaseService
from linkguard.services.link_checker import LinkChecker
from linkguard.services.queue import ScanQueue
from tests.conftest import CHANNEL_ID, FakeYouTube, MockSupabaseClient, link_site

# Strategy for invalid video counts (out of range)
invalid_counts = st.one_of(st.integers(max_value=0), st.integers(min_value=10001))

# Strategy for non-string types that should fail validation
non_string_types = st.one_of(
    st.integers(),
    st.lists(st.integers(), max_size=3),
    st.dictionaries(st.text(max_size=5), st.integers(), max_size=3),
    st.none(),
)


@pytest.fixture
def fake() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def pool(fake: FakeYouTube) -> CredentialPool:
    return CredentialPool(["key-1", "key-2"], client=fake.client())


def override_dependencies(pool: CredentialPool) -> None:
    """Point every API dependency at in-memory fakes."""
    db = DatabaseService(MockSupabaseClient())
    queue = ScanQueue(db=db, manager=None)  # type: ignore[arg-type]
    checker = LinkChecker(
        client=httpx.AsyncClient(
            transport=httpx.MockTransport(link_site({"gone.example": 404, "twitter.com": 429}))
        ),
        retry_delay=0,
    )

    app.dependency_overrides[get_scan_queue] = lambda: queue
    app.dependency_overrides[get_link_checker] = lambda: checker
    app.dependency_overrides[get_credential_pool] = lambda: pool
    app.dependency_overrides[get_catalog] = lambda: CatalogFetcher(pool)


@pytest.fixture
def client(pool: CredentialPool) -> Iterator[TestClient]:
    override_dependencies(pool)
    yield TestClient(app)
    app.dependency_overrides.clear()


def scan_body(**overrides) -> dict:
    body = {
        "channelId": CHANNEL_ID,
        "userId": "user-001",
        "channelDocId": "channel-doc-001",
        "videoCount": 25,
    }
    body.update(overrides)
    return body


class TestProperty12InvalidAPIInputErrorResponse:
    """
    Property 12: Invalid API Input Error Response

    *For any* API request with invalid input, the response SHALL have an HTTP
    status code in {400, 404, 422} and SHALL include a JSON body with error details.
    """

    @given(count=invalid_counts)
    @settings(max_examples=50, deadline=None)
    def test_video_count_out_of_range_returns_422(self, count: int) -> None:
        override_dependencies(CredentialPool(["key-1"]))
        try:
            response = TestClient(app).post("/scan-channel-async", json=scan_body(videoCount=count))
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "ValidationError"
        assert any("videoCount" in e["loc"] for e in body["errors"])

    @given(value=non_string_types)
    @settings(max_examples=50, deadline=None)
    def test_wrong_type_channel_id_returns_422(self, value) -> None:
        override_dependencies(CredentialPool(["key-1"]))
        try:
            response = TestClient(app).post("/scan-channel-async", json=scan_body(channelId=value))
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"

    @pytest.mark.parametrize("field", ["channelId", "userId", "channelDocId"])
    def test_missing_required_field_returns_422(self, client: TestClient, field: str) -> None:
        body = scan_body()
        del body[field]

        response = client.post("/scan-channel-async", json=body)

        assert response.status_code == 422
        assert "errors" in response.json()

    def test_reversed_date_window_returns_422(self, client: TestClient) -> None:
        response = client.post(
            "/scan-channel-async",
            json=scan_body(scanMode="dateRange", startDate="2024-02-01T00:00:00Z", endDate="2024-01-01T00:00:00Z"),
        )
        assert response.status_code == 422

    def test_too_many_links_returns_422(self, client: TestClient) -> None:
        urls = [f"https://example.com/{i}" for i in range(501)]
        assert client.post("/check-links", json={"urls": urls}).status_code == 422

    def test_unknown_job_returns_404(self, client: TestClient) -> None:
        response = client.get("/scan-status/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error_type"] == "HTTPException"


class TestScanEndpoints:
    def test_scan_is_queued_and_visible_in_status(self, client: TestClient) -> None:
        response = client.post("/scan-channel-async", json=scan_body(channelName="My Channel"))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "queued"

        status = client.get(f"/scan-status/{body['job_id']}")
        assert status.status_code == 200
        job = status.json()
        assert job["status"] == "queued"
        assert job["progress"] == 0
        assert job["channel_name"] == "My Channel"
        assert job["video_count"] == 25
        assert job["result"] is None

    def test_maximum_video_count_is_accepted(self, client: TestClient) -> None:
        accepted = client.post("/scan-channel-async", json=scan_body(videoCount=MAX_VIDEO_COUNT))
        rejected = client.post("/scan-channel-async", json=scan_body(videoCount=MAX_VIDEO_COUNT + 1))

        assert accepted.status_code == 200
        assert rejected.status_code == 422

    def test_snake_case_body_is_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/scan-channel-async",
            json={"channel_id": CHANNEL_ID, "user_id": "u", "channel_doc_id": "d", "video_count": 1},
        )
        assert response.status_code == 200


class TestLinkEndpoints:
    def test_check_link(self, client: TestClient) -> None:
        response = client.get("/check-link", params={"url": "https://gone.example/page"})

        assert response.status_code == 200
        assert response.json() == {"url": "https://gone.example/page", "status": "broken", "statusCode": 404}

    def test_check_links_summarises(self, client: TestClient) -> None:
        urls = ["https://example.com/a", "https://gone.example/b", "https://twitter.com/c"]
        response = client.post("/check-links", json={"urls": urls})

        assert response.status_code == 200
        body = response.json()
        assert [r["status"] for r in body["results"]] == ["working", "broken", "warning"]
        assert body["statistics"] == {
            "totalLinks": 3,
            "workingLinks": 1,
            "warningLinks": 1,
            "brokenLinks": 1,
        }


class TestChannelEndpoints:
    def test_credentials_status(self, client: TestClient) -> None:
        response = client.get("/credentials/status")

        assert response.status_code == 200
        assert response.json() == {"total": 2, "available": 2, "exhausted": 0, "current_index": 1}

    def test_resolve_channel(self, client: TestClient) -> None:
        response = client.get("/channels/resolve", params={"query": "@linkguard"})

        assert response.status_code == 200
        assert response.json()["channel_id"] == CHANNEL_ID

    def test_resolve_unknown_channel_returns_404(self, client: TestClient) -> None:
        response = client.get("/channels/resolve", params={"query": "@nobody"})
        assert response.status_code == 404

    def test_exhausted_pool_returns_503(self, client: TestClient, fake: FakeYouTube) -> None:
        fake.exhausted_keys.update({"key-1", "key-2"})

        response = client.get("/channels/resolve", params={"query": "@linkguard"})

        assert response.status_code == 503
        assert response.json()["error_type"] == "AllCredentialsExhaustedError"

    def test_upstream_error_returns_502(self, client: TestClient) -> None:
        def broken(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": {"message": "Backend Error"}})

        broken_pool = CredentialPool(["key-1"], client=httpx.AsyncClient(transport=httpx.MockTransport(broken)))
        app.dependency_overrides[get_catalog] = lambda: CatalogFetcher(broken_pool)

        response = client.get("/channels/resolve", params={"query": CHANNEL_ID})

        assert response.status_code == 502
        assert response.json()["error_type"] == "YouTubeAPIError"
