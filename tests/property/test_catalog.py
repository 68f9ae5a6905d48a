"""Property-based tests for channel upload listing.

Feature: linkguard
Property 5: Catalog Paging and Date Window
"""

from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings, strategies as st

from linkguard.services.catalog import PAGE_SIZE, CatalogFetcher, extract_channel_identifier
from linkguard.services.credentials import CredentialPool
from linkguard.utils.errors import ChannelNotFoundError, VideoDetailFetchError
from linkguard.utils.events import RecordingEventSink
from tests.conftest import BASE_TIME, CHANNEL_ID, FakeYouTube, make_video


def make_catalog(fake: FakeYouTube, events=None) -> CatalogFetcher:
    pool = CredentialPool(["key-1"], client=fake.client())
    return CatalogFetcher(pool, events=events)


class TestProperty5CatalogPaging:
    """Property 5: Catalog Paging and Date Window.

    *For any* channel size and requested count, list_items SHALL return
    min(count, matching uploads) items in upload order, each inside the
    requested date window.
    """

    @settings(max_examples=30, deadline=None)
    @given(
        total=st.integers(min_value=0, max_value=180),
        requested=st.integers(min_value=1, max_value=200),
    )
    @pytest.mark.asyncio
    async def test_returns_requested_count(self, total: int, requested: int) -> None:
        fake = FakeYouTube(videos=[make_video(i) for i in range(total)])
        items = await make_catalog(fake).list_items(CHANNEL_ID, requested)

        assert len(items) == min(total, requested)
        assert [v.video_id for v in items] == [f"vid{i:05d}" for i in range(len(items))]
        pages = fake.keys_used("playlistItems")
        assert len(pages) <= max(1, -(-min(total, requested) // PAGE_SIZE))

    @settings(max_examples=30, deadline=None)
    @given(
        start_day=st.integers(min_value=0, max_value=120),
        span=st.integers(min_value=0, max_value=60),
        requested=st.integers(min_value=1, max_value=150),
    )
    @pytest.mark.asyncio
    async def test_date_window_is_inclusive(self, start_day: int, span: int, requested: int) -> None:
        fake = FakeYouTube(videos=[make_video(i) for i in range(150)])
        end = BASE_TIME - timedelta(days=start_day)
        start = end - timedelta(days=span)

        items = await make_catalog(fake).list_items(CHANNEL_ID, requested, start, end)

        in_window = [i for i in range(150) if start_day <= i <= start_day + span]
        assert [v.video_id for v in items] == [f"vid{i:05d}" for i in in_window[:requested]]
        for video in items:
            assert start <= video.published_at <= end


class TestCatalogFetcher:
    @pytest.mark.asyncio
    async def test_naive_window_bounds_are_utc(self) -> None:
        fake = FakeYouTube(videos=[make_video(i) for i in range(5)])
        end = datetime(2024, 1, 1)
        start = datetime(2023, 12, 30)

        items = await make_catalog(fake).list_items(CHANNEL_ID, 10, start, end)

        assert [v.video_id for v in items] == ["vid00000", "vid00001", "vid00002"]

    @pytest.mark.asyncio
    async def test_unknown_channel_raises(self) -> None:
        fake = FakeYouTube(videos=[make_video(0)])
        with pytest.raises(ChannelNotFoundError):
            await make_catalog(fake).list_items("UC" + "z" * 22, 10)

    @pytest.mark.asyncio
    async def test_page_events_count_items(self) -> None:
        fake = FakeYouTube(videos=[make_video(i) for i in range(120)])
        events = RecordingEventSink()

        await make_catalog(fake, events).list_items(CHANNEL_ID, 120)

        assert [e.fields["count"] for e in events.of("catalog.page_fetched")] == [50, 50, 20]
        assert events.metrics.videos_fetched == 120

    @pytest.mark.asyncio
    async def test_video_details_include_description(self) -> None:
        fake = FakeYouTube(videos=[make_video(0, description="See https://example.com")])
        video = await make_catalog(fake).get_video_details("vid00000")

        assert video is not None
        assert video.description == "See https://example.com"
        assert video.url == "https://www.youtube.com/watch?v=vid00000"
        assert video.published_at == BASE_TIME

    @pytest.mark.asyncio
    async def test_missing_video_returns_none(self) -> None:
        fake = FakeYouTube(videos=[make_video(0)])
        fake.missing_videos.add("vid00000")
        assert await make_catalog(fake).get_video_details("vid00000") is None

    @pytest.mark.asyncio
    async def test_failed_video_details_raise(self) -> None:
        fake = FakeYouTube(videos=[make_video(0)])
        fake.failing_videos.add("vid00000")
        with pytest.raises(VideoDetailFetchError):
            await make_catalog(fake).get_video_details("vid00000")

    @pytest.mark.asyncio
    async def test_bulk_details_chunk_ids(self) -> None:
        fake = FakeYouTube(videos=[make_video(i) for i in range(75)])
        ids = [f"vid{i:05d}" for i in range(75)]

        videos = await make_catalog(fake).get_videos_details(ids)

        assert [v.video_id for v in videos] == ids
        assert len(fake.keys_used("videos")) == 2

    @pytest.mark.asyncio
    async def test_resolve_channel_by_handle_url(self) -> None:
        fake = FakeYouTube()
        channel = await make_catalog(fake).resolve_channel("https://www.youtube.com/@linkguard")

        assert channel is not None
        assert channel.channel_id == CHANNEL_ID
        assert channel.subscriber_count == 1200


class TestChannelIdentifiers:
    @pytest.mark.parametrize(
        "text, expected",
        [
            (CHANNEL_ID, ("id", CHANNEL_ID)),
            (f"https://www.youtube.com/channel/{CHANNEL_ID}", ("id", CHANNEL_ID)),
            ("https://youtube.com/c/SomeShow", ("custom", "SomeShow")),
            ("https://www.youtube.com/@some.show", ("handle", "some.show")),
            ("https://www.youtube.com/user/oldname", ("user", "oldname")),
            ("@someshow", ("handle", "someshow")),
            ("someshow", ("user", "someshow")),
            ("   ", None),
        ],
    )
    def test_identifier_kinds(self, text: str, expected) -> None:
        assert extract_channel_identifier(text) == expected
