"""Batch orchestration of per-video link extraction and checking."""

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Literal, Optional, Sequence

from linkguard.models.scan import VideoScanResult
from linkguard.models.video import VideoItem
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.extractor import extract_links
from linkguard.services.link_checker import LinkChecker
from linkguard.utils.errors import AllCredentialsExhaustedError, LinkGuardError
from linkguard.utils.events import NullEventSink, ScanEventSink
from linkguard.utils.pool import gather_bounded, split_into_batches

logger = logging.getLogger(__name__)

BATCH_SIZE = 50
MAX_PARALLEL_BATCHES = 100

# Progress checkpoints, in percent of the whole job
DETAILS_START = 10
CHECKS_START = 40
PARALLEL_START = 15
RUN_END = 85

ProgressCallback = Callable[[int], Awaitable[None]]
ScanMode = Literal["sequential", "parallel"]


async def _no_progress(progress: int) -> None:
    return None


@dataclass
class ScanPlan:
    """How a list of items will be processed."""

    mode: ScanMode
    batches: List[List[VideoItem]]
    concurrency: int

    @property
    def total_items(self) -> int:
        return sum(len(batch) for batch in self.batches)


@dataclass
class _PendingVideo:
    video: VideoItem
    links: List[str]


@dataclass
class BatchOutcome:
    """Results of one batch plus the items that were dropped."""

    results: List[VideoScanResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class BatchOrchestrator:
    """
    Drive detail fetching, link extraction and link checking for a scan.

    Small scans run as a single batch with fine-grained progress; large scans
    split into batches of ``batch_size`` that run concurrently, at most
    ``max_parallel_batches`` at a time. Both go through the same bounded pool.
    """

    def __init__(
        self,
        catalog: CatalogFetcher,
        checker: LinkChecker,
        batch_size: int = BATCH_SIZE,
        max_parallel_batches: int = MAX_PARALLEL_BATCHES,
        events: Optional[ScanEventSink] = None,
    ) -> None:
        self.catalog = catalog
        self.checker = checker
        self.batch_size = batch_size
        self.max_parallel_batches = max_parallel_batches
        self.events = events or NullEventSink()

    def plan(self, items: Sequence[VideoItem]) -> ScanPlan:
        """Pick the processing mode for ``items``."""
        if len(items) <= self.batch_size:
            return ScanPlan(mode="sequential", batches=[list(items)], concurrency=1)
        return ScanPlan(
            mode="parallel",
            batches=split_into_batches(items, self.batch_size),
            concurrency=self.max_parallel_batches,
        )

    async def run(
        self,
        items: Sequence[VideoItem],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[VideoScanResult]:
        """Scan every item and return results for videos that have links."""
        outcome = await self.scan(items, on_progress)
        return outcome.results

    async def scan(
        self,
        items: Sequence[VideoItem],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """
        Scan every item.

        Args:
            items: Videos to scan
            on_progress: Awaited with job progress percentages

        Returns:
            BatchOutcome with one VideoScanResult per video that has links
            and the ids of videos dropped because their details failed

        Raises:
            AllCredentialsExhaustedError: If the key pool runs dry mid-scan
        """
        report = on_progress or _no_progress
        plan = self.plan(items)
        total_batches = len(plan.batches)

        logger.info(
            f"Scanning {len(items)} videos in {plan.mode} mode "
            f"({total_batches} batch(es), concurrency {plan.concurrency})"
        )
        self.events.emit(
            "scan.planned", mode=plan.mode, videos=len(items), batches=total_batches
        )

        if plan.mode == "sequential":
            detail_progress = self._scaled(report, DETAILS_START, CHECKS_START)
            check_progress = self._scaled(report, CHECKS_START, RUN_END)
        else:
            detail_progress = check_progress = None
            await report(PARALLEL_START)

        async def run_batch(indexed: tuple) -> BatchOutcome:
            index, batch = indexed
            return await self._process_batch(
                batch, index, total_batches, detail_progress, check_progress
            )

        outcomes = await gather_bounded(
            list(enumerate(plan.batches)), run_batch, plan.concurrency
        )
        await report(RUN_END)

        combined = BatchOutcome()
        for outcome in outcomes:
            combined.results.extend(outcome.results)
            combined.skipped.extend(outcome.skipped)
        return combined

    @staticmethod
    def _scaled(report: ProgressCallback, start: int, end: int) -> Callable[[int, int], Awaitable[None]]:
        async def scaled(done: int, total: int) -> None:
            if total <= 0:
                return
            await report(start + (done * (end - start)) // total)

        return scaled

    async def _process_batch(
        self,
        batch: List[VideoItem],
        index: int,
        total_batches: int,
        detail_progress: Optional[Callable[[int, int], Awaitable[None]]] = None,
        check_progress: Optional[Callable[[int, int], Awaitable[None]]] = None,
    ) -> BatchOutcome:
        """Fetch details for every video in the batch, then check their links."""
        started = time.monotonic()
        outcome = BatchOutcome()
        pending: List[_PendingVideo] = []

        logger.debug(f"[Batch {index + 1}/{total_batches}] Processing {len(batch)} videos")
        self.events.emit("batch.started", index=index, videos=len(batch))

        for position, item in enumerate(batch):
            video = await self._fetch_details(item)
            if video is None:
                outcome.skipped.append(item.video_id)
            else:
                links = extract_links(video.description)
                if links:
                    pending.append(_PendingVideo(video=video, links=links))
            if detail_progress is not None:
                await detail_progress(position + 1, len(batch))

        for position, entry in enumerate(pending):
            checked = await self.checker.check_many(entry.links)
            outcome.results.append(VideoScanResult.for_video(entry.video, checked))
            if check_progress is not None:
                await check_progress(position + 1, len(pending))

        duration = time.monotonic() - started
        logger.debug(
            f"[Batch {index + 1}/{total_batches}] Completed in {duration:.1f}s - "
            f"{len(outcome.results)} videos with links"
        )
        self.events.emit(
            "batch.completed",
            index=index,
            videos_with_links=len(outcome.results),
            skipped=len(outcome.skipped),
            seconds=round(duration, 3),
        )
        return outcome

    async def _fetch_details(self, item: VideoItem) -> Optional[VideoItem]:
        """
        Fetch full details of one video.

        A failed fetch drops the video from the scan; only pool exhaustion
        propagates.
        """
        try:
            video = await self.catalog.get_video_details(item.video_id)
        except AllCredentialsExhaustedError:
            raise
        except (LinkGuardError, ValueError) as e:
            logger.warning(f"Skipping video {item.video_id}: {e}")
            self.events.emit("video.skipped", video_id=item.video_id, reason=str(e))
            return None

        if video is None:
            logger.warning(f"Skipping video {item.video_id}: no details returned")
            self.events.emit("video.skipped", video_id=item.video_id, reason="not found")
            return None
        return video
