"""
LinkGuard scan worker

Claims queued scan jobs from the job store and runs them until stopped.

Usage:
    python -m linkguard.worker          # Run until SIGINT/SIGTERM
    python -m linkguard.worker --once   # Process a single job and exit
"""

import argparse
import asyncio
import logging
import signal

from linkguard.config import get_settings
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.credentials import create_credential_pool
from linkguard.services.database import create_database_service
from linkguard.services.link_checker import create_link_checker
from linkguard.services.orchestrator import BatchOrchestrator
from linkguard.services.queue import ScanQueue, create_scan_queue
from linkguard.services.scanner import ScanJobManager
from linkguard.utils.events import LoggingEventSink

logger = logging.getLogger(__name__)


def build_queue(events: LoggingEventSink) -> ScanQueue:
    """Wire the credential pool, catalog, checker, orchestrator and job manager."""
    settings = get_settings()
    pool = create_credential_pool(events=events)
    catalog = CatalogFetcher(pool, events=events)
    orchestrator = BatchOrchestrator(
        catalog=catalog,
        checker=create_link_checker(events=events),
        batch_size=settings.batch_size,
        max_parallel_batches=settings.max_parallel_batches,
        events=events,
    )
    db = create_database_service()
    manager = ScanJobManager(db=db, catalog=catalog, orchestrator=orchestrator, events=events)
    return create_scan_queue(db=db, manager=manager, events=events)


async def run_worker(once: bool = False) -> int:
    """Process jobs until a stop signal arrives, or after one job with ``once``."""
    events = LoggingEventSink()
    queue = build_queue(events)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))

    try:
        processed = await queue.process(stop, once=once)
    finally:
        orchestrator = queue.manager.orchestrator
        await orchestrator.checker.aclose()
        await orchestrator.catalog.pool.aclose()
        logger.info(f"Scan metrics: {events.metrics.to_dict()}")
    return processed


def main():
    parser = argparse.ArgumentParser(description="LinkGuard scan worker")
    parser.add_argument("--once", action="store_true", help="Process a single job and exit")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    asyncio.run(run_worker(once=args.once))


if __name__ == "__main__":
    main()
