"""FastAPI dependencies for the LinkGuard API."""

from functools import lru_cache

from linkguard.config import Settings, get_settings
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.credentials import CredentialPool, create_credential_pool
from linkguard.services.database import DatabaseService, create_database_service
from linkguard.services.link_checker import LinkChecker, create_link_checker
from linkguard.services.orchestrator import BatchOrchestrator
from linkguard.services.queue import ScanQueue, create_scan_queue
from linkguard.services.scanner import ScanJobManager
from linkguard.utils.events import LoggingEventSink


def get_settings_dep() -> Settings:
    """Dependency for application settings."""
    return get_settings()


@lru_cache
def get_event_sink() -> LoggingEventSink:
    """Process-wide event sink with running counters."""
    return LoggingEventSink()


@lru_cache
def get_credential_pool() -> CredentialPool:
    """Dependency for the shared credential pool."""
    return create_credential_pool(events=get_event_sink())


@lru_cache
def get_link_checker() -> LinkChecker:
    """Dependency for the shared link checker."""
    return create_link_checker(events=get_event_sink())


@lru_cache
def get_database_service() -> DatabaseService:
    """Dependency for database service."""
    return create_database_service()


def get_catalog() -> CatalogFetcher:
    """Dependency for the catalog fetcher."""
    return CatalogFetcher(get_credential_pool(), events=get_event_sink())


def get_scan_queue() -> ScanQueue:
    """Dependency for the scan queue, wired with a full job manager."""
    settings = get_settings()
    events = get_event_sink()
    db = get_database_service()
    orchestrator = BatchOrchestrator(
        catalog=get_catalog(),
        checker=get_link_checker(),
        batch_size=settings.batch_size,
        max_parallel_batches=settings.max_parallel_batches,
        events=events,
    )
    manager = ScanJobManager(db=db, catalog=orchestrator.catalog, orchestrator=orchestrator, events=events)
    return create_scan_queue(db=db, manager=manager, events=events)
