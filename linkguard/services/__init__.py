"""Service layer for LinkGuard."""

from linkguard.services.catalog import CatalogFetcher, extract_channel_identifier
from linkguard.services.credentials import CredentialPool, create_credential_pool
from linkguard.services.database import DatabaseService, create_database_service
from linkguard.services.extractor import extract_links
from linkguard.services.link_checker import LinkChecker, create_link_checker
from linkguard.services.orchestrator import BatchOrchestrator
from linkguard.services.queue import ScanQueue, create_scan_queue
from linkguard.services.scanner import ScanJobManager

__all__ = [
    "CatalogFetcher",
    "extract_channel_identifier",
    "CredentialPool",
    "create_credential_pool",
    "DatabaseService",
    "create_database_service",
    "extract_links",
    "LinkChecker",
    "create_link_checker",
    "BatchOrchestrator",
    "ScanQueue",
    "create_scan_queue",
    "ScanJobManager",
]
