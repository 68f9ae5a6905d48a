"""FastAPI routes for the LinkGuard API."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from linkguard.api.deps import (
    get_catalog,
    get_credential_pool,
    get_link_checker,
    get_scan_queue,
)
from linkguard.models.credential import PoolStatus
from linkguard.models.job import MAX_VIDEO_COUNT, JobState, ScanJobData, ScanMode
from linkguard.models.link import LinkCheckResult
from linkguard.models.scan import ScanReport, ScanStatistics
from linkguard.models.video import ChannelInfo
from linkguard.services.catalog import CatalogFetcher
from linkguard.services.credentials import CredentialPool
from linkguard.services.link_checker import LinkChecker
from linkguard.services.queue import ScanQueue
from linkguard.utils.errors import (
    AllCredentialsExhaustedError,
    ChannelNotFoundError,
    LinkGuardError,
    NoCredentialsError,
    YouTubeAPIError,
)

logger = logging.getLogger(__name__)

MAX_LINKS_PER_REQUEST = 500

# Create router
router = APIRouter()


# ==================== Error Response Model ====================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    error_type: str
    errors: Optional[List[Dict[str, Any]]] = None


# ==================== Exception Handlers ====================


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request and Pydantic validation errors."""
    errors = exc.errors() if isinstance(exc, (ValidationError, RequestValidationError)) else []
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "error_type": "ValidationError",
            "errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
                for e in errors
            ],
        },
    )


def status_code_for(exc: LinkGuardError) -> int:
    """HTTP status for an application error."""
    if isinstance(exc, ChannelNotFoundError):
        return 404
    if isinstance(exc, (AllCredentialsExhaustedError, NoCredentialsError)):
        return 503
    if isinstance(exc, YouTubeAPIError):
        return 502  # Bad Gateway for upstream API errors
    return 500


async def linkguard_exception_handler(request: Request, exc: LinkGuardError) -> JSONResponse:
    """Handle application-specific errors."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "error_type": type(exc).__name__,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "HTTPException",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": "InternalError",
        },
    )


# ==================== Request/Response Models ====================


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScanChannelRequest(_CamelRequest):
    """Request model for the async channel scan endpoint."""

    channel_id: str = Field(min_length=1, description="YouTube channel id")
    user_id: str = Field(min_length=1, description="Requesting user")
    channel_doc_id: str = Field(min_length=1, description="Channel aggregate record id")
    channel_name: Optional[str] = None
    video_count: int = Field(ge=1, le=MAX_VIDEO_COUNT, description="Maximum videos to scan")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    scan_mode: ScanMode = "count"


class ScanChannelResponse(BaseModel):
    """Response model for the async channel scan endpoint."""

    success: bool
    job_id: str
    status: str
    message: str


class ScanStatusResponse(BaseModel):
    """Response model for the scan status endpoint."""

    job_id: str
    status: JobState
    progress: int
    channel_id: str
    channel_name: str
    video_count: int
    attempts: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    result: Optional[ScanReport] = None
    error: Optional[str] = None


class CheckLinksRequest(BaseModel):
    """Request model for the bulk link check endpoint."""

    urls: List[str] = Field(min_length=1, max_length=MAX_LINKS_PER_REQUEST)


class CheckLinksResponse(BaseModel):
    """Response model for the bulk link check endpoint."""

    success: bool
    results: List[LinkCheckResult]
    statistics: ScanStatistics


# ==================== Endpoints ====================


@router.post("/scan-channel-async", response_model=ScanChannelResponse)
async def scan_channel_async(
    request: ScanChannelRequest,
    queue: ScanQueue = Depends(get_scan_queue),
) -> ScanChannelResponse:
    """
    Queue a channel scan.

    Returns immediately with a job_id that can be polled on /scan-status.
    """
    data = ScanJobData(
        job_id=str(uuid4()),
        user_id=request.user_id,
        channel_id=request.channel_id,
        channel_name=request.channel_name or "Unknown Channel",
        channel_doc_id=request.channel_doc_id,
        video_count=request.video_count,
        start_date=request.start_date,
        end_date=request.end_date,
        scan_mode=request.scan_mode,
    )

    job = await queue.add(data)

    return ScanChannelResponse(
        success=True,
        job_id=job.job_id,
        status="queued",
        message=f"Scan queued for {data.channel_name} ({data.video_count} videos)",
    )


@router.get("/scan-status/{job_id}", response_model=ScanStatusResponse)
async def get_scan_status(
    job_id: str,
    queue: ScanQueue = Depends(get_scan_queue),
) -> ScanStatusResponse:
    """Get progress and outcome of a scan job."""
    job = await queue.get_status(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    return ScanStatusResponse(
        job_id=job.job_id,
        status=job.status,
        progress=job.progress,
        channel_id=job.data.channel_id,
        channel_name=job.data.channel_name,
        video_count=job.data.video_count,
        attempts=job.attempts,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        failed_at=job.failed_at,
        result=job.result,
        error=job.error,
    )


@router.get("/check-link", response_model=LinkCheckResult)
async def check_link(
    url: str = Query(min_length=1),
    checker: LinkChecker = Depends(get_link_checker),
) -> LinkCheckResult:
    """Check a single URL on demand."""
    return await checker.check(url)


@router.post("/check-links", response_model=CheckLinksResponse)
async def check_links(
    request: CheckLinksRequest,
    checker: LinkChecker = Depends(get_link_checker),
) -> CheckLinksResponse:
    """Check a list of URLs and summarise the results."""
    logger.info(f"Checking {len(request.urls)} links")
    results = await checker.check_many(request.urls)
    return CheckLinksResponse(
        success=True,
        results=results,
        statistics=ScanStatistics.from_links(results),
    )


@router.get("/credentials/status", response_model=PoolStatus)
async def credentials_status(
    pool: CredentialPool = Depends(get_credential_pool),
) -> PoolStatus:
    """Report how many API keys are still usable."""
    return pool.status()


@router.get("/channels/resolve", response_model=ChannelInfo)
async def resolve_channel(
    query: str = Query(min_length=1),
    catalog: CatalogFetcher = Depends(get_catalog),
) -> ChannelInfo:
    """Resolve a channel id, URL, handle or username."""
    channel = await catalog.resolve_channel(query)
    if not channel:
        raise HTTPException(status_code=404, detail=f"Channel not found: {query}")
    return channel
