"""Link reachability checks with platform-aware classification."""

import asyncio
import logging
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

import httpx

from linkguard.models.link import LinkCheckResult, LinkStatus
from linkguard.utils.events import NullEventSink, ScanEventSink
from linkguard.utils.pool import gather_in_chunks

logger = logging.getLogger(__name__)

# Hosts that commonly answer scripted requests with 4xx/429 even though the
# page opens fine in a browser.
PLATFORM_DOMAINS = frozenset(
    {
        # Social media
        "facebook.com", "fb.com", "twitter.com", "x.com", "instagram.com",
        "linkedin.com", "youtube.com", "youtu.be", "tiktok.com", "snapchat.com",
        "pinterest.com", "reddit.com", "tumblr.com", "whatsapp.com",
        "t.me", "telegram.org", "telegram.me",
        # URL shorteners
        "goo.gl", "bit.ly", "t.co", "ow.ly", "tinyurl.com", "buff.ly",
        # Marketplaces
        "amazon.com", "amzn.to", "flipkart.com", "ebay.com", "meesho.com",
        # Image hosts
        "prntscr.com", "lightshot.com", "imgur.com", "gyazo.com",
    }
)

PLATFORM_WARNING_CODES = frozenset({400, 403, 405, 429})
PLATFORM_BROKEN_CODES = frozenset({404, 410})

TIMEOUT_STATUS_CODE = 408
NETWORK_ERROR_STATUS_CODE = 0

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
}


def _normalized_host(url: str) -> str:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
    for prefix in ("www.", "app."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    return host


def is_platform_host(url: str) -> bool:
    """Whether the URL's host is, or is a subdomain of, a known platform."""
    host = _normalized_host(url)
    if not host:
        return False
    return any(host == domain or host.endswith(f".{domain}") for domain in PLATFORM_DOMAINS)


def classify_status_code(
    status_code: int, is_platform: bool, retries_exhausted: bool
) -> Optional[LinkStatus]:
    """
    Classify an HTTP status code.

    Returns None when the response is transient and another attempt is due.
    """
    if 200 <= status_code < 300:
        return "working"
    if 300 <= status_code < 400:
        return "warning"
    if 400 <= status_code < 500:
        if not is_platform:
            return "broken"
        if status_code in PLATFORM_BROKEN_CODES:
            return "broken"
        return "warning"
    if status_code >= 500:
        if is_platform and not retries_exhausted:
            return None
        return "warning"
    # 1xx or anything unexpected that survived redirects
    return "warning"


def classify_failure(
    timed_out: bool, is_platform: bool, retries_exhausted: bool
) -> Optional[Tuple[LinkStatus, int]]:
    """Classify a request that produced no response. None means retry."""
    if is_platform and not retries_exhausted:
        return None
    if timed_out:
        return "warning", TIMEOUT_STATUS_CODE
    return ("warning" if is_platform else "broken"), NETWORK_ERROR_STATUS_CODE


class LinkChecker:
    """Probe URLs and classify their reachability."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        max_retries: int = 2,
        retry_delay: float = 2.0,
        concurrency: int = 20,
        events: Optional[ScanEventSink] = None,
    ) -> None:
        """
        Initialize the LinkChecker.

        Args:
            client: HTTP client (optional, created on demand)
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts for transient failures on platform hosts
            retry_delay: Seconds to wait before each retry
            concurrency: Links checked at once by ``check_many``
            events: Event sink for per-link events
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.concurrency = concurrency
        self.events = events or NullEventSink()
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # Unbounded pool: concurrency is capped by the batch and chunk sizes
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers=BROWSER_HEADERS,
                limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LinkChecker":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _probe(self, url: str) -> int:
        client = await self._get_client()
        async with client.stream(
            "GET",
            url,
            headers=BROWSER_HEADERS,
            timeout=httpx.Timeout(self.timeout, pool=None),
            follow_redirects=True,
        ) as response:
            return response.status_code

    async def check(self, url: str, retry_count: int = 0) -> LinkCheckResult:
        """
        Check one URL.

        Transient failures on platform hosts are retried up to ``max_retries``
        times in total, counting ``retry_count`` retries as already spent.

        Args:
            url: URL to probe
            retry_count: Retries already spent on this URL

        Returns:
            LinkCheckResult for the URL
        """
        platform = is_platform_host(url)
        attempt = retry_count

        while True:
            exhausted = attempt >= self.max_retries
            outcome: Optional[Tuple[LinkStatus, int]]
            try:
                status_code = await self._probe(url)
            except httpx.TimeoutException as e:
                outcome = classify_failure(True, platform, exhausted)
                reason = f"timeout: {e}"
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                outcome = classify_failure(False, platform, exhausted)
                reason = f"{type(e).__name__}: {e}"
            else:
                status = classify_status_code(status_code, platform, exhausted)
                outcome = None if status is None else (status, status_code)
                reason = f"status {status_code}"

            if outcome is not None:
                result = LinkCheckResult(url=url, status=outcome[0], status_code=outcome[1])
                self.events.emit(
                    "link.checked", url=url, status=result.status, status_code=result.status_code
                )
                return result

            attempt += 1
            logger.debug(f"Retrying {url} after {reason} ({attempt}/{self.max_retries})")
            self.events.emit("link.retry", url=url, attempt=attempt, reason=reason)
            await asyncio.sleep(self.retry_delay)

    async def check_many(self, urls: List[str]) -> List[LinkCheckResult]:
        """
        Check URLs in fixed-size concurrent chunks.

        Returns:
            One result per input URL, in input order
        """
        if not urls:
            return []
        return await gather_in_chunks(urls, self.check, self.concurrency)


def create_link_checker(events: Optional[ScanEventSink] = None) -> LinkChecker:
    """
    Create a LinkChecker using application settings.

    Returns:
        Configured LinkChecker instance
    """
    from linkguard.config import get_settings

    settings = get_settings()
    return LinkChecker(
        timeout=settings.link_timeout_seconds,
        max_retries=settings.link_max_retries,
        retry_delay=settings.link_retry_delay_seconds,
        concurrency=settings.links_concurrency,
        events=events,
    )
