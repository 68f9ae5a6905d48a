"""YouTube API key pool with rotation on quota exhaustion."""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from linkguard.models.credential import ApiCredential, PoolStatus
from linkguard.utils.errors import (
    AllCredentialsExhaustedError,
    NoCredentialsError,
    QuotaExhaustedError,
    YouTubeAPIError,
)
from linkguard.utils.events import NullEventSink, ScanEventSink

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
EXHAUSTION_RESET_SECONDS = 24 * 60 * 60
QUOTA_STATUS_CODES = frozenset({403, 429})
QUOTA_REASONS = frozenset(
    {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"}
)


def _error_reasons(payload: Any) -> List[str]:
    """Pull ``error.errors[].reason`` values out of an API error body."""
    if not isinstance(payload, dict):
        return []
    error = payload.get("error")
    if not isinstance(error, dict):
        return []
    return [e.get("reason", "") for e in error.get("errors") or [] if isinstance(e, dict)]


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return str(payload["error"].get("message") or fallback)
    return fallback


def is_quota_error(status_code: int, payload: Any) -> bool:
    """Whether an error response means the key ran out of quota."""
    if status_code in QUOTA_STATUS_CODES:
        return True
    return any(reason in QUOTA_REASONS for reason in _error_reasons(payload))


class CredentialPool:
    """
    Rotating pool of YouTube API keys.

    Every read or write of the rotation state happens under one lock, so the
    pool can be shared by concurrent batches and by worker threads.
    """

    def __init__(
        self,
        keys: List[str],
        api_base: str = YOUTUBE_API_BASE,
        cooldown_seconds: float = EXHAUSTION_RESET_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        events: Optional[ScanEventSink] = None,
    ) -> None:
        """
        Initialize the CredentialPool.

        Args:
            keys: API keys in rotation order
            api_base: Base URL of the YouTube Data API
            cooldown_seconds: Age after which an exhausted key is usable again
            client: HTTP client for API calls (optional, created on demand)
            clock: Time source in epoch seconds
            events: Event sink for rotation events
        """
        self.credentials = [ApiCredential(key=key) for key in keys]
        self.api_base = api_base.rstrip("/")
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.events = events or NullEventSink()
        self._index = 0
        self._lock = threading.Lock()
        self._client = client

        logger.info(f"Credential pool initialized with {len(self.credentials)} key(s)")

    def __len__(self) -> int:
        return len(self.credentials)

    @property
    def current_index(self) -> int:
        return self._index

    def _reset_expired(self) -> None:
        now = self.clock()
        for index, credential in enumerate(self.credentials):
            if credential.is_exhausted and credential.exhausted_at is not None:
                if now - credential.exhausted_at >= self.cooldown_seconds:
                    credential.is_exhausted = False
                    credential.exhausted_at = None
                    logger.info(f"API key #{index + 1} reset after cooldown")
                    self.events.emit("credential.reset", index=index)

    def _advance(self) -> None:
        self._index = (self._index + 1) % len(self.credentials)

    def current(self) -> ApiCredential:
        """
        Return the key to use for the next call.

        Exhausted keys are skipped. If every key is exhausted, the key under the
        rotation pointer is returned anyway.

        Raises:
            NoCredentialsError: If the pool is empty
        """
        if not self.credentials:
            raise NoCredentialsError()

        with self._lock:
            self._reset_expired()
            for _ in range(len(self.credentials)):
                credential = self.credentials[self._index]
                if not credential.is_exhausted:
                    return credential
                self._advance()

            logger.warning("All API keys are exhausted, using the current key anyway")
            return self.credentials[self._index]

    def mark_exhausted(self, credential: Optional[ApiCredential] = None) -> bool:
        """
        Flag a key as exhausted and rotate to the next available one.

        Args:
            credential: The key that hit its quota. Defaults to the key under the
                rotation pointer. Passing it keeps a late caller from flagging a
                key that another caller already rotated to.

        Returns:
            True if any key is still available
        """
        if not self.credentials:
            return False

        with self._lock:
            if credential is None:
                index = self._index
            else:
                index = next(
                    (i for i, c in enumerate(self.credentials) if c is credential),
                    self._index,
                )
            target = self.credentials[index]
            if not target.is_exhausted:
                target.is_exhausted = True
                target.exhausted_at = self.clock()
                target.error_count += 1
                logger.warning(f"API key #{index + 1} exhausted, rotating")
                self.events.emit("credential.exhausted", index=index)

            if index == self._index:
                for _ in range(len(self.credentials)):
                    if not self.credentials[self._index].is_exhausted:
                        break
                    self._advance()

            available = not self.credentials[self._index].is_exhausted
            if available:
                logger.info(f"Switched to API key #{self._index + 1}")
            else:
                logger.error("All API keys are exhausted")
            return available

    def status(self) -> PoolStatus:
        """Counts of available and exhausted keys."""
        with self._lock:
            self._reset_expired()
            exhausted = sum(1 for c in self.credentials if c.is_exhausted)
            return PoolStatus(
                total=len(self.credentials),
                available=len(self.credentials) - exhausted,
                exhausted=exhausted,
                current_index=self._index + 1,
            )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Call one API endpoint, rotating keys on quota errors.

        Args:
            endpoint: Endpoint name, e.g. ``playlistItems``
            params: Query parameters without the key

        Returns:
            Decoded JSON response

        Raises:
            AllCredentialsExhaustedError: If every key hit its quota
            YouTubeAPIError: For any other API or transport error
        """
        client = await self._get_client()
        url = f"{self.api_base}/{endpoint}"
        last_error: Optional[QuotaExhaustedError] = None

        for _ in range(max(len(self.credentials), 1)):
            credential = self.current()
            query = {**(params or {}), "key": credential.key}

            try:
                response = await client.get(url, params=query)
            except httpx.HTTPError as e:
                raise YouTubeAPIError(0, f"{type(e).__name__}: {e}") from e

            if response.is_success:
                try:
                    data = response.json()
                except ValueError as e:
                    raise YouTubeAPIError(response.status_code, f"Invalid JSON response: {e}") from e
                if not isinstance(data, dict):
                    raise YouTubeAPIError(response.status_code, "Unexpected response body")
                return data

            try:
                payload = response.json()
            except ValueError:
                payload = None

            if is_quota_error(response.status_code, payload):
                last_error = QuotaExhaustedError(
                    response.status_code, _error_message(payload, "quota exceeded")
                )
                logger.warning(f"Quota exceeded for key {credential.masked()} on {endpoint}")
                if not self.mark_exhausted(credential):
                    raise AllCredentialsExhaustedError() from last_error
                continue

            raise YouTubeAPIError(
                response.status_code, _error_message(payload, response.reason_phrase)
            )

        raise AllCredentialsExhaustedError() from last_error


def create_credential_pool(
    client: Optional[httpx.AsyncClient] = None,
    events: Optional[ScanEventSink] = None,
) -> CredentialPool:
    """
    Create a CredentialPool using application settings.

    Returns:
        Configured CredentialPool instance
    """
    from linkguard.config import get_settings

    settings = get_settings()
    keys = settings.api_keys()
    if not keys:
        logger.error("No YouTube API keys configured")
    return CredentialPool(
        keys=keys,
        api_base=settings.youtube_api_base,
        cooldown_seconds=settings.credential_cooldown_seconds,
        client=client,
        events=events,
    )
