"""Exponential backoff around calls to the ledger index."""

import asyncio
import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from govtrack.core.errors import PermanentClientError, RateLimitedError, RetryExhaustedError, TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given as delta-seconds or an HTTP-date.

    Delta-seconds must be plain digits; anything else is tried as a date.
    Returns ``None`` for a missing or malformed header.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value.isascii() and value.isdigit():
        try:
            seconds = float(int(value))
        except OverflowError:
            return None
    else:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()
    if not math.isfinite(seconds):
        return None
    return max(seconds, 0.0)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, PermanentClientError):
        return False
    if isinstance(exc, (TransientNetworkError, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _retry_after(exc: BaseException) -> Optional[float]:
    if isinstance(exc, RateLimitedError):
        return exc.retry_after
    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429:
        return parse_retry_after(exc.response.headers.get("Retry-After"))
    return None


class RetryExecutor:
    """Run an async operation, retrying transient failures with exponential backoff."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 8.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def delay_for(self, attempt: int, exc: Optional[BaseException] = None) -> float:
        """Delay before retry number ``attempt + 1``.

        A server-supplied Retry-After on a 429 wins over the computed backoff.
        """
        retry_after = _retry_after(exc) if exc is not None else None
        if retry_after is not None and math.isfinite(retry_after):
            return max(retry_after, 0.0)
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or retries run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt

        Raises:
            RetryExhaustedError: After ``max_retries`` retries all failed
            Exception: Any non-retryable error, unchanged
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not _is_retryable(e):
                    raise
                if attempt >= self.max_retries:
                    logger.error(f"Giving up after {attempt + 1} attempts: {e}")
                    raise RetryExhaustedError(attempt + 1, e) from e
                delay = self.delay_for(attempt, e)
                attempt += 1
                logger.warning(
                    f"Transient error ({e}); retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                await self._sleep(delay)
