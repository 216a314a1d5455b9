"""Error taxonomy for ingestion and reconciliation."""

from typing import Any, Dict, List, Optional


class GovernanceSyncError(Exception):
    """Base class for all ingestion errors."""


class TransientNetworkError(GovernanceSyncError):
    """Connection failure, timeout, 5xx or 429 - safe to retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RateLimitedError(TransientNetworkError):
    """HTTP 429 from the index; `retry_after` is in seconds when the server sent one."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class PermanentClientError(GovernanceSyncError):
    """A 4xx other than 429. Never retried."""

    def __init__(self, message: str, status_code: int, response: Optional[Any] = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(f"Koios API Error {status_code}: {message}")


class NotFoundError(GovernanceSyncError):
    """The requested external id is absent from the index."""


class RetryExhaustedError(GovernanceSyncError):
    """Raised by the retry executor once every attempt has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")


class MetadataUnavailable(GovernanceSyncError):
    """Off-chain metadata could not be fetched or parsed. Always swallowed."""


class UnsupportedOperationError(GovernanceSyncError):
    """The operation has no implementation yet."""


class PartialBatchFailure(GovernanceSyncError):
    """Some items of a batch failed while the rest were processed."""

    def __init__(self, errors: List[Dict[str, str]], total: int):
        self.errors = errors
        self.total = total
        super().__init__(f"{len(errors)} of {total} items failed")
