import httpx
import pytest
from unittest.mock import AsyncMock

from govtrack.core.errors import PermanentClientError, RateLimitedError, RetryExhaustedError, TransientNetworkError
from govtrack.services.koios.retry import RetryExecutor, parse_retry_after


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.mark.asyncio
async def test_returns_first_success(sleep):
    operation = AsyncMock(return_value="ok")
    executor = RetryExecutor(sleep=sleep)

    assert await executor.run(operation) == "ok"
    assert operation.await_count == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retry_after_header_sets_the_delay(sleep):
    operation = AsyncMock(side_effect=[RateLimitedError("slow down", retry_after=2.0), "ok"])
    executor = RetryExecutor(base_delay=0.1, max_delay=0.5, sleep=sleep)

    assert await executor.run(operation) == "ok"
    assert sleep.delays == [2.0]


@pytest.mark.asyncio
async def test_retry_after_from_raw_http_status_error(sleep):
    request = httpx.Request("GET", "https://koios.example/tip")
    response = httpx.Response(429, headers={"Retry-After": "2"}, request=request)
    error = httpx.HTTPStatusError("429", request=request, response=response)
    operation = AsyncMock(side_effect=[error, "ok"])

    assert await RetryExecutor(sleep=sleep).run(operation) == "ok"
    assert sleep.delays[0] >= 2


@pytest.mark.asyncio
async def test_client_error_is_not_retried(sleep):
    operation = AsyncMock(side_effect=PermanentClientError("missing", 404))

    with pytest.raises(PermanentClientError):
        await RetryExecutor(sleep=sleep).run(operation)
    assert operation.await_count == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_raw_404_is_not_retried(sleep):
    request = httpx.Request("GET", "https://koios.example/x")
    response = httpx.Response(404, request=request)
    operation = AsyncMock(side_effect=httpx.HTTPStatusError("404", request=request, response=response))

    with pytest.raises(httpx.HTTPStatusError):
        await RetryExecutor(sleep=sleep).run(operation)
    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_exhaustion_reports_attempts(sleep):
    operation = AsyncMock(side_effect=TransientNetworkError("boom", status_code=503))
    executor = RetryExecutor(max_retries=3, base_delay=2, max_delay=8, sleep=sleep)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await executor.run(operation)

    assert "Operation failed after 4 attempts" in str(exc_info.value)
    assert exc_info.value.attempts == 4
    assert isinstance(exc_info.value.__cause__, TransientNetworkError)
    assert operation.await_count == 4
    assert sleep.delays == [2, 4, 8]


@pytest.mark.asyncio
async def test_backoff_is_capped(sleep):
    operation = AsyncMock(side_effect=[httpx.ConnectError("down")] * 3 + ["ok"])
    executor = RetryExecutor(max_retries=5, base_delay=3, max_delay=5, sleep=sleep)

    assert await executor.run(operation) == "ok"
    assert sleep.delays == [3, 5, 5]


@pytest.mark.asyncio
async def test_unrelated_errors_propagate_untouched(sleep):
    operation = AsyncMock(side_effect=KeyError("epoch_no"))

    with pytest.raises(KeyError):
        await RetryExecutor(sleep=sleep).run(operation)
    assert operation.await_count == 1


def test_parse_retry_after():
    assert parse_retry_after("2") == 2.0
    assert parse_retry_after(" 0 ") == 0.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("soon") is None
    # A date in the past means "retry now"
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0


def test_parse_retry_after_rejects_non_integer_seconds():
    assert parse_retry_after("inf") is None
    assert parse_retry_after("nan") is None
    assert parse_retry_after("1e9") is None
    assert parse_retry_after("-5") is None
    assert parse_retry_after("2.5") is None


@pytest.mark.asyncio
async def test_unusable_retry_after_falls_back_to_backoff(sleep):
    operation = AsyncMock(side_effect=[
        RateLimitedError("slow down", retry_after=parse_retry_after("inf")),
        RateLimitedError("slow down", retry_after=float("inf")),
        "ok",
    ])
    executor = RetryExecutor(base_delay=2, max_delay=8, sleep=sleep)

    assert await executor.run(operation) == "ok"
    assert sleep.delays == [2, 4]
