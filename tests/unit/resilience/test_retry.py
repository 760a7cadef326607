"""Unit tests for retry logic"""
import pytest
import psycopg
from unittest.mock import AsyncMock, patch

from mindwell.exceptions import ConnectionError, QueryError, ValidationError
from mindwell.resilience.retry import (
    BASE_DELAY,
    MAX_DELAY,
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
    with_retry,
)


@pytest.fixture
def no_sleep():
    """Skip real backoff delays"""
    with patch("mindwell.resilience.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def test_is_retryable_error_connection():
    """Test that store connection failures are retryable"""
    assert is_retryable_error(ConnectionError()) == True
    assert is_retryable_error(psycopg.OperationalError("server closed the connection")) == True


def test_is_retryable_error_non_retryable():
    """Test that non-retryable errors are identified correctly"""
    assert is_retryable_error(QueryError("syntax error")) == False
    assert is_retryable_error(ValidationError("bad input", field="total_xp")) == False
    assert is_retryable_error(ValueError("Bad value")) == False
    assert is_retryable_error(KeyError("Missing key")) == False


def test_calculate_backoff():
    """Test exponential backoff calculation"""
    delay_0 = calculate_backoff(0)
    assert BASE_DELAY * 0.9 <= delay_0 <= BASE_DELAY * 1.1

    delay_1 = calculate_backoff(1)
    assert BASE_DELAY * 1.8 <= delay_1 <= BASE_DELAY * 2.2

    delay_2 = calculate_backoff(2)
    assert BASE_DELAY * 3.6 <= delay_2 <= BASE_DELAY * 4.4

    assert delay_2 > delay_1 > delay_0


def test_calculate_backoff_max_delay():
    """Test that backoff respects max delay"""
    assert calculate_backoff(20) <= MAX_DELAY * 1.1


@pytest.mark.asyncio
async def test_retry_with_backoff_success_first_try(no_sleep):
    """Test that function succeeds on first try"""

    call_count = 0

    async def successful_function():
        nonlocal call_count
        call_count += 1
        return "success"

    result = await retry_with_backoff(successful_function, max_retries=3)

    assert result == "success"
    assert call_count == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_retry_with_backoff_success_after_retries(no_sleep):
    """Test that function succeeds after some retries"""

    attempt = 0

    async def flaky_function():
        nonlocal attempt
        attempt += 1
        if attempt < 3:
            raise ConnectionError("Simulated disconnect")
        return "success"

    result = await retry_with_backoff(flaky_function, max_retries=3)

    assert result == "success"
    assert attempt == 3
    assert no_sleep.await_count == 2


@pytest.mark.asyncio
async def test_retry_with_backoff_exhausted(no_sleep):
    """Test that retries are exhausted for persistent failures"""

    attempt = 0

    async def always_fails():
        nonlocal attempt
        attempt += 1
        raise ConnectionError("Always fails")

    with pytest.raises(ConnectionError, match="Always fails"):
        await retry_with_backoff(always_fails, max_retries=3)

    # Initial attempt + 3 retries
    assert attempt == 4


@pytest.mark.asyncio
async def test_retry_with_backoff_non_retryable_error(no_sleep):
    """Test that non-retryable errors are not retried"""

    attempt = 0

    async def invalid_input():
        nonlocal attempt
        attempt += 1
        raise ValidationError("XP cannot be negative", field="total_xp", value=-1)

    with pytest.raises(ValidationError):
        await retry_with_backoff(invalid_input, max_retries=3)

    assert attempt == 1


@pytest.mark.asyncio
async def test_retry_passes_arguments(no_sleep):
    async def add(a, b, scale=1):
        return (a + b) * scale

    assert await retry_with_backoff(add, 1, 2, scale=3) == 9


@pytest.mark.asyncio
async def test_with_retry_decorator(no_sleep):
    """Test that @with_retry decorator works correctly"""

    attempt = 0

    @with_retry(max_retries=2)
    async def flaky_function():
        nonlocal attempt
        attempt += 1
        if attempt < 2:
            raise ConnectionError("Flaky error")
        return "success"

    result = await flaky_function()

    assert result == "success"
    assert attempt == 2


@pytest.mark.asyncio
async def test_with_retry_decorator_exhausted(no_sleep):
    """Test that decorator respects max_retries limit"""

    attempt = 0

    @with_retry(max_retries=2)
    async def always_fails():
        nonlocal attempt
        attempt += 1
        raise ConnectionError("Always fails")

    with pytest.raises(ConnectionError):
        await always_fails()

    assert attempt == 3
