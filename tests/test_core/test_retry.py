"""Tests for the async retry decorator."""

from unittest.mock import AsyncMock

import pytest

from pinmint.core.retry import backoff_delay, with_async_retry


class TransientError(Exception):
    pass


class TestBackoffDelay:
    def test_grows_exponentially_and_caps(self):
        assert backoff_delay(0, 0.5, 4.0) == 0.5
        assert backoff_delay(1, 0.5, 4.0) == 1.0
        assert backoff_delay(2, 0.5, 4.0) == 2.0
        assert backoff_delay(5, 0.5, 4.0) == 4.0


class TestWithAsyncRetry:
    """Test retry bounds and exception filtering."""

    @pytest.mark.asyncio
    async def test_returns_after_transient_failures(self, mocker):
        sleep = mocker.patch("pinmint.core.retry.asyncio.sleep", new_callable=AsyncMock)
        func = AsyncMock(side_effect=[TransientError(), TransientError(), "ok"])
        func.__qualname__ = "func"

        wrapped = with_async_retry(max_attempts=3, retry_on=(TransientError,))(func)

        assert await wrapped() == "ok"
        assert func.await_count == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self, mocker):
        mocker.patch("pinmint.core.retry.asyncio.sleep", new_callable=AsyncMock)
        func = AsyncMock(side_effect=TransientError("still down"))
        func.__qualname__ = "func"

        wrapped = with_async_retry(max_attempts=2, retry_on=(TransientError,))(func)

        with pytest.raises(TransientError):
            await wrapped()
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_other_exceptions(self):
        func = AsyncMock(side_effect=KeyError("x"))
        func.__qualname__ = "func"

        wrapped = with_async_retry(max_attempts=5, retry_on=(TransientError,))(func)

        with pytest.raises(KeyError):
            await wrapped()
        assert func.await_count == 1
