"""
Unit tests for the fixed-delay retry helper.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.retry import RetryAborted, RetryConfig, RetryError, call_with_retry


class TestRetryConfig:
    """Test cases for RetryConfig."""

    def test_defaults(self):
        config = RetryConfig()

        assert config.retry_count == 3
        assert config.max_attempts == 4
        assert config.delay == 1.0

    def test_negative_retry_count_rejected(self):
        with pytest.raises(ValueError):
            RetryConfig(retry_count=-1)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            RetryConfig(delay=-1)


class TestCallWithRetry:
    """Test cases for call_with_retry."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        func = AsyncMock(return_value="ok")

        assert await call_with_retry(func, RetryConfig(delay=0)) == "ok"
        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retry_count_plus_one_attempts(self):
        """Test retry_count three means four attempts in total."""
        func = AsyncMock(side_effect=RuntimeError("down"))

        with pytest.raises(RetryError) as exc_info:
            await call_with_retry(func, RetryConfig(retry_count=3, delay=0))

        assert func.await_count == 4
        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_exception) == "down"

    @pytest.mark.asyncio
    async def test_waits_fixed_delay_between_attempts(self):
        func = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await call_with_retry(func, RetryConfig(retry_count=3, delay=1.0))

        assert result == "ok"
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_only_listed_exceptions_are_retried(self):
        func = AsyncMock(side_effect=KeyError("x"))

        with pytest.raises(KeyError):
            await call_with_retry(func, RetryConfig(delay=0), exceptions=(RuntimeError,))

        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_abort_stops_further_attempts(self):
        func = AsyncMock(side_effect=RuntimeError("down"))

        with pytest.raises(RetryAborted):
            await call_with_retry(func, RetryConfig(retry_count=5, delay=0), should_abort=lambda: True)

        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        func = AsyncMock(side_effect=[RuntimeError("a"), "ok"])
        on_retry = MagicMock()

        await call_with_retry(func, RetryConfig(delay=0), on_retry=on_retry)

        on_retry.assert_called_once()
        assert on_retry.call_args.args[0] == 1
