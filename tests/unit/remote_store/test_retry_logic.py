"""Unit tests for remote_store.retry_logic module."""

import pytest
from unittest.mock import MagicMock

from src.remote_store.errors import (
    RateLimitedError,
    RevisionConflictError,
    TransientNetworkError,
    UnauthenticatedError,
)
from src.remote_store.retry_logic import retry_with_backoff


class TestRetryWithBackoff:
    """Test cases for retry_with_backoff function."""

    def test_success_on_first_attempt(self):
        """retry_with_backoff should return result on first successful attempt."""
        mock_func = MagicMock(return_value="success")
        mock_sleep = MagicMock()

        result = retry_with_backoff(mock_func, sleep=mock_sleep)

        assert result == "success"
        mock_func.assert_called_once_with()
        mock_sleep.assert_not_called()

    def test_retries_on_rate_limit_error(self):
        """retry_with_backoff should retry on rate limit errors."""
        mock_func = MagicMock()
        mock_sleep = MagicMock()
        rate_limit_error = RateLimitedError("memory://")
        mock_func.side_effect = [rate_limit_error, rate_limit_error, "success"]

        result = retry_with_backoff(mock_func, sleep=mock_sleep)

        assert result == "success"
        assert mock_func.call_count == 3
        assert [call[0][0] for call in mock_sleep.call_args_list] == [1, 2]

    def test_exponential_backoff_timing(self):
        """retry_with_backoff should use exponential backoff: 1s, 2s, 4s."""
        mock_func = MagicMock()
        mock_sleep = MagicMock()
        network_error = TransientNetworkError("memory://", "timed out")
        mock_func.side_effect = [network_error, network_error, network_error, "success"]

        result = retry_with_backoff(mock_func, sleep=mock_sleep)

        assert result == "success"
        assert mock_func.call_count == 4
        assert [call[0][0] for call in mock_sleep.call_args_list] == [1, 2, 4]

    def test_retry_after_hint_extends_wait(self):
        """A Retry-After hint larger than the backoff is honored."""
        mock_func = MagicMock()
        mock_sleep = MagicMock()
        mock_func.side_effect = [RateLimitedError("memory://", retry_after=10), "success"]

        retry_with_backoff(mock_func, sleep=mock_sleep)

        mock_sleep.assert_called_once_with(10.0)

    def test_raises_last_error_after_max_retries(self):
        """retry_with_backoff should re-raise once retries are exhausted."""
        mock_func = MagicMock(side_effect=TransientNetworkError("memory://"))
        mock_sleep = MagicMock()

        with pytest.raises(TransientNetworkError):
            retry_with_backoff(mock_func, max_retries=3, sleep=mock_sleep)

        # Should try 4 times total (0, 1, 2, 3)
        assert mock_func.call_count == 4
        assert mock_sleep.call_count == 3

    def test_zero_retries_fails_immediately(self):
        """max_retries=0 means a single attempt."""
        mock_func = MagicMock(side_effect=RateLimitedError("memory://"))
        mock_sleep = MagicMock()

        with pytest.raises(RateLimitedError):
            retry_with_backoff(mock_func, max_retries=0, sleep=mock_sleep)

        assert mock_func.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.parametrize("error", [
        UnauthenticatedError("user", "memory://"),
        RevisionConflictError("rules.md", "1", "2"),
        ValueError("boom"),
    ])
    def test_fails_fast_on_non_retryable_error(self, error):
        """Authentication failures, conflicts and other errors are not retried."""
        mock_func = MagicMock(side_effect=error)
        mock_sleep = MagicMock()

        with pytest.raises(type(error)):
            retry_with_backoff(mock_func, sleep=mock_sleep)

        assert mock_func.call_count == 1
        mock_sleep.assert_not_called()
