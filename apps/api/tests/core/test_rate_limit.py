"""
Unit tests for rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from admissions_api.core import rate_limit
from admissions_api.core.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    client_key,
    enforce_rate_limit,
)

RATE_LIMIT = "admissions_api.core.rate_limit"


@pytest.fixture(autouse=True)
def clear_memory_store():
    rate_limit._memory_store.clear()
    yield
    rate_limit._memory_store.clear()


def _request(host: str | None = "203.0.113.7"):
    request = MagicMock()
    request.client = MagicMock(host=host) if host else None
    return request


def test_client_key_uses_action_and_ip():
    assert client_key(_request(), "lookup") == "rate_limit:lookup:203.0.113.7"
    assert client_key(_request(None), "submit") == "rate_limit:submit:unknown"


class TestMemoryFallback:
    @pytest.mark.asyncio
    async def test_requests_over_limit_are_refused(self):
        with patch(f"{RATE_LIMIT}.get_redis_client", return_value=None):
            results = [await check_rate_limit("rate_limit:lookup:a", 2, 60) for _ in range(3)]

        assert results == [True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_counted_separately(self):
        with patch(f"{RATE_LIMIT}.get_redis_client", return_value=None):
            assert await check_rate_limit("rate_limit:lookup:a", 1, 60)
            assert await check_rate_limit("rate_limit:lookup:b", 1, 60)

    @pytest.mark.asyncio
    async def test_redis_error_falls_back_to_memory(self):
        client = MagicMock()
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        client.pipeline.return_value = pipe

        with patch(f"{RATE_LIMIT}.get_redis_client", return_value=client):
            assert await check_rate_limit("rate_limit:submit:a", 1, 60)

        assert "rate_limit:submit:a" in rate_limit._memory_store


class TestEnforceRateLimit:
    @pytest.mark.asyncio
    async def test_raises_429_when_exhausted(self):
        with patch(f"{RATE_LIMIT}.check_rate_limit", AsyncMock(return_value=False)):
            with pytest.raises(RateLimitExceeded) as exc_info:
                await enforce_rate_limit(_request(), "lookup", 10, 60)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"Retry-After": "60"}

    @pytest.mark.asyncio
    async def test_allowed_request_passes(self):
        with patch(f"{RATE_LIMIT}.check_rate_limit", AsyncMock(return_value=True)) as mock_check:
            await enforce_rate_limit(_request(), "lookup", 10, 60)

        mock_check.assert_called_once_with("rate_limit:lookup:203.0.113.7", 10, 60)
