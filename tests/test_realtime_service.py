"""Tests for the realtime feed cache and its refresh loop."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from mnr_mcp.data.config import MNRConfig
from mnr_mcp.errors import FeedUnavailableError
from mnr_mcp.models.realtime import RealtimeEntity, RealtimeSnapshot
from mnr_mcp.services import realtime_service
from mnr_mcp.services.realtime_service import RealtimeFeedCache


@pytest.fixture(autouse=True)
def reset_service():
    """Reset the service state before and after each test."""
    realtime_service.reset_service()
    yield
    realtime_service.reset_service()


def _snapshot(train: str = "5401") -> RealtimeSnapshot:
    return RealtimeSnapshot(
        gtfs_realtime_version="2.0",
        feed_timestamp=1709564400,
        fetched_at=datetime.now(UTC),
        entities=(RealtimeEntity(trip_short_name=train),),
    )


async def test_current_is_none_before_first_fetch(config: MNRConfig):
    cache = RealtimeFeedCache(config, fetcher=AsyncMock())
    assert cache.current() is None


async def test_refresh_swaps_in_new_snapshot(config: MNRConfig):
    first, second = _snapshot("5401"), _snapshot("5403")
    cache = RealtimeFeedCache(config, fetcher=AsyncMock(side_effect=[first, second]))

    assert await cache.refresh() is True
    assert cache.current() is first

    assert await cache.refresh() is True
    assert cache.current() is second
    assert cache.status.fetch_count == 2


async def test_failed_refresh_keeps_previous_snapshot(config: MNRConfig):
    snapshot = _snapshot()
    fetcher = AsyncMock(side_effect=[snapshot, FeedUnavailableError("HTTP 503")])
    cache = RealtimeFeedCache(config, fetcher=fetcher)

    await cache.refresh()
    assert await cache.refresh() is False

    assert cache.current() is snapshot
    status = cache.status
    assert status.error_count == 1
    assert status.last_error == "HTTP 503"
    assert status.last_success is not None


async def test_first_refresh_failure_leaves_cache_empty(config: MNRConfig):
    cache = RealtimeFeedCache(config, fetcher=AsyncMock(side_effect=FeedUnavailableError("down")))

    assert await cache.refresh() is False
    assert cache.current() is None


async def test_refresh_timeout():
    config = MNRConfig(
        MNR_REALTIME_URL="https://example.com/gtfs-mnr",
        MNR_FEED_TIMEOUT=0.05,
        MNR_POLL_INTERVAL=60,
    )

    async def never_returns() -> RealtimeSnapshot:
        await asyncio.sleep(10)
        return _snapshot()

    cache = RealtimeFeedCache(config, fetcher=never_returns)

    assert await cache.refresh() is False
    assert cache.current() is None
    assert "timed out" in cache.status.last_error


async def test_refresh_skipped_without_feed_url():
    config = MNRConfig(MNR_REALTIME_URL="")
    fetcher = AsyncMock()
    cache = RealtimeFeedCache(config, fetcher=fetcher)

    assert await cache.refresh() is False
    fetcher.assert_not_called()


async def test_success_clears_last_error(config: MNRConfig):
    fetcher = AsyncMock(side_effect=[FeedUnavailableError("down"), _snapshot()])
    cache = RealtimeFeedCache(config, fetcher=fetcher)

    await cache.refresh()
    await cache.refresh()

    assert cache.status.last_error is None
    assert cache.status.error_count == 1


async def test_start_refreshes_immediately_and_stop(config: MNRConfig):
    cache = RealtimeFeedCache(config, fetcher=AsyncMock(return_value=_snapshot()))

    await cache.start()
    await asyncio.sleep(0.01)
    try:
        assert cache.is_running
        assert cache.current() is not None
    finally:
        await cache.stop()

    assert not cache.is_running


async def test_loop_survives_unexpected_error():
    config = MNRConfig(MNR_REALTIME_URL="https://example.com/gtfs-mnr", MNR_POLL_INTERVAL=0.01)
    fetcher = AsyncMock(side_effect=[RuntimeError("boom"), _snapshot(), _snapshot(), _snapshot()])
    cache = RealtimeFeedCache(config, fetcher=fetcher)

    await cache.start()
    await asyncio.sleep(0.1)
    await cache.stop()

    assert cache.current() is not None
    assert cache.status.error_count >= 1


async def test_stop_without_start_is_noop(config: MNRConfig):
    cache = RealtimeFeedCache(config, fetcher=AsyncMock())
    await cache.stop()
    assert not cache.is_running


def test_get_realtime_cache_is_singleton():
    assert realtime_service.get_realtime_cache() is realtime_service.get_realtime_cache()


def test_reset_service_drops_singleton():
    first = realtime_service.get_realtime_cache()
    realtime_service.reset_service()
    assert realtime_service.get_realtime_cache() is not first


async def test_unexpected_fetch_error_is_not_raised(config: MNRConfig):
    snapshot = _snapshot()
    fetcher = AsyncMock(side_effect=[snapshot, RuntimeError("boom")])
    cache = RealtimeFeedCache(config, fetcher=fetcher)

    await cache.refresh()
    assert await cache.refresh() is False

    assert cache.current() is snapshot
    assert cache.status.error_count == 1
    assert "RuntimeError" in cache.status.last_error


async def test_invalid_feed_url_is_not_raised():
    config = MNRConfig(MNR_REALTIME_URL="https://example.com/gtfs\x01mnr")
    cache = RealtimeFeedCache(config)

    assert await cache.refresh() is False
    assert cache.current() is None
    assert cache.status.error_count == 1
