"""Realtime feed cache with a background refresh loop.

The cache owns the only cross-request mutable state: the latest realtime
snapshot. A background task refreshes it on a fixed period; request
handlers only ever read it. Feed errors are caught and logged here and
never reach request callers.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from mnr_mcp.data.cache import SnapshotCache
from mnr_mcp.data.config import MNRConfig, get_config
from mnr_mcp.data.gtfsrt_client import GTFSRTClient
from mnr_mcp.errors import FeedUnavailableError
from mnr_mcp.models.realtime import RealtimeSnapshot
from mnr_mcp.models.responses import RealtimeStatus

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[RealtimeSnapshot]]


class RealtimeFeedCache:
    """Single-writer cache of the latest realtime snapshot."""

    def __init__(
        self,
        config: MNRConfig | None = None,
        fetcher: SnapshotFetcher | None = None,
    ):
        """Initialize the cache.

        Args:
            config: Configuration (defaults to the environment config).
            fetcher: Coroutine function returning a fresh snapshot. Defaults
                to fetching the configured GTFS-RT feed.
        """
        self._config = config or get_config()
        self._fetcher = fetcher or self._fetch_from_feed
        self._cache: SnapshotCache[RealtimeSnapshot] = SnapshotCache()
        self._task: asyncio.Task | None = None
        self._fetch_count = 0
        self._error_count = 0
        self._last_error: str | None = None

    @property
    def interval_seconds(self) -> float:
        return self._config.poll_interval_seconds

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def status(self) -> RealtimeStatus:
        """Get refresh status."""
        updated_at = self._cache.updated_at
        return RealtimeStatus(
            running=self.is_running,
            interval_seconds=self.interval_seconds,
            last_success=updated_at.isoformat() if updated_at else None,
            last_error=self._last_error,
            fetch_count=self._fetch_count,
            error_count=self._error_count,
        )

    def current(self) -> RealtimeSnapshot | None:
        """Latest snapshot, or None if no fetch has ever succeeded."""
        return self._cache.get()

    async def _fetch_from_feed(self) -> RealtimeSnapshot:
        async with GTFSRTClient(self._config) as client:
            return await client.fetch_snapshot()

    async def refresh(self) -> bool:
        """Fetch a new snapshot and swap it in.

        On any failure the previous snapshot stays in place and the error is
        logged and counted; nothing is raised.

        Returns:
            True if a new snapshot was stored.
        """
        if not self._config.realtime_enabled:
            logger.debug("No realtime feed configured, skipping refresh")
            return False

        try:
            snapshot = await asyncio.wait_for(
                self._fetcher(), timeout=self._config.refresh_timeout_seconds
            )
        except TimeoutError:
            self._record_failure(
                f"timed out after {self._config.refresh_timeout_seconds}s"
            )
            return False
        except FeedUnavailableError as e:
            self._record_failure(e.message)
            return False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._record_failure(f"unexpected {type(e).__name__}: {e}")
            return False

        self._cache.set(snapshot)
        self._fetch_count += 1
        self._last_error = None
        logger.debug(f"Fetched realtime snapshot with {len(snapshot.entities)} trip updates")
        return True

    def _record_failure(self, message: str) -> None:
        self._error_count += 1
        self._last_error = message
        logger.warning(f"Realtime refresh failed: {message}")

    async def start(self) -> None:
        """Start the background refresh task. The first refresh runs immediately."""
        if self.is_running:
            logger.warning("Realtime refresh already running")
            return

        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Realtime refresh started (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background refresh task."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Realtime refresh stopped")

    async def _refresh_loop(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_seconds)

    def clear(self) -> None:
        """Drop the current snapshot. Useful for testing."""
        self._cache.clear()


# Process-wide cache (lazy-initialized)
_realtime_cache: RealtimeFeedCache | None = None


def get_realtime_cache() -> RealtimeFeedCache:
    """Get or create the process-wide realtime cache."""
    global _realtime_cache
    if _realtime_cache is None:
        _realtime_cache = RealtimeFeedCache()
    return _realtime_cache


def reset_service() -> None:
    """Reset the process-wide cache and config. Useful for testing."""
    global _realtime_cache
    _realtime_cache = None
    # hasattr check handles case where function is mocked in tests
    if hasattr(get_config, "cache_clear"):
        get_config.cache_clear()
