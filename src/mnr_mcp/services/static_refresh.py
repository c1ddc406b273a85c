"""Daily re-import of the static GTFS schedule.

Downloads the published archive once a day at a fixed local time and
re-ingests it into the store. The loader swaps the database file
atomically, so request handlers keep reading the previous schedule until
the new one is in place.
"""

import asyncio
import logging
import tempfile
import zipfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import aiosqlite
import httpx

from mnr_mcp.data.config import MNRConfig, get_config
from mnr_mcp.data.database import get_db_path
from mnr_mcp.data.gtfs_loader import GTFSLoader

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 120.0


def seconds_until_next_run(now: datetime, config: MNRConfig) -> float:
    """Seconds from ``now`` until the next configured local refresh time."""
    tz = ZoneInfo(config.timezone)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local_now = now.astimezone(tz)
    next_run = datetime.combine(local_now.date(), config.static_refresh_time, tzinfo=tz)
    if next_run <= local_now:
        next_run = datetime.combine(
            local_now.date() + timedelta(days=1), config.static_refresh_time, tzinfo=tz
        )
    return (next_run - local_now).total_seconds()


class StaticRefreshScheduler:
    """Background task that re-imports the static schedule once a day."""

    def __init__(self, config: MNRConfig | None = None, db_path: Path | None = None):
        self._config = config or get_config()
        self._db_path = db_path or get_db_path()
        self._task: asyncio.Task | None = None
        self._last_import: datetime | None = None
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_import(self) -> datetime | None:
        return self._last_import

    @property
    def error_count(self) -> int:
        return self._error_count

    async def refresh(self) -> dict[str, int]:
        """Download the static feed and ingest it now.

        Returns:
            Row counts per table.

        Raises:
            httpx.HTTPError: If the download fails.
            ValueError: If the archive is missing required files or data.
        """
        logger.info(f"Downloading static schedule from {self._config.static_feed_url}")
        with tempfile.TemporaryDirectory() as tmp_dir:
            archive = Path(tmp_dir) / "google_transit.zip"
            async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
                response = await client.get(self._config.static_feed_url)
                response.raise_for_status()
            archive.write_bytes(response.content)

            row_counts = await GTFSLoader(self._db_path).ingest(archive)

        self._last_import = datetime.now(UTC)
        logger.info(f"Static schedule refreshed: {row_counts}")
        return row_counts

    async def start(self) -> None:
        """Start the daily refresh task."""
        if self.is_running:
            logger.warning("Static refresh already running")
            return

        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(
            f"Static refresh scheduled daily at {self._config.static_refresh_time.strftime('%H:%M')} "
            f"{self._config.timezone}"
        )

    async def stop(self) -> None:
        """Stop the daily refresh task."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Static refresh stopped")

    async def _refresh_loop(self) -> None:
        while True:
            delay = seconds_until_next_run(datetime.now(UTC), self._config)
            await asyncio.sleep(delay)
            try:
                await self.refresh()
            except (httpx.HTTPError, aiosqlite.Error, zipfile.BadZipFile, ValueError, OSError) as e:
                self._error_count += 1
                logger.error(f"Static refresh failed: {e} - will retry at next scheduled time")
            except asyncio.CancelledError:
                raise
            except Exception:
                self._error_count += 1
                logger.exception("Unexpected static refresh failure - will retry at next scheduled time")
