from datetime import UTC, datetime

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from mnr_mcp.data.config import MNRConfig
from mnr_mcp.errors import FeedUnavailableError
from mnr_mcp.models.realtime import RealtimeEntity, RealtimeSnapshot, RealtimeStopUpdate


class GTFSRTClient:
    """Async HTTP client for the Metro-North GTFS-RT trip updates feed.

    Usage:
        async with GTFSRTClient(config) as client:
            snapshot = await client.fetch_snapshot()
    """

    def __init__(self, config: MNRConfig):
        """Initialize the client.

        Args:
            config: Configuration with feed URL, API key and timeout.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GTFSRTClient":
        """Enter async context - create HTTP client."""
        headers = {}
        if self._config.api_key:
            headers["x-api-key"] = self._config.api_key
        self._client = httpx.AsyncClient(
            headers=headers, timeout=self._config.feed_timeout_seconds
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_snapshot(self) -> RealtimeSnapshot:
        """Fetch and parse the trip updates feed into a snapshot.

        Returns:
            RealtimeSnapshot with one entity per trip update.

        Raises:
            RuntimeError: If client not initialized.
            FeedUnavailableError: If the request fails or the payload is not a feed.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")
        if not self._config.realtime_url:
            raise FeedUnavailableError("No realtime feed URL configured")

        try:
            response = await self._client.get(self._config.realtime_url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FeedUnavailableError(f"Realtime feed request failed: {e}") from e

        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(response.content)
        except DecodeError as e:
            raise FeedUnavailableError(f"Realtime feed could not be decoded: {e}") from e

        return self._parse_snapshot(feed)

    def _parse_snapshot(self, feed: gtfs_realtime_pb2.FeedMessage) -> RealtimeSnapshot:
        """Parse protobuf feed message into a RealtimeSnapshot."""
        entities: list[RealtimeEntity] = []
        for entity in feed.entity:
            if entity.HasField("trip_update"):
                entities.append(self._parse_trip_update(entity.trip_update))

        return RealtimeSnapshot(
            gtfs_realtime_version=feed.header.gtfs_realtime_version or None,
            feed_timestamp=feed.header.timestamp if feed.header.timestamp else None,
            fetched_at=datetime.now(UTC),
            entities=tuple(entities),
        )

    def _parse_trip_update(self, tu: gtfs_realtime_pb2.TripUpdate) -> RealtimeEntity:
        """Parse a single trip update entity.

        Metro-North publishes the train number as the realtime trip_id,
        which is the static trip_short_name.
        """
        updates = tuple(self._parse_stop_time_update(stu) for stu in tu.stop_time_update)
        return RealtimeEntity(
            trip_short_name=tu.trip.trip_id if tu.trip.trip_id else None,
            stop_time_updates=updates,
        )

    def _parse_stop_time_update(
        self, stu: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate
    ) -> RealtimeStopUpdate:
        """Parse a single stop time update, preferring the arrival delay."""
        delay = 0
        if stu.HasField("arrival") and stu.arrival.delay:
            delay = stu.arrival.delay
        elif stu.HasField("departure") and stu.departure.delay:
            delay = stu.departure.delay

        return RealtimeStopUpdate(
            stop_id=stu.stop_id if stu.stop_id else None,
            delay_seconds=delay,
        )
