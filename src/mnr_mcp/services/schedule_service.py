"""Schedule resolution: next trains from an origin to a destination.

Pipeline: resolve today's service ID -> join origin/destination stop times
-> enrich each candidate concurrently (reading the realtime cache) ->
records in departure order.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from mnr_mcp.data.config import MNRConfig, get_config
from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.errors import InvalidRequestError
from mnr_mcp.models.realtime import RealtimeSnapshot
from mnr_mcp.models.responses import GetScheduleResponse, ScheduleRecord
from mnr_mcp.services.enrichment import EnrichmentResult, enrich_candidates
from mnr_mcp.services.realtime_service import RealtimeFeedCache, get_realtime_cache
from mnr_mcp.services.service_resolver import local_service_date, resolve_service_id
from mnr_mcp.services.trip_filter import filter_trips

logger = logging.getLogger(__name__)


def _require_stop(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequestError(f"{name} is required")
    return value.strip()


async def resolve_schedule(
    origin_id: str | None,
    destination_id: str | None,
    now: datetime | None = None,
    *,
    store: ScheduleStore | None = None,
    cache: RealtimeFeedCache | None = None,
    config: MNRConfig | None = None,
    db_path: Path | None = None,
) -> tuple[str, list[EnrichmentResult], RealtimeSnapshot | None]:
    """Run the full pipeline and keep the tagged per-trip results.

    Returns:
        Tuple of (service_id, results in departure order, snapshot used).

    Raises:
        InvalidRequestError: If origin or destination is missing.
        NoActiveServiceError: If no service runs on the local date of ``now``.
        StoreUnavailableError: If service resolution or the trip join fails.
    """
    origin_id = _require_stop(origin_id, "origin_id")
    destination_id = _require_stop(destination_id, "destination_id")

    config = config or get_config()
    store = store or ScheduleStore(db_path)
    cache = cache or get_realtime_cache()
    now = now or datetime.now(UTC)

    service_id = await resolve_service_id(store, now, config.timezone)
    candidates = await filter_trips(store, service_id, origin_id, destination_id)

    # One snapshot per request so every record sees the same feed poll
    snapshot = cache.current()

    if not candidates:
        logger.debug(f"No trips from {origin_id} to {destination_id} on {service_id}")
        return service_id, [], snapshot

    results = await enrich_candidates(
        store,
        candidates,
        destination_id,
        snapshot,
        max_concurrency=config.max_concurrency,
    )
    return service_id, results, snapshot


async def get_schedule(
    origin_id: str | None,
    destination_id: str | None,
    now: datetime | None = None,
    *,
    store: ScheduleStore | None = None,
    cache: RealtimeFeedCache | None = None,
    config: MNRConfig | None = None,
    db_path: Path | None = None,
) -> list[ScheduleRecord]:
    """Get upcoming schedule records between two stops.

    Args:
        origin_id: Boarding stop ID.
        destination_id: Alighting stop ID.
        now: Query instant (default: current time).
        store: Static schedule store override.
        cache: Realtime cache override (default: the process-wide cache).
        config: Configuration override.
        db_path: Optional database path override, used when no store is given.

    Returns:
        Records ordered ascending by origin departure; empty if no trip
        serves the pair today.
    """
    _, results, _ = await resolve_schedule(
        origin_id,
        destination_id,
        now,
        store=store,
        cache=cache,
        config=config,
        db_path=db_path,
    )
    return [result.record for result in results]


async def get_schedule_response(
    origin_id: str | None,
    destination_id: str | None,
    now: datetime | None = None,
    *,
    store: ScheduleStore | None = None,
    cache: RealtimeFeedCache | None = None,
    config: MNRConfig | None = None,
    db_path: Path | None = None,
) -> GetScheduleResponse:
    """Like get_schedule, wrapped with service and realtime context."""
    config = config or get_config()
    now = now or datetime.now(UTC)

    service_id, results, snapshot = await resolve_schedule(
        origin_id,
        destination_id,
        now,
        store=store,
        cache=cache,
        config=config,
        db_path=db_path,
    )
    records = [result.record for result in results]

    aware_now = now if now.tzinfo else now.replace(tzinfo=UTC)
    return GetScheduleResponse(
        origin_id=origin_id.strip(),
        destination_id=destination_id.strip(),
        service_id=service_id,
        service_date=local_service_date(now, config.timezone).isoformat(),
        query_time=aware_now.astimezone(ZoneInfo(config.timezone)).isoformat(),
        records=records,
        count=len(records),
        degraded_count=sum(1 for result in results if result.is_degraded),
        realtime_available=snapshot is not None,
    )
