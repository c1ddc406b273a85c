"""Stop listing and name search."""

from pathlib import Path

from rapidfuzz import fuzz

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.models.gtfs import Stop
from mnr_mcp.models.responses import ListStopsResponse, StopResult

# Minimum blended score for a fuzzy name match to be returned
MIN_MATCH_SCORE = 60.0


def normalize_name(name: str) -> str:
    """Lowercase and collapse whitespace and punctuation used in station names."""
    cleaned = name.lower().replace("-", " ").replace("/", " ").replace(".", " ")
    return " ".join(cleaned.split())


def score_stop_name(query: str, stop_name: str) -> float:
    """Fuzzy match score in the 0-100 range.

    token_set_ratio handles word order ("Grand Central" vs "Central, Grand"),
    partial_ratio handles prefixes ("stam" vs "Stamford").
    """
    query_normalized = normalize_name(query)
    target_normalized = normalize_name(stop_name)
    if not query_normalized:
        return 0.0
    if query_normalized == target_normalized:
        return 100.0

    token_score = fuzz.token_set_ratio(query_normalized, target_normalized)
    partial_score = fuzz.partial_ratio(query_normalized, target_normalized)
    return min(100.0, token_score * 0.7 + partial_score * 0.3)


def _to_result(stop: Stop, score: float | None = None) -> StopResult:
    return StopResult(
        stop_id=stop.stop_id,
        stop_name=stop.stop_name,
        stop_code=stop.stop_code,
        stop_lat=stop.stop_lat,
        stop_lon=stop.stop_lon,
        score=round(score, 1) if score is not None else None,
    )


async def list_stops(
    store: ScheduleStore | None = None,
    db_path: Path | None = None,
) -> ListStopsResponse:
    """List every stop ordered by name.

    Raises:
        StoreUnavailableError: If the store query fails.
    """
    store = store or ScheduleStore(db_path)
    stops = [_to_result(stop) for stop in await store.get_stops()]
    return ListStopsResponse(stops=stops, count=len(stops))


async def search_stops(
    query: str,
    limit: int = 10,
    store: ScheduleStore | None = None,
    db_path: Path | None = None,
) -> ListStopsResponse:
    """Search stops by fuzzy name match.

    Args:
        query: Station name or fragment (e.g., "grand central", "stamford").
        limit: Maximum number of results.
        store: Static schedule store override.
        db_path: Optional database path override.

    Returns:
        ListStopsResponse sorted by descending score.

    Raises:
        ValueError: If the query is empty.
    """
    if not query or not query.strip():
        raise ValueError("query is required")

    store = store or ScheduleStore(db_path)
    scored: list[tuple[float, Stop]] = []
    for stop in await store.get_stops():
        score = score_stop_name(query, stop.stop_name)
        if score >= MIN_MATCH_SCORE:
            scored.append((score, stop))

    scored.sort(key=lambda item: (-item[0], item[1].stop_name))
    stops = [_to_result(stop, score) for score, stop in scored[:limit]]
    return ListStopsResponse(stops=stops, count=len(stops))


async def get_stop_by_id(
    stop_id: str,
    store: ScheduleStore | None = None,
    db_path: Path | None = None,
) -> StopResult | None:
    """Get a single stop by its ID.

    Returns:
        StopResult if found, None otherwise.
    """
    store = store or ScheduleStore(db_path)
    stops = await store.get_stops(stop_id=stop_id)
    if not stops:
        return None
    return _to_result(stops[0])
