"""Join origin and destination stop times into directional candidate trips."""

import asyncio
from dataclasses import dataclass

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.models.gtfs import StopTime

# Sorts missing departure timestamps after every real one
MISSING_TIMESTAMP = float("inf")


@dataclass(frozen=True)
class CandidateTrip:
    """A trip that stops at the origin and later reaches the destination."""

    origin: StopTime
    destination_stop_sequence: int

    @property
    def trip_id(self) -> str:
        return self.origin.trip_id


def departure_sort_key(candidate: CandidateTrip) -> tuple[float, str]:
    """Ascending origin departure, ties broken by trip_id."""
    timestamp = candidate.origin.departure_timestamp
    return (MISSING_TIMESTAMP if timestamp is None else timestamp, candidate.trip_id)


def join_candidates(
    service_trip_ids: set[str],
    origin_stop_times: list[StopTime],
    destination_stop_times: list[StopTime],
) -> list[CandidateTrip]:
    """Pure join step of filter_trips.

    Keeps origin stop times on today's trips whose destination stop comes
    strictly later in the same trip, sorted by departure.
    """
    destination_sequences = {st.trip_id: st.stop_sequence for st in destination_stop_times}

    candidates: list[CandidateTrip] = []
    for origin in origin_stop_times:
        if origin.trip_id not in service_trip_ids:
            continue
        destination_sequence = destination_sequences.get(origin.trip_id)
        if destination_sequence is None or destination_sequence <= origin.stop_sequence:
            continue
        candidates.append(CandidateTrip(origin, destination_sequence))

    candidates.sort(key=departure_sort_key)
    return candidates


async def filter_trips(
    store: ScheduleStore,
    service_id: str,
    origin_id: str,
    destination_id: str,
) -> list[CandidateTrip]:
    """Find trips on a service pattern from origin to destination.

    Args:
        store: Static schedule store.
        service_id: Active service ID for the day.
        origin_id: Boarding stop ID.
        destination_id: Alighting stop ID.

    Returns:
        Candidates sorted ascending by origin departure timestamp, then trip_id.

    Raises:
        StoreUnavailableError: If any of the three lookups fails. No partial
            result is returned.
    """
    trips, origin_stop_times, destination_stop_times = await asyncio.gather(
        store.get_trips(service_id=service_id),
        store.get_stoptimes(stop_id=origin_id),
        store.get_stoptimes(stop_id=destination_id),
    )
    return join_candidates(
        {trip.trip_id for trip in trips},
        origin_stop_times,
        destination_stop_times,
    )
