"""Per-trip enrichment: metadata, destination arrival, itinerary and delay.

Each candidate is enriched independently. A store failure or missing record
for one trip degrades that trip's record (failed fields stay null) instead
of failing the whole request.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.errors import PerTripEnrichmentError, StoreUnavailableError
from mnr_mcp.models.gtfs import Route, StopTime, Trip
from mnr_mcp.models.realtime import RealtimeSnapshot
from mnr_mcp.models.responses import RecordStatus, ScheduleRecord, StopSequenceEntry
from mnr_mcp.services.trip_filter import CandidateTrip

logger = logging.getLogger(__name__)

TRIP_FIELDS = {
    "trip_headsign",
    "trip_short_name",
    "route_id",
    "wheelchair_accessible",
    "peak_offpeak",
}
ROUTE_FIELDS = {"route_id", "route_long_name", "route_color", "route_text_color"}


@dataclass
class EnrichmentResult:
    """Tagged outcome of enriching one candidate trip."""

    record: ScheduleRecord
    errors: list[PerTripEnrichmentError] = field(default_factory=list)

    @property
    def status(self) -> RecordStatus:
        return self.record.status

    @property
    def is_degraded(self) -> bool:
        return self.record.status == RecordStatus.DEGRADED


def resolve_delay(
    snapshot: RealtimeSnapshot | None,
    trip_short_name: str | None,
    stop_id: str,
) -> int:
    """Delay in seconds reported for a train at a stop.

    Within the train's entity, the last nonzero delay reported for the stop
    wins. No snapshot, no matching train or no matching update gives 0.
    """
    if snapshot is None or not trip_short_name:
        return 0

    for entity in snapshot.entities:
        if entity.trip_short_name != trip_short_name:
            continue
        delay = 0
        for update in entity.stop_time_updates:
            if update.stop_id == stop_id and update.delay_seconds:
                delay = update.delay_seconds
        return delay

    return 0


def trip_duration_seconds(origin: StopTime, destination: StopTime | None) -> int | None:
    """Absolute seconds between origin departure and destination arrival."""
    if destination is None:
        return None
    if origin.departure_timestamp is None or destination.arrival_timestamp is None:
        return None
    return abs(origin.departure_timestamp - destination.arrival_timestamp)


def to_stop_sequence(stop_times: list[StopTime]) -> list[StopSequenceEntry]:
    """Project a trip's stop times onto the itinerary shape, ordered by stop_sequence."""
    return [
        StopSequenceEntry(
            departure_time=st.departure_time,
            stop_id=st.stop_id,
            stop_sequence=st.stop_sequence,
            track=st.track,
            departure_timestamp=st.departure_timestamp,
        )
        for st in sorted(stop_times, key=lambda st: st.stop_sequence)
    ]


async def fetch_destination(
    store: ScheduleStore, trip_id: str, destination_id: str
) -> StopTime:
    """Destination stop time for a trip."""
    stop_times = await store.get_stoptimes(stop_id=destination_id, trip_id=trip_id)
    if not stop_times:
        raise PerTripEnrichmentError(trip_id, f"no stop time at destination {destination_id}")
    # A trip visiting the stop twice arrives at its last visit
    return max(stop_times, key=lambda st: st.stop_sequence)


async def fetch_trip(store: ScheduleStore, trip_id: str) -> Trip:
    trips = await store.get_trips(trip_id=trip_id)
    if not trips:
        raise PerTripEnrichmentError(trip_id, "trip not found")
    return trips[0]


async def fetch_route(store: ScheduleStore, trip_id: str, route_id: str) -> Route:
    routes = await store.get_routes(route_id)
    if not routes:
        raise PerTripEnrichmentError(trip_id, f"route {route_id} not found")
    return routes[0]


async def fetch_stop_sequence(store: ScheduleStore, trip_id: str) -> list[StopSequenceEntry]:
    stop_times = await store.get_stoptimes(trip_id=trip_id)
    if not stop_times:
        raise PerTripEnrichmentError(trip_id, "no stop times for trip")
    return to_stop_sequence(stop_times)


def _as_enrichment_error(trip_id: str, outcome: Any) -> PerTripEnrichmentError | None:
    """Map a gathered outcome to a per-trip error, re-raising anything unexpected."""
    if isinstance(outcome, PerTripEnrichmentError):
        return outcome
    if isinstance(outcome, StoreUnavailableError):
        return PerTripEnrichmentError(trip_id, outcome.message)
    if isinstance(outcome, BaseException):
        raise outcome
    return None


async def enrich_candidate(
    store: ScheduleStore,
    candidate: CandidateTrip,
    destination_id: str,
    snapshot: RealtimeSnapshot | None,
) -> EnrichmentResult:
    """Build the schedule record for one candidate trip.

    Args:
        store: Static schedule store.
        candidate: Candidate from the trip filter join.
        destination_id: Alighting stop ID.
        snapshot: Realtime snapshot read once for the request, or None.

    Returns:
        EnrichmentResult tagged ok or degraded.
    """
    origin = candidate.origin
    trip_id = origin.trip_id

    destination_outcome, trip_outcome, sequence_outcome = await asyncio.gather(
        fetch_destination(store, trip_id, destination_id),
        fetch_trip(store, trip_id),
        fetch_stop_sequence(store, trip_id),
        return_exceptions=True,
    )

    errors: list[PerTripEnrichmentError] = []
    fields: dict[str, Any] = {}

    destination: StopTime | None = None
    error = _as_enrichment_error(trip_id, destination_outcome)
    if error:
        errors.append(error)
    else:
        destination = destination_outcome

    error = _as_enrichment_error(trip_id, trip_outcome)
    if error:
        errors.append(error)
    else:
        trip: Trip = trip_outcome
        fields.update(trip.model_dump(include=TRIP_FIELDS))
        try:
            route = await fetch_route(store, trip_id, trip.route_id)
        except (PerTripEnrichmentError, StoreUnavailableError) as e:
            errors.append(_as_enrichment_error(trip_id, e))
        else:
            # Route fields applied last
            fields.update(route.model_dump(include=ROUTE_FIELDS))

    error = _as_enrichment_error(trip_id, sequence_outcome)
    if error:
        errors.append(error)
    else:
        fields["full_stop_sequence"] = sequence_outcome

    record = ScheduleRecord(
        trip_id=trip_id,
        origin_id=origin.stop_id,
        destination_id=destination_id,
        departure_time=origin.departure_time,
        departure_timestamp=origin.departure_timestamp,
        arrival_time=destination.arrival_time if destination else None,
        arrival_timestamp=destination.arrival_timestamp if destination else None,
        trip_duration_seconds=trip_duration_seconds(origin, destination),
        stop_sequence=origin.stop_sequence,
        destination_stop_sequence=candidate.destination_stop_sequence,
        delay_seconds=resolve_delay(snapshot, fields.get("trip_short_name"), destination_id),
        status=RecordStatus.DEGRADED if errors else RecordStatus.OK,
        **fields,
    )

    if errors:
        logger.warning(
            f"Degraded schedule record for trip {trip_id}: "
            + "; ".join(e.message for e in errors)
        )

    return EnrichmentResult(record=record, errors=errors)


async def enrich_candidates(
    store: ScheduleStore,
    candidates: list[CandidateTrip],
    destination_id: str,
    snapshot: RealtimeSnapshot | None,
    max_concurrency: int = 8,
) -> list[EnrichmentResult]:
    """Enrich candidates concurrently with a bounded fan-out.

    Results come back in the order of ``candidates`` regardless of which
    enrichment finishes first.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _bounded(candidate: CandidateTrip) -> EnrichmentResult:
        async with semaphore:
            return await enrich_candidate(store, candidate, destination_id, snapshot)

    return list(await asyncio.gather(*(_bounded(c) for c in candidates)))
