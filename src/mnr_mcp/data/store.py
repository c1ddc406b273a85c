"""Read-only query facade over the static schedule store.

Each query opens its own connection, so concurrent callers never share a
cursor. The store may be re-imported underneath us; every read is best
effort and may briefly see the old or the new tables.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any

import aiosqlite

from mnr_mcp.data.database import get_db
from mnr_mcp.data.gtfs_time import date_to_gtfs_format, gtfs_date_to_date
from mnr_mcp.errors import StoreUnavailableError
from mnr_mcp.models.gtfs import Route, ServiceCalendarEntry, Stop, StopTime, Trip

logger = logging.getLogger(__name__)

STOP_COLUMNS = "stop_id, stop_name, stop_code, stop_lat, stop_lon, wheelchair_boarding"
TRIP_COLUMNS = (
    "trip_id, route_id, service_id, trip_headsign, trip_short_name, "
    "direction_id, wheelchair_accessible, peak_offpeak"
)
ROUTE_COLUMNS = (
    "route_id, route_short_name, route_long_name, route_type, route_color, route_text_color"
)
STOP_TIME_COLUMNS = (
    "trip_id, stop_id, stop_sequence, arrival_time, departure_time, "
    "arrival_timestamp, departure_timestamp, track"
)


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _row_to_stop(row: aiosqlite.Row) -> Stop:
    return Stop(
        stop_id=row["stop_id"],
        stop_name=row["stop_name"],
        stop_code=row["stop_code"],
        stop_lat=_float_or_none(row["stop_lat"]),
        stop_lon=_float_or_none(row["stop_lon"]),
        wheelchair_boarding=_int_or_none(row["wheelchair_boarding"]),
    )


def _row_to_trip(row: aiosqlite.Row) -> Trip:
    return Trip(
        trip_id=row["trip_id"],
        route_id=row["route_id"],
        service_id=row["service_id"],
        trip_headsign=row["trip_headsign"],
        trip_short_name=row["trip_short_name"],
        direction_id=_int_or_none(row["direction_id"]),
        wheelchair_accessible=_int_or_none(row["wheelchair_accessible"]),
        peak_offpeak=_int_or_none(row["peak_offpeak"]),
    )


def _row_to_route(row: aiosqlite.Row) -> Route:
    return Route(
        route_id=row["route_id"],
        route_short_name=row["route_short_name"],
        route_long_name=row["route_long_name"],
        route_type=_int_or_none(row["route_type"]),
        route_color=row["route_color"],
        route_text_color=row["route_text_color"],
    )


def _row_to_stop_time(row: aiosqlite.Row) -> StopTime:
    return StopTime(
        trip_id=row["trip_id"],
        stop_id=row["stop_id"],
        stop_sequence=int(row["stop_sequence"]),
        arrival_time=row["arrival_time"],
        departure_time=row["departure_time"],
        arrival_timestamp=_int_or_none(row["arrival_timestamp"]),
        departure_timestamp=_int_or_none(row["departure_timestamp"]),
        track=row["track"],
    )


class ScheduleStore:
    """Async read access to stops, calendar dates, trips, routes and stop times.

    Usage:
        store = ScheduleStore(db_path)
        trips = await store.get_trips(service_id="WKDY")
    """

    def __init__(self, db_path: Path | None = None):
        """Initialize the store.

        Args:
            db_path: Optional database path override (defaults to MNR_DB_PATH).
        """
        self.db_path = db_path

    async def _fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[aiosqlite.Row]:
        """Run a query and return every row.

        Raises:
            StoreUnavailableError: If the database is missing or the query fails.
        """
        try:
            async with get_db(self.db_path) as db:
                async with db.execute(sql, params) as cursor:
                    return list(await cursor.fetchall())
        except (aiosqlite.Error, FileNotFoundError) as e:
            logger.error(f"Store query failed: {e}")
            raise StoreUnavailableError(f"Schedule store unavailable: {e}") from e

    async def get_stops(self, stop_id: str | None = None) -> list[Stop]:
        """Get stops, optionally filtered by ID. Unfiltered results are ordered by name."""
        if stop_id is not None:
            sql = f"SELECT {STOP_COLUMNS} FROM stops WHERE stop_id = ?"
            rows = await self._fetch_all(sql, (stop_id,))
        else:
            rows = await self._fetch_all(f"SELECT {STOP_COLUMNS} FROM stops ORDER BY stop_name")
        return [_row_to_stop(row) for row in rows]

    async def get_calendar_dates(self, service_date: date) -> list[ServiceCalendarEntry]:
        """Get calendar_dates entries for a date, in store (import) order."""
        sql = """
            SELECT service_id, date, exception_type
            FROM calendar_dates
            WHERE date = ?
            ORDER BY rowid
        """
        rows = await self._fetch_all(sql, (date_to_gtfs_format(service_date),))
        return [
            ServiceCalendarEntry(
                date=gtfs_date_to_date(row["date"]),
                service_id=row["service_id"],
                exception_type=_int_or_none(row["exception_type"]),
            )
            for row in rows
        ]

    async def get_trips(
        self,
        service_id: str | None = None,
        trip_id: str | None = None,
    ) -> list[Trip]:
        """Get trips filtered by service ID and/or trip ID."""
        clauses: list[str] = []
        params: list[str] = []
        if service_id is not None:
            clauses.append("service_id = ?")
            params.append(service_id)
        if trip_id is not None:
            clauses.append("trip_id = ?")
            params.append(trip_id)

        sql = f"SELECT {TRIP_COLUMNS} FROM trips"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        rows = await self._fetch_all(sql, tuple(params))
        return [_row_to_trip(row) for row in rows]

    async def get_stoptimes(
        self,
        stop_id: str | None = None,
        trip_id: str | None = None,
        departure_time_range: tuple[int, int] | None = None,
    ) -> list[StopTime]:
        """Get stop times filtered by stop, trip and departure window.

        Args:
            stop_id: Only stop times at this stop.
            trip_id: Only stop times of this trip.
            departure_time_range: Inclusive (start, end) window of departure
                timestamps in seconds since midnight.

        Returns:
            Stop times ordered by trip_id then stop_sequence.
        """
        clauses: list[str] = []
        params: list[str | int] = []
        if stop_id is not None:
            clauses.append("stop_id = ?")
            params.append(stop_id)
        if trip_id is not None:
            clauses.append("trip_id = ?")
            params.append(trip_id)
        if departure_time_range is not None:
            clauses.append("departure_timestamp BETWEEN ? AND ?")
            params.extend(departure_time_range)

        sql = f"SELECT {STOP_TIME_COLUMNS} FROM stop_times"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY trip_id, stop_sequence"
        rows = await self._fetch_all(sql, tuple(params))
        return [_row_to_stop_time(row) for row in rows]

    async def get_routes(self, route_id: str) -> list[Route]:
        """Get routes by ID."""
        sql = f"SELECT {ROUTE_COLUMNS} FROM routes WHERE route_id = ?"
        rows = await self._fetch_all(sql, (route_id,))
        return [_row_to_route(row) for row in rows]
