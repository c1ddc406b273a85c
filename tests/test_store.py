"""Tests for the static schedule store facade."""

from datetime import date
from pathlib import Path

import pytest

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.errors import StoreUnavailableError


class TestGetStops:
    async def test_all_stops_ordered_by_name(self, store: ScheduleStore) -> None:
        stops = await store.get_stops()
        assert [s.stop_name for s in stops] == [
            "Grand Central",
            "Harlem-125 St",
            "New Haven",
            "Stamford",
        ]

    async def test_filter_by_id(self, store: ScheduleStore) -> None:
        stops = await store.get_stops(stop_id="C")
        assert len(stops) == 1
        assert stops[0].stop_name == "Stamford"
        assert stops[0].stop_lat == pytest.approx(41.046937)

    async def test_unknown_id_is_empty(self, store: ScheduleStore) -> None:
        assert await store.get_stops(stop_id="ZZZ") == []


class TestGetCalendarDates:
    async def test_entries_in_store_order(self, store: ScheduleStore) -> None:
        entries = await store.get_calendar_dates(date(2024, 3, 5))
        assert [e.service_id for e in entries] == ["WKDY", "SAT"]
        assert entries[0].date == date(2024, 3, 5)
        assert entries[0].exception_type == 1

    async def test_no_entries(self, store: ScheduleStore) -> None:
        assert await store.get_calendar_dates(date(2030, 1, 1)) == []


class TestGetTrips:
    async def test_by_service(self, store: ScheduleStore) -> None:
        trips = await store.get_trips(service_id="WKDY")
        assert {t.trip_id for t in trips} == {"T1", "T2", "T5", "T6"}

    async def test_by_trip_id(self, store: ScheduleStore) -> None:
        trips = await store.get_trips(trip_id="T1")
        assert len(trips) == 1
        trip = trips[0]
        assert trip.trip_short_name == "5401"
        assert trip.trip_headsign == "Poughkeepsie"
        assert trip.wheelchair_accessible == 1
        assert trip.peak_offpeak == 1


class TestGetStoptimes:
    async def test_by_stop(self, store: ScheduleStore) -> None:
        stop_times = await store.get_stoptimes(stop_id="A")
        assert {st.trip_id for st in stop_times} == {"T1", "T2", "T3", "T4", "T5"}

    async def test_by_trip_ordered_by_sequence(self, store: ScheduleStore) -> None:
        stop_times = await store.get_stoptimes(trip_id="T1")
        assert [st.stop_sequence for st in stop_times] == [1, 3, 7]
        assert [st.stop_id for st in stop_times] == ["C", "A", "B"]

    async def test_by_stop_and_trip(self, store: ScheduleStore) -> None:
        stop_times = await store.get_stoptimes(stop_id="B", trip_id="T1")
        assert len(stop_times) == 1
        assert stop_times[0].arrival_timestamp == 1900
        assert stop_times[0].track == "2"

    async def test_departure_time_range(self, store: ScheduleStore) -> None:
        stop_times = await store.get_stoptimes(stop_id="A", departure_time_range=(900, 1600))
        assert {st.trip_id for st in stop_times} == {"T1", "T3"}


class TestGetRoutes:
    async def test_by_id(self, store: ScheduleStore) -> None:
        routes = await store.get_routes("R1")
        assert routes[0].route_long_name == "Hudson"
        assert routes[0].route_color == "009B3A"

    async def test_missing_route_is_empty(self, store: ScheduleStore) -> None:
        assert await store.get_routes("RX") == []


async def test_missing_database_raises_store_unavailable(tmp_path: Path) -> None:
    store = ScheduleStore(tmp_path / "missing.db")
    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.get_trips(service_id="WKDY")
    assert exc_info.value.kind == "store_unavailable"


async def test_broken_database_raises_store_unavailable(tmp_path: Path) -> None:
    db_file = tmp_path / "broken.db"
    db_file.write_bytes(b"this is not a sqlite database at all, not even close")
    store = ScheduleStore(db_file)
    with pytest.raises(StoreUnavailableError):
        await store.get_stops()
