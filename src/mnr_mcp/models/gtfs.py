"""Pydantic models for GTFS entities read from the static schedule store."""

from datetime import date

from pydantic import BaseModel


class Stop(BaseModel):
    """GTFS stop entity."""

    stop_id: str
    stop_name: str
    stop_code: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    wheelchair_boarding: int | None = None


class ServiceCalendarEntry(BaseModel):
    """A calendar_dates row: one service pattern active on one date."""

    date: date
    service_id: str
    exception_type: int | None = None  # 1=added, 2=removed


class Route(BaseModel):
    """GTFS route entity."""

    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int | None = None
    route_color: str | None = None
    route_text_color: str | None = None


class Trip(BaseModel):
    """GTFS trip entity with the Metro-North extension columns."""

    trip_id: str
    route_id: str
    service_id: str
    trip_headsign: str | None = None
    trip_short_name: str | None = None  # train number, matches realtime trip_id
    direction_id: int | None = None
    wheelchair_accessible: int | None = None  # 0=no info, 1=accessible, 2=not accessible
    peak_offpeak: int | None = None  # 1=peak fare


class StopTime(BaseModel):
    """GTFS stop_times entity.

    Timestamps are seconds since service-day midnight and may exceed 86400
    for trips running past midnight.
    """

    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str | None = None  # HH:MM:SS (can exceed 24:00:00)
    departure_time: str | None = None
    arrival_timestamp: int | None = None
    departure_timestamp: int | None = None
    track: str | None = None
