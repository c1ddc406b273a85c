from enum import Enum

from pydantic import BaseModel, Field

from mnr_mcp.models.realtime import RealtimeSnapshot


class RecordStatus(str, Enum):
    """Whether every enrichment step succeeded for a schedule record."""

    OK = "ok"
    DEGRADED = "degraded"


class ErrorResponse(BaseModel):
    """Structured error body with a stable machine-readable kind."""

    kind: str
    message: str


class StopSequenceEntry(BaseModel):
    """One stop of a trip's full itinerary."""

    departure_time: str | None = None
    stop_id: str
    stop_sequence: int
    track: str | None = None
    departure_timestamp: int | None = None


class ScheduleRecord(BaseModel):
    """A candidate trip from origin to destination with realtime delay applied."""

    # Trip identification
    trip_id: str
    trip_headsign: str | None = None
    trip_short_name: str | None = Field(default=None, description="Train number")
    route_id: str | None = None
    route_long_name: str | None = None
    route_color: str | None = None
    route_text_color: str | None = None

    # Origin / destination
    origin_id: str
    destination_id: str
    departure_time: str | None = Field(default=None, description="Departure at origin, HH:MM:SS")
    departure_timestamp: int | None = None
    arrival_time: str | None = Field(
        default=None, description="Arrival at destination, HH:MM:SS"
    )
    arrival_timestamp: int | None = None
    trip_duration_seconds: int | None = None
    stop_sequence: int = Field(description="Stop sequence of the origin stop")
    destination_stop_sequence: int

    wheelchair_accessible: int | None = Field(
        default=None, description="0=no info, 1=accessible, 2=not accessible"
    )
    peak_offpeak: int | None = None

    # Realtime
    delay_seconds: int = Field(
        default=0, description="Delay at destination (positive=late, negative=early)"
    )

    full_stop_sequence: list[StopSequenceEntry] | None = None

    status: RecordStatus = RecordStatus.OK


class GetScheduleResponse(BaseModel):
    """Response for get_schedule."""

    origin_id: str
    destination_id: str
    service_id: str
    service_date: str = Field(description="Service date in YYYY-MM-DD format")
    query_time: str = Field(description="Query instant in ISO 8601, local timezone")
    records: list[ScheduleRecord]
    count: int = Field(description="Number of records returned")
    degraded_count: int = Field(default=0, description="Records with failed enrichment")
    realtime_available: bool = Field(
        description="Whether a realtime snapshot was available for this query"
    )


class StopResult(BaseModel):
    stop_id: str
    stop_name: str
    stop_code: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    score: float | None = Field(default=None, description="Fuzzy match score (search only)")


class ListStopsResponse(BaseModel):
    stops: list[StopResult]
    count: int = Field(description="Number of stops returned")


class RealtimeStatus(BaseModel):
    """State of the background realtime refresh."""

    running: bool
    interval_seconds: float
    last_success: str | None = None
    last_error: str | None = None
    fetch_count: int = 0
    error_count: int = 0


class GetRealtimeResponse(BaseModel):
    snapshot: RealtimeSnapshot | None = None
    status: RealtimeStatus
