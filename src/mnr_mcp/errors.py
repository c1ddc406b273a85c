"""Error taxonomy for schedule resolution.

Every error carries a stable machine-readable ``kind`` so the MCP tools and
HTTP routes can return a structured body instead of a traceback.
"""

from mnr_mcp.models.responses import ErrorResponse


class ScheduleError(Exception):
    """Base class for errors surfaced by the schedule engine."""

    kind = "schedule_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        """Build the structured error body for this failure."""
        return ErrorResponse(kind=self.kind, message=self.message)


class InvalidRequestError(ScheduleError):
    """Origin or destination missing from the request."""

    kind = "invalid_request"
    status_code = 400


class NoActiveServiceError(ScheduleError):
    """No calendar entry exists for the requested service date.

    Callers report "no service today" and do not retry.
    """

    kind = "no_active_service"
    status_code = 404


class StoreUnavailableError(ScheduleError):
    """A static schedule store query failed. Safe to retry."""

    kind = "store_unavailable"
    status_code = 503


class FeedUnavailableError(ScheduleError):
    """The realtime feed could not be fetched or parsed.

    Only the realtime cache sees this; request callers never do.
    """

    kind = "feed_unavailable"
    status_code = 503


class PerTripEnrichmentError(ScheduleError):
    """Enriching a single candidate trip failed."""

    kind = "per_trip_enrichment"

    def __init__(self, trip_id: str, message: str):
        super().__init__(f"Trip {trip_id}: {message}")
        self.trip_id = trip_id
