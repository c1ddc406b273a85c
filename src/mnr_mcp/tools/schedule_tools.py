from mnr_mcp.app import mcp
from mnr_mcp.errors import ScheduleError
from mnr_mcp.models.responses import ErrorResponse, GetScheduleResponse
from mnr_mcp.services.schedule_service import get_schedule_response


@mcp.tool()
async def get_schedule(
    origin_id: str,
    destination_id: str,
) -> GetScheduleResponse | ErrorResponse:
    """Get today's Metro-North trains from one station to another.

    Returns every train on today's service that stops at the origin and
    later reaches the destination, ordered by departure time. Each record
    includes the route, arrival time at the destination, trip duration,
    the full stop list with tracks, and the live delay at the destination
    (0 when the realtime feed has no report for the train).

    Examples:
        get_schedule(origin_id="1", destination_id="116")  # Grand Central -> Stamford

    Args:
        origin_id: Stop ID of the boarding station. Use search_stops() to find IDs.
        destination_id: Stop ID of the destination station.

    Returns:
        GetScheduleResponse with records, service_id and realtime status, or
        ErrorResponse with kind "invalid_request", "no_active_service" or
        "store_unavailable".
    """
    try:
        return await get_schedule_response(origin_id, destination_id)
    except ScheduleError as e:
        return e.to_response()
