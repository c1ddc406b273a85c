"""Plain HTTP routes served next to the MCP endpoints.

Available when the server runs with an HTTP transport (sse or
streamable-http).
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from mnr_mcp.app import mcp
from mnr_mcp.errors import ScheduleError
from mnr_mcp.services.realtime_service import get_realtime_cache
from mnr_mcp.services.schedule_service import get_schedule
from mnr_mcp.services.stop_service import list_stops


def error_response(error: ScheduleError) -> JSONResponse:
    """Structured JSON error body with the error's HTTP status."""
    return JSONResponse(error.to_response().model_dump(), status_code=error.status_code)


@mcp.custom_route("/schedule", methods=["GET"])
async def schedule_route(request: Request) -> JSONResponse:
    """GET /schedule?origin_id=&destination_id= -> array of schedule records."""
    try:
        records = await get_schedule(
            request.query_params.get("origin_id"),
            request.query_params.get("destination_id"),
        )
    except ScheduleError as e:
        return error_response(e)
    return JSONResponse([record.model_dump(mode="json") for record in records])


@mcp.custom_route("/realtime", methods=["GET"])
async def realtime_route(request: Request) -> JSONResponse:
    """GET /realtime -> current snapshot or null."""
    snapshot = get_realtime_cache().current()
    return JSONResponse(snapshot.model_dump(mode="json") if snapshot else None)


@mcp.custom_route("/stops", methods=["GET"])
async def stops_route(request: Request) -> JSONResponse:
    """GET /stops -> array of {stop_id, stop_name}."""
    try:
        response = await list_stops()
    except ScheduleError as e:
        return error_response(e)
    return JSONResponse(
        [{"stop_id": stop.stop_id, "stop_name": stop.stop_name} for stop in response.stops]
    )
