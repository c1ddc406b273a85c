"""MCP tools for listing and searching stations."""

from mnr_mcp.app import mcp
from mnr_mcp.errors import ScheduleError
from mnr_mcp.models.responses import ErrorResponse, ListStopsResponse
from mnr_mcp.services.stop_service import list_stops as _list_stops
from mnr_mcp.services.stop_service import search_stops as _search_stops


@mcp.tool()
async def list_stops() -> ListStopsResponse | ErrorResponse:
    """List every Metro-North station with its stop ID, ordered by name."""
    try:
        return await _list_stops()
    except ScheduleError as e:
        return e.to_response()


@mcp.tool()
async def search_stops(query: str, limit: int = 10) -> ListStopsResponse | ErrorResponse:
    """Search Metro-North stations by name.

    Matching is fuzzy, so partial or misspelled names work.

    Examples:
        search_stops(query="grand central")
        search_stops(query="stamfrd")

    Args:
        query: Station name or fragment.
        limit: Maximum number of results (default 10, max 50).

    Returns:
        ListStopsResponse with matching stations, best match first.
    """
    limit = max(1, min(50, limit))

    try:
        return await _search_stops(query=query, limit=limit)
    except ValueError as e:
        return ErrorResponse(kind="invalid_request", message=str(e))
    except ScheduleError as e:
        return e.to_response()
