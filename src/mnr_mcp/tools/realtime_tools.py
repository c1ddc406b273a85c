from mnr_mcp.app import mcp
from mnr_mcp.models.responses import GetRealtimeResponse
from mnr_mcp.services.realtime_service import get_realtime_cache


@mcp.tool()
def get_realtime() -> GetRealtimeResponse:
    """Get the latest Metro-North realtime delay snapshot.

    The snapshot is refreshed in the background every poll interval
    (60 seconds by default). It is null until the first successful fetch;
    after a failed fetch the previous snapshot is still returned.

    Returns:
        GetRealtimeResponse with the snapshot (or null) and refresh status.
    """
    cache = get_realtime_cache()
    return GetRealtimeResponse(snapshot=cache.current(), status=cache.status)
