import argparse
import asyncio
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from mnr_mcp.app import mcp

# Register tools and HTTP routes on the shared app
from mnr_mcp import routes  # noqa: F401
from mnr_mcp.tools import realtime_tools, schedule_tools, stop_tools  # noqa: F401

logger = logging.getLogger(__name__)

TRANSPORTS = ("stdio", "sse", "streamable-http")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    realtime_available: bool


@mcp.tool()
def health() -> HealthResponse:
    """Check if the Metro-North MCP server is running and healthy.

    Returns the server status, version, current timestamp and whether a
    realtime snapshot has been fetched.
    """
    from mnr_mcp import __version__
    from mnr_mcp.services.realtime_service import get_realtime_cache

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        realtime_available=get_realtime_cache().current() is not None,
    )


async def run_ingest(gtfs_path: Path, db_path: Path) -> None:
    """Run GTFS ingestion."""
    from mnr_mcp.data.gtfs_loader import GTFSLoader

    loader = GTFSLoader(db_path)
    row_counts = await loader.ingest(gtfs_path)

    print("\nIngestion complete. Row counts:")
    for table, count in row_counts.items():
        print(f"  {table}: {count:,}")


async def run_server(transport: str, db_path: Path | None = None) -> None:
    """Serve MCP and keep the realtime and static refresh tasks running alongside."""
    from mnr_mcp.data.config import get_config
    from mnr_mcp.services.realtime_service import get_realtime_cache
    from mnr_mcp.services.static_refresh import StaticRefreshScheduler

    config = get_config()
    realtime_cache = get_realtime_cache()
    static_refresh = (
        StaticRefreshScheduler(config, db_path) if config.static_refresh_enabled else None
    )

    await realtime_cache.start()
    if static_refresh:
        await static_refresh.start()

    try:
        if transport == "sse":
            await mcp.run_sse_async()
        elif transport == "streamable-http":
            await mcp.run_streamable_http_async()
        else:
            await mcp.run_stdio_async()
    finally:
        if static_refresh:
            await static_refresh.stop()
        await realtime_cache.stop()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="mnr-mcp",
        description="Metro-North Transit MCP Server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    default_db = Path(os.environ.get("MNR_DB_PATH", "data/gtfs.db"))

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest GTFS data into SQLite database",
    )
    ingest_parser.add_argument(
        "gtfs_path",
        type=Path,
        help="Path to GTFS directory or ZIP file",
    )
    ingest_parser.add_argument(
        "--db",
        type=Path,
        default=default_db,
        help="SQLite database path (default: data/gtfs.db or MNR_DB_PATH env var)",
    )

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the MCP server (default)",
    )
    serve_parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default="stdio",
        help="MCP transport; HTTP transports also serve /schedule, /realtime and /stops",
    )
    serve_parser.add_argument("--host", default=None, help="Bind host for HTTP transports")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port for HTTP transports")

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "ingest":
        asyncio.run(run_ingest(args.gtfs_path, args.db))
        return

    transport = getattr(args, "transport", "stdio")
    if getattr(args, "host", None):
        mcp.settings.host = args.host
    if getattr(args, "port", None):
        mcp.settings.port = args.port

    asyncio.run(run_server(transport, default_db))


if __name__ == "__main__":
    main()
