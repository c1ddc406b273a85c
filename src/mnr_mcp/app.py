"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool and route modules should import `mcp` from here, not from server.py.
"""

from mcp.server.fastmcp import FastMCP

# Initialize the MCP server
mcp = FastMCP(
    "Metro-North Transit",
    instructions=(
        "Metro-North Railroad next trains between two stations, "
        "with live delays from the realtime feed"
    ),
)
