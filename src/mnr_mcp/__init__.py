"""Metro-North next-train schedule server."""

__version__ = "0.1.0"
