"""GTFS clock-time helpers."""

from datetime import date


def parse_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """Parse a GTFS time string into hours, minutes, seconds.

    GTFS times can exceed 24:00:00 for trips that extend past midnight.
    For example, "25:30:00" means 1:30 AM the next day.

    Args:
        time_str: Time string in HH:MM:SS format (hours can exceed 24).

    Returns:
        Tuple of (hours, minutes, seconds).

    Raises:
        ValueError: If the time string is invalid.
    """
    parts = time_str.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time format: {time_str}")

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2])
    except ValueError as e:
        raise ValueError(f"Invalid GTFS time format: {time_str}") from e

    return hours, minutes, seconds


def gtfs_time_to_seconds(time_str: str) -> int:
    """Convert a GTFS time string to seconds since midnight.

    Returns:
        Total seconds since midnight (can exceed 86400 for next-day times).
    """
    hours, minutes, seconds = parse_gtfs_time(time_str)
    return hours * 3600 + minutes * 60 + seconds


def safe_gtfs_time_to_seconds(time_str: str | None) -> int | None:
    """Like gtfs_time_to_seconds, but None for missing or malformed values."""
    if not time_str:
        return None
    try:
        return gtfs_time_to_seconds(time_str)
    except ValueError:
        return None


def date_to_gtfs_format(d: date) -> str:
    """Convert a date to GTFS date format (YYYYMMDD)."""
    return d.strftime("%Y%m%d")


def gtfs_date_to_date(value: str) -> date:
    """Parse a GTFS YYYYMMDD date string.

    Raises:
        ValueError: If the string is not a valid YYYYMMDD date.
    """
    value = value.strip()
    if len(value) != 8 or not value.isdigit():
        raise ValueError(f"Invalid GTFS date format: {value}")
    return date(int(value[:4]), int(value[4:6]), int(value[6:]))
