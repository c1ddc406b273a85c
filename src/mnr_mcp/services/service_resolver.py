"""Resolve the service pattern active on a given local date."""

import logging
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.errors import NoActiveServiceError

logger = logging.getLogger(__name__)

# calendar_dates exception_type meaning "service removed on this date"
EXCEPTION_REMOVED = 2


def local_service_date(now: datetime, timezone: str) -> date:
    """Civil date of an instant in the given timezone.

    Naive datetimes are taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(ZoneInfo(timezone)).date()


async def resolve_service_id(store: ScheduleStore, now: datetime, timezone: str) -> str:
    """Get the service ID active on the local date of ``now``.

    When several calendar entries exist for the date, the first one in store
    order wins. Entries that remove service are ignored.

    Args:
        store: Static schedule store.
        now: The query instant.
        timezone: IANA timezone name defining the service day.

    Returns:
        The active service ID.

    Raises:
        NoActiveServiceError: If no active (non-removed) calendar entry exists
            for the date.
        StoreUnavailableError: If the calendar query fails.
    """
    service_date = local_service_date(now, timezone)
    entries = await store.get_calendar_dates(service_date)

    for entry in entries:
        if entry.exception_type == EXCEPTION_REMOVED:
            continue
        if len(entries) > 1:
            logger.debug(
                f"{len(entries)} calendar entries for {service_date}, using {entry.service_id}"
            )
        return entry.service_id

    raise NoActiveServiceError(f"No service scheduled for {service_date.isoformat()}")
