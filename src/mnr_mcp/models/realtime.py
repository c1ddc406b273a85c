"""Pydantic models for the realtime delay snapshot.

Only the fields consumed by the delay overlay are modelled. Snapshots are
frozen and use tuples so a published snapshot cannot be changed in place.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RealtimeStopUpdate(BaseModel):
    """Delay reported for one stop of a trip."""

    model_config = ConfigDict(frozen=True)

    stop_id: str | None = None
    delay_seconds: int = 0  # positive=late, negative=early


class RealtimeEntity(BaseModel):
    """All stop updates reported for one train."""

    model_config = ConfigDict(frozen=True)

    trip_short_name: str | None = None
    stop_time_updates: tuple[RealtimeStopUpdate, ...] = ()


class RealtimeSnapshot(BaseModel):
    """One complete poll of the realtime feed."""

    model_config = ConfigDict(frozen=True)

    gtfs_realtime_version: str | None = None
    feed_timestamp: int | None = None
    fetched_at: datetime
    entities: tuple[RealtimeEntity, ...] = ()
