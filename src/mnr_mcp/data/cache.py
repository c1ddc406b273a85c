"""Single-value snapshot holder for the realtime feed."""

import time
from datetime import UTC, datetime
from typing import Generic, TypeVar

T = TypeVar("T")


class SnapshotCache(Generic[T]):
    """Holds at most one value, replaced as a whole.

    Writers call ``set`` with a fully built value; the reference swap is a
    single assignment, so readers see either the previous value or the new
    one. Values are never expired: the last good value is served until it
    is replaced.
    """

    def __init__(self) -> None:
        self._value: T | None = None
        self._updated_at: datetime | None = None
        self._updated_monotonic: float | None = None

    def get(self) -> T | None:
        """Get the current value, or None if nothing was ever set."""
        return self._value

    def set(self, value: T) -> None:
        """Replace the current value.

        Args:
            value: The new value. Must not be mutated after this call.
        """
        self._updated_monotonic = time.monotonic()
        self._updated_at = datetime.now(UTC)
        self._value = value

    def clear(self) -> None:
        """Drop the current value."""
        self._value = None
        self._updated_at = None
        self._updated_monotonic = None

    @property
    def updated_at(self) -> datetime | None:
        """Wall-clock time of the last replacement."""
        return self._updated_at

    @property
    def age_seconds(self) -> float | None:
        """Seconds since the last replacement, or None if empty."""
        if self._updated_monotonic is None:
            return None
        return time.monotonic() - self._updated_monotonic
