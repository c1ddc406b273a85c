from datetime import time
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MNRConfig(BaseSettings):
    """Configuration for the realtime feed, static refresh and request engine.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Realtime feed
    api_key: str | None = Field(default=None, alias="MNR_API_KEY")
    realtime_url: str | None = Field(
        default="https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/mnr%2Fgtfs-mnr",
        alias="MNR_REALTIME_URL",
    )
    poll_interval_seconds: float = Field(default=60.0, alias="MNR_POLL_INTERVAL")
    feed_timeout_seconds: float = Field(default=30.0, alias="MNR_FEED_TIMEOUT")

    # Service day
    timezone: str = Field(default="America/New_York", alias="MNR_TIMEZONE")

    # Static schedule refresh (daily re-import)
    static_feed_url: str = Field(
        default="http://web.mta.info/developers/data/mnr/google_transit.zip",
        alias="MNR_STATIC_URL",
    )
    static_refresh_enabled: bool = Field(default=False, alias="MNR_STATIC_REFRESH")
    static_refresh_time: time = Field(default=time(1, 30), alias="MNR_STATIC_REFRESH_TIME")

    # Per-request fan-out bound for trip enrichment
    max_concurrency: int = Field(default=8, alias="MNR_MAX_CONCURRENCY")

    @field_validator("max_concurrency")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_concurrency must be at least 1")
        return value

    @property
    def refresh_timeout_seconds(self) -> float:
        """A refresh must finish before the next tick fires."""
        return min(self.feed_timeout_seconds, self.poll_interval_seconds)

    @property
    def realtime_enabled(self) -> bool:
        """True if a realtime endpoint is configured."""
        return bool(self.realtime_url)


@lru_cache
def get_config() -> MNRConfig:
    """Get configuration (cached singleton).

    Returns:
        MNRConfig with values from .env file or environment variables.
    """
    return MNRConfig()
