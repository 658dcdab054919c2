"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RESTCOUNTRIES_URL = "https://restcountries.com/v3.1/all"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    pixelpilot_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    pixelpilot_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    pixelpilot_log_dir: str | None = Field(
        default=None,
        description="Directory for rotating log files (console only when unset)",
    )

    # Persistence
    pixelpilot_storage_dir: str = Field(
        default="./.pixelpilot",
        description="Directory holding the persisted auth and chat blobs",
    )

    # Authentication timings
    pixelpilot_otp_send_delay: float = Field(
        default=2.0,
        ge=0,
        description="Simulated OTP dispatch latency in seconds",
    )
    pixelpilot_otp_resend_delay: float = Field(
        default=1.5,
        ge=0,
        description="Simulated OTP resend latency in seconds",
    )
    pixelpilot_resend_cooldown: float = Field(
        default=30.0,
        ge=0,
        description="Minimum seconds between OTP resend requests",
    )

    # Message exchange
    pixelpilot_reply_delay_min: float = Field(
        default=3.0,
        ge=0,
        description="Lower bound of the simulated reply latency in seconds",
    )
    pixelpilot_reply_delay_max: float = Field(
        default=4.0,
        ge=0,
        description="Upper bound of the simulated reply latency in seconds",
    )
    pixelpilot_assistant_name: str = Field(
        default="Gemini",
        min_length=1,
        description="Name the simulated assistant signs its replies with",
    )

    # Input gating
    pixelpilot_search_debounce: float = Field(
        default=0.3,
        ge=0,
        description="Chatroom search debounce delay in seconds",
    )
    pixelpilot_country_search_throttle: float = Field(
        default=0.2,
        ge=0,
        description="Country search throttle window in seconds",
    )

    # Country reference data
    pixelpilot_countries_url: str = Field(
        default=RESTCOUNTRIES_URL,
        description="Country reference data endpoint",
    )
    pixelpilot_countries_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for the country reference data fetch",
    )

    @model_validator(mode="after")
    def _check_reply_window(self) -> "Settings":
        if self.pixelpilot_reply_delay_max < self.pixelpilot_reply_delay_min:
            raise ValueError(
                "pixelpilot_reply_delay_max must be >= pixelpilot_reply_delay_min"
            )
        return self

    @property
    def reply_delay_range(self) -> tuple[float, float]:
        """Get the (min, max) simulated reply latency."""
        return (self.pixelpilot_reply_delay_min, self.pixelpilot_reply_delay_max)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.pixelpilot_resend_cooldown
        30.0
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
