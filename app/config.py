"""
Configuration management for the Journey Export API.

Uses pydantic-settings for environment variable management.
"""
from dataclasses import dataclass
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # App
    APP_NAME: str = "MaxTrack Export API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Error tracking
    SENTRY_DSN: Optional[str] = None

    # Upstream platform
    UPSTREAM_BASE_URL: str = "https://go.maxtrack.com.br"
    UPSTREAM_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
    )
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0

    # Report
    REPORT_NAME: str = "Planilha de Jornadas V2"
    EXPORT_FORMAT: str = "SUMMARY-XLS"
    EXPORT_FILENAME: str = "jornada-export.xls"
    DEFAULT_CONTENT_TYPE: str = "application/vnd.ms-excel"
    INCLUDE_FILE_DIGESTS: bool = False

    # Polling
    POLL_INTERVAL_SECONDS: float = 5.0
    POLL_INITIAL_DELAY_SECONDS: float = 3.0
    POLL_MAX_WAIT_SECONDS: float = 600.0
    JOB_SEARCH_LOOKBACK_MINUTES: int = 120
    JOB_SEARCH_LOOKAHEAD_MINUTES: int = 5

    # IANA zone for the report day, e.g. "America/Sao_Paulo". Host offset when unset
    TIMEZONE: Optional[str] = None

    # How often the export route checks whether the caller went away
    DISCONNECT_CHECK_SECONDS: float = 1.0


@dataclass(frozen=True)
class PollingConfig:
    """Timing knobs for the job poller, in seconds."""
    interval: float = 5.0
    initial_delay: float = 3.0
    max_wait: float = 600.0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PollingConfig":
        return cls(
            interval=settings.POLL_INTERVAL_SECONDS,
            initial_delay=settings.POLL_INITIAL_DELAY_SECONDS,
            max_wait=settings.POLL_MAX_WAIT_SECONDS,
        )


# Global settings instance
settings = Settings()
