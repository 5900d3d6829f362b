"""Process-level settings, read from ``DOCHISTORY_*`` variables and ``.env``."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class HistorySettings(BaseSettings):
    """Connection and logging configuration.

    Plugin behaviour (diff mode, metadata, collection names) is configured
    per model through HistoryOptions, not here.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCHISTORY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./dochistory.db",
        description="SQLAlchemy async database URL",
    )
    echo_sql: bool = Field(default=False, description="Log every SQL statement")
    log_level: LogLevel = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json", description="structlog renderer"
    )
