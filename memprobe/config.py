"""
Configuration settings for the capacity probe.
"""
import sys
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Probe settings, read from MEMPROBE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEMPROBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Search
    initial_capacity: int = Field(sys.maxsize, ge=0, le=sys.maxsize)

    # Idle before the test so memory stats can be read
    idle_seconds: float = Field(2.0, ge=0)

    # Memory
    collect_garbage: bool = True
    memory_limit_mb: Optional[int] = Field(None, ge=1)

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
