"""
Centralized settings for the rate-card pricing engine.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional


ENV_PREFIX = 'RATECARD_'


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable; unset or blank gives the default."""
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Batch orchestration
    max_batch_size: int = 50  # the orchestrator never allows more than 50
    batch_workers: int = 1  # >1 computes batch items on a thread pool

    # HTTP API
    api_host: str = '0.0.0.0'
    api_port: int = 8000

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def load(cls) -> 'Settings':
        """Load settings from RATECARD_* environment variables."""
        return cls(
            max_batch_size=_env_int('MAX_BATCH_SIZE', cls.max_batch_size),
            batch_workers=_env_int('BATCH_WORKERS', cls.batch_workers),
            api_host=os.environ.get(ENV_PREFIX + 'HOST', cls.api_host),
            api_port=_env_int('PORT', cls.api_port),
            log_level=os.environ.get(ENV_PREFIX + 'LOG_LEVEL', cls.log_level).upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def configure_logging(settings: Optional[Settings] = None):
    """Set up root logging at the configured level."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
