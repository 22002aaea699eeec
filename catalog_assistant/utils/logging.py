"""Logging configuration."""

import logging
import sys

from pydantic_settings import BaseSettings, SettingsConfigDict

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("anthropic", "httpx", "httpcore", "uvicorn.access")


class LogConfig(BaseSettings):
    """Logging configuration, overridable through LOG_LEVEL, LOG_FORMAT and LOG_DATE_FORMAT."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_ignore_empty=True, extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_level: str = "WARNING"


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger for the service and quiet the HTTP client libraries."""
    config = config or LogConfig()

    logging.basicConfig(
        level=config.level.upper(),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(config.quiet_level.upper())


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a module logger.

    Args:
        name: Module name (typically __name__)
        level: Explicit level; LOG_LEVEL applies when omitted

    Returns:
        Logger with its level set
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or LogConfig().level).upper())
    return logger
