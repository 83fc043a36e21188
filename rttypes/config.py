"""Environment-driven settings for the CLI and API server."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os

LOG_LEVEL_ENV = "RTTYPES_LOG_LEVEL"
SERVE_HOST_ENV = "RTTYPES_SERVE_HOST"
SERVE_PORT_ENV = "RTTYPES_SERVE_PORT"
MAX_SCHEMA_BYTES_ENV = "RTTYPES_MAX_SCHEMA_BYTES"

_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_SERVE_HOST = "127.0.0.1"
_DEFAULT_SERVE_PORT = 8000
_DEFAULT_MAX_SCHEMA_BYTES = 64 * 1024

logger = logging.getLogger("rttypes.config")


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    log_level: str = _DEFAULT_LOG_LEVEL
    serve_host: str = _DEFAULT_SERVE_HOST
    serve_port: int = _DEFAULT_SERVE_PORT
    max_schema_bytes: int = _DEFAULT_MAX_SCHEMA_BYTES

    @property
    def log_level_number(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def load_settings() -> Settings:
    """Resolve settings from environment variables."""
    return Settings(
        log_level=os.environ.get(LOG_LEVEL_ENV, "").strip() or _DEFAULT_LOG_LEVEL,
        serve_host=os.environ.get(SERVE_HOST_ENV, "").strip() or _DEFAULT_SERVE_HOST,
        serve_port=_int_from_env(SERVE_PORT_ENV, _DEFAULT_SERVE_PORT),
        max_schema_bytes=_int_from_env(MAX_SCHEMA_BYTES_ENV, _DEFAULT_MAX_SCHEMA_BYTES),
    )
