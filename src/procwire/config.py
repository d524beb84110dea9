"""procwire environment configuration.

Environment variables:
    PROCWIRE_CHUNK_SIZE: bytes read per pump iteration
        - default 8192
        - clamped to 1..1048576, invalid values fall back to the default

    PROCWIRE_DRAIN_TIMEOUT: seconds fork(sync=True) waits for output pumps
        to reach EOF after the child exits
        - default 10.0
        - "none" or a negative value = wait without limit

    PROCWIRE_LOG_DEBUG: log debug mode (used by the command line entry point)
        - true/1/yes = on (DEBUG log written to a temp file)
        - false/0/no = off (default, INFO log to stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_CHUNK_SIZE = 8192
MAX_CHUNK_SIZE = 1024 * 1024
DEFAULT_DRAIN_TIMEOUT = 10.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_chunk_size(value: str | None) -> int:
    if not value:
        return DEFAULT_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_CHUNK_SIZE
    return max(1, min(size, MAX_CHUNK_SIZE))


def _parse_drain_timeout(value: str | None) -> float | None:
    """Parse the drain timeout.

    Returns:
        Timeout in seconds, or None for no limit
    """
    if value is None or not value.strip():
        return DEFAULT_DRAIN_TIMEOUT
    if value.strip().lower() == "none":
        return None
    try:
        timeout = float(value)
    except ValueError:
        return DEFAULT_DRAIN_TIMEOUT
    return None if timeout < 0 else timeout


@dataclass
class Config:
    """procwire configuration.

    Attributes:
        chunk_size: pump read size in bytes
        drain_timeout: post-exit wait for output pumps in sync mode (None = no limit)
        log_debug: log debug mode (log to a temp file)
        log_file: log file path (set automatically when log_debug=True)
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    drain_timeout: float | None = DEFAULT_DRAIN_TIMEOUT
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(chunk_size={self.chunk_size}, "
            f"drain_timeout={self.drain_timeout}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "procwire"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"procwire_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from the environment."""
    log_debug = _parse_bool(os.environ.get("PROCWIRE_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        chunk_size=_parse_chunk_size(os.environ.get("PROCWIRE_CHUNK_SIZE")),
        drain_timeout=_parse_drain_timeout(os.environ.get("PROCWIRE_DRAIN_TIMEOUT")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global configuration instance (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
