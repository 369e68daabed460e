"""Utility modules for shared functionality."""

from .constants import (
    DISCOVERY_PAGE_SIZE,
    LAST_SYNC_FILENAME,
    LOCK_FILENAME,
    STARTUP_GATE_SECONDS,
)
from .retry import retry_on_rate_limit

__all__ = [
    "DISCOVERY_PAGE_SIZE",
    "LAST_SYNC_FILENAME",
    "LOCK_FILENAME",
    "STARTUP_GATE_SECONDS",
    "retry_on_rate_limit",
]
