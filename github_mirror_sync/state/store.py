"""Persists the time of the last successful sync and derives the startup gate from it."""

import os
import time
from datetime import datetime
from pathlib import Path

import structlog

from github_mirror_sync.utils.constants import STARTUP_GATE_SECONDS

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class SyncStateStore:
    """Reads and writes the single epoch-seconds timestamp of the last successful sync.

    The stored value never decreases: recording an older timestamp than the one
    on disk leaves the file unchanged.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store backed by the given file."""
        self.path = path

    def read(self) -> int | None:
        """Return the last successful sync time, or None if it has never been recorded.

        An unreadable or malformed file is reported and treated as absent.
        """
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read sync state file", path=str(self.path), error=str(exc))
            return None
        try:
            return int(content)
        except ValueError:
            logger.warning("Sync state file does not hold an epoch timestamp", path=str(self.path), content=content[:50])
            return None

    def record_success(self, timestamp: int | None = None) -> int:
        """Store the completion time of a successful run and return the value now on disk."""
        timestamp = int(time.time()) if timestamp is None else int(timestamp)
        previous = self.read()
        if previous is not None and previous > timestamp:
            logger.warning("Ignoring sync timestamp older than the stored one", stored=previous, attempted=timestamp)
            return previous

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        temporary.write_text(f"{timestamp}\n", encoding="utf-8")
        os.replace(temporary, self.path)
        logger.debug("Recorded last successful sync", path=str(self.path), last_sync_at=timestamp)
        return timestamp

    def seconds_since_last_sync(self, now: int | None = None) -> int | None:
        """Elapsed seconds since the last successful sync, or None if there was none."""
        last_sync_at = self.read()
        if last_sync_at is None:
            return None
        now = int(time.time()) if now is None else int(now)
        return now - last_sync_at

    def last_sync_datetime(self) -> datetime | None:
        """The last successful sync as a local datetime."""
        last_sync_at = self.read()
        return datetime.fromtimestamp(last_sync_at) if last_sync_at is not None else None


def trigger_gate(store: SyncStateStore, now: int | None = None, threshold: int = STARTUP_GATE_SECONDS) -> bool:
    """Whether an automatic startup trigger should run a sync.

    True when no sync was ever recorded or at least threshold seconds have
    passed since the last one (inclusive boundary).
    """
    elapsed = store.seconds_since_last_sync(now)
    if elapsed is None:
        return True
    return elapsed >= threshold
