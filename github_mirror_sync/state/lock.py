"""Mutual exclusion between sync runs using an advisory lock on a PID file."""

import errno
import fcntl
import os
from pathlib import Path
from types import TracebackType
from typing import Self

import structlog

from github_mirror_sync.synchronize.exceptions import LockHeldError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def pid_is_alive(pid: int) -> bool:
    """Whether a process with the given PID currently exists."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _read_pid(fd: int) -> int | None:
    os.lseek(fd, 0, os.SEEK_SET)
    content = os.read(fd, 64).decode("utf-8", errors="replace").strip()
    try:
        return int(content)
    except ValueError:
        return None


class RunLock:
    """Holds an exclusive flock on the lock file for the duration of a run.

    The kernel drops the flock when its holder dies, so a lock file left
    behind by a crashed run is reclaimed by the next one. The file records the
    holder's PID for diagnostics.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the lock for the given lock file path."""
        self.path = path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        """Whether this instance currently holds the lock."""
        return self._fd is not None

    def acquire(self) -> None:
        """Take the lock without blocking.

        Raises:
            LockHeldError: If another live process holds the lock.
        """
        if self._fd is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        while True:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as exc:
                holder = _read_pid(fd)
                os.close(fd)
                if exc.errno in (errno.EWOULDBLOCK, errno.EAGAIN, errno.EACCES):
                    raise LockHeldError(str(self.path), holder) from exc
                raise

            # The previous holder may have unlinked the file between our open and flock.
            try:
                same_file = os.stat(self.path).st_ino == os.fstat(fd).st_ino
            except FileNotFoundError:
                same_file = False
            if same_file:
                break
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

        stale_pid = _read_pid(fd)
        if stale_pid is not None and stale_pid != os.getpid():
            logger.info("Reclaiming stale lock file", lock_file=str(self.path), stale_pid=stale_pid, stale_pid_alive=pid_is_alive(stale_pid))

        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, f"{os.getpid()}\n".encode("utf-8"))
        self._fd = fd
        logger.debug("Acquired run lock", lock_file=str(self.path), pid=os.getpid())

    def release(self) -> None:
        """Remove the lock file and drop the lock. Safe to call when not held."""
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            self.path.unlink(missing_ok=True)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        logger.debug("Released run lock", lock_file=str(self.path))

    def __enter__(self) -> Self:
        """Acquire the lock."""
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Release the lock, whether or not the run failed."""
        self.release()
