"""Runs the git executable for ref listing, mirror transfers, and backups."""

import asyncio
import os
import subprocess
from pathlib import Path

import structlog

from github_mirror_sync.utils.helpers import redact_url

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class GitCommandError(Exception):
    """Raised when a git command exits non-zero, times out, or cannot be started."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str) -> None:
        """Initializes the exception with the redacted command and its error output."""
        self.command = redact_url(" ".join(args))
        self.returncode = returncode
        self.stderr = redact_url(stderr.strip())
        super().__init__(f"git command failed ({self.command}): {self.stderr or f'exit code {returncode}'}")


class GitRunner:
    """Thin wrapper around the git executable.

    Commands run in a worker thread so that the event loop stays responsive while
    a clone or push is in flight. Interactive credential prompts are disabled.
    """

    def __init__(self, timeout: float | None = None, executable: str = "git") -> None:
        """Initialize the runner with an optional per-command timeout in seconds."""
        self.timeout = timeout
        self.executable = executable

    def _environment(self) -> dict[str, str]:
        return {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    async def run(self, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        """Run a git command and return the completed process.

        Raises:
            GitCommandError: If the command fails.
        """
        cmd = [self.executable, *args]
        logger.debug("Running git command", command=redact_url(" ".join(cmd)), cwd=str(cwd) if cwd else None)
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._environment(),
            )
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(cmd, None, f"timed out after {self.timeout} seconds") from exc
        except OSError as exc:
            raise GitCommandError(cmd, None, str(exc)) from exc
        if result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr or "")
        return result

    async def count_remote_refs(self, url: str) -> int:
        """Count the branches and tags advertised by a remote repository."""
        result = await self.run("ls-remote", "--heads", "--tags", url)
        return len([line for line in result.stdout.splitlines() if line.strip()])

    async def clone_mirror(self, url: str, destination: Path) -> None:
        """Bare mirror clone (all refs, no working tree)."""
        await self.run("clone", "--mirror", url, str(destination))

    async def add_remote(self, repository: Path, name: str, url: str) -> None:
        """Register a remote in an existing repository."""
        await self.run("remote", "add", name, url, cwd=repository)

    async def push_mirror(self, repository: Path, remote: str) -> None:
        """Push every ref to the remote, deleting remote refs absent locally."""
        await self.run("push", "--mirror", remote, cwd=repository)

    async def clone(self, url: str, destination: Path) -> None:
        """Full clone with a working tree."""
        await self.run("clone", url, str(destination))
