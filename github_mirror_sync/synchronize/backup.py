"""Keeps a fresh local clone of each repository under the backup root."""

from pathlib import Path

import structlog

from github_mirror_sync.git.commands import GitCommandError, GitRunner
from github_mirror_sync.synchronize.exceptions import BackupFailure
from github_mirror_sync.synchronize.models import BackupResult, RepositoryDescriptor
from github_mirror_sync.utils.helpers import remove_path

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class LocalBackupEngine:
    """Replaces backup_root/<name> with a new full clone of the source.

    Anything in the existing directory, local commits included, is discarded.
    """

    def __init__(self, git: GitRunner, backup_root: Path) -> None:
        """Initialize the engine with the git runner and the backup root directory."""
        self.git = git
        self.backup_root = backup_root

    def backup_path(self, descriptor: RepositoryDescriptor) -> Path:
        """Directory holding the backup of a repository."""
        return self.backup_root / descriptor.name

    async def backup(self, descriptor: RepositoryDescriptor, source_url: str) -> BackupResult:
        """Remove the previous backup and clone the repository again."""
        destination = self.backup_path(descriptor)
        try:
            remove_path(destination)
            self.backup_root.mkdir(parents=True, exist_ok=True)
            await self.git.clone(source_url, destination)
        except (GitCommandError, OSError) as exc:
            failure = BackupFailure(descriptor.name, getattr(exc, "stderr", None) or str(exc))
            logger.error("Local backup failed", repository=descriptor.name, path=str(destination), error=failure.reason)
            return BackupResult(succeeded=False, path=destination, error=str(failure))

        logger.info("Local backup successful", repository=descriptor.name, path=str(destination))
        return BackupResult(succeeded=True, path=destination)
