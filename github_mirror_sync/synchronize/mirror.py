"""Mirrors a GitHub repository to a GitLab project, creating the project if needed."""

from pathlib import Path

import structlog

from github_mirror_sync.git.commands import GitCommandError, GitRunner
from github_mirror_sync.gitlab.client import GitLabClient
from github_mirror_sync.synchronize.exceptions import CloneFailure, ProvisionFailure, PushFailure
from github_mirror_sync.synchronize.models import MirrorResult, ProvisionOutcome, RepositoryDescriptor, TransferOutcome
from github_mirror_sync.utils.constants import GIT_SUFFIX, GITLAB_REMOTE_NAME
from github_mirror_sync.utils.helpers import remove_path, with_credentials

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class MirrorEngine:
    """Provisions the GitLab project and pushes a full mirror of the source repository.

    The push is a mirror push: GitLab's ref set is replaced by the source's,
    so deleted branches and moved tags propagate too.
    """

    def __init__(self, gitlab: GitLabClient, git: GitRunner, gitlab_web_url: str, gitlab_username: str, gitlab_token: str) -> None:
        """Initialize the engine with the GitLab client, the git runner, and push credentials."""
        self.gitlab = gitlab
        self.git = git
        self.gitlab_web_url = gitlab_web_url.rstrip("/")
        self.gitlab_username = gitlab_username
        self.gitlab_token = gitlab_token

    def push_url(self, name: str) -> str:
        """URL of the GitLab project with token authentication embedded."""
        url = f"{self.gitlab_web_url}/{self.gitlab_username}/{name}{GIT_SUFFIX}"
        return with_credentials(url, "oauth2", self.gitlab_token)

    async def mirror(self, descriptor: RepositoryDescriptor, source_url: str, scratch_dir: Path) -> MirrorResult:
        """Create or reuse the GitLab project, then clone --mirror into scratch_dir and push --mirror.

        Failures are confined to this repository and reported in the result.
        """
        try:
            provision = await self.gitlab.ensure_project(descriptor.name)
        except ProvisionFailure as exc:
            logger.error("Skipping GitLab mirror, project could not be provisioned", repository=descriptor.name, error=exc.reason)
            return MirrorResult(provision=ProvisionOutcome.FAILED, transfer=TransferOutcome.SKIPPED, error=str(exc))

        scratch_path = scratch_dir / f"{descriptor.name}{GIT_SUFFIX}"
        try:
            await self._transfer(descriptor, source_url, scratch_path)
        except (CloneFailure, PushFailure) as exc:
            logger.error("GitLab mirror failed", repository=descriptor.name, stage=type(exc).__name__, error=exc.reason)
            return MirrorResult(provision=provision, transfer=TransferOutcome.FAILED, error=str(exc))
        except OSError as exc:
            logger.error("Could not prepare the scratch clone", repository=descriptor.name, path=str(scratch_path), error=str(exc))
            return MirrorResult(provision=provision, transfer=TransferOutcome.FAILED, error=f"{descriptor.name}: scratch directory unusable: {exc}")
        finally:
            discard_scratch(scratch_path)

        logger.info("GitLab mirror successful", repository=descriptor.name, provision=provision.value)
        return MirrorResult(provision=provision, transfer=TransferOutcome.PUSHED)

    async def _transfer(self, descriptor: RepositoryDescriptor, source_url: str, scratch_path: Path) -> None:
        # Stale remotes or a half-finished clone would leak into this push.
        remove_path(scratch_path)
        scratch_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            await self.git.clone_mirror(source_url, scratch_path)
        except GitCommandError as exc:
            raise CloneFailure(descriptor.name, exc.stderr or str(exc)) from exc

        try:
            await self.git.add_remote(scratch_path, GITLAB_REMOTE_NAME, self.push_url(descriptor.name))
            await self.git.push_mirror(scratch_path, GITLAB_REMOTE_NAME)
        except GitCommandError as exc:
            raise PushFailure(descriptor.name, exc.stderr or str(exc)) from exc


def discard_scratch(path: Path) -> None:
    """Remove a scratch clone, logging instead of raising if it cannot be removed."""
    try:
        remove_path(path)
    except OSError as exc:
        logger.warning("Could not remove scratch clone", path=str(path), error=str(exc))
