"""Orchestrates discovery, mirroring, and local backup of every GitHub repository."""

import asyncio
import time
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable

import structlog
from structlog.contextvars import bound_contextvars

from github_mirror_sync.configuration.models import SyncConfig
from github_mirror_sync.git.commands import GitRunner
from github_mirror_sync.github.client import get_github_client
from github_mirror_sync.github.discovery import RepositoryDiscovery, authenticated_clone_url, resolve_emptiness
from github_mirror_sync.gitlab.client import GitLabClient
from github_mirror_sync.state.lock import RunLock
from github_mirror_sync.state.store import SyncStateStore
from github_mirror_sync.synchronize.backup import LocalBackupEngine
from github_mirror_sync.synchronize.mirror import MirrorEngine, discard_scratch
from github_mirror_sync.synchronize.models import (
    BackupResult,
    MirrorResult,
    RepositoryDescriptor,
    RepositorySyncResult,
    SuccessPolicy,
    SyncMode,
    SyncRunResult,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def repository_succeeded(policy: SuccessPolicy, mode: SyncMode, mirror: MirrorResult | None, backup: BackupResult | None) -> bool:
    """Decide whether a processed repository counts towards the run's success count."""
    mirror_ok = mirror is not None and mirror.succeeded
    backup_ok = backup is not None and backup.succeeded
    if policy == SuccessPolicy.STRICT:
        return (mirror_ok or not mode.includes_mirror) and (backup_ok or not mode.includes_backup)
    # Legacy accounting: the local backup is the success signal whenever it runs.
    if mode.includes_backup:
        return backup_ok
    return True


class SyncOrchestrator:
    """Drives one sync run: discover, dispatch each repository to the engines, aggregate, record state."""

    def __init__(
        self,
        config: SyncConfig,
        discovery: RepositoryDiscovery,
        git: GitRunner,
        backup_engine: LocalBackupEngine,
        state_store: SyncStateStore,
        mirror_engine: MirrorEngine | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the orchestrator with its collaborators."""
        self.config = config
        self.discovery = discovery
        self.git = git
        self.backup_engine = backup_engine
        self.state_store = state_store
        self.mirror_engine = mirror_engine
        self.clock = clock

    def source_url(self, descriptor: RepositoryDescriptor) -> str:
        """Clone URL of a repository with the GitHub credentials embedded."""
        return authenticated_clone_url(descriptor, self.config.github_username, self.config.github_token)

    async def run(self, mode: SyncMode, confirmed: bool = True) -> SyncRunResult:
        """Run a sync in the given mode.

        Raises:
            AuthError: If GitHub rejects the credentials. Nothing is processed and the state is untouched.
            DiscoveryError: If any page of the repository listing fails.
        """
        result = SyncRunResult(mode=mode)
        if not confirmed:
            logger.info("Sync cancelled before starting", mode=mode.value)
            result.cancelled = True
            return result
        if mode.includes_mirror and self.mirror_engine is None:
            raise ValueError(f"Sync mode '{mode.value}' requires a mirror engine")

        self.config.workdir.mkdir(parents=True, exist_ok=True)
        self.config.backup_dir.mkdir(parents=True, exist_ok=True)

        start_time = time.time()
        logger.info("Sync started", mode=mode.value, title=mode.title, concurrency=self.config.concurrency)

        descriptors = await self.discovery.discover_repositories()
        outcomes = await self._process_all(descriptors, mode)

        for outcome in outcomes:
            if outcome is None:
                result.skipped_empty_count += 1
                continue
            result.results.append(outcome)
            result.processed_count += 1
            if outcome.succeeded:
                result.success_count += 1

        result.completed_at = int(self.clock())
        if result.success_count > 0:
            self.state_store.record_success(result.completed_at)
            result.state_updated = True
        else:
            logger.warning("No repository synced successfully, keeping previous sync state", mode=mode.value)

        logger.info(
            "Sync complete",
            mode=mode.value,
            processed=result.processed_count,
            successful=result.success_count,
            failed=result.failure_count,
            skipped_empty=result.skipped_empty_count,
            state_updated=result.state_updated,
            duration=round(time.time() - start_time, 2),
        )
        return result

    async def _process_all(self, descriptors: list[RepositoryDescriptor], mode: SyncMode) -> list[RepositorySyncResult | None]:
        """Process descriptors in a bounded pool, each worker owning its own scratch directory."""
        outcomes: list[RepositorySyncResult | None] = [None] * len(descriptors)
        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(len(descriptors)):
            queue.put_nowait(index)

        async def worker(task_id: int) -> None:
            scratch_dir = self.config.workdir / f"task-{task_id}"
            try:
                while True:
                    try:
                        index = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    descriptor = descriptors[index]
                    with bound_contextvars(repository=descriptor.name, position=index + 1, total=len(descriptors)):
                        outcomes[index] = await self.process_repository(descriptor, mode, scratch_dir)
            finally:
                discard_scratch(scratch_dir)

        worker_count = min(self.config.concurrency, len(descriptors))
        async with asyncio.TaskGroup() as task_group:
            for task_id in range(worker_count):
                task_group.create_task(worker(task_id))
        return outcomes

    async def process_repository(self, descriptor: RepositoryDescriptor, mode: SyncMode, scratch_dir: Path) -> RepositorySyncResult | None:
        """Mirror and/or back up one repository. Returns None for an empty repository."""
        logger.info("Processing repository")
        source_url = self.source_url(descriptor)
        if await resolve_emptiness(descriptor, source_url, self.git):
            logger.info("Skipping empty repository")
            return None

        outcome = RepositorySyncResult(descriptor=descriptor)
        if mode.includes_mirror and self.mirror_engine is not None:
            outcome.mirror = await self.mirror_engine.mirror(descriptor, source_url, scratch_dir)
        if mode.includes_backup:
            outcome.backup = await self.backup_engine.backup(descriptor, source_url)
        outcome.succeeded = repository_succeeded(self.config.success_policy, mode, outcome.mirror, outcome.backup)
        logger.info("Processed repository", succeeded=outcome.succeeded)
        return outcome


async def run_sync_workflow(config: SyncConfig, mode: SyncMode, confirmed: bool = True, use_lock: bool = True) -> SyncRunResult:
    """Build the collaborators from the configuration and run one sync.

    Raises:
        LockHeldError: If use_lock is set and another run holds the lock.
        AuthError, DiscoveryError: If discovery fails.
    """
    git = GitRunner(timeout=config.git_timeout)
    github_client = await get_github_client(config.github_token, config.github_api_url)

    async with AsyncExitStack() as stack:
        if use_lock:
            stack.enter_context(RunLock(config.lock_file))

        mirror_engine: MirrorEngine | None = None
        if mode.includes_mirror:
            if not (config.gitlab_token and config.gitlab_username):
                raise ValueError("GitLab credentials are required to mirror repositories")
            gitlab_client = await stack.enter_async_context(GitLabClient(config.gitlab_api_url, config.gitlab_token))
            mirror_engine = MirrorEngine(gitlab_client, git, config.gitlab_web_url, config.gitlab_username, config.gitlab_token)

        orchestrator = SyncOrchestrator(
            config=config,
            discovery=RepositoryDiscovery(github_client),
            git=git,
            backup_engine=LocalBackupEngine(git, config.backup_dir),
            state_store=SyncStateStore(config.state_file),
            mirror_engine=mirror_engine,
        )
        return await orchestrator.run(mode, confirmed=confirmed)
