"""Gathers the information shown by the status command."""

from dataclasses import dataclass, field
from pathlib import Path

import structlog
from githubkit.exception import GitHubException

from github_mirror_sync.configuration.models import SyncConfig
from github_mirror_sync.github.client import get_github_client
from github_mirror_sync.gitlab.client import GitLabClient
from github_mirror_sync.state.store import SyncStateStore
from github_mirror_sync.triggers.scheduler import DEFAULT_PROFILE, auto_sync_status, is_wsl
from github_mirror_sync.utils.constants import ERROR_LOG_FILENAME, SYNC_LOG_FILENAME
from github_mirror_sync.utils.helpers import humanize_elapsed

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass
class SyncStatus:
    """Snapshot of the sync setup."""

    last_sync_relative: str
    last_sync_date: str
    environment: str
    github: str
    gitlab: str
    local_backup_count: int
    auto_sync: str
    log_files: list[Path] = field(default_factory=list)


def describe_last_sync(store: SyncStateStore, now: int | None = None) -> tuple[str, str]:
    """Relative and absolute description of the last successful sync."""
    elapsed = store.seconds_since_last_sync(now)
    last_sync = store.last_sync_datetime()
    if elapsed is None or last_sync is None:
        return "Never synced", "Never"
    return humanize_elapsed(max(elapsed, 0)), last_sync.strftime("%Y-%m-%d %H:%M:%S")


def count_local_backups(backup_dir: Path) -> int:
    """Number of repository directories under the backup root."""
    if not backup_dir.is_dir():
        return 0
    return sum(1 for entry in backup_dir.iterdir() if entry.is_dir())


async def check_github(config: SyncConfig) -> str:
    """Connection status of the GitHub credentials."""
    if not (config.github_username and config.github_token):
        return "Not configured"
    client = await get_github_client(config.github_token, config.github_api_url)
    try:
        response = await client.rest.users.async_get_authenticated()
    except GitHubException as exc:
        logger.warning("GitHub connectivity check failed", error=str(exc))
        return "Authentication failed"
    return f"Connected as {response.parsed_data.login}"


async def check_gitlab(config: SyncConfig) -> str:
    """Connection status of the GitLab credentials."""
    if not config.gitlab_token:
        return "Not configured"
    async with GitLabClient(config.gitlab_api_url, config.gitlab_token) as client:
        user = await client.get_current_user()
    if user is None:
        return "Not connected"
    return f"Connected as {user.get('username', 'unknown')}"


async def gather_status(config: SyncConfig, profile: Path = DEFAULT_PROFILE, check_connections: bool = True) -> SyncStatus:
    """Collect everything the status command reports."""
    relative, date = describe_last_sync(SyncStateStore(config.state_file))
    github = await check_github(config) if check_connections else "Not checked"
    gitlab = await check_gitlab(config) if check_connections else "Not checked"
    log_files = [path for path in (config.log_dir / SYNC_LOG_FILENAME, config.log_dir / ERROR_LOG_FILENAME) if path.exists()]
    return SyncStatus(
        last_sync_relative=relative,
        last_sync_date=date,
        environment="WSL (Windows Subsystem for Linux)" if is_wsl() else "Native Linux",
        github=github,
        gitlab=gitlab,
        local_backup_count=count_local_backups(config.backup_dir),
        auto_sync=auto_sync_status(profile),
        log_files=log_files,
    )
