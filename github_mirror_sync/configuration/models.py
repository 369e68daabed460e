"""Models for configuration between CLI arguments, environment variables, and the config file."""

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from github_mirror_sync.synchronize.models import SuccessPolicy
from github_mirror_sync.utils.constants import LAST_SYNC_FILENAME, LOCK_FILENAME


class CredentialsSection(BaseModel):
    """Username and token for one hosting service."""

    model_config = ConfigDict(extra="ignore")

    username: str | None = None
    token: str | None = None


class ConfigFileModel(BaseModel):
    """Shape of the optional JSON configuration file."""

    model_config = ConfigDict(extra="ignore")

    github: CredentialsSection = Field(default_factory=CredentialsSection)
    gitlab: CredentialsSection = Field(default_factory=CredentialsSection)
    github_api: str | None = None
    gitlab_api: str | None = None
    workdir: Path | None = None
    backup_dir: Path | None = None
    state_dir: Path | None = None
    log_dir: Path | None = None


@dataclass(frozen=True)
class SyncConfig:
    """Resolved configuration handed to the orchestrator, the engines, and the triggers."""

    github_api_url: str
    github_username: str | None
    github_token: str | None
    gitlab_api_url: str
    gitlab_username: str | None
    gitlab_token: str | None
    workdir: Path
    backup_dir: Path
    state_dir: Path
    log_dir: Path
    concurrency: int = 1
    success_policy: SuccessPolicy = SuccessPolicy.LEGACY
    git_timeout: float | None = None
    debug: bool = False

    @property
    def state_file(self) -> Path:
        """File holding the last successful sync timestamp."""
        return self.state_dir / LAST_SYNC_FILENAME

    @property
    def lock_file(self) -> Path:
        """File guarding against concurrent runs."""
        return self.state_dir / LOCK_FILENAME

    @property
    def gitlab_web_url(self) -> str:
        """Base URL git pushes to, derived from the GitLab API URL (e.g. https://gitlab.com)."""
        api_url = self.gitlab_api_url.rstrip("/")
        for suffix in ("/api/v4", "/api"):
            if api_url.endswith(suffix):
                return api_url[: -len(suffix)]
        parts = urlsplit(api_url)
        return f"{parts.scheme}://{parts.netloc}"
