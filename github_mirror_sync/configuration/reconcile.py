"""Reconcile configuration from CLI arguments, environment variables, and the config file."""

import json
import shutil
from pathlib import Path
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError

from github_mirror_sync.configuration.env import Settings
from github_mirror_sync.configuration.exceptions import (
    ConfigError,
    ConfigurationFileError,
    MissingDependencyError,
    RequiredConfigurationElementError,
)
from github_mirror_sync.configuration.models import ConfigFileModel, SyncConfig
from github_mirror_sync.synchronize.models import SuccessPolicy, SyncMode
from github_mirror_sync.utils.constants import DEFAULT_GITLAB_API_URL

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_BASE_DIRECTORY = Path.home() / ".github-mirror-sync"


def _first_set(*values: T | None) -> T | None:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def load_config_file(path: Path) -> ConfigFileModel:
    """Load and validate the JSON configuration file.

    Raises:
        ConfigurationFileError: If the file is missing, unreadable, not JSON, or has the wrong shape.
    """
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationFileError(str(path), "file not found") from exc
    except OSError as exc:
        raise ConfigurationFileError(str(path), str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationFileError(str(path), f"not valid JSON ({exc.msg} at line {exc.lineno})") from exc
    try:
        return ConfigFileModel.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationFileError(str(path), str(exc)) from exc


async def reconcile_sync_configuration(
    github_username: str | None = None,
    github_token: str | None = None,
    github_api_url: str | None = None,
    gitlab_username: str | None = None,
    gitlab_token: str | None = None,
    gitlab_api_url: str | None = None,
    workdir: Path | None = None,
    backup_dir: Path | None = None,
    state_dir: Path | None = None,
    log_dir: Path | None = None,
    concurrency: int | None = None,
    success_policy: SuccessPolicy | str | None = None,
    git_timeout: float | None = None,
    config_file: Path | None = None,
    debug: bool | None = None,
    settings: Settings | None = None,
) -> SyncConfig:
    """Resolve the configuration for a run.

    Precedence is CLI argument, then environment variable (or .env), then the
    JSON configuration file, then defaults.

    Raises:
        ConfigurationFileError: If a configuration file was requested but cannot be loaded.
        ConfigError: If a value is out of range.
    """
    settings = settings if settings is not None else Settings()

    config_file = _first_set(config_file, settings.CONFIG_FILE)
    file_config = load_config_file(config_file) if config_file is not None else ConfigFileModel()
    if config_file is not None:
        logger.debug("Loaded configuration file", config_file=str(config_file))

    state_directory = _first_set(state_dir, settings.STATE_DIR, file_config.state_dir) or DEFAULT_BASE_DIRECTORY
    resolved_concurrency = _first_set(concurrency, settings.CONCURRENCY, 1)
    if resolved_concurrency < 1:
        raise ConfigError(f"Concurrency must be at least 1, got {resolved_concurrency}")
    resolved_git_timeout = _first_set(git_timeout, settings.GIT_TIMEOUT)
    if resolved_git_timeout is not None and resolved_git_timeout <= 0:
        raise ConfigError(f"Git timeout must be a positive number of seconds, got {resolved_git_timeout}")

    policy_value = _first_set(success_policy, settings.SUCCESS_POLICY) or SuccessPolicy.LEGACY
    try:
        resolved_policy = SuccessPolicy(policy_value)
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in SuccessPolicy)
        raise ConfigError(f"Unknown success policy '{policy_value}' (expected one of: {allowed})") from exc

    return SyncConfig(
        github_api_url=_first_set(github_api_url, settings.GITHUB_API_URL, file_config.github_api) or DEFAULT_GITHUB_API_URL,
        github_username=_first_set(github_username, settings.GITHUB_USERNAME, file_config.github.username),
        github_token=_first_set(github_token, settings.GITHUB_TOKEN, file_config.github.token),
        gitlab_api_url=_first_set(gitlab_api_url, settings.GITLAB_API_URL, file_config.gitlab_api) or DEFAULT_GITLAB_API_URL,
        gitlab_username=_first_set(gitlab_username, settings.GITLAB_USERNAME, file_config.gitlab.username),
        gitlab_token=_first_set(gitlab_token, settings.GITLAB_TOKEN, file_config.gitlab.token),
        workdir=_first_set(workdir, settings.WORKDIR, file_config.workdir) or state_directory / "work",
        backup_dir=_first_set(backup_dir, settings.BACKUP_DIR, file_config.backup_dir) or state_directory / "repos",
        state_dir=state_directory,
        log_dir=_first_set(log_dir, settings.LOG_DIR, file_config.log_dir) or state_directory / "logs",
        concurrency=resolved_concurrency,
        success_policy=resolved_policy,
        git_timeout=resolved_git_timeout,
        debug=bool(_first_set(debug, settings.DEBUG)),
    )


async def validate_sync_configuration(config: SyncConfig, mode: SyncMode) -> None:
    """Validates that everything a run in the given mode needs is configured.

    Args:
        config (SyncConfig): The resolved configuration.
        mode (SyncMode): The requested sync mode.

    Raises:
        RequiredConfigurationElementError: If a credential the mode needs is missing.
        MissingDependencyError: If git is not installed.
    """
    required: list[tuple[str | None, str, str, str]] = [
        (config.github_username, "GitHub username", "--github-username", "GITHUB_USERNAME"),
        (config.github_token, "GitHub token", "--github-token", "GITHUB_TOKEN"),
    ]
    if mode.includes_mirror:
        required.extend(
            [
                (config.gitlab_username, "GitLab username", "--gitlab-username", "GITLAB_USERNAME"),
                (config.gitlab_token, "GitLab token", "--gitlab-token", "GITLAB_TOKEN"),
            ]
        )
    for value, name, cli_name, env_name in required:
        if not value:
            raise RequiredConfigurationElementError(name, cli_name, env_name)

    await check_dependencies()


async def check_dependencies(executables: tuple[str, ...] = ("git",)) -> None:
    """Ensure the executables the sync shells out to are installed."""
    for executable in executables:
        if shutil.which(executable) is None:
            raise MissingDependencyError(executable)
