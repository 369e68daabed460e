"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False
    CONFIG_FILE: Path | None = None

    # GitHub (source host) settings
    GITHUB_API_URL: str | None = None
    GITHUB_USERNAME: str | None = None
    GITHUB_TOKEN: str | None = None

    # GitLab (mirror host) settings
    GITLAB_API_URL: str | None = None
    GITLAB_USERNAME: str | None = None
    GITLAB_TOKEN: str | None = None

    # Filesystem layout
    WORKDIR: Path | None = None
    BACKUP_DIR: Path | None = None
    STATE_DIR: Path | None = None
    LOG_DIR: Path | None = None

    # Run behaviour
    CONCURRENCY: int | None = None
    SUCCESS_POLICY: str | None = None
    GIT_TIMEOUT: float | None = None
