"""Fixtures for unit tests."""

from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import structlog

from github_mirror_sync.configuration.models import SyncConfig

from .utils import run_git


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., SyncConfig]:
    """Factory for a SyncConfig rooted in the test's temporary directory."""

    def factory(**overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "github_api_url": "https://api.github.com",
            "github_username": "octocat",
            "github_token": "ghp_test",
            "gitlab_api_url": "https://gitlab.example.com/api/v4",
            "gitlab_username": "mirror-user",
            "gitlab_token": "glpat_test",
            "workdir": tmp_path / "work",
            "backup_dir": tmp_path / "repos",
            "state_dir": tmp_path / "state",
            "log_dir": tmp_path / "logs",
        }
        values.update(overrides)
        return SyncConfig(**values)

    return factory


@pytest.fixture
def make_source_repository(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a bare repository with one commit per file, or an empty one."""
    source_root = tmp_path / "github"

    def factory(name: str, files: dict[str, str] | None = None, empty: bool = False, tags: list[str] | None = None) -> Path:
        source_root.mkdir(parents=True, exist_ok=True)
        bare = source_root / f"{name}.git"
        if empty:
            run_git("init", "--bare", str(bare))
            return bare
        work = tmp_path / "sources" / name
        work.mkdir(parents=True)
        run_git("init", str(work))
        for file_name, content in (files or {"README.md": f"# {name}\n"}).items():
            (work / file_name).write_text(content, encoding="utf-8")
            run_git("add", file_name, cwd=work)
            run_git("commit", "-m", f"Add {file_name}", cwd=work)
        for tag in tags or []:
            run_git("tag", tag, cwd=work)
        run_git("clone", "--bare", str(work), str(bare))
        return bare

    return factory
