"""Helpers shared by the unit tests."""

import shutil
import subprocess
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest
from githubkit.exception import RequestFailed

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def run_git(*args: str, cwd: Path | None = None) -> str:
    """Run git with a fixed identity and return its output."""
    result = subprocess.run(
        ["git", "-c", "user.name=Test User", "-c", "user.email=test@example.com", "-c", "init.defaultBranch=main", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def list_refs(repository: Path) -> set[str]:
    """Names of every branch and tag in a repository."""
    output = run_git("for-each-ref", "--format=%(refname)", cwd=repository)
    return {line for line in output.splitlines() if line}


def make_request_failed(status_code: int, headers: dict[str, str] | None = None, payload: Any = None) -> RequestFailed:
    """Build a RequestFailed carrying a minimal response."""
    exc = RequestFailed.__new__(RequestFailed)
    exc.request = httpx.Request("GET", "https://api.github.com/user/repos")
    exc.response = SimpleNamespace(status_code=status_code, headers=headers or {}, json=lambda: payload or {})
    return exc


class FakeGitLab:
    """GitLab API stand-in backing every created project with a local bare repository."""

    def __init__(self, root: Path, failing_names: tuple[str, ...] = ()) -> None:
        """Initialize the fake with the directory holding its projects."""
        self.root = root
        self.failing_names = failing_names
        self.projects: set[str] = set()
        self.requests: list[dict[str, str]] = []

    def project_path(self, name: str) -> Path:
        """Bare repository backing a project."""
        return self.root / f"{name}.git"

    def add_existing(self, name: str) -> Path:
        """Create a project as if it had been created by an earlier run."""
        self.root.mkdir(parents=True, exist_ok=True)
        run_git("init", "--bare", str(self.project_path(name)))
        self.projects.add(name)
        return self.project_path(name)

    def handler(self, request: httpx.Request) -> httpx.Response:
        """Answer the project creation and current user endpoints."""
        if request.method == "POST" and request.url.path.endswith("/projects"):
            form = dict(parse_qsl(request.content.decode("utf-8")))
            self.requests.append(form)
            name = form["name"]
            if name in self.failing_names:
                return httpx.Response(500, json={"message": "500 Internal Server Error"})
            if name in self.projects:
                return httpx.Response(400, json={"message": {"name": ["has already been taken"]}})
            self.add_existing(name)
            return httpx.Response(201, json={"id": len(self.projects), "name": name})
        if request.method == "GET" and request.url.path.endswith("/user"):
            return httpx.Response(200, json={"username": "mirror-user"})
        return httpx.Response(404, json={"message": "404 Not Found"})

    @property
    def transport(self) -> httpx.MockTransport:
        """Transport routing GitLab client requests to this fake."""
        return httpx.MockTransport(self.handler)
