"""General utility functions and helper classes."""

import re
import shutil
from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

from github_mirror_sync.utils.constants import GIT_SUFFIX

CREDENTIALS_PATTERN = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")


def derive_repository_name(clone_url: str) -> str:
    """Derive a repository name from its clone URL (base name with the .git suffix stripped)."""
    base_name = clone_url.rstrip("/").rsplit("/", 1)[-1]
    if base_name.endswith(GIT_SUFFIX):
        base_name = base_name[: -len(GIT_SUFFIX)]
    return base_name


def with_credentials(url: str, username: str, password: str) -> str:
    """Embed credentials into an HTTP(S) URL.

    Non-HTTP URLs (local paths, file://, ssh) are returned unchanged.
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def redact_url(text: str) -> str:
    """Replace any credentials embedded in URLs within text with '***'."""
    return CREDENTIALS_PATTERN.sub(r"\g<scheme>***@", text)


def humanize_elapsed(seconds: int) -> str:
    """Render an elapsed duration the way the status report shows it, e.g. '3 hours ago'."""
    if seconds < 60:
        return f"{seconds} seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


def remove_path(path: Path) -> None:
    """Remove a file, symlink, or directory tree if it exists."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
