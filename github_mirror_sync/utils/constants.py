"""Shared constants used across the application."""

# This file is intended to hold shared constants.

# Repository Discovery Constants
# ------------------------------

DISCOVERY_PAGE_SIZE = 100
"""Number of repositories requested per page from the GitHub listing endpoint."""

DISCOVERY_VISIBILITY = "all"
"""Visibility filter used when listing repositories for the authenticated user."""

DISCOVERY_AFFILIATION = "owner,collaborator"
"""Affiliation filter used when listing repositories for the authenticated user."""

GIT_SUFFIX = ".git"
"""Suffix stripped from clone URLs when deriving repository names."""

# GitLab Constants
# ----------------

DEFAULT_GITLAB_API_URL = "https://gitlab.com/api/v4"
"""Default GitLab REST API base URL."""

GITLAB_PROJECT_VISIBILITY = "private"
"""Visibility of projects created on GitLab."""

GITLAB_REMOTE_NAME = "gitlab"
"""Name of the git remote registered in scratch mirror clones."""

GITLAB_EXISTS_STATUS_CODES = frozenset({400, 409})
"""Status codes GitLab answers with when a project name has already been taken."""

# Sync State Constants
# --------------------

LAST_SYNC_FILENAME = ".last_sync"
"""Name of the file holding the last successful sync timestamp."""

LOCK_FILENAME = ".sync.lock"
"""Name of the lock file guarding concurrent runs."""

STARTUP_GATE_SECONDS = 12 * 60 * 60
"""Minimum elapsed time since the last successful sync before a startup trigger runs."""

# Log File Constants
# ------------------

SYNC_LOG_FILENAME = "sync.log"
"""Log file receiving every record of every run."""

ERROR_LOG_FILENAME = "sync_errors.log"
"""Log file receiving warnings and errors only."""

# Scheduler Constants
# -------------------

SCHEDULER_MARKER = "# github-mirror-sync"
"""Marker comment tagging crontab lines and shell profile blocks owned by this tool."""

SCHEDULED_SYNC_HOURS = (9, 18)
"""Hours of the day at which the scheduled trigger runs."""

STARTUP_NETWORK_ATTEMPTS = 30
"""Number of connectivity checks made by the startup trigger before giving up."""

STARTUP_NETWORK_INTERVAL = 2.0
"""Seconds between connectivity checks made by the startup trigger."""
