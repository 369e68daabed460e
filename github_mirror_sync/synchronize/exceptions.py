"""Exceptions raised while discovering and synchronizing repositories."""


class DiscoveryError(Exception):
    """Raised when listing repositories fails. Fatal for the whole run."""

    def __init__(self, message: str, status_code: int | None = None, page: int | None = None) -> None:
        """Initializes the exception with the API message and where it happened."""
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.page = page


class AuthError(DiscoveryError):
    """Raised when GitHub rejects the configured credentials during discovery."""

    pass


class RepositorySyncError(Exception):
    """Base class for failures confined to a single repository. The run continues."""

    def __init__(self, repository: str, reason: str) -> None:
        """Initializes the exception with the repository name and the reason."""
        super().__init__(f"{repository}: {reason}")
        self.repository = repository
        self.reason = reason


class ProvisionFailure(RepositorySyncError):
    """Raised when the GitLab project can neither be created nor reused."""

    def __init__(self, repository: str, reason: str, status_code: int | None = None) -> None:
        """Initializes the exception with the GitLab status code, if there was a response."""
        super().__init__(repository, reason)
        self.status_code = status_code


class CloneFailure(RepositorySyncError):
    """Raised when the mirror clone of the source repository fails."""

    pass


class PushFailure(RepositorySyncError):
    """Raised when pushing the mirror to GitLab fails."""

    pass


class BackupFailure(RepositorySyncError):
    """Raised when the local backup clone fails."""

    pass


class LockHeldError(Exception):
    """Raised when another sync run holds the run lock."""

    def __init__(self, lock_file: str, holder_pid: int | None) -> None:
        """Initializes the exception with the lock file and the PID recorded in it."""
        super().__init__(f"Another sync run holds {lock_file} (PID: {holder_pid if holder_pid is not None else 'unknown'})")
        self.lock_file = lock_file
        self.holder_pid = holder_pid
