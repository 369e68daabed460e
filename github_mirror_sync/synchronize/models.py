"""Data models shared by discovery, the sync engines, and the orchestrator."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SyncMode(str, Enum):
    """Selects which engines run for each repository."""

    BOTH = "both"
    GITLAB = "gitlab"
    LOCAL = "local"

    @property
    def includes_mirror(self) -> bool:
        """Whether repositories are mirrored to GitLab in this mode."""
        return self in (SyncMode.BOTH, SyncMode.GITLAB)

    @property
    def includes_backup(self) -> bool:
        """Whether repositories are backed up locally in this mode."""
        return self in (SyncMode.BOTH, SyncMode.LOCAL)

    @property
    def title(self) -> str:
        """Human readable title used in run banners."""
        return {
            SyncMode.BOTH: "Full Sync (GitHub -> GitLab + Local)",
            SyncMode.GITLAB: "GitLab Only Sync (GitHub -> GitLab)",
            SyncMode.LOCAL: "Local Only Sync (GitHub -> Local)",
        }[self]


class SuccessPolicy(str, Enum):
    """Decides whether a processed repository counts towards the run's success count.

    LEGACY keeps the historical accounting: a repository succeeds when its local
    backup succeeds, and in GitLab-only mode every reached repository succeeds.
    STRICT requires every engine the mode requested to succeed.
    """

    LEGACY = "legacy"
    STRICT = "strict"


class ProvisionOutcome(str, Enum):
    """Outcome of creating the GitLab project for a repository."""

    CREATED = "created"
    REUSED = "reused"
    FAILED = "failed"


class TransferOutcome(str, Enum):
    """Outcome of the mirror clone and push for a repository."""

    PUSHED = "pushed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RepositoryDescriptor:
    """The minimal record identifying one repository to process.

    is_empty stays None until the repository's refs have been listed.
    """

    name: str
    clone_url: str
    is_empty: bool | None = None


@dataclass
class MirrorResult:
    """Result of mirroring one repository to GitLab."""

    provision: ProvisionOutcome
    transfer: TransferOutcome
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the project exists on GitLab and the mirror push went through."""
        return self.provision != ProvisionOutcome.FAILED and self.transfer == TransferOutcome.PUSHED


@dataclass
class BackupResult:
    """Result of backing up one repository locally."""

    succeeded: bool
    path: Path
    error: str | None = None


@dataclass
class RepositorySyncResult:
    """Everything that happened to one repository during a run."""

    descriptor: RepositoryDescriptor
    mirror: MirrorResult | None = None
    backup: BackupResult | None = None
    succeeded: bool = False


@dataclass
class SyncRunResult:
    """Aggregate counts of one sync run."""

    mode: SyncMode
    processed_count: int = 0
    success_count: int = 0
    skipped_empty_count: int = 0
    results: list[RepositorySyncResult] = field(default_factory=list)
    cancelled: bool = False
    state_updated: bool = False
    completed_at: int | None = None

    @property
    def failure_count(self) -> int:
        """Number of processed repositories that did not count as successful."""
        return self.processed_count - self.success_count
