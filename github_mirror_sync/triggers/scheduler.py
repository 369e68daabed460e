"""Installs and removes the automatic triggers: crontab entries and a shell profile hook."""

import shlex
import shutil
import subprocess
import sys
from pathlib import Path

import structlog

from github_mirror_sync.utils.constants import SCHEDULED_SYNC_HOURS, SCHEDULER_MARKER

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

PROFILE_BLOCK_START = f"{SCHEDULER_MARKER} startup hook"
PROFILE_BLOCK_END = f"{SCHEDULER_MARKER} end"
DEFAULT_PROFILE = Path.home() / ".bashrc"


class SchedulerError(Exception):
    """Raised when the crontab cannot be read or written."""

    pass


def is_wsl(proc_version: Path = Path("/proc/version")) -> bool:
    """Whether we run under the Windows Subsystem for Linux."""
    try:
        content = proc_version.read_text(encoding="utf-8", errors="replace").lower()
    except OSError:
        return False
    return "microsoft" in content or "wsl" in content


def trigger_command(kind: str, working_directory: Path, extra_args: list[str] | None = None) -> str:
    """Shell command that runs one automatic trigger from the given working directory."""
    executable = shutil.which("github-mirror-sync")
    program = [executable] if executable else [sys.executable, "-m", "github_mirror_sync.configuration.cli"]
    args = [*program, "trigger", kind, *(extra_args or [])]
    return f"cd {shlex.quote(str(working_directory))} && {shlex.join(args)}"


# Crontab editing
# ---------------


def build_cron_entries(scheduled_command: str, startup_command: str) -> list[str]:
    """Crontab lines for the twice-daily schedule and the startup trigger."""
    entries = [f"0 {hour} * * * {scheduled_command} {SCHEDULER_MARKER}" for hour in SCHEDULED_SYNC_HOURS]
    entries.append(f"@reboot {startup_command} {SCHEDULER_MARKER}")
    return entries


def strip_marked_lines(lines: list[str]) -> list[str]:
    """Drop every crontab line owned by this tool."""
    return [line for line in lines if SCHEDULER_MARKER not in line]


def read_crontab() -> list[str]:
    """Current user's crontab lines. A user without a crontab has none."""
    try:
        result = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
    except OSError as exc:
        raise SchedulerError(f"crontab is not available: {exc}") from exc
    if result.returncode != 0:
        return []
    return result.stdout.splitlines()


def write_crontab(lines: list[str]) -> None:
    """Replace the current user's crontab."""
    content = "\n".join(lines).strip("\n") + "\n"
    try:
        result = subprocess.run(["crontab", "-"], input=content, capture_output=True, text=True)
    except OSError as exc:
        raise SchedulerError(f"crontab is not available: {exc}") from exc
    if result.returncode != 0:
        raise SchedulerError(f"Failed to install crontab: {result.stderr.strip()}")


def cron_configured() -> bool:
    """Whether any crontab line of this tool is installed."""
    try:
        lines = read_crontab()
    except SchedulerError:
        return False
    return any(SCHEDULER_MARKER in line for line in lines)


def install_cron(scheduled_command: str, startup_command: str) -> list[str]:
    """Install the cron entries, replacing any previously installed ones."""
    entries = build_cron_entries(scheduled_command, startup_command)
    write_crontab([*strip_marked_lines(read_crontab()), *entries])
    logger.info("Installed cron entries", entries=len(entries))
    return entries


def remove_cron() -> int:
    """Remove this tool's cron entries and return how many were removed."""
    lines = read_crontab()
    kept = strip_marked_lines(lines)
    removed = len(lines) - len(kept)
    if removed:
        write_crontab(kept)
        logger.info("Removed cron entries", entries=removed)
    return removed


# Shell profile editing
# ---------------------


def build_profile_block(startup_command: str) -> str:
    """Shell profile block starting the startup trigger in the background."""
    return "\n".join(
        [
            PROFILE_BLOCK_START,
            f"( nohup sh -c {shlex.quote(startup_command)} > /dev/null 2>&1 & )",
            PROFILE_BLOCK_END,
        ]
    )


def strip_profile_block(text: str) -> str:
    """Remove this tool's block from shell profile text."""
    kept: list[str] = []
    inside = False
    for line in text.splitlines():
        if line.strip() == PROFILE_BLOCK_START:
            inside = True
            continue
        if inside:
            if line.strip() == PROFILE_BLOCK_END:
                inside = False
            continue
        kept.append(line)
    result = "\n".join(kept)
    return result + "\n" if result else ""


def profile_hook_configured(profile: Path = DEFAULT_PROFILE) -> bool:
    """Whether the startup hook is present in the shell profile."""
    try:
        return PROFILE_BLOCK_START in profile.read_text(encoding="utf-8")
    except OSError:
        return False


def install_profile_hook(startup_command: str, profile: Path = DEFAULT_PROFILE) -> None:
    """Append the startup hook to the shell profile, replacing a previous one."""
    existing = profile.read_text(encoding="utf-8") if profile.exists() else ""
    text = strip_profile_block(existing)
    if text and not text.endswith("\n\n"):
        text += "\n"
    profile.write_text(text + build_profile_block(startup_command) + "\n", encoding="utf-8")
    logger.info("Installed shell profile startup hook", profile=str(profile))


def remove_profile_hook(profile: Path = DEFAULT_PROFILE) -> bool:
    """Remove the startup hook from the shell profile. Returns whether one was present."""
    if not profile_hook_configured(profile):
        return False
    profile.write_text(strip_profile_block(profile.read_text(encoding="utf-8")), encoding="utf-8")
    logger.info("Removed shell profile startup hook", profile=str(profile))
    return True


def auto_sync_status(profile: Path = DEFAULT_PROFILE) -> str:
    """One-line description of how automatic syncing is configured."""
    if profile_hook_configured(profile):
        return "Enabled (shell startup hook)"
    if cron_configured():
        return "Enabled (cron schedule)"
    return "Not configured"
