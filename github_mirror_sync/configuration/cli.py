"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import os
from datetime import datetime
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from github_mirror_sync.configuration.exceptions import ConfigError
from github_mirror_sync.configuration.models import SyncConfig
from github_mirror_sync.configuration.reconcile import reconcile_sync_configuration, validate_sync_configuration
from github_mirror_sync.synchronize.driver import run_sync_workflow
from github_mirror_sync.synchronize.exceptions import AuthError, DiscoveryError, LockHeldError
from github_mirror_sync.synchronize.models import SuccessPolicy, SyncMode, SyncRunResult
from github_mirror_sync.synchronize.status import gather_status
from github_mirror_sync.triggers import scheduler
from github_mirror_sync.triggers.runner import TriggerKind, run_trigger
from github_mirror_sync.utils.logging import configure_logging

load_dotenv()

typer_app = typer.Typer(
    help="Mirror every GitHub repository you own or collaborate on to GitLab and to a local backup directory.",
    pretty_exceptions_show_locals=False,
)

RULE = "=" * 60


def main_callback(
    ctx: typer.Context,
    config_file: Annotated[Path | None, Option(help="Path to a JSON configuration file.")] = None,
    github_username: Annotated[str | None, Option(help="GitHub username.")] = None,
    github_token: Annotated[str | None, Option(help="GitHub personal access token.")] = None,
    github_api_url: Annotated[str | None, Option(help="GitHub API URL.")] = None,
    gitlab_username: Annotated[str | None, Option(help="GitLab username (namespace for mirrors).")] = None,
    gitlab_token: Annotated[str | None, Option(help="GitLab personal access token.")] = None,
    gitlab_api_url: Annotated[str | None, Option(help="GitLab API URL.")] = None,
    workdir: Annotated[Path | None, Option(help="Scratch directory for mirror clones.")] = None,
    backup_dir: Annotated[Path | None, Option(help="Directory holding local backups.")] = None,
    state_dir: Annotated[Path | None, Option(help="Directory holding the sync state and lock files.")] = None,
    log_dir: Annotated[Path | None, Option(help="Directory holding the log files.")] = None,
    concurrency: Annotated[int | None, Option(min=1, help="Number of repositories processed at once.")] = None,
    success_policy: Annotated[SuccessPolicy | None, Option(help="How repositories are counted as successful.")] = None,
    git_timeout: Annotated[float | None, Option(help="Timeout in seconds for each git command.")] = None,
    debug: Annotated[bool, Option("--debug", help="Enable debug logging.")] = False,
) -> None:
    """Collect the configuration options for the current context. Without a command, open the menu."""
    ctx.ensure_object(dict)
    ctx.obj["options"] = {
        "config_file": config_file,
        "github_username": github_username,
        "github_token": github_token,
        "github_api_url": github_api_url,
        "gitlab_username": gitlab_username,
        "gitlab_token": gitlab_token,
        "gitlab_api_url": gitlab_api_url,
        "workdir": workdir,
        "backup_dir": backup_dir,
        "state_dir": state_dir,
        "log_dir": log_dir,
        "concurrency": concurrency,
        "success_policy": success_policy,
        "git_timeout": git_timeout,
        "debug": debug or None,
    }
    if ctx.invoked_subcommand is None:
        menu_cli(ctx)


typer_app.callback(invoke_without_command=True)(main_callback)


def resolve_configuration(ctx: typer.Context) -> SyncConfig:
    """Reconcile the configuration and set up logging, exiting on configuration errors."""
    options = ctx.find_root().obj["options"]
    try:
        config = asyncio.run(reconcile_sync_configuration(**options))
    except ConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc
    configure_logging(config.debug, config.log_dir)
    return config


def echo_summary(result: SyncRunResult, config: SyncConfig) -> None:
    """Print the aggregate counts of a run."""
    typer.echo("")
    typer.echo(RULE)
    typer.echo("Sync Complete".center(len(RULE)))
    typer.echo(RULE)
    typer.echo(f"Processed: {result.processed_count} repositories")
    typer.echo(f"Successful: {result.success_count} repositories")
    if result.skipped_empty_count:
        typer.echo(f"Skipped (empty): {result.skipped_empty_count} repositories")
    for outcome in result.results:
        if outcome.succeeded:
            continue
        errors = [step.error for step in (outcome.mirror, outcome.backup) if step is not None and step.error]
        typer.echo(f"  - {outcome.descriptor.name}: {'; '.join(errors) or 'not counted as successful'}")
    if result.state_updated and result.completed_at is not None:
        typer.echo(f"Last sync updated: {datetime.fromtimestamp(result.completed_at):%Y-%m-%d %H:%M:%S}")
    typer.echo(f"Logs: {config.log_dir}")


def run_sync(ctx: typer.Context, mode: SyncMode, confirmed: bool = True) -> SyncRunResult:
    """Run a sync from the CLI.

    Exits non-zero only for configuration, discovery, and locking errors;
    per-repository failures are reported but do not change the exit code.
    """
    config = resolve_configuration(ctx)
    try:
        asyncio.run(validate_sync_configuration(config, mode))
    except ConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc

    typer.echo(RULE)
    typer.echo(mode.title.center(len(RULE)))
    typer.echo(RULE)
    typer.echo("Fetching GitHub repositories...")
    try:
        result = asyncio.run(run_sync_workflow(config, mode, confirmed=confirmed))
    except AuthError as exc:
        typer.echo(f"GitHub API Error: {exc.message}", err=True)
        typer.echo("Please check your GitHub credentials.", err=True)
        raise typer.Exit(1) from exc
    except DiscoveryError as exc:
        typer.echo(f"Failed to list GitHub repositories: {exc.message}", err=True)
        raise typer.Exit(1) from exc
    except LockHeldError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    if result.cancelled:
        typer.echo("Sync cancelled.")
    else:
        echo_summary(result, config)
    return result


@typer_app.command(name="full-sync")
def full_sync_cli(ctx: typer.Context) -> None:
    """Sync all GitHub repositories to both GitLab and the local backup."""
    run_sync(ctx, SyncMode.BOTH)


@typer_app.command(name="gitlab-sync")
def gitlab_sync_cli(ctx: typer.Context) -> None:
    """Sync all GitHub repositories to GitLab only."""
    run_sync(ctx, SyncMode.GITLAB)


@typer_app.command(name="local-sync")
def local_sync_cli(ctx: typer.Context) -> None:
    """Sync all GitHub repositories to the local backup only."""
    run_sync(ctx, SyncMode.LOCAL)


@typer_app.command(name="status")
def status_cli(
    ctx: typer.Context,
    check_connections: Annotated[bool, Option("--check-connections/--no-check-connections", help="Test the GitHub and GitLab credentials.")] = True,
) -> None:
    """Show the status of the sync setup."""
    config = resolve_configuration(ctx)
    status = asyncio.run(gather_status(config, check_connections=check_connections))
    typer.echo("System Status")
    typer.echo(RULE)
    typer.echo(f"Environment:    {status.environment}")
    typer.echo(f"Last sync:      {status.last_sync_relative} ({status.last_sync_date})")
    typer.echo(f"GitHub:         {status.github}")
    typer.echo(f"GitLab:         {status.gitlab}")
    typer.echo(f"Local backups:  {status.local_backup_count}")
    typer.echo(f"Auto-sync:      {status.auto_sync}")
    if status.log_files:
        typer.echo("Log files:")
        for path in status.log_files:
            typer.echo(f"  - {path}")


@typer_app.command(name="auto-setup")
def auto_setup_cli(
    ctx: typer.Context,
    method: Annotated[str, Option(help="How to trigger automatic syncs: cron, profile, or auto (profile on WSL, cron elsewhere).")] = "auto",
    remove: Annotated[bool, Option("--remove", help="Only remove existing automatic sync configuration.")] = False,
    yes: Annotated[bool, Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Configure automatic syncing (twice daily via cron plus a gated startup sync)."""
    options = ctx.find_root().obj["options"]
    resolve_configuration(ctx)
    if method not in ("auto", "cron", "profile"):
        typer.echo(f"Unknown method '{method}' (expected auto, cron, or profile)", err=True)
        raise typer.Exit(2)

    has_cron = scheduler.cron_configured()
    has_profile = scheduler.profile_hook_configured()
    if has_cron or has_profile or remove:
        if not (has_cron or has_profile):
            typer.echo("Auto-sync is not configured, nothing to remove.")
            return
        if not (yes or remove or typer.confirm("Auto-sync is already configured. Replace the existing configuration?", default=True)):
            typer.echo("Keeping existing configuration.")
            return
        if has_cron:
            typer.echo(f"Removed {scheduler.remove_cron()} cron entries")
        if has_profile and scheduler.remove_profile_hook():
            typer.echo("Removed shell profile startup hook")
        if remove:
            return

    if method == "auto":
        method = "profile" if scheduler.is_wsl() else "cron"
    extra_args = ["--config-file", str(options["config_file"].absolute())] if options["config_file"] else []
    working_directory = Path(os.getcwd())
    startup_command = scheduler.trigger_command(TriggerKind.STARTUP.value, working_directory, extra_args)

    if method == "profile":
        if not (yes or typer.confirm("Sync repositories in the background whenever a shell starts (gated to once per 12 hours)?", default=True)):
            typer.echo("Setup cancelled.")
            return
        scheduler.install_profile_hook(startup_command)
        typer.echo(f"Shell startup hook installed in {scheduler.DEFAULT_PROFILE}")
        return

    if not (yes or typer.confirm("Sync daily at 9:00 and 18:00, and on startup if the last sync is over 12 hours old?", default=True)):
        typer.echo("Setup cancelled.")
        return
    scheduled_command = scheduler.trigger_command(TriggerKind.SCHEDULED.value, working_directory, extra_args)
    try:
        entries = scheduler.install_cron(scheduled_command, startup_command)
    except scheduler.SchedulerError as exc:
        typer.echo(f"Failed to install cron jobs: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo("Cron jobs installed:")
    for entry in entries:
        typer.echo(f"  {entry}")


@typer_app.command(name="trigger")
def trigger_cli(
    ctx: typer.Context,
    kind: Annotated[TriggerKind, Argument(help="Which automatic trigger is running.")],
    network_attempts: Annotated[int, Option(help="Connectivity checks before a startup sync.")] = 30,
) -> None:
    """Run a sync on behalf of cron or the shell startup hook."""
    config = resolve_configuration(ctx)
    try:
        asyncio.run(validate_sync_configuration(config, SyncMode.BOTH))
        outcome = asyncio.run(run_trigger(config, kind, network_attempts=network_attempts))
    except ConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc
    except DiscoveryError as exc:
        typer.echo(f"Failed to list GitHub repositories: {exc.message}", err=True)
        raise typer.Exit(1) from exc
    if outcome.result is not None:
        echo_summary(outcome.result, config)
    else:
        typer.echo(f"Sync not run ({outcome.reason})")


@typer_app.command(name="menu")
def menu_cli(ctx: typer.Context) -> None:
    """Interactive menu."""
    actions = {
        "1": ("Full Sync (GitHub -> GitLab + Local)", SyncMode.BOTH),
        "2": ("GitLab Only Sync (GitHub -> GitLab)", SyncMode.GITLAB),
        "3": ("Local Only Sync (GitHub -> Local)", SyncMode.LOCAL),
    }
    while True:
        typer.echo("")
        typer.echo("GitHub to GitLab Sync")
        typer.echo(RULE)
        for key, (title, _) in actions.items():
            typer.echo(f"{key}) {title}")
        typer.echo("4) Setup Auto-Sync")
        typer.echo("5) View Status")
        typer.echo("0) Exit")
        choice = typer.prompt("Select [0-5]", default="0").strip()
        try:
            if choice in actions:
                confirmed = typer.confirm("This will sync all your GitHub repositories. Continue?", default=True)
                run_sync(ctx, actions[choice][1], confirmed=confirmed)
            elif choice == "4":
                auto_setup_cli(ctx)
            elif choice == "5":
                status_cli(ctx)
            elif choice == "0":
                typer.echo("Goodbye!")
                return
            else:
                typer.echo("Invalid option")
        except typer.Exit as exc:
            if exc.exit_code not in (0, None):
                typer.echo("The previous action failed, see the messages above.", err=True)


@typer_app.command(name="help")
def help_cli(ctx: typer.Context) -> None:
    """Display this help message."""
    typer.echo(ctx.find_root().get_help())


if __name__ == "__main__":
    typer_app()
