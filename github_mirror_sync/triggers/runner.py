"""Entry points for automatic runs started by cron or the shell profile."""

import asyncio
from dataclasses import dataclass
from enum import Enum

import httpx
import structlog

from github_mirror_sync.configuration.models import SyncConfig
from github_mirror_sync.state.lock import RunLock
from github_mirror_sync.state.store import SyncStateStore, trigger_gate
from github_mirror_sync.synchronize.driver import run_sync_workflow
from github_mirror_sync.synchronize.exceptions import LockHeldError
from github_mirror_sync.synchronize.models import SyncMode, SyncRunResult
from github_mirror_sync.utils.constants import STARTUP_NETWORK_ATTEMPTS, STARTUP_NETWORK_INTERVAL

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class TriggerKind(str, Enum):
    """The two kinds of automatic trigger."""

    SCHEDULED = "scheduled"
    STARTUP = "startup"


@dataclass
class TriggerOutcome:
    """What an automatic trigger did."""

    kind: TriggerKind
    ran: bool
    reason: str
    result: SyncRunResult | None = None


async def wait_for_network(
    url: str,
    attempts: int = STARTUP_NETWORK_ATTEMPTS,
    interval: float = STARTUP_NETWORK_INTERVAL,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Poll url until it answers at all. Returns False if it never did."""
    async with httpx.AsyncClient(transport=transport, timeout=10.0) as client:
        for attempt in range(attempts):
            try:
                await client.get(url)
            except httpx.HTTPError as exc:
                logger.debug("Network not ready yet", url=url, attempt=attempt + 1, error=str(exc))
                if attempt + 1 < attempts:
                    await asyncio.sleep(interval)
                continue
            logger.info("Network is ready", attempt=attempt + 1)
            return True
    logger.warning("Network did not become ready, attempting sync anyway", url=url, attempts=attempts)
    return False


async def run_trigger(
    config: SyncConfig,
    kind: TriggerKind,
    now: int | None = None,
    network_attempts: int = STARTUP_NETWORK_ATTEMPTS,
) -> TriggerOutcome:
    """Run a full sync on behalf of an automatic trigger.

    The scheduled trigger always runs. The startup trigger only runs when the
    last successful sync is at least 12 hours old (or there is none). Both hold
    the run lock for the whole run and release it even if the run fails.
    """
    lock = RunLock(config.lock_file)
    try:
        lock.acquire()
    except LockHeldError as exc:
        logger.info("Another sync instance is already running", trigger=kind.value, holder_pid=exc.holder_pid)
        return TriggerOutcome(kind=kind, ran=False, reason="locked")

    try:
        logger.info("Automatic sync triggered", trigger=kind.value)
        if kind == TriggerKind.STARTUP:
            store = SyncStateStore(config.state_file)
            elapsed = store.seconds_since_last_sync(now)
            if not trigger_gate(store, now):
                logger.info("Skipping sync, last sync is recent", trigger=kind.value, hours_since=elapsed // 3600 if elapsed is not None else None)
                return TriggerOutcome(kind=kind, ran=False, reason="recent")
            if elapsed is None:
                logger.info("No previous sync found, performing first sync")
            else:
                logger.info("Proceeding with sync", hours_since=elapsed // 3600)
            if network_attempts > 0:
                await wait_for_network(config.github_api_url, attempts=network_attempts)

        result = await run_sync_workflow(config, SyncMode.BOTH, confirmed=True, use_lock=False)
        return TriggerOutcome(kind=kind, ran=True, reason="completed", result=result)
    finally:
        lock.release()
        logger.info("Automatic sync finished", trigger=kind.value)
