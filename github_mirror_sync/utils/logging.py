"""Configures structlog output for the console and the append-only log files."""

import logging
import sys
from pathlib import Path

import structlog

from github_mirror_sync.utils.constants import ERROR_LOG_FILENAME, SYNC_LOG_FILENAME

HANDLER_NAME_PREFIX = "github-mirror-sync"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
    ]


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"], drop_missing=True),
            ],
        )
    )
    return handler


def configure_logging(debug: bool = False, log_dir: Path | None = None) -> None:
    """Route structlog through stdlib logging to stderr and, optionally, the log files.

    When log_dir is given, every record is appended to sync.log and warnings and
    errors are additionally appended to sync_errors.log.
    """
    level = logging.DEBUG if debug else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        )
    )
    handlers: list[logging.Handler] = [console]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(log_dir / SYNC_LOG_FILENAME, logging.DEBUG if debug else logging.INFO))
        handlers.append(_file_handler(log_dir / ERROR_LOG_FILENAME, logging.WARNING))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if (existing.name or "").startswith(HANDLER_NAME_PREFIX):
            root_logger.removeHandler(existing)
            existing.close()
    for index, handler in enumerate(handlers):
        handler.set_name(f"{HANDLER_NAME_PREFIX}-{index}")
        root_logger.addHandler(handler)
    root_logger.setLevel(level)
