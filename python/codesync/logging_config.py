"""
Logging configuration for codesync.

CRITICAL: when running as an MCP stdio server, nothing may be written to
stdout. stdout carries JSON-RPC messages and stray text breaks the protocol.

Records go to <state dir>/logs/codesync-YYYY-MM-DD.log, rotated at midnight.
The state dir is CODESYNC_STATE_DIR or .codesync in the working directory, the
same place the sqlite state lives. CODESYNC_LOG_LEVEL picks the level and
CODESYNC_LOG_CONSOLE=1 mirrors records to stderr.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER = "codesync"


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Rotating file handler that flushes every record, so a crash loses nothing."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def default_log_dir() -> Path:
    state_dir = os.environ.get("CODESYNC_STATE_DIR")
    base = Path(state_dir) if state_dir else Path.cwd() / ".codesync"
    return base / "logs"


def _level_from_env(default: int) -> int:
    name = os.environ.get("CODESYNC_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def _file_handler(log_dir: Path, backup_count: int) -> FlushingHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d")
    return FlushingHandler(
        log_dir / f"codesync-{stamp}.log",
        when="midnight",
        backupCount=backup_count,
        encoding="utf-8",
    )


def _is_stderr_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) is sys.stderr


def setup_logging(
    log_dir: Optional[Path] = None,
    level: Optional[int] = None,
    backup_count: int = 14,
    console: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the "codesync" logger. Idempotent: existing handlers are reused.

    Args:
        log_dir: Directory for log files (default: default_log_dir())
        level: Logging level (default: CODESYNC_LOG_LEVEL, else INFO)
        backup_count: Days of rotated files to keep
        console: Mirror to stderr (default: CODESYNC_LOG_CONSOLE)

    Returns:
        The "codesync" logger; module loggers (codesync.tracker, ...) propagate to it
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level if level is not None else _level_from_env(logging.INFO))
    if console is None:
        console = os.environ.get("CODESYNC_LOG_CONSOLE", "") in ("1", "true", "yes")

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if not any(isinstance(h, FlushingHandler) for h in logger.handlers):
        handler = _file_handler(log_dir or default_log_dir(), backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.info(f"codesync logging to {handler.baseFilename} at {logging.getLevelName(logger.level)}")

    if console and not any(_is_stderr_handler(h) for h in logger.handlers):
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

    return logger
