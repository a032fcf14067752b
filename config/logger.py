# logger.py — loguru configuration
"""
logger.py — Logging Setup

Configures loguru with a console sink and, when a log directory is given,
a DEBUG-level file sink. Modules log through `from loguru import logger`
directly; call setup_logger() once from an entry point.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config.settings import get_settings

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{function} | {message}"


def setup_logger(
    context_name: str = "insights",
    log_dir: Path | None = None,
    level: str | None = None,
) -> Path | None:
    """
    Configure loguru sinks for an entry point.

    Args:
        context_name: Used as the log file stem (e.g. "api", "ui")
        log_dir: Directory for the log file; falls back to INSIGHTS_LOG_DIR
        level: Console level; falls back to INSIGHTS_LOG_LEVEL

    Returns:
        Path to the log file, or None when logging to console only
    """
    settings = get_settings()
    log_dir = log_dir or settings.log_dir
    level = (level or settings.log_level).upper()

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_dir is None:
        return None

    log_dir = Path(log_dir)
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")

    logger.info(f"Logging {context_name} to {log_file}")
    return log_file
