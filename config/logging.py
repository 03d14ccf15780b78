# coding: utf-8
"""
Logging configuration with loguru for Reader Stats

Sinks:
- console, LOG_LEVEL, colored
- logs/stats_{date}.log - everything from DEBUG (cache hits/misses, reconciles)
- logs/error_{date}.log - ERROR and above, kept longer
- Sentry - ERROR and above, only when SENTRY_DSN is set
"""
import logging
import sys
from pathlib import Path
from typing import Optional

import sentry_sdk
from loguru import logger

from config.config import ENVIRONMENT, LOG_LEVEL, SENTRY_DSN


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

SENTRY_LEVELS = {"ERROR": "error", "CRITICAL": "fatal"}

# stdlib loggers of the HTTP stack, only interesting when they complain
NOISY_LOGGERS = ("aiohttp", "asyncio")


def setup_logging(logs_dir: Optional[Path] = None) -> Path:
    """
    Replace loguru's default handler with the stats core sinks

    Args:
        logs_dir: Directory for the log files (``<repo>/logs`` by default)

    Returns:
        Directory the log files go to
    """
    logger.remove()

    if logs_dir is None:
        logs_dir = Path(__file__).parent.parent / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=LOG_LEVEL, colorize=True)
    _add_file_sink(logs_dir / "stats_{time:YYYY-MM-DD}.log", level="DEBUG", retention="7 days")
    _add_file_sink(logs_dir / "error_{time:YYYY-MM-DD}.log", level="ERROR", retention="30 days")

    if SENTRY_DSN:
        logger.add(sentry_sink, level="ERROR", format="{message}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(f"Reader Stats logging ready | env={ENVIRONMENT} | level={LOG_LEVEL} | dir={logs_dir}")
    return logs_dir


def _add_file_sink(path: Path, level: str, retention: str) -> None:
    logger.add(
        path,
        format=FILE_FORMAT,
        level=level,
        rotation="00:00",
        retention=retention,
        compression="zip",
        encoding="utf-8",
    )


def sentry_sink(message) -> None:
    """
    Forward ERROR/CRITICAL records to Sentry

    Records carrying an exception are sent as that exception; the rest as a
    message tagged with the emitting module.
    """
    record = message.record
    exception = record["exception"]
    if exception is not None and exception.value is not None:
        sentry_sdk.capture_exception(exception.value)
        return

    sentry_level = SENTRY_LEVELS.get(record["level"].name)
    if sentry_level is None:
        return

    sentry_sdk.capture_message(
        record["message"],
        level=sentry_level,
        tags={"module": record["name"]},
        extras={
            "function": record["function"],
            "file": record["file"].path,
            "line": record["line"],
        },
    )
