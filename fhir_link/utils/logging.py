"""
Logging configuration for fhir-link.

Our own modules log through loguru. Third-party libraries (httpx,
apscheduler) use the standard logging module; they are only levelled here.
"""

import logging
import os
import sys
from pathlib import Path

from loguru import logger

from fhir_link.config import settings


# stdlib loggers from dependencies -> minimum level
NOISY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "apscheduler": logging.INFO,
}


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL
        log_file: Optional file path for logging to file; defaults to LOG_FILE
        rotation: Log rotation setting (e.g., "10 MB", "1 day")
        retention: Log retention setting (e.g., "1 week", "10 files")
    """
    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file

    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation=rotation,
            retention=retention,
            compression="gz",
        )

    # Scheduler job events (missed runs, errors) come through stdlib logging
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    stdlib_level = logging.getLevelName(level)
    if not isinstance(stdlib_level, int):  # loguru-only levels such as SUCCESS
        stdlib_level = logging.INFO
    for name, minimum in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(minimum, stdlib_level))

    logger.info(f"Logging configured: level={level}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
