"""
Logging for the memory subsystem.

Stores, adapters and processors log through children of the "threadmem"
logger, so a host application can tune memory chatter (recall strategies,
mirror failures, processor skips) independently of its own logs.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "threadmem"


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
) -> logging.Logger:
    """Attach console and optional file handlers to the "threadmem" logger.

    Hosts that already configure the root logger can skip this; records
    propagate either way.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a memory component, e.g. "memory.recall" -> "threadmem.memory.recall"."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
