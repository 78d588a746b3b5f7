from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler


FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(
    log_dir: str = "logs",
    *,
    level: int = logging.INFO,
    max_bytes: int = 1_000_000,
    backup_count: int = 5,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the `gatehouse` logger: logs/gatehouse.log plus the console.

    Safe to call more than once; handlers are not duplicated. Session ids,
    tokens and credentials are never passed to these loggers; anything that
    needs an audit trail goes to the security JSONL log instead.
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger("gatehouse")
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        h = RotatingFileHandler(os.path.join(log_dir, "gatehouse.log"), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        h.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(h)

    if console and not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(sh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the `gatehouse` logger so setup_logging handlers apply."""
    if name == "gatehouse" or name.startswith("gatehouse."):
        return logging.getLogger(name)
    return logging.getLogger(f"gatehouse.{name}")
