from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_DIR = Path(os.environ.get("MICROBLOG_LOG_DIR", "Logs"))
LOG_LEVEL = os.environ.get("MICROBLOG_LOG_LEVEL", "INFO").upper()

_FORMAT = logging.Formatter(
    "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def get_logger(name: str, filename: str | None = None) -> logging.Logger:
    """
    Logger writing to the console and, when `filename` is given, to LOG_DIR/<filename>.log.

    Loggers that already have handlers are returned as-is so repeated calls
    don't duplicate output.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(_FORMAT)
    logger.addHandler(stream_handler)

    if filename is not None:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / f"{filename}.log", encoding="utf-8")
        file_handler.setFormatter(_FORMAT)
        logger.addHandler(file_handler)

    return logger
