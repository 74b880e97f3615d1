from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "stablepattern"
LOG_DIR = Path.home() / ".stablepattern" / "logs"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def build_logger(log_dir: Path | None = None, name: str = LOGGER_NAME) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        target_dir = log_dir or LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_dir / "engine.log", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        # Fall back to stderr when the log file cannot be opened.
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stream_handler)
    return logger
