from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    # Calling twice (reload, tests) must not stack handlers.
    for h in list(logger.handlers):
        if getattr(h, "_habitstats", False):
            logger.removeHandler(h)
            h.close()

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    stream._habitstats = True  # type: ignore[attr-defined]
    logger.addHandler(stream)

    if log_file:
        Path(log_file).parent.mkdir(exist_ok=True, parents=True)
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setFormatter(formatter)
        handler._habitstats = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
