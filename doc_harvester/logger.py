"""Logging setup with rotating file + console output."""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

# Third-party loggers that log every request at INFO; a 500-document run
# would otherwise drown our own messages.
NOISY_LOGGERS = ("httpx", "httpcore", "googleapiclient.discovery_cache")


def setup_logger(log_dir: str = "logs", level: Union[int, str, None] = None) -> logging.Logger:
    if level is None:
        level = os.environ.get("HARVEST_LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger("doc_harvester")
    logger.setLevel(level)

    if logger.handlers:
        return logger

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        # 10MB per file, keep 5
        fh = RotatingFileHandler(
            os.path.join(log_dir, "harvester.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
