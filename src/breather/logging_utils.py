"""Logging helpers."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(
    log_dir: str, level: int = logging.INFO, verbose: bool = False
) -> tuple[logging.Logger, str]:
    """Send ``breather`` logs to ``<log_dir>/breather.log``.

    With *verbose*, debug output is mirrored to stderr as well.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "breather.log")

    logger = logging.getLogger("breather")
    logger.setLevel(logging.DEBUG if verbose else level)

    if not logger.handlers:
        handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

        if verbose:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
            logger.addHandler(console)

    return logger, log_path
