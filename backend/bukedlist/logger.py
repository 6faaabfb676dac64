# FILE: bukedlist/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from .settings import LOG_BACKUPS, LOG_FILE, LOG_LEVEL, LOG_MAX_BYTES

_configured = False


def setup_logging() -> None:
    global _configured
    if _configured:
        return

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    pkg = logging.getLogger("bukedlist")
    pkg.setLevel(level)

    # Avoid duplicate handlers when the host app already configured logging
    if not pkg.handlers and not logging.getLogger().handlers:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(level)
        ch.setFormatter(formatter)
        pkg.addHandler(ch)

        if LOG_FILE:
            try:
                os.makedirs(os.path.dirname(LOG_FILE) or ".", exist_ok=True)
                fh = RotatingFileHandler(LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS)
                fh.setLevel(level)
                fh.setFormatter(formatter)
                pkg.addHandler(fh)
            except OSError as e:
                pkg.warning("Failed to initialize file logging: %s", e)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
