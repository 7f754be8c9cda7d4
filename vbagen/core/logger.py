"""
Shared application logger.
"""

import logging

from vbagen.core.config import get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure() -> logging.Logger:
    log = logging.getLogger("vbagen")
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(get_settings().LOG_LEVEL.upper())
    log.propagate = False
    return log


logger = _configure()
