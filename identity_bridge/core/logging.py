"""
Logging setup for the identity bridge.

Module loggers never receive tokens or secrets; the HTTP client loggers are
raised to WARNING because they log full URLs, which can carry authorization
codes.
"""

import logging
import sys
from typing import Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Configure root logging for the bridge and silence chatty HTTP loggers."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stdout)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_FORMAT", "QUIET_LOGGERS", "configure_logging"]
