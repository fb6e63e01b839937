# fts/core/logging.py
"""
Logging setup for processes that host a function handler.

Library modules only create ``logging.getLogger(__name__)`` loggers; this
module is for the composition root (``create_app`` or a hosting script).
"""
from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

# Third-party loggers that are chatty at INFO for every outbound request
_QUIET_LOGGERS = ("httpx", "httpcore")

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO", *, json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Root log level name.
        json_format: Emit JSON lines (default) instead of plain text.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    # Replace rather than append so repeated app creation does not duplicate lines
    root.handlers = [handler]

    if root.level > logging.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
