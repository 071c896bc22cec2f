"""Logging setup shared by the API process and scripts."""

from __future__ import annotations

import logging
import sys

from projecthub.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "projecthub-console"


def configure_logging(level_name: str | None = None) -> int:
    """Attach the console handler to the root logger once and set its level.

    Returns the numeric level that was applied.
    """

    name = (level_name or get_settings().log_level).upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(handler)
    handler.setLevel(level)

    logging.getLogger(__name__).debug("Logging initialized at %s", name)
    return level
