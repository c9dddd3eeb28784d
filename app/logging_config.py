"""Logging setup shared by the API and the catalog loaders."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(filename)s:%(lineno)d - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "city-suggestions"


def setup_logger(level: str = "INFO") -> logging.Logger:
    """Attach one stream handler to the root logger; repeated calls only update the level."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return root

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)
    return root
