"""
INVITATIONS Logger
==================
Thin wrapper around the standard logging module so every function logs
with the same format. Lambda already attaches a handler to the root logger,
so we only add one when running locally.
"""

import logging
import os

from lambdas.common.constants import LOG_LEVEL_VAR

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_root():
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    level = os.environ.get(LOG_LEVEL_VAR, "INFO").upper()
    # Unknown level names fall back to INFO
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    root.setLevel(level)


def get_logger(file_name: str) -> logging.Logger:
    """
    Get a logger named after the calling module.

    Usage:
        log = get_logger(__file__)
    """
    _configure_root()
    name = os.path.splitext(os.path.basename(file_name))[0]
    return logging.getLogger(f"invitations.{name}")
