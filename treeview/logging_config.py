"""Logging configuration for the tree engine."""

import os
import sys

from loguru import logger

LEVEL_ENV = "TREEVIEW_LOG_LEVEL"


def configure_logging(*, verbose: bool = False, sink=None) -> None:
    """
    Configure loguru with appropriate level.

    TREEVIEW_LOG_LEVEL, when set, overrides the level picked from verbose.
    """
    logger.remove()
    level = os.environ.get(LEVEL_ENV) or ("DEBUG" if verbose else "INFO")
    logger.add(sink or sys.stderr, level=level.upper(), format="{level.icon} treeview | {message}")
