"""Logging setup for the graph construction tools.

Modules create their logger with get_logger(__name__). Scripts call
configure_logging() once; stage counts are logged at INFO and aggregated
soft omissions (dust, excluded pairs, untracked ids) at DEBUG.
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = '%(levelname)s - %(name)s - %(message)s'

# Loggers under these prefixes follow the configured verbosity
_PACKAGE_LOGGERS = (
    'src.graph_construction',
    'src.data_loading',
)


def _level(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    return logging.INFO if verbose else logging.WARNING


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, e.g. get_logger(__name__)."""
    return logging.getLogger(name)


def set_verbosity(verbose: bool = True, debug: bool = False):
    """Change the level of the package loggers and the root handlers.

    Args:
        verbose: Show INFO messages; otherwise WARNING and above only.
        debug: Also show DEBUG messages (skip counters, suppressed connectors).
    """
    level = _level(verbose, debug)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        handler.setLevel(level)
    for name in _PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure_logging(verbose: bool = True, debug: bool = False, log_file: Optional[str] = None):
    """Install stdout (and optionally file) handlers. Call once per script.

    Args:
        verbose: Show INFO messages; otherwise WARNING and above only.
        debug: Also show DEBUG messages.
        log_file: If given, log to this file as well; its directory is created.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=_level(verbose, debug), format=LOG_FORMAT, handlers=handlers, force=True)
    set_verbosity(verbose, debug)
