"""
Logging helpers shared by the command line entry points.
"""

import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

VALID_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}


def resolve_log_level(level_name: str = None) -> int:
    """
    Map a level name (or LOG_LEVEL from the environment) to a logging level.

    Unknown names fall back to INFO with a warning.
    """
    log_level_str = (level_name or os.getenv('LOG_LEVEL', 'INFO')).upper()

    if log_level_str in VALID_LEVELS:
        return VALID_LEVELS[log_level_str]

    print(f"Warning: Invalid LOG_LEVEL '{log_level_str}', defaulting to INFO. "
          f"Valid options: {', '.join(VALID_LEVELS.keys())}")
    return logging.INFO


def configure_logging(level_name: str = None) -> int:
    """Configure root logging once for a process"""
    log_level = resolve_log_level(level_name)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    return log_level
