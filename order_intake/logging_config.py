"""
logging_config.py — Centralized Logging Configuration for the Order Intake Service

Every module obtains its logger through `get_logger(__name__)` so that the
format and handlers configured here apply to the whole application.

Features:
    • Console logging on stdout (container friendly), optional log file
    • Process ID tagging for multi-worker visibility
    • Reduced verbosity for SQLAlchemy and uvicorn access logs
"""

import logging
import sys
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Configures the global logging system for the application.

    Args:
        level (str): Root log level name, e.g. "INFO" or "DEBUG".
        log_file (str, optional): Path of an additional log file. Console output
            is always enabled.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    # SQL echo and per-request access lines are too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
