"""Logging setup for the billing API server.

Everything goes to stdout and to a log file. The level comes from LOG_LEVEL
(default INFO); unknown names fall back to INFO.
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Library loggers kept quiet unless LOG_LEVEL=DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def get_log_level() -> int:
    """Logging level named by LOG_LEVEL (default: INFO)."""
    name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelNamesMapping().get(name)
    return level if level is not None else logging.INFO


def setup_server_logging(log_file: str = "logs/server.log") -> None:
    """Route all loggers to stdout and log_file.

    Replaces handlers installed by an earlier call, so uvicorn reloads do not
    duplicate output. Billing warnings (total mismatches, skipped charge rows,
    reopened statements) land in the file with ISO timestamps.

    Args:
        log_file: Path to log file; its directory is created if missing
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = get_log_level()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    library_level = logging.INFO if level == logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
