"""
converter.logging_setup
~~~~~~~~~~~~~~~~~~~~~~~
Root logger configuration for the command-line front end.

Library code only ever calls ``logging.getLogger(__name__)``; handlers are
attached here, once, by whoever owns the process.
"""

from __future__ import annotations

import datetime
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logging(verbose: bool = False, log_dir: Path | None = None) -> Path | None:
    """
    Log to the console (INFO, or DEBUG with *verbose*) and, when *log_dir* is
    given, to a rotating file there at DEBUG.

    Returns the log file path, or None when only the console is used.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_handler = None
    file_error = None
    log_file = None
    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            log_file = log_dir / f"convert_{timestamp}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
        except OSError as exc:
            file_error = exc
            file_handler = None
            log_file = None

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    if file_handler:
        root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    if file_error is not None:
        logger.warning(f"Cannot write log file in '{log_dir}': {file_error}")
    return log_file
