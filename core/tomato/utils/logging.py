"""Logging setup shared by every Tomato module.

Modules import `logger` from here. The level comes from TOMATO_LOG_LEVEL;
setting TOMATO_LOG_FILE also appends records to that file.
"""

import logging
import sys
from typing import Optional, Union

from tomato.config import LOG_FILE, LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[int, str] = LOG_LEVEL,
    log_file: Optional[str] = LOG_FILE,
) -> logging.Logger:
    """Attach stdout (and optionally file) handlers to the "tomato" logger once."""
    app_logger = logging.getLogger("tomato")
    app_logger.setLevel(level)

    if app_logger.handlers:
        return app_logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    return app_logger


logger = setup_logging()
