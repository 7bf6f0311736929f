"""
Logging setup for command-line use of the pipeline.

Library modules only create module-level loggers; applications call
configure_logging() once at startup.
"""

import logging
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_NOISY_LOGGERS = ("urllib3", "httpx", "google.auth", "google.resumable_media")


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging with a stream handler and an optional file.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        log_file: Also write records to this file when given
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Suppress verbose HTTP request logs
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
