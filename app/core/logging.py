"""Logging configuration."""
import logging
import sys
from typing import Optional, Union

from app.core.config import settings

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine", "multipart")


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """Send application logs to stdout at the configured level."""
    if level is None:
        level = settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
