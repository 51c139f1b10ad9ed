"""Centralised logging configuration utilities."""

import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL = os.getenv("PQA_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = DEFAULT_LEVEL) -> None:
    """Configure root logging if it has not been configured yet."""
    if logging.getLogger().handlers:
        return

    logging.basicConfig(level=level, format=LOG_FORMAT)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module specific logger with shared configuration."""
    configure_logging()
    return logging.getLogger(name)
