# app/logging/config.py
"""Process-wide logging setup."""

import logging

from app.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once, level taken from ``LOG_LEVEL``."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # Per-request access lines are left to uvicorn
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
