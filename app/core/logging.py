"""Logging configuration."""
import logging
import sys
from typing import Optional

from app.core.config import settings

# Chatty below WARNING: HTTP clients, the ORM, DB drivers and the PDF renderer
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "asyncpg", "reportlab")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging once, at startup."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
