from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Configure root logging for scripts and embedding applications.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        debug: Also switch the project loggers to DEBUG
    """
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
    if debug:
        for name in ("esg_core", "esg_advisor"):
            logging.getLogger(name).setLevel(logging.DEBUG)


def preview_secret(secret: Optional[str]) -> str:
    """Loggable preview of an API key without exposing it."""
    if not secret:
        return "<missing>"
    secret = secret.strip()
    if len(secret) > 15:
        return f"{secret[:6]}...{secret[-4:]}"
    return "***"
