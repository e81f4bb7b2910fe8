"""Logging setup shared by the API and the CLI."""

from __future__ import annotations

import logging

from payroll_cycles.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    Safe to call more than once; only the level is updated on repeat calls.
    """
    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level, logging.INFO
    )
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)
    # SQL echo stays off unless debugging
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
