"""Logging setup and the base exception shared by the scraper's modules."""

import logging
from typing import Optional

from libscraper import env


def setup_logging(name: Optional[str] = None, level: Optional[str] = None):
    """
    Configure and return the logger for `name`.

    The level comes from `level`, falling back to the LOG_LEVEL setting.
    Calling this twice for the same name does not add a second handler.
    """

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(name or "libscraper")
    logger.setLevel((level or env.LOG_LEVEL).upper())

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


class ScraperError(Exception):
    """
    Base class for errors raised by the scraper's own code, as opposed to
    exceptions leaking out of third-party libraries. The message is meant
    to be shown to whoever runs the scraper.
    """

    def __init__(self, message):
        super().__init__(message)
