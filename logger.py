"""Logging setup.

Controlled by environment variables:
  - LOG_LEVEL=DEBUG|INFO|WARNING|ERROR (default INFO)
  - LOG_FORMAT=rich|plain (default rich)
  - RICH_WIDTH=120 (optional)
"""

from __future__ import annotations

import logging
import os

from rich.logging import RichHandler
from rich.traceback import install as rich_install

ROOT_LOGGER = "dhikr_voice"


def setup_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    fmt_choice = os.getenv("LOG_FORMAT", "rich").lower()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    if fmt_choice == "rich":
        rich_install(show_locals=False, width=int(os.getenv("RICH_WIDTH", "120")), word_wrap=True)
        handler: logging.Handler = RichHandler(
            markup=False,
            enable_link_path=False,
            rich_tracebacks=True,
            show_time=True,
            show_level=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger under the application root, e.g. ``dhikr_voice.session``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")
