"""Logging configuration helpers."""

import logging
from typing import Optional, Union

from .config import LOG_LEVEL

ROOT_LOGGER_NAME = "cpdp"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger below the package root, configuring the root once."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(LOG_LEVEL)
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(level: Union[int, str] = LOG_LEVEL) -> logging.Logger:
    """Set the level of the package root logger."""
    root = get_logger()
    root.setLevel(level)
    return root
