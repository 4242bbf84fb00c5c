"""
mfg_erp/logger.py

Logging helpers.

All engine loggers are children of the "mfg_erp" logger, so one handler and one
level (Config.LOG_LEVEL) govern the whole package.
"""

from __future__ import annotations

import logging

ROOT_LOGGER_NAME = "mfg_erp"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger and set its level."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Return a package logger.

    Module names outside the package ("tests.x") are nested under "mfg_erp" too.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        configure_logging()
    return logger
