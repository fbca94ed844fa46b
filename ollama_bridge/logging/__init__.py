"""Logging module for the bridge."""

from .setup import LOG_DATE_FORMAT, LOG_FORMAT, LOGGER_NAME, setup_logging

__all__ = [
    "LOG_DATE_FORMAT",
    "LOG_FORMAT",
    "LOGGER_NAME",
    "setup_logging",
]
