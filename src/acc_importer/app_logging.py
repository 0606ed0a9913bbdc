"""Logging configuration helpers."""

import logging

LOGGER_NAME = "acc_importer"


def configure_logging(level: str = "INFO") -> None:
    """Configure the package logger with a single stream handler.

    The API and the worker both call this at startup; repeated calls only
    adjust the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
