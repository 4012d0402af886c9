import logging
import sys


def setup_logging(verbosity: int = 0):
    """Route log records to stderr; stdout carries only locator lines."""
    logger = logging.getLogger()
    if logger.hasHandlers():
        logger.handlers.clear()
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)
