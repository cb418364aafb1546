"""
psfx Logger - Centralized Logging Utility
"""
import logging
import sys

def setup_logger():
    # Create a custom logger
    logger = logging.getLogger("psfx")
    logger.setLevel(logging.DEBUG)

    # Console handler: clean output for CLI
    c_handler = logging.StreamHandler(sys.stdout)
    c_handler.setLevel(logging.INFO)
    c_handler.setFormatter(logging.Formatter('%(message)s'))

    if not logger.handlers:
        logger.addHandler(c_handler)

    return logger


def set_verbose(verbose: bool = True):
    """Show debug messages on the console handler (CLI -v)"""
    level = logging.DEBUG if verbose else logging.INFO
    for handler in logger.handlers:
        handler.setLevel(level)


# Initialize singleton
logger = setup_logger()

__all__ = ["logger", "set_verbose"]
