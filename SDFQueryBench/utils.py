"""
Utility Functions
=================

This module provides general utility functions used throughout SDFQueryBench,
most importantly the logging configuration shared by all modules.

Functions
---------
configure_logging
    Set up logging for the SDFQueryBench package with customizable
    output format and destinations.
"""

import logging
import SDFQueryBench


def configure_logging(level=logging.INFO, logfile=None):
    """Configure logging for the SDFQueryBench package.

    Sets up a logger with a standard format and optional file output.
    This is called automatically when SDFQueryBench is imported and again
    by the command line interface to apply ``--verbose`` and ``--logfile``.
    Handlers attached by an earlier call are replaced.

    Parameters
    ----------
    level : int, default logging.INFO
        Logging level (e.g., logging.DEBUG, logging.INFO, logging.WARNING).
    logfile : str, optional
        Path to log file. If provided, logs are written to both console
        and file. If None, logs only to console.

    Examples
    --------
    >>> from SDFQueryBench.utils import configure_logging
    >>> import logging
    >>>
    >>> # Set debug level and log to file
    >>> configure_logging(level=logging.DEBUG, logfile='benchmark.log')

    Notes
    -----
    The log format is: "HH:MM:SS message"
    """
    logger = logging.getLogger(SDFQueryBench.__name__)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger_handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S")
    logger_handler.setFormatter(formatter)
    logger.addHandler(logger_handler)

    if logfile is not None:
        file_logger_handler = logging.FileHandler(logfile)
        file_logger_handler.setFormatter(formatter)
        logger.addHandler(file_logger_handler)
