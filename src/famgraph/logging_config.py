"""
Common logging configuration for famgraph
"""

import logging
import sys


def setup_logger(name: str, level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """
    Setup a logger with consistent formatting across the project

    Args:
        name: Logger name (typically __name__ or the package name)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers if logger already configured
    if logger.handlers:
        logger.setLevel(getattr(logging, level.upper()))
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_project_logger(verbose: bool = False, level: str | None = None) -> logging.Logger:
    """
    Configure the package logger; every famgraph.* module logger propagates to it

    Args:
        verbose: Enable debug level logging (wins over ``level``)
        level: Explicit level name, e.g. from settings

    Returns:
        The configured ``famgraph`` logger
    """
    if verbose:
        level = "DEBUG"
    return setup_logger("famgraph", level or "INFO")
