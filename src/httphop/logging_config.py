import logging
import sys
from typing import Optional, TextIO, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers of the HTTP stack that are chatty below WARNING
THIRD_PARTY_LOGGERS = ("aiohttp.client", "aiohttp.internal")


def level_for(verbose: bool = False, quiet: bool = False) -> str:
    """Map CLI verbosity flags to a level name (verbose wins over quiet)."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    return "WARNING"


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up logging configuration for httphop.

    Hop and redirect records go to stderr by default, so a response body
    written to stdout stays clean.

    Args:
        level: Level name (DEBUG, INFO, ...) or numeric level
        log_file: Optional file path for logging output
        format_string: Optional custom format string for log messages
        force: If True, reconfigure even if handlers exist
        stream: Stream for the console handler (default: sys.stderr)

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        numeric_level = getattr(logging, level.upper(), logging.INFO)
    else:
        numeric_level = level
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    logger = logging.getLogger("httphop")
    logger.setLevel(numeric_level)

    # Only clear and reconfigure if forced or no handlers exist
    if force or not logger.handlers:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    # aiohttp only gets to speak at DEBUG
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger
