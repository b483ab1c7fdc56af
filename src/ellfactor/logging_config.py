"""
Logging Configuration
Sets up the logger for the ellfactor package.
"""
import logging
import sys


def setup_logging(level=logging.INFO, log_file=None):
    """Configure the logger of the ``ellfactor`` namespace.

    Any handlers previously attached to that logger are removed first, so
    calling this more than once does not duplicate messages.

    Parameters
    ----------
    level : int
        Logging level (e.g. ``logging.DEBUG``, ``logging.INFO``).
    log_file : str or None
        Optional path to also write the log to.

    Returns
    -------
    : logging.Logger
        The configured logger.
    """
    logger = logging.getLogger("ellfactor")
    logger.setLevel(level)

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
