"""
Logging Configuration
Attaches handlers to the `fieldmap` logger. The library itself only creates module
loggers; applications call `setup_logging` to see element search and mesh
preparation messages.
"""

import logging
import sys
from typing import Optional

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    *,
    capture_warnings: bool = False,
) -> logging.Logger:
    """
    Configures the logger of the `fieldmap` namespace.

    Args:
        level: logging level (e.g. logging.DEBUG to see the candidates found for
            ambiguous points).
        log_file: optional path of a file the messages are also written to.
        capture_warnings: also route `FieldMapWarning`s (and every other warning)
            through the same handlers, via the `py.warnings` logger.

    Returns:
        logging.Logger: the configured `fieldmap` logger.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    formatter = logging.Formatter(FORMAT, datefmt="%H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    names = ["fieldmap"] + (["py.warnings"] if capture_warnings else [])
    for name in names:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # calling again replaces the handlers
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        for handler in handlers:
            logger.addHandler(handler)
    logging.captureWarnings(capture_warnings)

    logger = logging.getLogger("fieldmap")
    logger.debug("Logging initialized at level %s.", logging.getLevelName(level))
    return logger
