"""Logging setup for the acai CLI.

Public API (the "studs"):
    configure_logging: Install the stderr and file handlers
"""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-5.5s | %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "acai.log"


def configure_logging(log_dir: Path | None = None, verbose: bool = False) -> None:
    """Configure the ``acai`` logger.

    Records go to stderr at INFO (DEBUG when verbose). When ``log_dir`` is
    given, every record down to DEBUG is also written to ``acai.log`` there.
    Calling this again replaces the previously installed handlers.
    """
    logger = logging.getLogger("acai")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stderr_handler = logging.StreamHandler()
    stderr_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(stderr_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)


__all__ = ["configure_logging"]
