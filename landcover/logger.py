"""Logging helpers shared by every module of the package."""

import logging
import os
from typing import Optional

from landcover.cste import GeneralPath

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return a configured logger.

    Args:
        name: Logger name (usually the module name)
        log_file: Optional file name, written under GeneralPath.LOG_PATH
        level: Logging level

    Returns:
        Logger with a console handler (and a file handler if requested)
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    #! Avoid duplicated handlers when a module is imported several times
    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

        if log_file is not None:
            os.makedirs(GeneralPath.LOG_PATH, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(GeneralPath.LOG_PATH, log_file))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        logger.propagate = False

    return logger
