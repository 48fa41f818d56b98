"""Logger construction for the package."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union


def build_logger(name: str, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Create a logger with the shared handlers if it has not been configured.

    Messages at INFO and above go to the console.  When ``log_file`` is given,
    everything from DEBUG up is also appended to that file.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger


LOGGER = build_logger("lucc_results")
