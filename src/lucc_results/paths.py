"""Utilities for resolving input and output locations.

All helpers return :class:`pathlib.Path` objects.  Output directories are
always derived from the arguments of the call; nothing is remembered
between calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from lucc_results.log import LOGGER

PathLike = Union[str, Path]

path_logger = LOGGER.getChild("paths")


def as_path(value: PathLike) -> Path:
    """Return ``value`` as a :class:`~pathlib.Path` instance."""

    return value if isinstance(value, Path) else Path(value)


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` (and its parents) when it does not exist yet.

    Returns the directory as a :class:`Path`.
    """

    directory = as_path(path)
    if not directory.is_dir():
        directory.mkdir(parents=True, exist_ok=True)
        path_logger.info("Created new directory %s", directory)
    return directory


def layer_output_dir(input_file: PathLike) -> Path:
    """Return the sibling directory named after ``input_file``'s stem.

    Examples
    --------
    >>> layer_output_dir("/data/blocks/Mosaic_Raster_Block_.tif")
    PosixPath('/data/blocks/Mosaic_Raster_Block_')
    """

    source = as_path(input_file)
    return source.parent / source.stem
