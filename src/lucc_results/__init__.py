"""lucc_results: result tables and GeoTIFF outputs for land-use-change analysis.

The top-level package re-exports the workflows used after predicates
(RECUR, HOLDS, EVOLVE, CONVERT) have been evaluated over a classified raster
time series.  The curated groups are:

* Frequency tables (:mod:`lucc_results.frequency`)
  - :func:`tabulate_matrix`
  - :func:`extract_frequency`
* Statistical measures (:mod:`lucc_results.measures`)
  - :func:`compute_measures`
* Raster updates (:mod:`lucc_results.patch`)
  - :func:`resolve_labels`
  - :func:`merge_patch`
  - :func:`save_raster_result`
* Raster I/O (:mod:`lucc_results.raster_io`)
  - :func:`load_classified_stack`
  - :func:`raster_to_points`, :func:`points_to_raster`
  - :func:`write_geotiff`
  - :func:`split_layers`
* Timeline helpers (:mod:`lucc_results.timeline`)
  - :func:`year_of`, :func:`timeline_years`
* Errors (:mod:`lucc_results.errors`)
  - :class:`ValidationError`, :class:`NotFoundError`,
    :class:`LabelResolutionError`

Refer to the module documentation for detailed usage patterns and expected
inputs for each routine.
"""

from .errors import LabelResolutionError, NotFoundError, ValidationError
from .frequency import extract_frequency, tabulate_matrix
from .measures import DEFAULT_PIXEL_RESOLUTION, compute_measures
from .patch import merge_patch, resolve_labels, save_raster_result
from .raster_io import (
    load_classified_stack,
    points_to_raster,
    raster_to_points,
    split_layers,
    write_geotiff,
)
from .timeline import timeline_years, year_of


_ERROR_EXPORTS = [
    "LabelResolutionError",
    "NotFoundError",
    "ValidationError",
]
_FREQUENCY_EXPORTS = [
    "extract_frequency",
    "tabulate_matrix",
]
_MEASURES_EXPORTS = [
    "DEFAULT_PIXEL_RESOLUTION",
    "compute_measures",
]
_PATCH_EXPORTS = [
    "merge_patch",
    "resolve_labels",
    "save_raster_result",
]
_RASTER_IO_EXPORTS = [
    "load_classified_stack",
    "points_to_raster",
    "raster_to_points",
    "split_layers",
    "write_geotiff",
]
_TIMELINE_EXPORTS = [
    "timeline_years",
    "year_of",
]


__all__ = (
    _ERROR_EXPORTS
    + _FREQUENCY_EXPORTS
    + _MEASURES_EXPORTS
    + _PATCH_EXPORTS
    + _RASTER_IO_EXPORTS
    + _TIMELINE_EXPORTS
    + ["__version__", "__author__"]
)

# Package metadata
from importlib import metadata as _metadata
from pathlib import Path


try:
    __version__ = _metadata.version("lucc_results")
except _metadata.PackageNotFoundError:
    try:  # Python 3.11+
        import tomllib
    except ModuleNotFoundError:  # pragma: no cover - Python <3.11
        tomllib = None

    _pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    if tomllib is not None and _pyproject.exists():
        with _pyproject.open("rb") as _fp:
            __version__ = tomllib.load(_fp)["project"]["version"]
    else:
        __version__ = "0.0.0.dev1"

__author__ = "lucc_results developers"
