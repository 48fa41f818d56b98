"""
Merge predicate results back into a classified raster stack.

Predicates report the pixels that satisfy a land-use condition as a sparse
wide table (``x``, ``y``, one column per date) whose cells hold class labels.
:func:`merge_patch` writes those labels, as class codes, over the original
stack so that the result covers the full grid and the full timeline and can
be saved with :func:`lucc_results.raster_io.write_geotiff`.
"""

# -----------------------------------------------------------------------------
# MODULES
# -----------------------------------------------------------------------------
import numbers
from typing import Any, Dict, List, Sequence, Set

import numpy as np
import pandas as pd
import xarray as xr
import polars as pl

from lucc_results.errors import LabelResolutionError, ValidationError, require, require_defined
from lucc_results.log import LOGGER
from lucc_results.paths import PathLike
from lucc_results.raster_io import StackLike, _as_stack, _layered, raster_to_points, write_geotiff
from lucc_results.timeline import timeline_years, year_of

# Coordinates from the raster and from predicate tables are compared after
# rounding to this many decimals.
COORDINATE_DECIMALS = 5

KEY_COLUMNS = ["x", "y", "variable"]

patch_logger = LOGGER.getChild("patch")


# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------
def _as_pandas_frame(table: Any) -> pd.DataFrame:
    if isinstance(table, pl.DataFrame):
        return table.to_pandas()
    if isinstance(table, pd.DataFrame):
        return table.copy()
    raise ValidationError(f"Expected a pandas or polars DataFrame, got {type(table).__name__}.")


def _round_coordinates(frame: pd.DataFrame) -> pd.DataFrame:
    frame["x"] = pd.to_numeric(frame["x"]).round(COORDINATE_DECIMALS)
    frame["y"] = pd.to_numeric(frame["y"]).round(COORDINATE_DECIMALS)
    return frame


def _is_code(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def resolve_labels(values: pd.DataFrame, class_labels: Sequence[Any]) -> pd.DataFrame:
    """
    Replace class labels by their numeric codes.

    A label's code is its 1-based position in ``class_labels`` (first match
    wins).  Numeric cells are already codes and are kept; missing cells stay
    missing.

    Raises
    ------
    LabelResolutionError
        If any label is not part of ``class_labels``.
    """
    lookup: Dict[str, int] = {}
    for position, label in enumerate(class_labels, start=1):
        lookup.setdefault(str(label), position)

    unresolved: Set[Any] = set()

    def _resolve(value):
        if pd.isna(value):
            return np.nan
        if _is_code(value):
            return value
        code = lookup.get(str(value))
        if code is None:
            unresolved.add(value)
            return np.nan
        return code

    codes = values.apply(lambda column: column.map(_resolve))

    if unresolved:
        raise LabelResolutionError(unresolved, class_labels)

    return codes.astype("float64")


def _original_long(stack: xr.DataArray, years: List[str]) -> pd.DataFrame:
    points = raster_to_points(stack)
    points.columns = ["x", "y", *years]
    points = _round_coordinates(points)
    return points.melt(id_vars=["x", "y"], var_name="variable", value_name="value")


def _edits_long(edits: Any, class_labels: Sequence[Any]) -> pd.DataFrame:
    frame = _as_pandas_frame(edits)
    require("x" in frame.columns and "y" in frame.columns, "edits must have 'x' and 'y' columns.")
    frame = _round_coordinates(frame)

    layers = [name for name in frame.columns if name not in ("x", "y")]
    years = [str(year_of(name)) for name in layers]
    duplicated = sorted({year for year in years if years.count(year) > 1})
    require(not duplicated, f"edits has more than one column for years {duplicated}.")

    codes = resolve_labels(frame[layers], class_labels)
    codes.columns = years
    codes.insert(0, "y", frame["y"].to_numpy())
    codes.insert(0, "x", frame["x"].to_numpy())

    long = (
        codes.melt(id_vars=["x", "y"], var_name="variable", value_name="value")
        .dropna(subset=["value"])
        .drop_duplicates()
    )

    conflicts = long.duplicated(subset=KEY_COLUMNS, keep=False)
    if conflicts.any():
        sample = long.loc[conflicts, KEY_COLUMNS].drop_duplicates().head(5).to_dict("records")
        raise ValidationError(f"edits assign different classes to the same pixel and year: {sample}")

    return long


# -----------------------------------------------------------------------------
# FUNCTIONS
# -----------------------------------------------------------------------------
def merge_patch(
    original_stack: StackLike,
    edits: Any,
    timeline: Sequence[Any],
    class_labels: Sequence[Any],
) -> pd.DataFrame:
    """
    Update a classified raster stack with the pixels found by a predicate.

    Parameters
    ----------
    original_stack:
        Classified raster stack (DataArray or path), one layer per timeline date.
    edits:
        Predicate result: ``x``, ``y`` and one column per edited date holding
        class labels (or class codes).
    timeline:
        All dates of the classified stack, in layer order.
    class_labels:
        Labels of the pixel values; label ``i`` (1-based) has code ``i``.

    Returns
    -------
    pd.DataFrame
        ``x``, ``y`` and one column per timeline year (``"2001"``, ...), in
        ascending order.  Edited cells hold the edit's code, all other cells
        the original value; years without any pixel are all-NaN columns.

    Raises
    ------
    ValidationError
        If an input is missing, the layer count does not match the timeline,
        or edits contradict each other.
    LabelResolutionError
        If an edit label is not part of ``class_labels``.
    """
    require_defined(original_stack, "original_stack must be defined! A raster brick with classified images.")
    require_defined(
        edits,
        "edits must be defined! This data can be obtained using predicates RECUR, HOLDS, EVOLVE and CONVERT.",
    )
    require_defined(class_labels, "class_labels must be defined!")
    years = timeline_years(timeline)

    stack = _layered(_as_stack(original_stack))
    n_layers = stack.sizes[stack.dims[0]]
    require(
        n_layers == len(years),
        f"timeline has {len(years)} dates but the raster stack has {n_layers} layers.",
    )

    raster_long = _original_long(stack, years)
    edits_long = _edits_long(edits, class_labels)

    extra_years = sorted(set(edits_long["variable"]) - set(years))
    if extra_years:
        patch_logger.warning("Edits for years %s are outside the timeline and are ignored", extra_years)
        edits_long = edits_long[~edits_long["variable"].isin(extra_years)]

    merged = raster_long.merge(
        edits_long,
        on=KEY_COLUMNS,
        how="outer",
        suffixes=("_original", "_edit"),
        indicator=True,
    )

    unmatched = int((merged["_merge"] == "right_only").sum())
    if unmatched:
        patch_logger.warning("%d edited cells do not match any original pixel", unmatched)

    merged["value"] = merged["value_edit"].where(merged["value_edit"].notna(), merged["value_original"])
    merged = merged[KEY_COLUMNS + ["value"]].drop_duplicates()

    updated = merged.pivot(index=["x", "y"], columns="variable", values="value").reset_index()
    updated.columns.name = None

    missing_years = [year for year in years if year not in updated.columns]
    if missing_years:
        patch_logger.info("Adding empty layers for years %s", missing_years)
        for year in missing_years:
            updated[year] = np.nan

    ordered_years = sorted(years, key=int)
    updated = updated[["x", "y", *ordered_years]]

    patch_logger.info(
        "Merged %d edited cells into %d pixels over %d years",
        len(edits_long), len(updated), len(ordered_years),
    )
    return updated


def save_raster_result(
    original_stack: StackLike,
    edits: Any,
    timeline: Sequence[Any],
    class_labels: Sequence[Any],
    output_dir: PathLike,
    as_single_stack: bool = False,
) -> pd.DataFrame:
    """
    Merge predicate results into the stack and save the updated stack as GeoTIFF.

    Combines :func:`merge_patch` and
    :func:`lucc_results.raster_io.write_geotiff`, using ``original_stack`` as
    the reference for pixel size and CRS.  Returns the merged table.
    """
    require_defined(output_dir, "output_dir must be defined! Enter a path to SAVE your GeoTIFF images!")

    stack = _as_stack(require_defined(original_stack, "original_stack must be defined!"))
    updated = merge_patch(stack, edits, timeline, class_labels)
    write_geotiff(stack, updated, output_dir, as_single_stack=as_single_stack)
    return updated
