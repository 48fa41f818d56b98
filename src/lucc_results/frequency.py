"""
Categorical frequency tables from predicate result matrices.

A predicate matrix is a wide table with ``x``/``y`` pixel coordinates and one
column per date; every non-missing cell holds the class found for that pixel
and date.  The helpers below turn such matrices into long frequency tables
(``Years``, ``Classes``, ``Pixel_number``) and merge the tables of several
raster blocks into one.
"""

# -----------------------------------------------------------------------------
# MODULES
# -----------------------------------------------------------------------------
import multiprocessing
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
import polars as pl
from tqdm.auto import tqdm

from lucc_results.errors import ValidationError, require, require_defined
from lucc_results.log import LOGGER
from lucc_results.timeline import year_of

TableLike = Union[pl.DataFrame, pd.DataFrame]

COORDINATE_COLUMNS = ("x", "y")
FREQUENCY_COLUMNS = ["Years", "Classes", "Pixel_number"]

frequency_logger = LOGGER.getChild("frequency")


# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------
def as_polars_frame(table: TableLike) -> pl.DataFrame:
    """Return ``table`` as a Polars DataFrame with string column names."""

    if isinstance(table, pl.DataFrame):
        return table
    if isinstance(table, pd.DataFrame):
        frame = table.rename(columns=str)
        return pl.from_pandas(frame.reset_index(drop=True))
    raise ValidationError(
        f"Expected a pandas or polars DataFrame, got {type(table).__name__}."
    )


def _layer_columns(frame: pl.DataFrame) -> List[str]:
    require(
        all(name in frame.columns for name in COORDINATE_COLUMNS),
        "Matrix must have 'x' and 'y' columns.",
    )
    layers = [name for name in frame.columns if name not in COORDINATE_COLUMNS]
    require(len(layers) > 0, "Matrix must have at least one date column besides 'x' and 'y'.")
    return layers


def _harmonise_layers(frame: pl.DataFrame, layers: Sequence[str]) -> pl.DataFrame:
    """Give every layer column the same dtype so the layers can be stacked.

    Float layers holding only whole numbers are class codes and become Int64.
    When layers still disagree (labels in some, codes in others) everything is
    compared as strings.
    """
    exprs = []
    for name in layers:
        dtype = frame.schema[name]
        if dtype.is_float():
            values = frame.get_column(name).fill_nan(None).drop_nulls()
            if (values == values.round(0)).all():
                exprs.append(pl.col(name).fill_nan(None).cast(pl.Int64))
            else:
                exprs.append(pl.col(name).fill_nan(None))
        else:
            exprs.append(pl.col(name))
    frame = frame.with_columns(exprs)

    dtypes = {frame.schema[name] for name in layers} - {pl.Null}
    if not dtypes:
        # every layer is empty, nothing to align
        return frame
    target = dtypes.pop() if len(dtypes) == 1 else pl.String
    return frame.with_columns(pl.col(layers).cast(target))


# -----------------------------------------------------------------------------
# FUNCTIONS
# -----------------------------------------------------------------------------
def tabulate_matrix(matrix: TableLike) -> pl.DataFrame:
    """
    Count the pixels of each class for every year of a single predicate matrix.

    Parameters
    ----------
    matrix:
        Wide table with ``x``, ``y`` and one column per date (or year).

    Returns
    -------
    pl.DataFrame
        Columns ``Years`` (Int64), ``Classes`` and ``Pixel_number`` (Int64).
        Every observed year is crossed with every observed class; pairs
        without pixels are reported with a count of zero.
    """
    frame = as_polars_frame(require_defined(matrix, "matrix must be defined!"))
    layers = _layer_columns(frame)
    frame = _harmonise_layers(frame, layers)

    years: Dict[str, int] = {name: year_of(name) for name in layers}

    long = (
        frame.unpivot(
            index=list(COORDINATE_COLUMNS),
            on=layers,
            variable_name="variable",
            value_name="value",
        )
        .drop_nulls("value")
        .unique(maintain_order=True)
        .with_columns(
            pl.col("variable").replace_strict(years, return_dtype=pl.Int64).alias("Years")
        )
    )

    counts = long.group_by(["Years", "value"]).agg(pl.len().cast(pl.Int64).alias("Pixel_number"))

    # cross tabulation of observed years and classes, as R's table() reports it
    grid = long.select("Years").unique().join(long.select("value").unique(), how="cross")

    return (
        grid.join(counts, on=["Years", "value"], how="left")
        .with_columns(pl.col("Pixel_number").fill_null(0))
        .rename({"value": "Classes"})
        .select(FREQUENCY_COLUMNS)
        .sort(["Classes", "Years"])
    )


def extract_frequency(
    matrices: Optional[Sequence[Optional[TableLike]]],
    parallelism: int = 1,
) -> pl.DataFrame:
    """
    Build one frequency table from the predicate matrices of several raster blocks.

    Parameters
    ----------
    matrices:
        Sequence of predicate matrices (one per block).  ``None`` entries are
        ignored.
    parallelism:
        Number of worker processes.  ``1`` (default) processes the matrices
        sequentially in the calling process.

    Returns
    -------
    pl.DataFrame
        ``Years`` (Int64), ``Classes`` and ``Pixel_number`` summed over all
        blocks, sorted by class then year.

    Raises
    ------
    ValidationError
        If ``matrices`` is missing, holds only ``None`` entries, or
        ``parallelism`` is not a positive integer.
    """
    require_defined(
        matrices,
        "matrices must be defined! This data can be obtained using predicates "
        "RECUR, HOLDS, EVOLVE and CONVERT.",
    )
    tables_in = [matrix for matrix in matrices if matrix is not None]
    require(len(tables_in) > 0, "matrices has no data left after removing empty entries.")
    require(
        isinstance(parallelism, int) and not isinstance(parallelism, bool) and parallelism >= 1,
        f"parallelism must be a positive integer, got {parallelism!r}.",
    )

    n_workers = min(parallelism, len(tables_in))
    frequency_logger.info(
        "Extracting frequencies from %d matrices using %d worker(s)", len(tables_in), n_workers
    )

    if n_workers == 1:
        tables = [
            tabulate_matrix(matrix)
            for matrix in tqdm(tables_in, desc="Tabulating matrices", unit="matrix")
        ]
    else:
        # spawn: forked children can deadlock on Polars' thread pool
        context = multiprocessing.get_context("spawn")
        with context.Pool(processes=n_workers) as pool:
            tables = list(tqdm(
                pool.imap(tabulate_matrix, tables_in),
                total=len(tables_in),
                desc="Tabulating matrices",
                unit="matrix",
            ))

    # blocks without any pixel carry no class dtype and would skew the concat
    non_empty = [table for table in tables if table.height > 0]
    combined = pl.concat(non_empty or tables[:1], how="vertical_relaxed")

    result = (
        combined.group_by(["Years", "Classes"])
        .agg(pl.col("Pixel_number").sum())
        .with_columns(pl.col("Years").cast(pl.Int64), pl.col("Pixel_number").cast(pl.Int64))
        .select(FREQUENCY_COLUMNS)
        .sort(["Classes", "Years"])
    )

    frequency_logger.debug("Frequency table has %d rows", result.height)
    return result
