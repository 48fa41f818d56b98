"""
Area and frequency measures for land-use-change results.

The measures table extends a frequency table with the area covered by each
class per year, the running area of each class through time, and the
relative and cumulative relative frequency of each year within its class.
"""

# -----------------------------------------------------------------------------
# MODULES
# -----------------------------------------------------------------------------
import numbers
from typing import Optional

import polars as pl

from lucc_results.errors import ValidationError, require
from lucc_results.frequency import FREQUENCY_COLUMNS, TableLike, as_polars_frame, tabulate_matrix
from lucc_results.log import LOGGER

# MODIS 250 m
DEFAULT_PIXEL_RESOLUTION = 250

measures_logger = LOGGER.getChild("measures")


# -----------------------------------------------------------------------------
# FUNCTIONS
# -----------------------------------------------------------------------------
def compute_measures(
    pixel_matrix: Optional[TableLike] = None,
    frequency_table: Optional[TableLike] = None,
    pixel_resolution: Optional[float] = DEFAULT_PIXEL_RESOLUTION,
) -> pl.DataFrame:
    """
    Compute area, cumulative area, relative frequency and cumulative relative
    frequency per class.

    Parameters
    ----------
    pixel_matrix:
        Wide predicate matrix (``x``, ``y``, one column per date).  Counted
        with :func:`lucc_results.frequency.tabulate_matrix`.
    frequency_table:
        Already tabulated table; its first three columns are read as year,
        class and pixel count, e.g. the output of
        :func:`lucc_results.frequency.extract_frequency`.
    pixel_resolution:
        Side of one pixel in metres.  Default is 250 m (MODIS).

    Returns
    -------
    pl.DataFrame
        ``Years``, ``Classes``, ``Pixel_number``, ``Area_km2``,
        ``Cumulative_Sum``, ``Relative_Frequency`` and
        ``Cumulative_Relative_Frequency``, sorted by class then year.

    Raises
    ------
    ValidationError
        If ``pixel_resolution`` is missing or not positive, or if not exactly
        one of ``pixel_matrix`` and ``frequency_table`` is given.

    Notes
    -----
    ``Relative_Frequency`` divides each year's area by the class total (the
    last ``Cumulative_Sum`` of the class), so ``Cumulative_Relative_Frequency``
    ends at 100 for every class with a non-zero total.
    """
    require(
        pixel_resolution is not None,
        "pixel_resolution must be defined! Default is 250 meters on basis of MODIS image",
    )
    require(
        isinstance(pixel_resolution, numbers.Real) and pixel_resolution > 0,
        f"pixel_resolution must be a positive number, got {pixel_resolution!r}.",
    )

    if pixel_matrix is not None and frequency_table is not None:
        raise ValidationError("Provide either 'pixel_matrix' or 'frequency_table', not both.")
    if pixel_matrix is not None:
        table = tabulate_matrix(pixel_matrix)
    elif frequency_table is not None:
        table = as_polars_frame(frequency_table)
        require(table.width >= 3, "frequency_table must have year, class and count columns.")
        table = table.select(table.columns[:3])
        table.columns = FREQUENCY_COLUMNS
    else:
        raise ValidationError("Provide at least a 'pixel_matrix' or a 'frequency_table'.")

    # Running sums below follow the row order inside each class, so rows are
    # put in year order first.
    measures = (
        table.sort(["Classes", "Years"], maintain_order=True)
        .with_columns(
            (pl.col("Pixel_number") * (pixel_resolution * pixel_resolution) / (1000 * 1000))
            .alias("Area_km2")
        )
        .with_columns(pl.col("Area_km2").cum_sum().over("Classes").alias("Cumulative_Sum"))
        .with_columns(
            (pl.col("Area_km2") / pl.col("Cumulative_Sum").max().over("Classes") * 100)
            .alias("Relative_Frequency")
        )
        .with_columns(
            pl.col("Relative_Frequency").cum_sum().over("Classes")
            .alias("Cumulative_Relative_Frequency")
        )
    )

    measures_logger.debug(
        "Computed measures for %d classes over %d rows",
        measures.get_column("Classes").n_unique(),
        measures.height,
    )
    return measures
