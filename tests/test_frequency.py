"""Tests for the frequency table helpers."""

import numpy as np
import pandas as pd
import polars as pl
import pytest
from polars.testing import assert_frame_equal

from lucc_results.errors import ValidationError
from lucc_results.frequency import extract_frequency, tabulate_matrix


def _holds_matrix(x_offset=0.0):
    return pd.DataFrame(
        {
            "x": [0.5 + x_offset, 1.5 + x_offset, 0.5 + x_offset, 1.5 + x_offset],
            "y": [1.5, 1.5, 0.5, 0.5],
            "2001-09-01": ["Forest", "Forest", "Pasture", None],
            "2002-09-01": ["Forest", None, "Pasture", "Pasture"],
        }
    )


def test_tabulate_matrix_counts_by_year_and_class():
    result = tabulate_matrix(_holds_matrix())

    assert result.columns == ["Years", "Classes", "Pixel_number"]
    assert result.schema["Years"] == pl.Int64
    assert result.rows() == [
        (2001, "Forest", 2),
        (2002, "Forest", 1),
        (2001, "Pasture", 1),
        (2002, "Pasture", 2),
    ]


def test_tabulate_matrix_reports_missing_combinations_as_zero():
    matrix = pd.DataFrame(
        {
            "x": [0.5, 1.5],
            "y": [0.5, 0.5],
            "2001-09-01": ["Forest", "Forest"],
            "2002-09-01": ["Forest", "Pasture"],
        }
    )

    result = tabulate_matrix(matrix)

    assert result.filter(pl.col("Classes") == "Pasture").rows() == [
        (2001, "Pasture", 0),
        (2002, "Pasture", 1),
    ]


def test_tabulate_matrix_ignores_duplicated_rows():
    matrix = _holds_matrix()
    doubled = pd.concat([matrix, matrix.iloc[[0]]], ignore_index=True)

    assert_frame_equal(tabulate_matrix(doubled), tabulate_matrix(matrix))


def test_tabulate_matrix_year_totals_match_non_missing_pixels():
    matrix = _holds_matrix()
    result = tabulate_matrix(matrix)

    totals = dict(result.group_by("Years").agg(pl.col("Pixel_number").sum()).rows())

    assert totals[2001] == matrix["2001-09-01"].notna().sum()
    assert totals[2002] == matrix["2002-09-01"].notna().sum()


def test_tabulate_matrix_treats_whole_floats_as_codes():
    matrix = pd.DataFrame(
        {
            "x": [0.5, 1.5, 0.5],
            "y": [1.5, 1.5, 0.5],
            "2001": [1.0, 3.0, np.nan],
            "2002": [1.0, np.nan, np.nan],
        }
    )

    result = tabulate_matrix(matrix)

    assert result.schema["Classes"] == pl.Int64
    assert result.rows() == [(2001, 1, 1), (2002, 1, 1), (2001, 3, 1), (2002, 3, 0)]


def test_tabulate_matrix_accepts_polars_input():
    matrix = pl.from_pandas(_holds_matrix())

    assert_frame_equal(tabulate_matrix(matrix), tabulate_matrix(_holds_matrix()))


def test_tabulate_matrix_requires_coordinates():
    with pytest.raises(ValidationError):
        tabulate_matrix(_holds_matrix().drop(columns=["x"]))


def test_extract_frequency_sums_counts_across_blocks():
    block = tabulate_matrix(_holds_matrix())

    result = extract_frequency([_holds_matrix(), None, _holds_matrix(x_offset=2.0)])

    expected = block.with_columns(pl.col("Pixel_number") * 2)
    assert_frame_equal(result, expected)


def test_extract_frequency_sorted_by_class_then_year():
    result = extract_frequency([_holds_matrix()])

    assert result.get_column("Classes").to_list() == ["Forest", "Forest", "Pasture", "Pasture"]
    assert result.get_column("Years").to_list() == [2001, 2002, 2001, 2002]


def test_extract_frequency_same_result_with_worker_pool():
    matrices = [_holds_matrix(x_offset=2.0 * i) for i in range(5)]

    sequential = extract_frequency(matrices, parallelism=1)
    pooled = extract_frequency(matrices, parallelism=4)

    assert_frame_equal(sequential, pooled)


def test_extract_frequency_rejects_empty_input():
    with pytest.raises(ValidationError):
        extract_frequency(None)
    with pytest.raises(ValidationError):
        extract_frequency([None, None])
    with pytest.raises(ValidationError):
        extract_frequency([])


@pytest.mark.parametrize("parallelism", [0, -2, 1.5, None])
def test_extract_frequency_rejects_bad_parallelism(parallelism):
    with pytest.raises(ValidationError):
        extract_frequency([_holds_matrix()], parallelism=parallelism)


def test_extract_frequency_keeps_integer_codes_next_to_empty_block():
    coded = pd.DataFrame({"x": [0.5, 1.5], "y": [0.5, 0.5], "2001": [2.0, 10.0]})
    empty = pd.DataFrame({"x": [2.5, 3.5], "y": [0.5, 0.5], "2001": [None, None]})

    result = extract_frequency([coded, empty])

    assert result.schema["Classes"] == pl.Int64
    assert result.get_column("Classes").to_list() == [2, 10]
    assert_frame_equal(result, extract_frequency([coded]))
