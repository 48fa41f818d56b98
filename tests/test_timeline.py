import datetime

import numpy as np
import pandas as pd
import pytest

from lucc_results.errors import LabelResolutionError, NotFoundError, ValidationError
from lucc_results.paths import ensure_directory, layer_output_dir
from lucc_results.timeline import timeline_years, year_of


@pytest.mark.parametrize(
    "value",
    [
        "2001-09-01",
        "2001",
        2001,
        2001.0,
        datetime.date(2001, 9, 1),
        pd.Timestamp("2001-09-01"),
        np.datetime64("2001-09-01"),
    ],
)
def test_year_of_accepts_dates_and_years(value):
    assert year_of(value) == 2001


@pytest.mark.parametrize("value", ["not a date", None, float("nan"), np.nan])
def test_year_of_rejects_unparseable_values(value):
    with pytest.raises(ValidationError):
        year_of(value)


def test_timeline_years_returns_string_labels():
    assert timeline_years(["2001-09-01", "2002-09-01", "2003-09-01"]) == ["2001", "2002", "2003"]


def test_timeline_years_rejects_missing_empty_and_repeated_years():
    with pytest.raises(ValidationError):
        timeline_years(None)
    with pytest.raises(ValidationError):
        timeline_years([])
    with pytest.raises(ValidationError, match="2001"):
        timeline_years(["2001-01-01", "2001-09-01"])


def test_error_hierarchy():
    assert issubclass(ValidationError, ValueError)
    assert issubclass(NotFoundError, FileNotFoundError)

    err = LabelResolutionError({"Soy", "Cerrado"}, ["Forest", "Pasture"])
    assert isinstance(err, ValidationError)
    assert err.labels == ["Cerrado", "Soy"]


def test_ensure_directory_creates_nested_folders(tmp_path):
    target = tmp_path / "a" / "b"

    assert ensure_directory(target) == target
    assert target.is_dir()
    # existing directories are left alone
    assert ensure_directory(str(target)) == target


def test_layer_output_dir_is_sibling_named_after_stem(tmp_path):
    assert layer_output_dir(tmp_path / "Mosaic_Raster_Block_.tif") == tmp_path / "Mosaic_Raster_Block_"
