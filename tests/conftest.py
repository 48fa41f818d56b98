"""Shared raster fixtures for the lucc_results test suite."""

import numpy as np
import pytest
import rasterio
import xarray as xr
import rioxarray  # noqa: F401 - ensures the rio accessor is registered
from rasterio.transform import from_origin


TIMELINE = ["2001-09-01", "2002-09-01"]
TRANSFORM = from_origin(0, 2, 1, 1)


def _make_stack(values, timeline=TIMELINE, transform=TRANSFORM, crs="EPSG:4326"):
    values = np.asarray(values, dtype="float64")
    _, height, width = values.shape
    x = transform.c + transform.a * (np.arange(width) + 0.5)
    y = transform.f + transform.e * (np.arange(height) + 0.5)
    da = xr.DataArray(
        values,
        dims=("time", "y", "x"),
        coords={"time": list(timeline), "y": y, "x": x},
    )
    da = da.rio.write_transform(transform)
    return da.rio.write_crs(crs)


def _write_raster(path, data, transform=TRANSFORM, crs="EPSG:4326", nodata=None, descriptions=None):
    data = np.asarray(data)
    if data.ndim == 2:
        data = data[np.newaxis, ...]
    bands, height, width = data.shape

    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": bands,
        "dtype": data.dtype.name,
        "transform": transform,
        "crs": crs,
        "nodata": nodata,
    }

    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data)
        if descriptions is not None:
            for i, name in enumerate(descriptions, start=1):
                dst.set_band_description(i, name)
    return path


@pytest.fixture
def make_stack():
    """Factory building an in-memory (time, y, x) classified stack."""
    return _make_stack


@pytest.fixture
def write_raster():
    """Factory writing a (bands, y, x) array to a GeoTIFF."""
    return _write_raster


@pytest.fixture
def forest_stack():
    """2x2 pixels, two dates, every pixel Forest (code 1)."""
    return _make_stack(np.ones((2, 2, 2)))
