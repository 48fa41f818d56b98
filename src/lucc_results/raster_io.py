"""
Raster I/O for classified time series: loading stacks, converting between
grids and point tables, and writing GeoTIFF outputs.
"""

# -----------------------------------------------------------------------------
# MODULES
# -----------------------------------------------------------------------------
import xarray as xr
import rioxarray as rxr
import rasterio
from rasterio.transform import from_origin
import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional, Sequence, Union

from lucc_results.errors import NotFoundError, require, require_defined
from lucc_results.log import LOGGER
from lucc_results.paths import PathLike, as_path, ensure_directory, layer_output_dir

OUTPUT_PREFIX = "New_"
OUTPUT_DTYPE = "uint8"
OUTPUT_NODATA = 255

raster_logger = LOGGER.getChild("raster")

StackLike = Union[xr.DataArray, PathLike]


# -----------------------------------------------------------------------------
# LOADING
# -----------------------------------------------------------------------------
def load_classified_stack(path: PathLike, timeline: Optional[Sequence[Any]] = None) -> xr.DataArray:
    """
    Load a multi-band classified raster as a DataArray with a 'time' dimension.

    When ``timeline`` is given its dates label the layers, in band order.
    """
    source = as_path(require_defined(path, "path of the classified raster must be defined!"))
    if not source.exists():
        raise NotFoundError(f"There is no raster file at '{source}'.")

    da = rxr.open_rasterio(source, masked=True)
    da = da.rename({'band': 'time'})

    if timeline is not None:
        timeline = list(timeline)
        require(
            len(timeline) == da.sizes['time'],
            f"timeline has {len(timeline)} dates but the raster has {da.sizes['time']} layers.",
        )
        da = da.assign_coords(time=[str(date) for date in timeline])

    return da


def _as_stack(stack: StackLike) -> xr.DataArray:
    if isinstance(stack, xr.DataArray):
        return stack
    return load_classified_stack(stack)


def _layered(stack: xr.DataArray) -> xr.DataArray:
    """Return ``stack`` with the layer dimension first, adding one for 2-D grids."""
    if stack.ndim == 2:
        stack = stack.expand_dims('time')
    require(stack.ndim == 3, f"Expected a (layer, y, x) raster, got dims {stack.dims}.")
    layer_dim = [dim for dim in stack.dims if dim not in ('y', 'x')][0]
    return stack.transpose(layer_dim, 'y', 'x')


def _layer_names(stack: xr.DataArray) -> List[str]:
    layer_dim = stack.dims[0]
    if layer_dim in stack.coords:
        return [str(name) for name in stack[layer_dim].values]
    return [str(index) for index in range(1, stack.sizes[layer_dim] + 1)]


# -----------------------------------------------------------------------------
# GRID <-> POINTS
# -----------------------------------------------------------------------------
def raster_to_points(stack: StackLike) -> pd.DataFrame:
    """
    Convert a raster stack into a wide point table.

    Returns a DataFrame with ``x``, ``y`` (pixel centres) and one column per
    layer.  Cells that are missing in every layer are left out.
    """
    da = _layered(_as_stack(require_defined(stack, "raster stack must be defined!")))

    nodata = da.rio.nodata
    if nodata is not None:
        da = da.where(da != nodata)

    n_layers = da.sizes[da.dims[0]]
    values = np.asarray(da.values, dtype="float64").reshape(n_layers, -1).T
    yy, xx = np.meshgrid(da['y'].values, da['x'].values, indexing='ij')

    points = pd.DataFrame(values, columns=_layer_names(da))
    points.insert(0, 'y', yy.ravel())
    points.insert(0, 'x', xx.ravel())

    keep = ~np.isnan(values).all(axis=1)
    return points.loc[keep].reset_index(drop=True)


def _strip_layer_name(name: Any) -> str:
    # "2001.09.01" -> "2001"
    return str(name).split('.', 1)[0]


def points_to_raster(pixel_table: pd.DataFrame, reference_stack: StackLike) -> xr.DataArray:
    """
    Rebuild a (time, y, x) raster from a wide point table.

    The grid spans the extent of the points with the pixel size of
    ``reference_stack``; cells without a point are NaN.  Layer names are cut
    at the first ``.`` and the CRS is copied from the reference.
    """
    require_defined(pixel_table, "pixel_table must be defined!")
    reference = _as_stack(require_defined(reference_stack, "reference raster must be defined!"))
    require(
        'x' in pixel_table.columns and 'y' in pixel_table.columns,
        "pixel_table must have 'x' and 'y' columns.",
    )
    layers = [name for name in pixel_table.columns if name not in ('x', 'y')]
    require(len(layers) > 0, "pixel_table has no layer columns.")
    require(len(pixel_table) > 0, "pixel_table has no pixels.")

    res_x, res_y = reference.rio.resolution()
    res_x, res_y = abs(res_x), abs(res_y)

    xs = pd.to_numeric(pixel_table['x']).to_numpy(dtype="float64")
    ys = pd.to_numeric(pixel_table['y']).to_numpy(dtype="float64")
    x_min, y_max = xs.min(), ys.max()

    cols = np.rint((xs - x_min) / res_x).astype(int)
    rows = np.rint((y_max - ys) / res_y).astype(int)
    width, height = cols.max() + 1, rows.max() + 1

    grid = np.full((len(layers), height, width), np.nan, dtype="float64")
    values = pixel_table[layers].apply(pd.to_numeric, errors='coerce').to_numpy(dtype="float64")
    grid[:, rows, cols] = values.T

    transform = from_origin(x_min - res_x / 2, y_max + res_y / 2, res_x, res_y)
    da = xr.DataArray(
        grid,
        dims=('time', 'y', 'x'),
        coords={
            'time': [_strip_layer_name(name) for name in layers],
            'y': y_max - res_y * np.arange(height),
            'x': x_min + res_x * np.arange(width),
        },
    )
    da = da.rio.write_transform(transform)

    if reference.rio.crs is not None:
        da = da.rio.write_crs(reference.rio.crs)
    else:
        raster_logger.warning("Reference raster has no CRS; output is written without one.")

    return da


# -----------------------------------------------------------------------------
# WRITING
# -----------------------------------------------------------------------------
def _to_uint8(values: np.ndarray) -> np.ndarray:
    """Cast class codes to uint8, sending NaN and out-of-range values to nodata."""
    values = np.asarray(values, dtype="float64")
    invalid = ~np.isnan(values) & ((values < 0) | (values >= OUTPUT_NODATA))
    if invalid.any():
        raster_logger.warning(
            "%d pixels hold values outside 0-%d and are written as nodata",
            int(invalid.sum()), OUTPUT_NODATA - 1,
        )
    out = np.where(np.isnan(values) | invalid, OUTPUT_NODATA, values)
    return out.astype(OUTPUT_DTYPE)


def _write_uint8_tif(
    out_path: PathLike,
    layers: np.ndarray,
    names: Sequence[str],
    transform,
    crs,
) -> None:
    """Write (n, height, width) class codes as an n-band uint8 GeoTIFF."""
    count, height, width = layers.shape
    meta: Dict[str, Any] = {
        'driver': 'GTiff',
        'height': height,
        'width': width,
        'count': count,
        'dtype': OUTPUT_DTYPE,
        'nodata': OUTPUT_NODATA,
        'transform': transform,
        'crs': crs,
    }
    with rasterio.open(as_path(out_path), 'w', **meta) as dst:
        for i in range(count):
            dst.write(_to_uint8(layers[i]), i + 1)
            dst.set_band_description(i + 1, str(names[i]))
    raster_logger.debug("Wrote %s", out_path)


def write_geotiff(
    reference_stack: StackLike,
    pixel_table: pd.DataFrame,
    output_dir: PathLike,
    as_single_stack: bool = False,
) -> None:
    """
    Save a pixel table as GeoTIFF files in ``output_dir``.

    Parameters
    ----------
    reference_stack:
        Classified raster (DataArray or path) providing pixel size and CRS.
    pixel_table:
        Wide table with ``x``, ``y`` and one column per layer, e.g. the output
        of :func:`lucc_results.patch.merge_patch`.
    output_dir:
        Folder for the images, created when missing.
    as_single_stack:
        ``False`` writes one ``New_<layer>.tif`` per layer; ``True`` writes all
        layers to ``New_<output_dir name>.tif``.

    Files are 8-bit unsigned with nodata 255 and are overwritten if present.
    """
    require_defined(reference_stack, "reference_stack must be defined! A raster brick with classified images.")
    require_defined(pixel_table, "pixel_table must be defined!")
    require_defined(output_dir, "output_dir must be defined! Enter a path to SAVE your GeoTIFF images!")

    out_dir = ensure_directory(output_dir)
    new_raster = points_to_raster(pixel_table, reference_stack)

    names = _layer_names(new_raster)
    transform = new_raster.rio.transform()
    crs = new_raster.rio.crs
    layers = new_raster.values

    raster_logger.info("Saving GeoTIFF images...")

    if not as_single_stack:
        for i, name in enumerate(names):
            out_path = out_dir / f"{OUTPUT_PREFIX}{name}.tif"
            _write_uint8_tif(out_path, layers[i:i + 1], [name], transform, crs)
    else:
        out_path = out_dir / f"{OUTPUT_PREFIX}{out_dir.name}.tif"
        _write_uint8_tif(out_path, layers, names, transform, crs)

    raster_logger.info("GeoTIFF images saved successfully in directory: '%s'", out_dir)


def split_layers(input_file: PathLike) -> None:
    """
    Save every band of a multi-layer GeoTIFF as an individual GeoTIFF.

    The files go to a sibling folder named after the input file (created when
    missing) as ``New_<layer>.tif``, where the layer name is the band
    description or ``<file stem>_<band number>``.
    """
    require_defined(input_file, "input_file must be defined! Enter a path to OPEN your GeoTIFF image RasterBrick.")
    source = as_path(input_file)

    raster_logger.info("Verifying if GeoTIFF image exists...")
    if not source.is_file():
        raise NotFoundError(f"There is no path or file with this name: '{source}'")

    out_dir = ensure_directory(layer_output_dir(source))

    with rasterio.open(source) as src:
        transform, crs, count = src.transform, src.crs, src.count
        for band in range(1, count + 1):
            name = src.descriptions[band - 1] or f"{source.stem}_{band}"
            data = src.read(band, masked=True).astype("float64").filled(np.nan)
            out_path = out_dir / f"{OUTPUT_PREFIX}{name}.tif"
            _write_uint8_tif(out_path, data[np.newaxis, ...], [name], transform, crs)

    raster_logger.info("Saved %s layers in directory: '%s'", count, out_dir)
