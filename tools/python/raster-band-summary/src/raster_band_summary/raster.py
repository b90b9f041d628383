"""
Raster Band Summary - Raster Access and Writing
================================================
The engine only sees rasters through the :class:`RasterSource` protocol:
dimensions, band count, missing-value marker, georeferencing, and
``read_band``.  Two implementations are provided:

    GeoTiffRaster   rasterio-backed, opened as a context manager.
    ArrayRaster     in-memory numpy stack, for callers that already hold
                    the data.

:func:`write_grid` persists one output grid as a single-band GeoTIFF, in a
sample type wide enough to hold the missing-value marker.

Usage::

    with GeoTiffRaster(Path("data/species.tif")) as src:
        print(src.width, src.height, src.band_count, src.nodata)
        band = src.read_band(1)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.crs import CRS
from rasterio.dtypes import in_dtype_range
from rasterio.errors import RasterioError
from rasterio.transform import Affine

from shared.python.exceptions import OutputWriteError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("raster_band_summary.raster")


@dataclass(frozen=True)
class Georeference:
    """Spatial referencing carried from the inputs to every output.

    Attributes:
        crs: Coordinate reference system, or ``None`` when undefined.
        transform: Affine pixel-to-world transform.
    """

    crs: CRS | None = None
    transform: Affine = field(default_factory=Affine.identity)

    def matches(self, other: "Georeference", precision: float = 1e-9) -> bool:
        """Same CRS and (within *precision*) the same transform."""
        if (self.crs is None) != (other.crs is None):
            return False
        if self.crs is not None and self.crs != other.crs:
            return False
        return self.transform.almost_equals(other.transform, precision)

    def __str__(self) -> str:
        crs = self.crs.to_string() if self.crs is not None else "undefined"
        return f"crs={crs} transform={tuple(self.transform)[:6]}"


@runtime_checkable
class RasterSource(Protocol):
    """Read-only view of one raster, as consumed by the engine."""

    name: str
    width: int
    height: int
    band_count: int
    nodata: float
    georeference: Georeference

    def read_band(self, index: int) -> npt.NDArray[np.float64]:
        """Return band *index* (1-based) as a ``(height, width)`` float array.

        Raises:
            BandIndexError: If *index* is out of range.
        """
        ...


# ---------------------------------------------------------------------------
# In-memory raster
# ---------------------------------------------------------------------------


class ArrayRaster:
    """A raster held in memory as a ``(bands, rows, cols)`` numpy stack.

    A 2D array is treated as a single band.  The stack is copied to
    float64 and marked read-only, so handles can be shared freely between
    worker threads.

    Args:
        data: 2D or 3D array of samples.
        nodata: Missing-value marker.
        georeference: Spatial referencing; identity transform by default.
        name: Label used in log and error messages.
    """

    def __init__(
        self,
        data: npt.ArrayLike,
        nodata: float,
        georeference: Georeference | None = None,
        name: str = "array",
    ) -> None:
        arr = np.array(data, dtype=np.float64)
        if arr.ndim == 2:
            arr = arr[np.newaxis, ...]
        if arr.ndim != 3:
            raise RasterError(
                f"Raster '{name}' must be 2D or 3D (bands, rows, cols); got shape {arr.shape}."
            )
        arr.flags.writeable = False

        self._data = arr
        self.name: str = name
        self.band_count: int = int(arr.shape[0])
        self.height: int = int(arr.shape[1])
        self.width: int = int(arr.shape[2])
        self.nodata: float = float(nodata)
        self.georeference: Georeference = georeference or Georeference()

    def read_band(self, index: int) -> npt.NDArray[np.float64]:
        Validators.assert_band_index_valid(index, self.band_count, self.name)
        return self._data[index - 1]

    def __repr__(self) -> str:
        return (
            f"ArrayRaster(name={self.name!r}, bands={self.band_count}, "
            f"shape=({self.height}, {self.width}), nodata={self.nodata})"
        )


# ---------------------------------------------------------------------------
# rasterio-backed raster
# ---------------------------------------------------------------------------


class GeoTiffRaster:
    """A raster file opened through :mod:`rasterio`.

    Use as a context manager; the dataset is closed on exit, including
    when an exception propagates.

    The missing-value marker is the dataset's own ``nodata``, cast through
    the band dtype so that float32 rasters compare exactly.  When the file
    declares none, *nodata* is used instead; if that is also ``None``
    opening fails.

    Args:
        path: Raster file path.
        nodata: Fallback marker for files without one.

    Raises:
        RasterError: If rasterio cannot open the file, or no marker is
            available.
    """

    def __init__(self, path: Path, nodata: float | None = None) -> None:
        self.path: Path = Path(path)
        self.name: str = self.path.name
        self._fallback_nodata = nodata
        self._dataset: rasterio.io.DatasetReader | None = None

        self.width: int = 0
        self.height: int = 0
        self.band_count: int = 0
        self.nodata: float = math.nan
        self.dtype: str = "float64"
        self.georeference: Georeference = Georeference()

    def open(self) -> "GeoTiffRaster":
        try:
            dataset = rasterio.open(self.path)
        except RasterioError as exc:
            raise RasterError(f"Could not open raster '{self.path}': {exc}") from exc

        self._dataset = dataset
        self.width = dataset.width
        self.height = dataset.height
        self.band_count = dataset.count
        self.dtype = dataset.dtypes[0]
        self.georeference = Georeference(crs=dataset.crs, transform=dataset.transform)

        nodata = dataset.nodata
        if nodata is None:
            nodata = self._fallback_nodata
            if nodata is None:
                self.close()
                raise RasterError(
                    f"Raster '{self.path}' declares no nodata value and no "
                    "fallback marker was given."
                )
            logger.warning(
                "%s declares no nodata value; using %s as the missing-value marker.",
                self.name, nodata,
            )
        self.nodata = self._as_band_dtype(nodata)

        logger.debug(
            "Opened %s: %d band(s), %dx%d, nodata=%s, dtype=%s",
            self.name, self.band_count, self.width, self.height, self.nodata, self.dtype,
        )
        return self

    def close(self) -> None:
        if self._dataset is not None:
            self._dataset.close()
            self._dataset = None

    def __enter__(self) -> "GeoTiffRaster":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read_band(self, index: int) -> npt.NDArray[np.float64]:
        if self._dataset is None:
            raise RasterError(f"Raster '{self.path}' is not open.")
        Validators.assert_band_index_valid(index, self.band_count, self.name)
        try:
            return self._dataset.read(index).astype(np.float64)
        except RasterioError as exc:
            raise RasterError(
                f"Could not read band {index} of '{self.path}': {exc}"
            ) from exc

    def _as_band_dtype(self, value: float) -> float:
        if np.issubdtype(np.dtype(self.dtype), np.floating):
            return float(np.asarray(value, dtype=self.dtype))
        return float(value)

    def __repr__(self) -> str:
        return f"GeoTiffRaster(path={self.path!r})"


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def marker_fits(nodata: float, dtype: str) -> bool:
    """True if *dtype* can store the missing-value marker *nodata*."""
    if math.isnan(nodata):
        return np.issubdtype(np.dtype(dtype), np.floating)
    return bool(in_dtype_range(nodata, dtype))


def output_dtype_for(nodata: float, source_dtypes: Sequence[str] = ()) -> str:
    """Float sample type for grids derived from rasters of *source_dtypes*.

    At least float32, widened to the widest floating input type, and to
    float64 when the narrower type cannot hold *nodata*.
    """
    floats = [np.dtype(d) for d in source_dtypes if np.issubdtype(np.dtype(d), np.floating)]
    dtype = np.result_type(np.float32, *floats)
    if not marker_fits(nodata, dtype.name):
        dtype = np.dtype(np.float64)
    return dtype.name


def write_grid(
    grid: npt.NDArray,
    nodata: float,
    georeference: Georeference,
    destination: Path,
    *,
    dtype: str | None = None,
    compress: str | None = "lzw",
) -> Path:
    """Write a single-band GeoTIFF.

    Args:
        grid: ``(rows, cols)`` array to write.
        nodata: Missing-value marker stored in the file.
        georeference: CRS and transform copied into the file.
        destination: Output file path; parent directories are created.
        dtype: Output sample type.  ``None`` picks one with
            :func:`output_dtype_for`.
        compress: GDAL compression, or ``None`` for none.

    Returns:
        The destination path.

    Raises:
        OutputWriteError: If the file cannot be written, or *dtype* cannot
            store *nodata*.
    """
    destination = Path(destination)
    if dtype is None:
        dtype = output_dtype_for(nodata)
    elif not marker_fits(nodata, dtype):
        raise OutputWriteError(
            str(destination),
            f"nodata value {nodata!r} is outside the range of {dtype}",
        )
    Validators.assert_output_dir_writable(destination)

    profile = {
        "driver": "GTiff",
        "dtype": dtype,
        "count": 1,
        "height": grid.shape[0],
        "width": grid.shape[1],
        "crs": georeference.crs,
        "transform": georeference.transform,
        "nodata": nodata,
    }
    if compress:
        profile["compress"] = compress

    try:
        with rasterio.open(destination, "w", **profile) as dst:
            dst.write(np.asarray(grid).astype(dtype), 1)
    except (OSError, ValueError, RasterioError) as exc:
        raise OutputWriteError(str(destination), str(exc)) from exc

    logger.debug("Wrote %s (%s, %dx%d)", destination, dtype, grid.shape[1], grid.shape[0])
    return destination
