"""
Raster Band Summary - Grid Comparison
======================================
Tolerance-bounded comparison of output grids, for checking the engine
against an independent implementation or a previously written raster.

Floating-point sums depend on summation order, so two correct
implementations agree only to a relative tolerance.  Cells where exactly
one side holds the missing-value marker are always a mismatch.

Usage::

    report = compare_rasters(Path("ours/mean.tif"), Path("theirs/mean.tif"))
    if not report.matches:
        print(report)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.errors import RasterioError

from raster_band_summary.nodata import valid_mask
from shared.python.exceptions import IncomparableRasterError, RasterError
from shared.python.validators import Validators


@dataclass(frozen=True)
class GridComparison:
    """Outcome of comparing two grids cell by cell.

    Attributes:
        cells: Total number of cells compared.
        mismatched_cells: Valid cells outside the tolerance.
        nodata_mismatches: Cells missing on one side only.
        max_abs_diff: Largest absolute difference over cells valid on
                      both sides (0.0 when there are none).
    """

    cells: int
    mismatched_cells: int
    nodata_mismatches: int
    max_abs_diff: float

    @property
    def matches(self) -> bool:
        return self.mismatched_cells == 0 and self.nodata_mismatches == 0

    def __str__(self) -> str:
        status = "match" if self.matches else "MISMATCH"
        return (
            f"{status}: {self.cells:,} cells, {self.mismatched_cells:,} outside tolerance, "
            f"{self.nodata_mismatches:,} nodata mismatches, max |diff|={self.max_abs_diff:.6g}"
        )


def compare_grids(
    actual: npt.ArrayLike,
    expected: npt.ArrayLike,
    nodata: float,
    *,
    rtol: float = 1e-6,
    atol: float = 0.0,
    expected_nodata: float | None = None,
) -> GridComparison:
    """Compare two equally shaped grids.

    Args:
        actual: Grid under test.
        expected: Reference grid.
        nodata: Missing-value marker of *actual*.
        rtol: Relative tolerance, as in :func:`numpy.isclose`.
        atol: Absolute tolerance, as in :func:`numpy.isclose`.
        expected_nodata: Marker of *expected* when it differs from *nodata*.

    Raises:
        IncomparableRasterError: If the shapes differ.
    """
    a = np.asarray(actual, dtype=np.float64)
    b = np.asarray(expected, dtype=np.float64)
    Validators.assert_raster_shapes_match(a.shape, b.shape, "actual", "expected")

    valid_a = valid_mask(a, nodata)
    valid_b = valid_mask(b, nodata if expected_nodata is None else expected_nodata)
    both = valid_a & valid_b

    close = np.isclose(a[both], b[both], rtol=rtol, atol=atol)
    diff = np.abs(a[both] - b[both])
    return GridComparison(
        cells=int(a.size),
        mismatched_cells=int((~close).sum()),
        nodata_mismatches=int((valid_a != valid_b).sum()),
        max_abs_diff=float(diff.max()) if diff.size else 0.0,
    )


def compare_rasters(
    actual_path: Path,
    expected_path: Path,
    *,
    band: int = 1,
    rtol: float = 1e-6,
    atol: float = 0.0,
) -> GridComparison:
    """Compare one band of two raster files.

    Each file's own nodata value is used as its marker.

    Raises:
        RasterError: If either file cannot be read or has no nodata value.
        IncomparableRasterError: If the rasters differ in shape.
    """
    grids = []
    markers = []
    for path in (actual_path, expected_path):
        try:
            with rasterio.open(path) as src:
                Validators.assert_band_index_valid(band, src.count, Path(path).name)
                grids.append(src.read(band).astype(np.float64))
                markers.append(src.nodata)
        except RasterioError as exc:
            raise RasterError(f"Could not read raster '{path}': {exc}") from exc

    if None in markers:
        raise RasterError("Both rasters must declare a nodata value to be compared.")
    if grids[0].shape != grids[1].shape:
        raise IncomparableRasterError(
            Path(actual_path).name, Path(expected_path).name,
            "dimensions", grids[0].shape, grids[1].shape,
        )
    return compare_grids(
        grids[0], grids[1], markers[0],
        rtol=rtol, atol=atol, expected_nodata=markers[1],
    )
