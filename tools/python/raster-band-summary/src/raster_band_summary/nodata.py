"""
Raster Band Summary - Missing-Value Policy
===========================================
Decides whether a sample carries data.  A sample is valid when it is not
bit-identical to the raster's missing-value marker and is not NaN.

The scalar :func:`is_valid` defines the rule; :func:`valid_mask` applies
the same rule to whole numpy blocks and is what the engine uses before any
aggregator sees a value.
"""

from __future__ import annotations

import math
import struct

import numpy as np
import numpy.typing as npt


def _bits(value: float) -> bytes:
    return struct.pack("<d", float(value))


def is_valid(sample: float, marker: float) -> bool:
    """Return ``True`` when *sample* is a real observation.

    Args:
        sample: One pixel value.
        marker: The raster's missing-value marker.

    Example::

        >>> is_valid(5.0, -9999.0)
        True
        >>> is_valid(-9999.0, -9999.0)
        False
        >>> is_valid(float("nan"), -9999.0)
        False
    """
    if math.isnan(sample):
        return False
    return _bits(sample) != _bits(marker)


def same_marker(a: float | None, b: float | None) -> bool:
    """Compare two missing-value markers bit for bit (NaN equals NaN)."""
    if a is None or b is None:
        return a is b
    if math.isnan(a) and math.isnan(b):
        return True
    return _bits(a) == _bits(b)


def valid_mask(array: npt.NDArray, marker: float) -> npt.NDArray[np.bool_]:
    """Vectorised :func:`is_valid` over an array of any shape.

    Samples are compared as float64, so integer rasters behave the same
    as float rasters whose values are exactly representable.
    """
    values = np.asarray(array, dtype=np.float64)
    mask = ~np.isnan(values)
    if not math.isnan(marker):
        # Bit comparison keeps -0.0 and 0.0 distinct, matching is_valid.
        mask &= values.view(np.int64) != np.float64(marker).view(np.int64)
    return mask
