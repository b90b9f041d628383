"""
Raster Band Summary - Band Selector
====================================
Resolves an invocation (rasters plus an optional band specification) into
the ordered list of band references the engine reduces over.

Three modes are supported:

    ALL_BANDS    every band of a single raster (bands=None)
    FIXED_BAND   the same band index in every raster (bands=3)
    PER_RASTER   one band index per raster (bands=[1, 4, 2])

Resolution only looks at raster metadata; no band data is read, so every
configuration error surfaces before the engine commits to a full pass.

Usage::

    selection = resolve_selection([a, b], bands=1)
    selection.mode            # SelectionMode.FIXED_BAND
    [str(ref) for ref in selection.refs]
"""

from __future__ import annotations

import logging
import numbers
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from raster_band_summary.nodata import same_marker
from raster_band_summary.raster import Georeference, RasterSource
from shared.python.exceptions import (
    BandListLengthError,
    ConfigurationError,
    IncomparableRasterError,
)
from shared.python.validators import Validators

logger = logging.getLogger("raster_band_summary.selection")

BandSpec = Union[int, Sequence[int], None]


class SelectionMode(str, Enum):
    """How band references are derived from the inputs."""

    ALL_BANDS = "all_bands"
    FIXED_BAND = "fixed_band"
    PER_RASTER = "per_raster"


@dataclass(frozen=True)
class BandRef:
    """One band of one raster (1-based index)."""

    raster: RasterSource
    band_index: int

    def __str__(self) -> str:
        return f"{self.raster.name}:b{self.band_index}"


@dataclass(frozen=True)
class BandSelection:
    """A resolved, validated band selection.

    Attributes:
        refs: Band references in reduction order.
        mode: The mode the selection was resolved with.
        height: Shared row count.
        width: Shared column count.
        nodata: Shared missing-value marker.
        georeference: Georeferencing of the first raster.
    """

    refs: tuple[BandRef, ...]
    mode: SelectionMode
    height: int
    width: int
    nodata: float
    georeference: Georeference

    @property
    def shape(self) -> tuple[int, int]:
        return (self.height, self.width)

    def __len__(self) -> int:
        return len(self.refs)


def infer_mode(bands: BandSpec) -> SelectionMode:
    """Mode implied by the form of a band specification."""
    if bands is None:
        return SelectionMode.ALL_BANDS
    if isinstance(bands, numbers.Integral):
        return SelectionMode.FIXED_BAND
    return SelectionMode.PER_RASTER


def _is_index(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _normalise_bands(bands: BandSpec) -> BandSpec:
    """Plain ``int`` or ``list[int]`` from any integer-like specification."""
    if bands is None:
        return None
    if _is_index(bands):
        return int(bands)
    if isinstance(bands, (str, bytes)) or not isinstance(bands, Iterable):
        raise ConfigurationError(
            f"Band specification must be an integer or a list of integers, "
            f"got {bands!r}."
        )
    bands = list(bands)
    for band in bands:
        if not _is_index(band):
            raise ConfigurationError(
                f"Band indices must be integers, got {band!r} in {bands!r}."
            )
    return [int(b) for b in bands]


def assert_comparable(rasters: Sequence[RasterSource]) -> None:
    """Check every raster shares the first raster's grid.

    Raises:
        IncomparableRasterError: On the first raster whose dimensions,
            missing-value marker, or georeferencing differ.
    """
    first = rasters[0]
    for other in rasters[1:]:
        Validators.assert_raster_shapes_match(
            (first.height, first.width),
            (other.height, other.width),
            first.name,
            other.name,
        )
        if not same_marker(first.nodata, other.nodata):
            raise IncomparableRasterError(
                first.name, other.name, "nodata", first.nodata, other.nodata
            )
        if not first.georeference.matches(other.georeference):
            raise IncomparableRasterError(
                first.name, other.name, "georeference",
                first.georeference, other.georeference,
            )


def resolve_selection(
    rasters: Sequence[RasterSource],
    bands: BandSpec = None,
    mode: SelectionMode | str | None = None,
) -> BandSelection:
    """Resolve *rasters* and *bands* into a :class:`BandSelection`.

    Args:
        rasters: Input rasters, in order.
        bands: ``None`` for all bands of a single raster, an ``int`` for
               the same band in every raster, or one index per raster.
        mode: Optional explicit mode; must agree with *bands*.

    Raises:
        ConfigurationError: No rasters, *bands* that is not an integer or
            a list of integers, a mode that contradicts *bands*, or
            all-bands mode with more than one raster.
        BandListLengthError: Per-raster list length differs from the
            raster count.
        BandIndexError: A band index is out of range for its raster.
        IncomparableRasterError: Rasters do not share one grid.
    """
    rasters = list(rasters)
    if not rasters:
        raise ConfigurationError("At least one input raster is required.")

    bands = _normalise_bands(bands)

    implied = infer_mode(bands)
    if mode is not None:
        mode = SelectionMode(mode)
        if mode is not implied:
            raise ConfigurationError(
                f"Selection mode '{mode.value}' does not match the band "
                f"specification {bands!r} (implies '{implied.value}')."
            )
    mode = implied

    if mode is SelectionMode.ALL_BANDS and len(rasters) > 1:
        raise ConfigurationError(
            f"All-bands mode summarizes a single raster; got {len(rasters)}. "
            "Pass a band index (or one per raster) to summarize across files."
        )
    if mode is SelectionMode.PER_RASTER and len(bands) != len(rasters):
        raise BandListLengthError(len(bands), len(rasters))

    assert_comparable(rasters)

    if mode is SelectionMode.ALL_BANDS:
        raster = rasters[0]
        refs = [BandRef(raster, i) for i in range(1, raster.band_count + 1)]
    elif mode is SelectionMode.FIXED_BAND:
        refs = [BandRef(raster, bands) for raster in rasters]
    else:
        refs = [BandRef(raster, b) for raster, b in zip(rasters, bands)]

    if not refs:
        raise ConfigurationError(f"Raster '{rasters[0].name}' has no bands to summarize.")
    for ref in refs:
        Validators.assert_band_index_valid(ref.band_index, ref.raster.band_count, ref.raster.name)

    first = rasters[0]
    selection = BandSelection(
        refs=tuple(refs),
        mode=mode,
        height=first.height,
        width=first.width,
        nodata=first.nodata,
        georeference=first.georeference,
    )
    logger.debug(
        "Resolved %s selection: %s", mode.value, ", ".join(str(r) for r in refs)
    )
    return selection
