"""
Raster Band Summary - Exception Hierarchy
==========================================
Every error the band-summary tool raises comes from this module so callers
can catch them at the right level of granularity.

Hierarchy::

    BandSummaryError                     ← catch-all base
    ├── InputValidationError             ← missing files, bad extensions
    ├── ConfigurationError               ← invalid invocation
    │   ├── BandIndexError               ← requested band does not exist
    │   ├── BandListLengthError          ← one band per raster expected
    │   └── UnknownStatisticError        ← statistic not registered
    ├── RasterError                      ← rasterio / raster access issues
    │   └── IncomparableRasterError      ← inputs do not share one grid
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import BandIndexError

    raise BandIndexError(band_index=5, total_bands=4, raster="scene.tif")
"""

from __future__ import annotations

from typing import Iterable


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class BandSummaryError(Exception):
    """Base exception for the band-summary tool.

    Catch this to handle any tool-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(BandSummaryError):
    """Raised when an input file fails pre-processing validation."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(BandSummaryError):
    """Raised when an invocation cannot be resolved into a band selection
    or a set of statistics.

    Always raised before any band data is read.
    """


class BandIndexError(ConfigurationError):
    """Raised when a requested raster band index does not exist.

    Args:
        band_index: The 1-based band number that was requested.
        total_bands: Total number of bands in the raster.
        raster: Name of the raster the band was requested from.

    Example::

        raise BandIndexError(band_index=5, total_bands=4, raster="scene.tif")
    """

    def __init__(self, band_index: int, total_bands: int, raster: str = "raster") -> None:
        super().__init__(
            f"Band {band_index} does not exist in '{raster}'. "
            f"This raster has {total_bands} band(s) (1-indexed)."
        )
        self.band_index: int = band_index
        self.total_bands: int = total_bands
        self.raster: str = raster


class BandListLengthError(ConfigurationError):
    """Raised when a per-raster band list does not have one entry per raster.

    Args:
        bands_given: Number of band indices supplied.
        rasters_given: Number of input rasters supplied.
    """

    def __init__(self, bands_given: int, rasters_given: int) -> None:
        super().__init__(
            f"Got {bands_given} band index(es) for {rasters_given} raster(s). "
            "Pass a single band index to use it for every raster, or exactly "
            "one index per raster."
        )
        self.bands_given: int = bands_given
        self.rasters_given: int = rasters_given


class UnknownStatisticError(ConfigurationError):
    """Raised when a requested statistic has no registered aggregator.

    Args:
        statistic: The name that was requested.
        available: Names that ARE registered, used in the message.
    """

    def __init__(self, statistic: str, available: Iterable[str]) -> None:
        available = sorted(available)
        available_str = ", ".join(f"'{name}'" for name in available)
        super().__init__(
            f"Unknown statistic '{statistic}'. Available statistics: {available_str}"
        )
        self.statistic: str = statistic
        self.available: list[str] = available


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(BandSummaryError):
    """Raised for raster access failures (rasterio / numpy).

    Subclass this for more specific raster errors.
    """


class IncomparableRasterError(RasterError):
    """Raised when input rasters do not share dimensions, missing-value
    marker, or georeferencing.

    Args:
        first: Name of the reference raster.
        other: Name of the raster that differs.
        prop: Which property differs (``"dimensions"``, ``"nodata"``,
              ``"georeference"``).
        expected: Value of *prop* on *first*.
        actual: Value of *prop* on *other*.
    """

    def __init__(
        self,
        first: str,
        other: str,
        prop: str,
        expected: object,
        actual: object,
    ) -> None:
        super().__init__(
            f"Rasters '{first}' and '{other}' are not comparable: {prop} differ "
            f"({expected} vs {actual})."
        )
        self.first: str = first
        self.other: str = other
        self.prop: str = prop


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(BandSummaryError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/sum.tif", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
