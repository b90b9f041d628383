"""
Raster Band Summary - Shared Package
=====================================
Re-exports the base tool class, exception hierarchy, and validator
utilities so the tool modules can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import ConfigurationError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    BandIndexError,
    BandListLengthError,
    BandSummaryError,
    ConfigurationError,
    IncomparableRasterError,
    InputValidationError,
    OutputWriteError,
    RasterError,
    UnknownStatisticError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "BandSummaryError",
    "InputValidationError",
    "ConfigurationError",
    "BandIndexError",
    "BandListLengthError",
    "UnknownStatisticError",
    "RasterError",
    "IncomparableRasterError",
    "OutputWriteError",
]
