"""
Raster Band Summary
====================
Per-cell summary statistics (sum, mean, count, richness) across the bands
of one raster or a band from each of several rasters.

Public API::

    from raster_band_summary import (
        ArrayRaster, GeoTiffRaster, resolve_selection, summarize,
        RasterBandSummarizer, SummaryConfig,
    )
"""

from raster_band_summary.aggregators import (
    Aggregator,
    Statistic,
    available_statistics,
    register_aggregator,
    resolve_statistics,
)
from raster_band_summary.compare import GridComparison, compare_grids, compare_rasters
from raster_band_summary.engine import SummaryGrid, summarize
from raster_band_summary.nodata import is_valid, valid_mask
from raster_band_summary.raster import (
    ArrayRaster,
    GeoTiffRaster,
    Georeference,
    RasterSource,
    write_grid,
)
from raster_band_summary.selection import (
    BandRef,
    BandSelection,
    SelectionMode,
    resolve_selection,
)
from raster_band_summary.summarizer import RasterBandSummarizer, SummaryConfig, SummaryResult

__all__ = [
    "Aggregator",
    "Statistic",
    "available_statistics",
    "register_aggregator",
    "resolve_statistics",
    "GridComparison",
    "compare_grids",
    "compare_rasters",
    "SummaryGrid",
    "summarize",
    "is_valid",
    "valid_mask",
    "ArrayRaster",
    "GeoTiffRaster",
    "Georeference",
    "RasterSource",
    "write_grid",
    "BandRef",
    "BandSelection",
    "SelectionMode",
    "resolve_selection",
    "RasterBandSummarizer",
    "SummaryConfig",
    "SummaryResult",
]
__version__ = "1.0.0"
