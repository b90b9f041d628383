"""
Raster Band Summary - Tool
===========================
Summarizes bands of one or more rasters cell by cell and writes one
GeoTIFF per requested statistic.

Classes:
    SummaryConfig         Configuration bundle for the tool.
    SummaryResult         Immutable record of one written statistic.
    RasterBandSummarizer  Primary tool class (inherits GeoTool).

Usage::

    from pathlib import Path
    from raster_band_summary.summarizer import RasterBandSummarizer, SummaryConfig

    tool = RasterBandSummarizer(
        input_paths=[Path("data/sp_2019.tif"), Path("data/sp_2020.tif")],
        output_dir=Path("output"),
        config=SummaryConfig(bands=1, statistics=["sum", "richness"]),
    )
    tool.run()

    for result in tool.results:
        print(result)
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

import numpy as np

from raster_band_summary.aggregators import DEFAULT_STATISTICS, resolve_statistics
from raster_band_summary.engine import SummaryGrid, summarize
from raster_band_summary.nodata import valid_mask
from raster_band_summary.raster import GeoTiffRaster, output_dtype_for, write_grid
from raster_band_summary.selection import resolve_selection
from shared.python.base_tool import GeoTool
from shared.python.exceptions import ConfigurationError
from shared.python.validators import Validators

logger = logging.getLogger("raster_band_summary.summarizer")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SummaryResult:
    """Immutable record of one written statistic raster.

    Attributes:
        statistic: Statistic name (e.g. ``"mean"``).
        output_path: Where the GeoTIFF was written.
        valid_cells: Cells not holding the missing-value marker.
        min_value: Minimum over valid cells (NaN when there are none).
        max_value: Maximum over valid cells (NaN when there are none).
        mean_value: Mean over valid cells (NaN when there are none).
    """

    statistic: str
    output_path: Path
    valid_cells: int
    min_value: float
    max_value: float
    mean_value: float

    def __str__(self) -> str:
        return (
            f"{self.statistic}: min={self.min_value:.4f} max={self.max_value:.4f} "
            f"mean={self.mean_value:.4f} valid_px={self.valid_cells:,} "
            f"→ {self.output_path.name}"
        )


@dataclass
class SummaryConfig:
    """Configuration for :class:`RasterBandSummarizer`.

    Attributes:
        bands: ``None`` for every band of a single raster, one 1-based
               index applied to every raster, or one index per raster.
        statistics: Statistic names to compute.
        prefix: Prepended to ``<statistic>.tif`` for each output file.
        nodata: Missing-value marker for rasters that declare none.
        output_dtype: Sample type of the written rasters.  ``None`` uses
               the widest floating input type, at least float32, and
               float64 when that cannot hold the marker.
        compress: GDAL compression for the written rasters.
        max_workers: Threads used by the engine.
        block_rows: Rows per engine block; ``None`` picks a default.
    """

    bands: Union[int, list[int], None] = None
    statistics: list[str] = field(default_factory=lambda: list(DEFAULT_STATISTICS))
    prefix: str = ""
    nodata: float | None = -9999.0
    output_dtype: str | None = None
    compress: str | None = "lzw"
    max_workers: int = 1
    block_rows: int | None = None


# ---------------------------------------------------------------------------
# Main tool class
# ---------------------------------------------------------------------------


class RasterBandSummarizer(GeoTool):
    """Compute per-cell band statistics and write one raster per statistic.

    Inherits the Template Method pipeline from :class:`~shared.python.GeoTool`.

    ``validate_inputs`` checks files and statistic names, then opens the
    rasters and resolves the band selection from metadata only, so a bad
    band index or an incomparable raster set fails before any band data
    is read.  ``process`` reopens the rasters, runs the engine and writes
    ``<output_dir>/<prefix><statistic>.tif`` for every statistic (or the
    paths given in *destinations*).

    Args:
        input_paths: One or more input raster files.
        output_dir: Directory for the output GeoTIFFs.
        config: A :class:`SummaryConfig` instance.
        destinations: Optional explicit output path per statistic name.
        verbose: Enable DEBUG-level logging.
    """

    SUPPORTED_EXTENSIONS = [".tif", ".tiff", ".img", ".vrt", ".nc"]

    def __init__(
        self,
        input_paths: Sequence[Path],
        output_dir: Path,
        config: SummaryConfig | None = None,
        *,
        destinations: dict[str, Path] | None = None,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_paths, output_dir, verbose=verbose)
        self.config = config or SummaryConfig()
        self.destinations: dict[str, Path] = {
            k.strip().lower(): Path(v) for k, v in (destinations or {}).items()
        }
        self._statistics: list[str] = []
        self._results: list[SummaryResult] = []

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Validate inputs, statistics and the band selection.

        Raises:
            InputValidationError: If a file is missing or unsupported.
            ConfigurationError: Bad band specification or statistic name.
            IncomparableRasterError: Inputs do not share one grid.
            OutputWriteError: If an output directory cannot be created.
        """
        if not self.input_paths:
            raise ConfigurationError("At least one input raster is required.")
        for path in self.input_paths:
            Validators.assert_file_exists(path)
            Validators.assert_supported_extension(path, self.SUPPORTED_EXTENSIONS)

        self._statistics = [agg.name for agg in resolve_statistics(self.config.statistics)]

        unknown = set(self.destinations) - set(self._statistics)
        if unknown:
            raise ConfigurationError(
                f"Destinations given for statistics that were not requested: "
                f"{', '.join(sorted(unknown))}"
            )
        for statistic in self._statistics:
            Validators.assert_output_dir_writable(self.output_path_for(statistic))

        with ExitStack() as stack:
            rasters = [
                stack.enter_context(GeoTiffRaster(p, nodata=self.config.nodata))
                for p in self.input_paths
            ]
            selection = resolve_selection(rasters, self.config.bands)

        logger.debug(
            "Inputs validated: %d raster(s), %d band reference(s), statistics=%s",
            len(self.input_paths), len(selection), ", ".join(self._statistics),
        )

    def process(self) -> None:
        """Run the engine and write one GeoTIFF per statistic.

        Raises:
            RasterError: If a raster cannot be read.
            OutputWriteError: If writing an output file fails.
        """
        with ExitStack() as stack:
            rasters = [
                stack.enter_context(GeoTiffRaster(p, nodata=self.config.nodata))
                for p in self.input_paths
            ]
            selection = resolve_selection(rasters, self.config.bands)
            logger.info(
                "Summarizing %d band(s) from %d raster(s) (%s mode)",
                len(selection), len(rasters), selection.mode.value,
            )
            grids = summarize(
                selection,
                self._statistics or self.config.statistics,
                max_workers=self.config.max_workers,
                block_rows=self.config.block_rows,
            )
            output_dtype = self.config.output_dtype or output_dtype_for(
                selection.nodata, [r.dtype for r in rasters]
            )

        results: list[SummaryResult] = []
        for name, grid in grids.items():
            output_path = write_grid(
                grid.data,
                grid.nodata,
                grid.georeference,
                self.output_path_for(name),
                dtype=output_dtype,
                compress=self.config.compress,
            )
            results.append(self._describe(grid, output_path))
            logger.info("  %s", results[-1])

        self._results = results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def output_path_for(self, statistic: str) -> Path:
        """Destination of the raster for *statistic*."""
        if statistic in self.destinations:
            return self.destinations[statistic]
        return self.output_dir / f"{self.config.prefix}{statistic}.tif"

    @staticmethod
    def _describe(grid: SummaryGrid, output_path: Path) -> SummaryResult:
        valid = grid.data[valid_mask(grid.data, grid.nodata)]
        if valid.size == 0:
            return SummaryResult(
                statistic=grid.statistic, output_path=output_path, valid_cells=0,
                min_value=float("nan"), max_value=float("nan"), mean_value=float("nan"),
            )
        return SummaryResult(
            statistic=grid.statistic,
            output_path=output_path,
            valid_cells=int(valid.size),
            min_value=float(np.min(valid)),
            max_value=float(np.max(valid)),
            mean_value=float(np.mean(valid)),
        )

    @property
    def results(self) -> list[SummaryResult]:
        """List of :class:`SummaryResult` from the last run, or ``[]``."""
        return self._results
