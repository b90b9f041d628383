"""
Raster Band Summary - Summarization Engine
===========================================
Reduces a resolved :class:`~raster_band_summary.selection.BandSelection`
to one output grid per requested statistic.

For every cell the engine collects the samples of all band references,
keeps the valid ones (:mod:`raster_band_summary.nodata`), and hands the
same value-set to every requested aggregator, so source data is read once
no matter how many statistics are asked for.

Work is split into disjoint row blocks.  Input buffers are shared
read-only and each block writes only its own rows of the output grids, so
blocks can run on a thread pool without locks.

Usage::

    selection = resolve_selection([a, b], bands=1)
    grids = summarize(selection, ["sum", "mean"], max_workers=4)
    grids["mean"].data
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np
import numpy.typing as npt

from raster_band_summary.aggregators import Aggregator, Statistic, resolve_statistics
from raster_band_summary.nodata import valid_mask
from raster_band_summary.raster import Georeference
from raster_band_summary.selection import BandSelection
from shared.python.exceptions import ConfigurationError, RasterError

logger = logging.getLogger("raster_band_summary.engine")

# Upper bound on samples held in one block stack (bands x rows x cols).
_LARGEST_BLOCK = 2 ** 20


@dataclass(frozen=True)
class SummaryGrid:
    """One ready-to-persist output grid.

    Attributes:
        statistic: Name of the statistic that produced the grid.
        data: ``(rows, cols)`` float64 array.
        nodata: Missing-value marker shared with the inputs.
        georeference: Georeferencing of the first input raster.
    """

    statistic: str
    data: npt.NDArray[np.float64]
    nodata: float
    georeference: Georeference

    @property
    def valid_cells(self) -> int:
        """Number of cells not holding the missing-value marker."""
        return int(valid_mask(self.data, self.nodata).sum())


def iter_row_blocks(height: int, rows_per_block: int) -> Iterator[tuple[int, int]]:
    """Yield ``(start, stop)`` row ranges covering ``0..height``."""
    for start in range(0, height, rows_per_block):
        yield start, min(start + rows_per_block, height)


def _default_block_rows(selection: BandSelection, max_workers: int) -> int:
    per_row = max(1, len(selection) * selection.width)
    rows = max(1, _LARGEST_BLOCK // per_row)
    if max_workers > 1:
        # Give every worker at least one block.
        rows = min(rows, max(1, -(-selection.height // max_workers)))
    return rows


def _load_buffers(selection: BandSelection) -> list[npt.NDArray[np.float64]]:
    """Read each referenced band once; repeated references share a buffer."""
    cache: dict[tuple[int, int], npt.NDArray[np.float64]] = {}
    buffers = []
    for ref in selection.refs:
        key = (id(ref.raster), ref.band_index)
        if key not in cache:
            band = np.asarray(ref.raster.read_band(ref.band_index), dtype=np.float64)
            if band.shape != selection.shape:
                raise RasterError(
                    f"Band {ref} has shape {band.shape}; expected {selection.shape}."
                )
            cache[key] = band
        buffers.append(cache[key])
    return buffers


def summarize(
    selection: BandSelection,
    statistics: Iterable[str | Statistic],
    *,
    max_workers: int = 1,
    block_rows: int | None = None,
) -> dict[str, SummaryGrid]:
    """Compute every requested statistic over *selection*.

    Args:
        selection: A resolved band selection.
        statistics: Statistic names (see
            :func:`~raster_band_summary.aggregators.available_statistics`).
        max_workers: Thread count for row blocks; ``1`` runs inline.
        block_rows: Rows per block.  Defaults to a size that keeps each
            block stack around a million samples.

    Returns:
        Mapping of statistic name to :class:`SummaryGrid`, in request order.

    Raises:
        ConfigurationError: Bad worker/block settings or no statistics.
        UnknownStatisticError: A statistic name is not registered.
        BandSummaryError: Whatever the raster accessor raises while
            reading band data, unchanged.
    """
    aggregators = resolve_statistics(statistics)
    if max_workers < 1:
        raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}.")
    if block_rows is not None and block_rows < 1:
        raise ConfigurationError(f"block_rows must be >= 1, got {block_rows}.")

    rows_per_block = block_rows or _default_block_rows(selection, max_workers)
    nodata = selection.nodata
    buffers = _load_buffers(selection)
    outputs = {
        agg.name: np.empty(selection.shape, dtype=np.float64) for agg in aggregators
    }

    blocks = list(iter_row_blocks(selection.height, rows_per_block))
    logger.debug(
        "Summarizing %d band reference(s) over %dx%d in %d block(s) of %d row(s), %d worker(s): %s",
        len(buffers), selection.width, selection.height, len(blocks),
        rows_per_block, max_workers, ", ".join(outputs),
    )

    def _summarize_block(start: int, stop: int) -> None:
        data = np.stack([buf[start:stop] for buf in buffers])
        valid = valid_mask(data, nodata)
        for agg in aggregators:
            outputs[agg.name][start:stop] = agg.compute(data, valid, nodata)

    if max_workers == 1 or len(blocks) <= 1:
        for start, stop in blocks:
            _summarize_block(start, stop)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(_summarize_block, start, stop): start for start, stop in blocks}
            for future in as_completed(futures):
                future.result()

    return {
        name: SummaryGrid(
            statistic=name,
            data=grid,
            nodata=nodata,
            georeference=selection.georeference,
        )
        for name, grid in outputs.items()
    }


def reduce_cell(
    selection: BandSelection,
    row: int,
    col: int,
    aggregators: list[Aggregator],
) -> dict[str, float]:
    """Reduce a single cell with each aggregator's per-cell :meth:`reduce`.

    Reads the cell straight from the accessors.  Handy for spot checks
    and debugging; :func:`summarize` is the bulk path.
    """
    if not (0 <= row < selection.height and 0 <= col < selection.width):
        raise ConfigurationError(
            f"Cell ({row}, {col}) is outside the {selection.height}x{selection.width} grid."
        )
    samples = [
        float(ref.raster.read_band(ref.band_index)[row, col]) for ref in selection.refs
    ]
    mask = valid_mask(np.asarray(samples, dtype=np.float64), selection.nodata)
    values = [s for s, ok in zip(samples, mask) if ok]
    return {agg.name: agg.reduce(values, selection.nodata) for agg in aggregators}
