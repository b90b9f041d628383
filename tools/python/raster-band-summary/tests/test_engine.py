"""
Tests - Summarization Engine
=============================
In-memory rasters (:class:`ArrayRaster`) only; file I/O is covered in
``test_summarizer.py``.

Test classes:
    TestScenarios     Hand-worked cells across files and across bands.
    TestProperties    Invariants over a random raster set.
    TestExecution     Blocking, threading and error propagation.
"""

from __future__ import annotations

import numpy as np
import pytest

from raster_band_summary.aggregators import resolve_statistics
from raster_band_summary.compare import compare_grids
from raster_band_summary.engine import iter_row_blocks, reduce_cell, summarize
from raster_band_summary.raster import ArrayRaster
from raster_band_summary.selection import resolve_selection
from shared.python.exceptions import ConfigurationError, RasterError, UnknownStatisticError

NODATA = -9999.0
ALL_STATS = ["sum", "mean", "count", "richness"]


def _cell(grids, row: int, col: int) -> dict[str, float]:
    return {name: float(grid.data[row, col]) for name, grid in grids.items()}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def file_pair() -> list[ArrayRaster]:
    """Two 3×3 single-band rasters.

    (0, 0) is 5 in the first and missing in the second; (1, 1) is missing
    in both.
    """
    a = np.arange(9, dtype=np.float64).reshape(3, 3) + 1
    b = np.full((3, 3), 2.0)
    a[0, 0], b[0, 0] = 5.0, NODATA
    a[1, 1], b[1, 1] = NODATA, NODATA
    return [ArrayRaster(a, NODATA, name="file1.tif"), ArrayRaster(b, NODATA, name="file2.tif")]


@pytest.fixture()
def random_rasters() -> list[ArrayRaster]:
    rng = np.random.default_rng(7)
    rasters = []
    for i in range(4):
        data = rng.normal(loc=0.5, scale=2.0, size=(2, 17, 23))
        data[rng.random(data.shape) < 0.35] = NODATA
        data[:, 0, :] = NODATA  # a fully missing row
        rasters.append(ArrayRaster(data, NODATA, name=f"r{i}.tif"))
    return rasters


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_one_valid_source(self, file_pair) -> None:
        grids = summarize(resolve_selection(file_pair, bands=1), ALL_STATS)
        assert _cell(grids, 0, 0) == {"sum": 5.0, "mean": 5.0, "count": 1.0, "richness": 1.0}

    def test_all_sources_missing(self, file_pair) -> None:
        grids = summarize(resolve_selection(file_pair, bands=[1, 1]), ALL_STATS)
        assert _cell(grids, 1, 1) == {
            "sum": NODATA, "mean": NODATA, "count": 0.0, "richness": 0.0,
        }

    def test_all_bands_of_one_raster(self) -> None:
        data = np.ones((2, 3, 3))
        data[0, 2, 2], data[1, 2, 2] = 0.0, 3.0
        raster = ArrayRaster(data, NODATA, name="stack.tif")
        grids = summarize(resolve_selection([raster]), ALL_STATS)
        assert _cell(grids, 2, 2) == {"sum": 3.0, "mean": 1.5, "count": 2.0, "richness": 1.0}

    def test_zero_sum_is_not_missing(self) -> None:
        raster = ArrayRaster(np.zeros((3, 2, 2)), NODATA)
        grids = summarize(resolve_selection([raster]), ["sum", "richness"])
        assert np.all(grids["sum"].data == 0.0)
        assert np.all(grids["richness"].data == 0.0)

    def test_nan_samples_are_missing(self) -> None:
        data = np.array([[[np.nan]], [[4.0]]])
        grids = summarize(resolve_selection([ArrayRaster(data, NODATA)]), ALL_STATS)
        assert _cell(grids, 0, 0) == {"sum": 4.0, "mean": 4.0, "count": 1.0, "richness": 1.0}

    def test_outputs_share_input_metadata(self, file_pair) -> None:
        sel = resolve_selection(file_pair, bands=1)
        for grid in summarize(sel, ["mean", "count"]).values():
            assert grid.data.shape == (3, 3)
            assert grid.nodata == NODATA
            assert grid.georeference is file_pair[0].georeference

    def test_results_in_request_order(self, file_pair) -> None:
        grids = summarize(resolve_selection(file_pair, bands=1), ["richness", "SUM"])
        assert list(grids) == ["richness", "sum"]

    def test_valid_cells(self, file_pair) -> None:
        grids = summarize(resolve_selection(file_pair, bands=1), ["sum", "count"])
        assert grids["sum"].valid_cells == 8
        assert grids["count"].valid_cells == 9

    def test_matches_per_cell_reduction(self, file_pair) -> None:
        sel = resolve_selection(file_pair, bands=1)
        grids = summarize(sel, ALL_STATS)
        aggs = resolve_statistics(ALL_STATS)
        for row in range(3):
            for col in range(3):
                assert reduce_cell(sel, row, col, aggs) == pytest.approx(_cell(grids, row, col))


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    @pytest.fixture()
    def grids(self, random_rasters):
        return summarize(resolve_selection(random_rasters, bands=2), ALL_STATS)

    def test_count_bounded_by_references(self, grids) -> None:
        count = grids["count"].data
        assert count.min() >= 0
        assert count.max() <= 4

    def test_richness_at_most_count(self, grids) -> None:
        assert np.all(grids["richness"].data <= grids["count"].data)

    def test_mean_is_sum_over_count(self, grids) -> None:
        count = grids["count"].data
        has_data = count > 0
        np.testing.assert_allclose(
            grids["mean"].data[has_data],
            grids["sum"].data[has_data] / count[has_data],
            rtol=1e-12,
        )

    def test_missing_convention(self, grids) -> None:
        empty = grids["count"].data == 0
        assert empty[0].all()
        assert np.all(grids["sum"].data[empty] == NODATA)
        assert np.all(grids["mean"].data[empty] == NODATA)
        assert np.all(grids["richness"].data[empty] == 0)

    def test_count_equals_valid_samples(self, random_rasters, grids) -> None:
        stack = np.stack([r.read_band(2) for r in random_rasters])
        np.testing.assert_array_equal(grids["count"].data, (stack != NODATA).sum(axis=0))

    def test_agrees_with_reference_implementation(self, random_rasters, grids) -> None:
        """Compare with a plain masked-array computation, within tolerance."""
        stack = np.ma.masked_equal(np.stack([r.read_band(2) for r in random_rasters]), NODATA)
        expected_sum = stack.sum(axis=0).filled(NODATA)
        expected_mean = stack.mean(axis=0).filled(NODATA)
        assert compare_grids(grids["sum"].data, expected_sum, NODATA).matches
        assert compare_grids(grids["mean"].data, expected_mean, NODATA).matches

    def test_idempotent(self, random_rasters) -> None:
        sel = resolve_selection(random_rasters, bands=[1, 2, 1, 2])
        first = summarize(sel, ALL_STATS)
        second = summarize(sel, ALL_STATS)
        for name in ALL_STATS:
            assert first[name].data.tobytes() == second[name].data.tobytes()


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestExecution:
    def test_row_blocks_cover_grid(self) -> None:
        assert list(iter_row_blocks(7, 3)) == [(0, 3), (3, 6), (6, 7)]
        assert list(iter_row_blocks(0, 3)) == []

    @pytest.mark.parametrize("workers,block_rows", [(1, 1), (1, 5), (4, None), (3, 2)])
    def test_blocking_and_threads_do_not_change_results(
        self, random_rasters, workers: int, block_rows: int | None
    ) -> None:
        sel = resolve_selection(random_rasters, bands=1)
        baseline = summarize(sel, ALL_STATS)
        result = summarize(sel, ALL_STATS, max_workers=workers, block_rows=block_rows)
        for name in ALL_STATS:
            assert result[name].data.tobytes() == baseline[name].data.tobytes()

    def test_bands_read_once(self, file_pair) -> None:
        reads: list[int] = []
        raster = file_pair[0]
        original = raster.read_band

        def tracking_read(index: int):
            reads.append(index)
            return original(index)

        raster.read_band = tracking_read  # type: ignore[method-assign]
        summarize(resolve_selection([raster, raster], bands=1), ALL_STATS)
        assert reads == [1]

    def test_unknown_statistic_fails_before_reading(self, file_pair) -> None:
        def fail(index: int):
            raise AssertionError("band data read")

        file_pair[0].read_band = fail  # type: ignore[method-assign]
        with pytest.raises(UnknownStatisticError):
            summarize(resolve_selection(file_pair, bands=1), ["sum", "median"])

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"block_rows": 0}])
    def test_invalid_execution_settings(self, file_pair, kwargs) -> None:
        with pytest.raises(ConfigurationError):
            summarize(resolve_selection(file_pair, bands=1), ["sum"], **kwargs)

    def test_accessor_errors_propagate(self, file_pair) -> None:
        def broken(index: int):
            raise RasterError("disk went away")

        file_pair[1].read_band = broken  # type: ignore[method-assign]
        with pytest.raises(RasterError, match="disk went away"):
            summarize(resolve_selection(file_pair, bands=1), ["sum"])

    def test_reduce_cell_out_of_grid(self, file_pair) -> None:
        sel = resolve_selection(file_pair, bands=1)
        with pytest.raises(ConfigurationError):
            reduce_cell(sel, 3, 0, resolve_statistics(["sum"]))
