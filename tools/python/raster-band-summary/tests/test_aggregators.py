"""
Tests - Aggregator Set
=======================
Per-cell semantics of the built-in reductions, agreement between the
per-cell and vectorised paths, and the name registry.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pytest

from raster_band_summary.aggregators import (
    Aggregator,
    CountAggregator,
    MeanAggregator,
    RichnessAggregator,
    Statistic,
    SumAggregator,
    available_statistics,
    get_aggregator,
    register_aggregator,
    resolve_statistics,
    unregister_aggregator,
)
from raster_band_summary.nodata import valid_mask
from shared.python.exceptions import ConfigurationError, UnknownStatisticError

NODATA = -9999.0


class MaxAggregator(Aggregator):
    """Only implements the per-cell function."""

    @property
    def name(self) -> str:
        return "max"

    def reduce(self, values: Sequence[float], nodata: float) -> float:
        return max(values) if values else nodata


@pytest.fixture()
def max_aggregator():
    agg = register_aggregator(MaxAggregator())
    yield agg
    unregister_aggregator("max")


# ---------------------------------------------------------------------------
# Per-cell reductions
# ---------------------------------------------------------------------------


class TestReduce:
    def test_sum(self) -> None:
        assert SumAggregator().reduce([1.0, 2.5, 3.0], NODATA) == pytest.approx(6.5)

    def test_sum_of_zeros_is_zero(self) -> None:
        assert SumAggregator().reduce([0.0, 0.0], NODATA) == 0.0

    def test_mean(self) -> None:
        assert MeanAggregator().reduce([0.0, 3.0], NODATA) == pytest.approx(1.5)

    def test_count(self) -> None:
        assert CountAggregator().reduce([0.0, -2.0, 7.0], NODATA) == 3.0

    def test_richness_counts_strictly_positive(self) -> None:
        assert RichnessAggregator().reduce([0.0, -2.0, 7.0, 0.5], NODATA) == 2.0

    def test_empty_value_set(self) -> None:
        """sum/mean give the marker, count/richness give zero."""
        assert SumAggregator().reduce([], NODATA) == NODATA
        assert MeanAggregator().reduce([], NODATA) == NODATA
        assert CountAggregator().reduce([], NODATA) == 0.0
        assert RichnessAggregator().reduce([], NODATA) == 0.0


# ---------------------------------------------------------------------------
# Vectorised path
# ---------------------------------------------------------------------------


class TestCompute:
    @pytest.fixture()
    def block(self) -> tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(42)
        data = rng.integers(-3, 6, size=(5, 4, 6)).astype(np.float64)
        data[rng.random(data.shape) < 0.3] = NODATA
        data[:, 0, 0] = NODATA  # one all-missing cell
        return data, valid_mask(data, NODATA)

    @pytest.mark.parametrize(
        "aggregator",
        [SumAggregator(), MeanAggregator(), CountAggregator(), RichnessAggregator()],
        ids=lambda a: a.name,
    )
    def test_vectorised_matches_per_cell(self, aggregator: Aggregator, block) -> None:
        data, valid = block
        fast = aggregator.compute(data, valid, NODATA)
        slow = Aggregator.compute(aggregator, data, valid, NODATA)
        np.testing.assert_allclose(fast, slow, rtol=1e-12)

    @pytest.mark.parametrize(
        "aggregator",
        [SumAggregator(), MeanAggregator(), CountAggregator(), RichnessAggregator()],
        ids=lambda a: a.name,
    )
    def test_returns_float64_grid(self, aggregator: Aggregator, block) -> None:
        data, valid = block
        out = aggregator.compute(data, valid, NODATA)
        assert out.shape == data.shape[1:]
        assert out.dtype == np.float64

    def test_all_missing_cell(self, block) -> None:
        data, valid = block
        assert SumAggregator().compute(data, valid, NODATA)[0, 0] == NODATA
        assert MeanAggregator().compute(data, valid, NODATA)[0, 0] == NODATA
        assert CountAggregator().compute(data, valid, NODATA)[0, 0] == 0.0
        assert RichnessAggregator().compute(data, valid, NODATA)[0, 0] == 0.0

    def test_marker_never_contributes(self) -> None:
        data = np.array([[[NODATA]], [[2.0]]])
        valid = valid_mask(data, NODATA)
        assert SumAggregator().compute(data, valid, NODATA)[0, 0] == 2.0
        assert MeanAggregator().compute(data, valid, NODATA)[0, 0] == 2.0

    def test_custom_aggregator_falls_back_to_reduce(self) -> None:
        data = np.array([[[1.0, NODATA]], [[4.0, NODATA]]])
        valid = valid_mask(data, NODATA)
        out = MaxAggregator().compute(data, valid, NODATA)
        assert out.tolist() == [[4.0, NODATA]]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_builtins_registered(self) -> None:
        assert {s.value for s in Statistic} <= set(available_statistics())

    def test_lookup_is_case_insensitive(self) -> None:
        assert get_aggregator(" MEAN ").name == "mean"

    def test_resolve_accepts_enum_and_dedupes(self) -> None:
        aggs = resolve_statistics([Statistic.SUM, "sum", "Count"])
        assert [a.name for a in aggs] == ["sum", "count"]

    def test_unknown_statistic_raises(self) -> None:
        with pytest.raises(UnknownStatisticError) as info:
            resolve_statistics(["sum", "median"])
        assert info.value.statistic == "median"
        assert "richness" in info.value.available

    def test_unknown_statistic_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            get_aggregator("median")

    def test_empty_request_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_statistics([])

    def test_register_custom(self, max_aggregator: Aggregator) -> None:
        assert resolve_statistics(["max"]) == [max_aggregator]

    def test_duplicate_registration_raises(self, max_aggregator: Aggregator) -> None:
        with pytest.raises(ConfigurationError):
            register_aggregator(MaxAggregator())

    def test_replace_registration(self, max_aggregator: Aggregator) -> None:
        replacement = MaxAggregator()
        register_aggregator(replacement, replace=True)
        assert get_aggregator("max") is replacement
