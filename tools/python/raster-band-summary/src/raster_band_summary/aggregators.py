"""
Raster Band Summary - Aggregator Set
=====================================
Per-cell reductions over the valid samples collected across a band
selection.

Each reduction is an :class:`Aggregator` subclass following the Strategy
pattern and registered by name.  The engine only ever talks to the
registry, so new statistics are added with :func:`register_aggregator`
without touching :mod:`raster_band_summary.engine`.

Built-in statistics:
    - sum        Sum of valid samples; the marker when none are valid.
    - mean       Mean of valid samples; the marker when none are valid.
    - count      Number of valid samples; 0 when none are valid.
    - richness   Number of valid samples > 0; 0 when none are valid.

Usage::

    from raster_band_summary.aggregators import resolve_statistics

    aggregators = resolve_statistics(["sum", "MEAN"])
    aggregators[1].reduce([0.0, 3.0], nodata=-9999.0)   # 1.5
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, Sequence

import numpy as np
import numpy.typing as npt

from shared.python.exceptions import ConfigurationError, UnknownStatisticError

logger = logging.getLogger("raster_band_summary.aggregators")


class Statistic(str, Enum):
    """Names of the built-in statistics."""

    SUM = "sum"
    MEAN = "mean"
    COUNT = "count"
    RICHNESS = "richness"


# ---------------------------------------------------------------------------
# Aggregator ABC
# ---------------------------------------------------------------------------


class Aggregator(ABC):
    """Abstract base for one per-cell reduction.

    Subclasses implement :meth:`reduce`, the pure per-cell function.  The
    default :meth:`compute` applies it cell by cell over a block; built-in
    aggregators override :meth:`compute` with vectorised numpy that yields
    the same values.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, lower case (e.g. ``"sum"``)."""

    @abstractmethod
    def reduce(self, values: Sequence[float], nodata: float) -> float:
        """Reduce the valid samples of one cell to a single value.

        Args:
            values: Valid samples only; may be empty when every source is
                    missing at this cell.
            nodata: The missing-value marker of the output grid.
        """

    def compute(
        self,
        data: npt.NDArray[np.float64],
        valid: npt.NDArray[np.bool_],
        nodata: float,
    ) -> npt.NDArray[np.float64]:
        """Reduce a ``(bands, rows, cols)`` block to a ``(rows, cols)`` grid.

        Args:
            data: Stacked samples, one layer per band reference.
            valid: Mask of the same shape, ``True`` where a sample is valid.
            nodata: The missing-value marker of the output grid.
        """
        _, rows, cols = data.shape
        out = np.empty((rows, cols), dtype=np.float64)
        for r in range(rows):
            for c in range(cols):
                cell = data[:, r, c]
                out[r, c] = self.reduce(cell[valid[:, r, c]].tolist(), nodata)
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


# ---------------------------------------------------------------------------
# Built-in aggregators
# ---------------------------------------------------------------------------


class SumAggregator(Aggregator):
    """Arithmetic sum of the valid samples.

    ``0`` is a legitimate result when every contributing value is 0; the
    marker is returned only when the value-set is empty.
    """

    @property
    def name(self) -> str:
        return Statistic.SUM.value

    def reduce(self, values: Sequence[float], nodata: float) -> float:
        if not values:
            return nodata
        return float(np.sum(np.asarray(values, dtype=np.float64)))

    def compute(
        self,
        data: npt.NDArray[np.float64],
        valid: npt.NDArray[np.bool_],
        nodata: float,
    ) -> npt.NDArray[np.float64]:
        """Vectorised sum; empty value-sets take *nodata*."""
        count = valid.sum(axis=0)
        total = np.where(valid, data, 0.0).sum(axis=0)
        return np.where(count > 0, total, nodata)


class MeanAggregator(Aggregator):
    """Arithmetic mean of the valid samples; the marker when there are none."""

    @property
    def name(self) -> str:
        return Statistic.MEAN.value

    def reduce(self, values: Sequence[float], nodata: float) -> float:
        if not values:
            return nodata
        arr = np.asarray(values, dtype=np.float64)
        return float(arr.sum() / arr.size)

    def compute(
        self,
        data: npt.NDArray[np.float64],
        valid: npt.NDArray[np.bool_],
        nodata: float,
    ) -> npt.NDArray[np.float64]:
        """Vectorised mean; empty value-sets take *nodata*."""
        count = valid.sum(axis=0)
        total = np.where(valid, data, 0.0).sum(axis=0)
        with np.errstate(invalid="ignore", divide="ignore"):
            mean = total / count
        return np.where(count > 0, mean, nodata)


class CountAggregator(Aggregator):
    """Number of sources with a valid sample.

    Unlike sum and mean, an all-missing cell yields ``0`` rather than the
    marker.
    """

    @property
    def name(self) -> str:
        return Statistic.COUNT.value

    def reduce(self, values: Sequence[float], nodata: float) -> float:
        return float(len(values))

    def compute(
        self,
        data: npt.NDArray[np.float64],
        valid: npt.NDArray[np.bool_],
        nodata: float,
    ) -> npt.NDArray[np.float64]:
        """Valid samples per cell."""
        return valid.sum(axis=0).astype(np.float64)


class RichnessAggregator(Aggregator):
    """Number of valid samples strictly greater than zero.

    Follows the ecological "species present" convention.  Same zero
    convention as :class:`CountAggregator` for all-missing cells.
    """

    @property
    def name(self) -> str:
        return Statistic.RICHNESS.value

    def reduce(self, values: Sequence[float], nodata: float) -> float:
        return float(sum(1 for v in values if v > 0))

    def compute(
        self,
        data: npt.NDArray[np.float64],
        valid: npt.NDArray[np.bool_],
        nodata: float,
    ) -> npt.NDArray[np.float64]:
        """Valid samples above zero per cell."""
        present = valid & (np.where(valid, data, 0.0) > 0)
        return present.sum(axis=0).astype(np.float64)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, Aggregator] = {}


def register_aggregator(aggregator: Aggregator, *, replace: bool = False) -> Aggregator:
    """Make *aggregator* available under ``aggregator.name``.

    Args:
        aggregator: Instance to register.
        replace: Allow overriding an existing registration.

    Raises:
        ConfigurationError: If the name is already taken and *replace* is
            ``False``.
    """
    key = aggregator.name.strip().lower()
    if key in _REGISTRY and not replace:
        raise ConfigurationError(f"A statistic named '{key}' is already registered.")
    _REGISTRY[key] = aggregator
    logger.debug("Registered aggregator %r", aggregator)
    return aggregator


def unregister_aggregator(name: str) -> None:
    """Remove a registration; unknown names are ignored."""
    _REGISTRY.pop(name.strip().lower(), None)


def available_statistics() -> list[str]:
    """Registered statistic names, in registration order."""
    return list(_REGISTRY)


def get_aggregator(name: str) -> Aggregator:
    """Look up one aggregator by (case-insensitive) name.

    Raises:
        UnknownStatisticError: If no aggregator is registered under *name*.
    """
    key = str(name).strip().lower()
    try:
        return _REGISTRY[key]
    except KeyError:
        raise UnknownStatisticError(str(name), _REGISTRY) from None


def resolve_statistics(names: Iterable[str | Statistic]) -> list[Aggregator]:
    """Validate requested statistic names and return their aggregators.

    Names are matched case-insensitively and duplicates are dropped while
    keeping the first occurrence's position.

    Raises:
        ConfigurationError: If no statistic is requested.
        UnknownStatisticError: On the first name that is not registered.
    """
    resolved: list[Aggregator] = []
    seen: set[str] = set()
    for name in names:
        raw = name.value if isinstance(name, Statistic) else name
        aggregator = get_aggregator(raw)
        key = aggregator.name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        resolved.append(aggregator)

    if not resolved:
        raise ConfigurationError("At least one statistic must be requested.")
    return resolved


for _aggregator in (SumAggregator(), MeanAggregator(), CountAggregator(), RichnessAggregator()):
    register_aggregator(_aggregator)

DEFAULT_STATISTICS: list[str] = [s.value for s in Statistic]
