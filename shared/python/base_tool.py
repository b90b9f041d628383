"""
Raster Band Summary - Base Tool
================================
Abstract base class for tools that read one or more rasters and write
their results into an output directory.

Design Pattern:
    Template Method: the public ``run()`` method defines a fixed
    pipeline (validate → process → report) that subclasses fill in
    by implementing ``validate_inputs`` and ``process``.

Usage::

    from shared.python.base_tool import GeoTool

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            ...
        def process(self) -> None:
            ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

# Root logger for the project; modules log through children of it,
# e.g. ``raster_band_summary.engine``.
logger = logging.getLogger("raster_band_summary")


class GeoTool(ABC):
    """Abstract base class for raster tools.

    Every concrete tool implements :meth:`validate_inputs` and
    :meth:`process`.  Calling :meth:`run` executes the full pipeline in
    the correct order.

    Attributes:
        input_paths: Paths to the input rasters, in the order given.
        output_dir: Directory where the tool writes its outputs.
        verbose: When ``True`` the tool logs DEBUG-level messages in
            addition to INFO/WARNING/ERROR.
    """

    def __init__(
        self,
        input_paths: Sequence[Path],
        output_dir: Path,
        *,
        verbose: bool = False,
    ) -> None:
        """Initialise the base tool.

        Args:
            input_paths: One or more input raster paths.
            output_dir: Directory for the outputs; created on validation.
            verbose: Set to ``True`` to enable debug-level console
                     logging during the run.
        """
        self.input_paths: list[Path] = [Path(p) for p in input_paths]
        self.output_dir: Path = Path(output_dir)
        self.verbose: bool = verbose

        self._configure_logging()

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Validate all inputs before processing begins.

        Raises:
            BandSummaryError: Any subclass, when a precondition fails.
        """

    @abstractmethod
    def process(self) -> None:
        """Execute the core processing logic.

        Called by :meth:`run` after :meth:`validate_inputs` has succeeded.
        Any exception raised here propagates up through :meth:`run`.
        """

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Execute the full tool pipeline.

        1. :meth:`validate_inputs` verifies all preconditions.
        2. :meth:`process` performs the work.
        3. :meth:`_report_success` logs the elapsed time and output dir.

        Raises:
            Any exception raised by ``validate_inputs`` or ``process``
            propagates unchanged.
        """
        logger.info("Starting %s", self.__class__.__name__)
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        elapsed = time.perf_counter() - start
        self._report_success(elapsed)

    # ------------------------------------------------------------------
    # Protected helpers
    # ------------------------------------------------------------------

    def _report_success(self, elapsed: float) -> None:
        """Log a success message with the elapsed time and output dir."""
        logger.info(
            "%s completed in %.2fs → %s",
            self.__class__.__name__,
            elapsed,
            self.output_dir,
        )

    def _configure_logging(self) -> None:
        """Attach a console handler to the project logger once.

        Uses DEBUG level when ``self.verbose`` is ``True``, otherwise INFO.
        """
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                fmt="[%(asctime)s] %(levelname)-8s %(name)s - %(message)s",
                datefmt="%H:%M:%S",
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_paths={self.input_paths!r}, "
            f"output_dir={self.output_dir!r})"
        )
