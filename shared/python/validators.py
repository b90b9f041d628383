"""
Raster Band Summary - Input Validators
=======================================
Static precondition checks run before any band data is read.

All methods raise an appropriate exception from
:mod:`shared.python.exceptions` rather than returning booleans, which keeps
``validate_inputs`` implementations short::

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            for path in self.input_paths:
                Validators.assert_file_exists(path)
                Validators.assert_supported_extension(path, [".tif"])
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from shared.python.exceptions import (
    BandIndexError,
    IncomparableRasterError,
    InputValidationError,
    OutputWriteError,
)


class Validators:
    """Collection of static precondition checks.

    All methods are ``@staticmethod``; this class is never instantiated.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the parent directory of *output_path* can be used.

        Creates the parent directory (and any missing parents) if it does
        not yet exist.

        Raises:
            OutputWriteError: If the parent directory cannot be created.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Allowed extensions, each starting with a dot
                        (e.g. ``[".tif", ".tiff"]``).

        Raises:
            InputValidationError: If the file extension is not in
                *extensions*.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_band_index_valid(
        band_index: int,
        total_bands: int,
        raster: str = "raster",
    ) -> None:
        """Assert that *band_index* is within ``1..total_bands``.

        Args:
            band_index: 1-based band index requested by the user.
            total_bands: Total number of bands in the raster.
            raster: Raster name used in the error message.

        Raises:
            BandIndexError: If *band_index* is out of range.

        Example::

            Validators.assert_band_index_valid(3, 4, raster="scene.tif")
        """
        if isinstance(band_index, bool) or band_index < 1 or band_index > total_bands:
            raise BandIndexError(band_index, total_bands, raster)

    @staticmethod
    def assert_raster_shapes_match(
        shape_a: tuple[int, int],
        shape_b: tuple[int, int],
        label_a: str = "Raster A",
        label_b: str = "Raster B",
    ) -> None:
        """Assert that two rasters have identical ``(rows, cols)`` shapes.

        Raises:
            IncomparableRasterError: If the shapes do not match.
        """
        if tuple(shape_a) != tuple(shape_b):
            raise IncomparableRasterError(
                label_a, label_b, "dimensions", tuple(shape_a), tuple(shape_b)
            )
