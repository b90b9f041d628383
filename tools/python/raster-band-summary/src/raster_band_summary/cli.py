"""
Raster Band Summary - CLI Entry Point
======================================
Installed as the ``geo-band-summary`` command via ``pyproject.toml``.

Usage::

    # every band of one multi-band raster
    geo-band-summary -i species_stack.tif -o output/

    # band 1 of several rasters, two statistics
    geo-band-summary -i sp_2019.tif -i sp_2020.tif --bands 1 --stats sum,richness

    # a different band from each raster
    geo-band-summary -i a.tif -i b.tif -i c.tif --bands 1,3,2 --workers 4
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from raster_band_summary.aggregators import DEFAULT_STATISTICS
from raster_band_summary.summarizer import RasterBandSummarizer, SummaryConfig
from shared.python.exceptions import BandSummaryError


def _parse_bands(raw: str) -> int | list[int] | None:
    """``""`` → None, ``"3"`` → 3, ``"1,2"`` → [1, 2]."""
    tokens = [t.strip() for t in raw.split(",") if t.strip()]
    if not tokens:
        return None
    try:
        values = [int(t) for t in tokens]
    except ValueError as exc:
        raise click.BadParameter(f"Band indices must be integers: {raw!r}") from exc
    if len(values) == 1 and "," not in raw:
        return values[0]
    return values


@click.command(
    name="geo-band-summary",
    help="Compute per-cell sum, mean, count or richness across raster bands "
         "and write one GeoTIFF per statistic.",
)
@click.option(
    "--input", "-i", "input_paths",
    required=True,
    multiple=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    help="Input raster. Repeat for several rasters.",
)
@click.option(
    "--output-dir", "-o", "output_dir",
    default="output",
    show_default=True,
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory for the output GeoTIFFs.",
)
@click.option(
    "--bands",
    default="",
    help="Omit for every band of a single raster; one 1-based index for the "
         "same band in every raster; or a comma-separated index per raster.",
)
@click.option(
    "--stats",
    default=",".join(DEFAULT_STATISTICS),
    show_default=True,
    help="Comma-separated statistics to compute.",
)
@click.option("--prefix", default="", help="Prefix for output file names.")
@click.option(
    "--nodata",
    default=-9999.0,
    show_default=True,
    type=float,
    help="Missing-value marker for rasters that declare none.",
)
@click.option("--workers", default=1, show_default=True, type=click.IntRange(min=1),
              help="Worker threads.")
@click.option("--block-rows", default=None, type=click.IntRange(min=1),
              help="Rows per processing block.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    input_paths: tuple[Path, ...],
    output_dir: Path,
    bands: str,
    stats: str,
    prefix: str,
    nodata: float,
    workers: int,
    block_rows: int | None,
    verbose: bool,
) -> None:
    """CLI entry point; wires Click options into RasterBandSummarizer."""
    config = SummaryConfig(
        bands=_parse_bands(bands),
        statistics=[s.strip() for s in stats.split(",") if s.strip()],
        prefix=prefix,
        nodata=nodata,
        max_workers=workers,
        block_rows=block_rows,
    )

    tool = RasterBandSummarizer(list(input_paths), output_dir, config, verbose=verbose)

    try:
        tool.run()
    except BandSummaryError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"\n{len(tool.results)} statistic raster(s) written to: {output_dir}")
    for result in tool.results:
        click.echo(f"  {result}")


if __name__ == "__main__":
    main()
