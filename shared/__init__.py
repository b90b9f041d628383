"""Shared building blocks for the raster tools in this repository."""
