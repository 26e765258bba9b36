"""Shared test fixtures for the vegscan test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt
import pytest


@pytest.fixture
def mixed_pixels() -> npt.NDArray[np.uint8]:
    """2x2 RGB image: pure green, leafy green, soil brown, grey."""
    return np.array(
        [
            [[0, 255, 0], [40, 120, 30]],
            [[120, 80, 50], [100, 100, 100]],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def field_pixels() -> npt.NDArray[np.uint8]:
    """20x20 RGBA image: left half green canopy, right half bare soil."""
    image = np.zeros((20, 20, 4), dtype=np.uint8)
    image[:, :10] = [30, 140, 40, 255]
    image[:, 10:] = [140, 100, 70, 255]
    return image


@pytest.fixture
def write_raster() -> Callable[..., Path]:
    """Return a writer that stores ``(H, W, C)`` or ``(H, W)`` pixels with rasterio.

    The writer takes ``(path, pixels, driver="GTiff", colormap=None)``; a
    colormap is attached to band 1 of a single-band image.
    """
    import rasterio

    def _write(
        path: Path,
        pixels: npt.NDArray[Any],
        driver: str = "GTiff",
        colormap: dict[int, tuple[int, int, int, int]] | None = None,
    ) -> Path:
        bands = pixels[np.newaxis] if pixels.ndim == 2 else np.moveaxis(pixels, -1, 0)
        with rasterio.open(
            path,
            "w",
            driver=driver,
            height=bands.shape[1],
            width=bands.shape[2],
            count=bands.shape[0],
            dtype=bands.dtype,
        ) as dst:
            dst.write(bands)
            if colormap is not None:
                dst.write_colormap(1, colormap)
        return path

    return _write
