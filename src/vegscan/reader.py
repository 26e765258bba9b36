"""Decode image files into pixel buffers.

Thin I/O layer in front of the analysis engine. Reads any raster format
GDAL can open (PNG, JPEG, TIFF, ...) through rasterio and returns an
``(H, W, C)`` uint8-range array with RGB or RGBA channels.

Band layouts are mapped the way an image decoder would present them:

- palette: indices looked up in the band's colour map (RGBA)
- grey: repeated into three equal channels
- grey + alpha: grey repeated into RGB, alpha kept
- RGB / RGBA: as stored; bands past the fourth are dropped

16-bit samples are scaled down to the 8-bit range.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt

from vegscan._types import PixelBuffer
from vegscan.exceptions import DecodeError

logger = logging.getLogger(__name__)

# 65535 / 255
_UINT16_TO_UINT8 = 257


def _palette_to_rgba(
    indices: npt.NDArray[np.integer], colormap: dict[int, tuple[int, ...]]
) -> npt.NDArray[np.uint8]:
    """Look palette *indices* up in *colormap*; returns ``(4, H, W)``."""
    size = max([int(indices.max(initial=0)), *colormap]) + 1
    table = np.zeros((size, 4), dtype=np.uint8)
    for index, color in colormap.items():
        table[index, : len(color)] = color
    return np.moveaxis(table[indices], -1, 0)


def _to_uint8_range(data: npt.NDArray[np.generic]) -> npt.NDArray[np.generic]:
    if data.dtype == np.uint16:
        return np.rint(data / _UINT16_TO_UINT8).astype(np.uint8)
    return data


def read_image(path: str | Path) -> PixelBuffer:
    """Read an image file into an ``(H, W, C)`` pixel array.

    Args:
        path: Image file path.

    Returns:
        Array with bands moved to the last axis.

    Raises:
        DecodeError: If the file is missing, unreadable, or not a raster.
    """
    import rasterio
    from rasterio.enums import ColorInterp
    from rasterio.errors import RasterioIOError

    path = Path(path)
    if not path.is_file():
        raise DecodeError(
            what=f"Cannot read image {path.name}",
            cause=f"File not found: {path}",
            fix="Check the path and try again",
        )

    try:
        with rasterio.open(path) as src:
            data = src.read()
            palette = src.colorinterp[0] == ColorInterp.palette
            colormap = src.colormap(1) if palette else {}
    except RasterioIOError as exc:
        raise DecodeError(
            what=f"Cannot read image {path.name}",
            cause=str(exc),
            fix="Convert the image to PNG, JPEG or GeoTIFF",
        ) from exc

    bands = data.shape[0]
    if palette:
        data = _palette_to_rgba(data[0], colormap)
    else:
        data = _to_uint8_range(data)
        if bands == 1:
            data = np.repeat(data, 3, axis=0)
        elif bands == 2:
            data = np.concatenate([np.repeat(data[:1], 3, axis=0), data[1:]])
        elif bands > 4:
            data = data[:4]

    logger.debug(
        "Read %s: %d bands%s, %dx%d",
        path.name,
        bands,
        " (palette)" if palette else "",
        *data.shape[1:],
    )
    return np.moveaxis(data, 0, -1)
