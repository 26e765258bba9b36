"""Pixel classification and index accumulation.

One pass over the pixels: normalise, compute ExG, compare against the
threshold, then add every selected index value to the whole-image sum
and, for vegetation pixels, to the vegetation sum. Work is vectorised
with numpy; ``chunk_size`` splits it into pixel ranges whose partial
sums are merged, which bounds memory on large images.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

import numpy as np
import numpy.typing as npt

from vegscan._types import PixelBuffer, PixelSums, VegetationMask
from vegscan.exceptions import InvalidInputError
from vegscan.indices import INDICES, normalize_rgb, resolve_index_keys

logger = logging.getLogger(__name__)

_CHANNEL_MIN: float = 0.0
_CHANNEL_MAX: float = 255.0


def as_pixel_array(buffer: PixelBuffer) -> npt.NDArray[Any]:
    """Validate a pixel buffer and return it as an ``(N, C)`` view.

    Args:
        buffer: Array shaped ``(H, W, C)`` or ``(N, C)`` with ``C`` in
            {3, 4} and channel values in ``[0, 255]``.

    Returns:
        The pixels flattened to two dimensions (no copy when possible).

    Raises:
        InvalidInputError: If the shape is malformed or the values are
            outside the 8-bit channel range.
    """
    pixels = np.asarray(buffer)
    if pixels.ndim not in (2, 3) or pixels.shape[-1] not in (3, 4):
        raise InvalidInputError(
            what="Malformed pixel buffer",
            cause=f"Expected shape (H, W, 3|4) or (N, 3|4), got {pixels.shape}",
            fix="Pass decoded RGB or RGBA pixels with channels on the last axis",
        )
    if not (
        np.issubdtype(pixels.dtype, np.integer)
        or np.issubdtype(pixels.dtype, np.floating)
    ):
        raise InvalidInputError(
            what="Malformed pixel buffer",
            cause=f"Unsupported dtype {pixels.dtype}",
            fix="Pass integer or float channel values in [0, 255]",
        )
    flat = pixels.reshape(-1, pixels.shape[-1])
    if flat.size:
        rgb = flat[:, :3]
        low, high = rgb.min(), rgb.max()
        if not (_CHANNEL_MIN <= low and high <= _CHANNEL_MAX):
            raise InvalidInputError(
                what="Pixel values out of range",
                cause=f"Channel values span [{low}, {high}]",
                fix="Scale channels to the 8-bit range [0, 255]",
            )
    return flat


def _chunks(pixels: npt.NDArray[Any], chunk_size: int | None) -> Iterator[Any]:
    if chunk_size is not None and chunk_size <= 0:
        raise InvalidInputError(
            what="Invalid chunk size",
            cause=f"chunk_size must be positive, got {chunk_size}",
            fix="Pass a positive chunk_size or None",
        )
    if chunk_size is None or chunk_size >= len(pixels):
        yield pixels
        return
    for start in range(0, len(pixels), chunk_size):
        yield pixels[start : start + chunk_size]


def _accumulate(
    pixels: npt.NDArray[Any],
    threshold: float,
    keys: tuple[str, ...],
) -> PixelSums:
    """Classify one chunk and sum the selected indices over it."""
    r, g, b = normalize_rgb(pixels)
    exg = 2 * g - r - b
    is_vegetation = exg >= threshold

    sums = PixelSums(
        total_pixels=len(pixels),
        vegetation_pixels=int(np.count_nonzero(is_vegetation)),
    )
    for key in keys:
        values = INDICES[key](r, g, b)
        sums.whole_sums[key] = float(values.sum())
        sums.vegetation_sums[key] = float(values[is_vegetation].sum())
    return sums


def classify_pixels(
    buffer: PixelBuffer,
    threshold: float,
    keys: Iterable[str] | None = None,
    *,
    chunk_size: int | None = None,
) -> PixelSums:
    """Classify pixels against *threshold* and accumulate index sums.

    A pixel is vegetation when its normalised ExG (``2g - r - b``) is
    greater than or equal to *threshold*. Each selected formula is
    evaluated once per pixel. NaN or infinite formula values are summed
    like any other value.

    Args:
        buffer: RGB(A) pixels, see :func:`as_pixel_array`.
        threshold: ExG cut-off on the normalised scale ``[-1, 1]``.
        keys: Index keys to accumulate, in reporting order. ``None``
            selects every index.
        chunk_size: Process at most this many pixels at a time.

    Returns:
        ``PixelSums`` with counts and per-index sums.

    Raises:
        InvalidInputError: If the buffer or index selection is invalid.

    Example:
        >>> pixels = np.array([[0, 255, 0], [255, 0, 0]], dtype=np.uint8)
        >>> sums = classify_pixels(pixels, 0.0, ["NGI"])
        >>> sums.vegetation_pixels, sums.whole_sums["NGI"]
        (1, 1.0)
    """
    selected = resolve_index_keys(keys)
    pixels = as_pixel_array(buffer)

    sums = PixelSums(
        whole_sums={key: 0.0 for key in selected},
        vegetation_sums={key: 0.0 for key in selected},
    )
    for chunk in _chunks(pixels, chunk_size):
        sums.merge(_accumulate(chunk, threshold, selected))

    logger.debug(
        "Classified %d pixels at threshold %.4f: %d vegetation",
        sums.total_pixels,
        threshold,
        sums.vegetation_pixels,
    )
    return sums


def vegetation_mask(buffer: PixelBuffer, threshold: float) -> VegetationMask:
    """Return the per-pixel vegetation mask for *threshold*.

    Args:
        buffer: RGB(A) pixels.
        threshold: ExG cut-off on the normalised scale.

    Returns:
        Boolean array shaped like the buffer without its channel axis.
    """
    pixels = np.asarray(buffer)
    flat = as_pixel_array(pixels)
    r, g, b = normalize_rgb(flat)
    mask: VegetationMask = (2 * g - r - b) >= threshold
    return mask.reshape(pixels.shape[:-1])


def binary_image(mask: VegetationMask) -> npt.NDArray[np.uint8]:
    """Render a mask as an opaque black and white RGBA image.

    Vegetation pixels are white, everything else black; alpha is 255.

    Args:
        mask: Boolean mask, typically from :func:`vegetation_mask`.

    Returns:
        uint8 array with shape ``mask.shape + (4,)``.
    """
    mask = np.asarray(mask, dtype=bool)
    image = np.zeros((*mask.shape, 4), dtype=np.uint8)
    image[mask, :3] = 255
    image[..., 3] = 255
    return image
