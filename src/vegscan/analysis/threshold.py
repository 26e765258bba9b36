"""ExG threshold selection: fixed value or Otsu's method.

Thresholds live on the normalised ExG scale ``[-1, 1]``. Otsu's method
works on a 256-bin histogram of raw ExG (``2G - R - B``, range
``[-510, 510]``) and maps the winning bin back to that scale.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import numpy.typing as npt

from vegscan._types import PixelBuffer, ThresholdMethod
from vegscan.analysis.classify import as_pixel_array
from vegscan.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

_HISTOGRAM_BINS: int = 256
_EXG_OFFSET: int = 510  # shifts raw ExG from [-510, 510] to [0, 1020]
_BIN_WIDTH: int = 4

DEFAULT_FIXED_THRESHOLD: float = 0.2
"""Fixed threshold used when the caller selects ``exg`` without a value."""


def exg_histogram(buffer: PixelBuffer) -> npt.NDArray[np.int64]:
    """Histogram raw ExG values into 256 bins.

    Bin of a pixel is ``round((2G - R - B + 510) / 4)`` with halves
    rounded up.

    Args:
        buffer: RGB(A) pixels.

    Returns:
        int64 array of 256 pixel counts.
    """
    pixels = as_pixel_array(buffer)
    rgb = pixels[:, :3].astype(np.float64)
    exg = 2 * rgb[:, 1] - rgb[:, 0] - rgb[:, 2]
    bins = np.floor((exg + _EXG_OFFSET) / _BIN_WIDTH + 0.5).astype(np.int64)
    return np.bincount(bins, minlength=_HISTOGRAM_BINS)


def otsu_bin(histogram: npt.NDArray[np.integer]) -> int:
    """Pick the bin that maximises between-class variance.

    Candidates with an empty background are skipped and the scan stops
    as soon as the foreground is empty. Ties keep the earliest bin. A
    histogram with fewer than two populated bins returns 0.

    Args:
        histogram: Pixel counts per bin.

    Returns:
        Index of the last background bin.
    """
    hist = [int(count) for count in histogram]
    total = sum(hist)
    weighted_total = sum(i * count for i, count in enumerate(hist))

    weight_bg = 0
    sum_bg = 0
    best_variance = 0.0
    best_bin = 0
    for t, count in enumerate(hist):
        weight_bg += count
        if weight_bg == 0:
            continue
        weight_fg = total - weight_bg
        if weight_fg == 0:
            break

        sum_bg += t * count
        mean_bg = sum_bg / weight_bg
        mean_fg = (weighted_total - sum_bg) / weight_fg
        variance = weight_bg * weight_fg * (mean_bg - mean_fg) ** 2

        if variance > best_variance:
            best_variance = variance
            best_bin = t
    return best_bin


def bin_to_threshold(bin_index: int) -> float:
    """Map a histogram bin back to the normalised ExG scale."""
    return (bin_index * _BIN_WIDTH - _EXG_OFFSET) / _EXG_OFFSET


def otsu_threshold(buffer: PixelBuffer) -> float:
    """Compute an automatic ExG threshold with Otsu's method.

    An empty or single-valued image has no split, so the result is the
    bin-0 fallback ``-1.0``.

    Args:
        buffer: RGB(A) pixels.

    Returns:
        Threshold in ``[-1, 1]``.
    """
    best_bin = otsu_bin(exg_histogram(buffer))
    threshold = bin_to_threshold(best_bin)
    logger.debug("Otsu threshold: bin %d -> %.4f", best_bin, threshold)
    return threshold


def validate_fixed_threshold(value: float) -> float:
    """Return *value* as float if it is a usable fixed threshold.

    Raises:
        InvalidInputError: If *value* is not finite or outside ``[-1, 1]``.
    """
    value = float(value)
    if not math.isfinite(value) or not -1.0 <= value <= 1.0:
        raise InvalidInputError(
            what="Invalid fixed ExG threshold",
            cause=f"Threshold {value} is outside [-1, 1]",
            fix="Pass a threshold between -1 and 1, or use method 'otsu'",
        )
    return value


def compute_threshold(
    buffer: PixelBuffer,
    method: ThresholdMethod | str,
    fixed_value: float | None = None,
) -> float:
    """Choose the classification threshold for an image.

    Args:
        buffer: RGB(A) pixels; read only for ``otsu``.
        method: ``"otsu"`` or ``"exg"``.
        fixed_value: Threshold for ``exg``; defaults to
            ``DEFAULT_FIXED_THRESHOLD``. Ignored for ``otsu``.

    Returns:
        Threshold on the normalised ExG scale.

    Raises:
        InvalidInputError: For an unknown method or an out-of-range
            fixed value.

    Example:
        >>> compute_threshold(np.zeros((2, 2, 3)), "exg", 0.25)
        0.25
    """
    method = parse_method(method)
    if method is ThresholdMethod.OTSU:
        return otsu_threshold(buffer)
    if fixed_value is None:
        fixed_value = DEFAULT_FIXED_THRESHOLD
    return validate_fixed_threshold(fixed_value)


def parse_method(method: ThresholdMethod | str) -> ThresholdMethod:
    """Coerce *method* to ``ThresholdMethod``.

    Raises:
        InvalidInputError: If *method* names no known method.
    """
    try:
        return ThresholdMethod(method)
    except ValueError:
        choices = ", ".join(m.value for m in ThresholdMethod)
        raise InvalidInputError(
            what=f"Unknown threshold method {method!r}",
            fix=f"Use one of: {choices}",
        ) from None
