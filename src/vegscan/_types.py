"""Internal shared types for cross-module data contracts.

These types define the data shapes passed between the thresholder,
classifier, aggregator and batch runner. ``ThresholdMethod`` is
re-exported from ``vegscan.__init__``; the rest are internal.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import numpy.typing as npt

PixelBuffer = npt.NDArray[Any]
"""RGB(A) pixels, shape ``(H, W, C)`` or ``(N, C)`` with ``C`` in {3, 4}."""

NamedBuffer = tuple[str, PixelBuffer]
"""``(filename, pixels)`` pair as fed to the batch runner."""

VegetationMask = npt.NDArray[np.bool_]
"""Per-pixel flag, ``True`` where the pixel is classified as vegetation."""


class ThresholdMethod(str, enum.Enum):
    """How the ExG classification threshold is chosen.

    The values are the literal text written to the CSV
    ``Threshold Method`` column.
    """

    OTSU = "otsu"
    """Automatic: Otsu's method over the Excess Green histogram."""

    EXG = "exg"
    """Fixed: a caller-supplied ExG value in ``[-1, 1]``."""


@dataclass
class PixelSums:
    """Running counts and per-index sums from one classification pass.

    Partial sums from separate pixel chunks are combined with
    :meth:`merge`; addition is associative so chunk order does not
    affect the counts.

    Args:
        total_pixels: Pixels visited.
        vegetation_pixels: Pixels whose ExG reached the threshold.
        whole_sums: Per-index sum over every pixel, in selected-key order.
        vegetation_sums: Per-index sum over vegetation pixels only.

    Example:
        >>> sums = PixelSums(total_pixels=4, vegetation_pixels=1)
        >>> sums.whole_sums
        {}
    """

    total_pixels: int = 0
    vegetation_pixels: int = 0
    whole_sums: dict[str, float] = field(default_factory=dict)
    vegetation_sums: dict[str, float] = field(default_factory=dict)

    def merge(self, other: PixelSums) -> PixelSums:
        """Add *other* into this accumulator and return ``self``."""
        self.total_pixels += other.total_pixels
        self.vegetation_pixels += other.vegetation_pixels
        for key, value in other.whole_sums.items():
            self.whole_sums[key] = self.whole_sums.get(key, 0.0) + value
        for key, value in other.vegetation_sums.items():
            self.vegetation_sums[key] = self.vegetation_sums.get(key, 0.0) + value
        return self
