"""Turn classification sums into an ``AnalysisResult``."""

from __future__ import annotations

from vegscan._types import PixelSums
from vegscan.exceptions import InvalidInputError
from vegscan.results import AnalysisResult


def aggregate(sums: PixelSums, threshold: float = float("nan")) -> AnalysisResult:
    """Normalise accumulated sums into per-index means and coverage.

    Whole-image means divide by ``total_pixels``. Vegetation means divide
    by ``vegetation_pixels``, or are 0.0 when no pixel is vegetation.
    NaN or infinite sums carry through to the means.

    Args:
        sums: Output of :func:`vegscan.analysis.classify.classify_pixels`.
        threshold: Threshold used for classification, recorded on the result.

    Returns:
        Immutable ``AnalysisResult``.

    Raises:
        InvalidInputError: If ``total_pixels`` is 0 or the counts are
            inconsistent.
    """
    total = sums.total_pixels
    vegetation = sums.vegetation_pixels
    if total <= 0:
        raise InvalidInputError(
            what="Cannot aggregate an empty image",
            cause="total_pixels is 0",
            fix="Pass an image with at least one pixel",
        )
    if not 0 <= vegetation <= total:
        raise InvalidInputError(
            what="Inconsistent pixel counts",
            cause=f"{vegetation} vegetation pixels out of {total}",
        )

    whole = {key: value / total for key, value in sums.whole_sums.items()}
    if vegetation > 0:
        in_vegetation = {
            key: sums.vegetation_sums[key] / vegetation for key in sums.whole_sums
        }
    else:
        in_vegetation = {key: 0.0 for key in sums.whole_sums}

    return AnalysisResult(
        total_pixels=total,
        vegetation_pixels=vegetation,
        vegetation_coverage=(vegetation / total) * 100,
        vegetation_indices=in_vegetation,
        whole_indices=whole,
        threshold=threshold,
    )
