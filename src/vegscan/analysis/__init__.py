"""Thresholding, pixel classification and aggregation."""

from vegscan.analysis.aggregate import aggregate
from vegscan.analysis.classify import binary_image, classify_pixels, vegetation_mask
from vegscan.analysis.threshold import compute_threshold, otsu_threshold

__all__ = [
    "aggregate",
    "binary_image",
    "classify_pixels",
    "compute_threshold",
    "otsu_threshold",
    "vegetation_mask",
]
