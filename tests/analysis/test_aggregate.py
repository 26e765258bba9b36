"""Tests for aggregation of classification sums."""

from __future__ import annotations

import dataclasses
import math

import numpy as np
import numpy.testing as npt
import numpy.typing as npt_types
import pytest

from vegscan._types import PixelSums
from vegscan.analysis.aggregate import aggregate
from vegscan.analysis.classify import classify_pixels
from vegscan.exceptions import InvalidInputError
from vegscan.indices import compute_index, normalize_rgb


@pytest.mark.unit
class TestAggregate:
    """Verify means, coverage and guards."""

    def test_means_and_coverage(self) -> None:
        sums = PixelSums(
            total_pixels=4,
            vegetation_pixels=1,
            whole_sums={"ExG": 2.0, "INT": 4 / 3},
            vegetation_sums={"ExG": 1.5, "INT": 1 / 3},
        )
        result = aggregate(sums, threshold=0.25)
        assert result.total_pixels == 4
        assert result.vegetation_pixels == 1
        assert result.vegetation_coverage == 25.0
        assert result.threshold == 0.25
        assert result.whole_indices == {"ExG": 0.5, "INT": 1 / 3}
        assert result.vegetation_indices == {"ExG": 1.5, "INT": 1 / 3}

    def test_no_vegetation_means_zero(self) -> None:
        sums = PixelSums(
            total_pixels=10,
            vegetation_pixels=0,
            whole_sums={"VEG": float("nan"), "GLI": 1.0},
            vegetation_sums={"VEG": 0.0, "GLI": 0.0},
        )
        result = aggregate(sums)
        assert result.vegetation_coverage == 0.0
        assert result.vegetation_indices == {"VEG": 0.0, "GLI": 0.0}
        assert math.isnan(result.whole_indices["VEG"])

    def test_full_coverage(self) -> None:
        sums = PixelSums(total_pixels=3, vegetation_pixels=3)
        assert aggregate(sums).vegetation_coverage == 100.0

    def test_zero_pixels_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="empty image"):
            aggregate(PixelSums(total_pixels=0))

    def test_inconsistent_counts_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="Inconsistent"):
            aggregate(PixelSums(total_pixels=2, vegetation_pixels=3))

    def test_key_order_preserved(self) -> None:
        sums = PixelSums(
            total_pixels=1,
            vegetation_pixels=1,
            whole_sums={"VARI": 0.1, "ExR": 0.2, "INT": 0.3},
            vegetation_sums={"VARI": 0.1, "ExR": 0.2, "INT": 0.3},
        )
        result = aggregate(sums)
        assert result.index_keys == ("VARI", "ExR", "INT")
        assert list(result.vegetation_indices) == ["VARI", "ExR", "INT"]

    def test_result_is_immutable(self) -> None:
        result = aggregate(PixelSums(total_pixels=1, whole_sums={"ExG": 0.0},
                                     vegetation_sums={"ExG": 0.0}))  # fmt: skip
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.total_pixels = 5  # type: ignore[misc]
        with pytest.raises(TypeError):
            result.whole_indices["ExG"] = 1.0  # type: ignore[index]


@pytest.mark.unit
class TestEndToEndMeans:
    """Aggregated means equal independently computed per-pixel means."""

    def test_whole_mean_two_by_two(
        self, mixed_pixels: npt_types.NDArray[np.uint8]
    ) -> None:
        keys = ["INT", "ExG", "GRVI", "VARI", "RGRI"]
        result = aggregate(classify_pixels(mixed_pixels, 0.2, keys), 0.2)
        for key in keys:
            values = []
            for pixel in mixed_pixels.reshape(-1, 3):
                r, g, b = (float(c[0]) for c in normalize_rgb(pixel[np.newaxis]))
                values.append(float(compute_index(key, r, g, b)))
            npt.assert_allclose(result.whole_indices[key], sum(values) / 4, rtol=1e-12)
            npt.assert_allclose(
                result.vegetation_indices[key], sum(values[:2]) / 2, rtol=1e-12
            )

    def test_black_pixel_nan_regression(self) -> None:
        """Unguarded formulas turn a single black pixel into a NaN mean."""
        pixels = np.array([[[0, 0, 0], [40, 120, 30]]], dtype=np.uint8)
        result = aggregate(classify_pixels(pixels, 0.0, ["MGRVI", "RGBVI", "VEG"]))
        assert result.vegetation_pixels == 2  # black exg 0 >= 0
        for key in ("MGRVI", "RGBVI", "VEG"):
            assert math.isnan(result.whole_indices[key])
            assert math.isnan(result.vegetation_indices[key])
