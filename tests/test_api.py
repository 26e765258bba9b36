"""Tests for the top-level engine functions."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt
import pytest

import vegscan as vs
from vegscan.config import Config
from vegscan.exceptions import BatchAbortedError, InvalidInputError


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset module-level config before each test."""
    import vegscan.config as _cfg

    monkeypatch.setattr(_cfg, "_default_config", Config())


@pytest.mark.unit
class TestAnalyzeImage:
    """Verify the single-image entry points."""

    def test_threshold_then_analyze(self, field_pixels: npt.NDArray[np.uint8]) -> None:
        tau = vs.compute_threshold(field_pixels, "otsu")
        result = vs.analyze_image(field_pixels, tau, ["ExG", "NGI"])
        assert result.total_pixels == 400
        assert result.vegetation_pixels == 200
        assert result.vegetation_coverage == 50.0
        assert result.threshold == tau
        assert result.index_keys == ("ExG", "NGI")

    def test_pure_green_full_coverage(self) -> None:
        pixels = np.full((3, 3, 3), [0, 255, 0], dtype=np.uint8)
        result = vs.analyze_image(pixels, 0.5, ["NGI"])
        assert result.vegetation_coverage == 100.0
        assert result.whole_indices["NGI"] == 1.0
        assert result.vegetation_indices["NGI"] == 1.0

    def test_threshold_one_no_vegetation(
        self, mixed_pixels: npt.NDArray[np.uint8]
    ) -> None:
        result = vs.analyze_image(mixed_pixels[1:], 1.0, ["GLI"])
        assert result.vegetation_coverage == 0.0
        assert result.vegetation_indices == {"GLI": 0.0}

    def test_empty_image_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            vs.analyze_image(np.zeros((0, 5, 3), dtype=np.uint8), 0.0)

    def test_analyze_uses_config(self, field_pixels: npt.NDArray[np.uint8]) -> None:
        cfg = Config(threshold_method="exg", threshold_value=1.0, indices=["ExG"])
        result = vs.analyze(field_pixels, cfg)
        assert result.threshold == 1.0
        assert result.index_keys == ("ExG",)

    def test_analyze_uses_default_config(
        self, field_pixels: npt.NDArray[np.uint8]
    ) -> None:
        vs.configure(threshold_method="exg", threshold_value=-1.0, indices=["INT"])
        result = vs.analyze(field_pixels)
        assert result.vegetation_coverage == 100.0
        assert result.index_keys == ("INT",)

    def test_chunked_config(self, field_pixels: npt.NDArray[np.uint8]) -> None:
        plain = vs.analyze(field_pixels, Config(indices=["ExG"]))
        chunked = vs.analyze(field_pixels, Config(indices=["ExG"], chunk_size=7))
        assert chunked.vegetation_pixels == plain.vegetation_pixels
        assert chunked.whole_indices["ExG"] == pytest.approx(plain.whole_indices["ExG"])


@pytest.mark.unit
class TestAnalyzeFiles:
    """Verify decoding plus batch analysis."""

    def test_palette_image_coverage(self, tmp_path: Path, write_raster: Any) -> None:
        indices = np.array([[1, 2], [1, 2]], dtype=np.uint8)
        colormap = {1: (0, 255, 0, 255), 2: (140, 100, 70, 255)}
        path = write_raster(tmp_path / "palette.tif", indices, colormap=colormap)
        cfg = Config(threshold_method="exg", threshold_value=0.2, indices=["ExG"])
        records = vs.analyze_files([path], cfg)
        assert records[0].vegetation_coverage == 50.0

    def test_records_named_after_files(
        self,
        tmp_path: Path,
        field_pixels: npt.NDArray[np.uint8],
        mixed_pixels: npt.NDArray[np.uint8],
        write_raster: Any,
    ) -> None:
        paths = [
            write_raster(tmp_path / "b_field.tif", field_pixels),
            write_raster(tmp_path / "a_mixed.tif", mixed_pixels),
        ]
        records = vs.analyze_files(paths, Config(indices=["ExG"], max_workers=2))
        assert [r.filename for r in records] == ["b_field.tif", "a_mixed.tif"]
        assert records[0].vegetation_coverage == 50.0

    def test_undecodable_file_aborts(
        self, tmp_path: Path, field_pixels: npt.NDArray[np.uint8], write_raster: Any
    ) -> None:
        good = write_raster(tmp_path / "good.tif", field_pixels)
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"\x00\x01\x02")
        with pytest.raises(BatchAbortedError) as excinfo:
            vs.analyze_files([good, bad])
        assert excinfo.value.filename == "bad.png"
        assert excinfo.value.index == 1

    def test_export_after_batch(
        self, tmp_path: Path, field_pixels: npt.NDArray[np.uint8], write_raster: Any
    ) -> None:
        path = write_raster(tmp_path / "field.tif", field_pixels)
        cfg = Config(threshold_method="exg", threshold_value=0.0, indices=["ExG"])
        records = vs.analyze_files([path], cfg)
        payload = vs.export_csv(
            records, cfg.indices, cfg.threshold_method, cfg.fixed_value
        )
        row = payload.decode().split("\n")[1]
        assert row.startswith("field.tif,400,200,50.00,exg,0.000,")
