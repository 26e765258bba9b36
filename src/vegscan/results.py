"""Result object model for analysis outputs."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import numpy as np

from vegscan._types import VegetationMask

if TYPE_CHECKING:
    import pandas as pd


def _frozen_mapping(values: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class AnalysisResult:
    """Vegetation coverage and index means for one image.

    Index maps keep the caller's selection order. A mean may be NaN or
    infinite when a formula is undefined for some pixels; that is part
    of the result, not an error.

    Attributes:
        total_pixels: Pixels in the image.
        vegetation_pixels: Pixels classified as vegetation.
        vegetation_coverage: ``100 * vegetation_pixels / total_pixels``.
        threshold: ExG threshold the image was classified with.
        vegetation_indices: Per-index mean over vegetation pixels
            (0.0 for every key when there are none).
        whole_indices: Per-index mean over all pixels.

    Example:
        >>> result = AnalysisResult(
        ...     total_pixels=4,
        ...     vegetation_pixels=1,
        ...     vegetation_coverage=25.0,
        ...     vegetation_indices={"ExG": 0.6},
        ...     whole_indices={"ExG": 0.1},
        ... )
        >>> result.whole_indices["ExG"]
        0.1
    """

    total_pixels: int
    vegetation_pixels: int
    vegetation_coverage: float
    vegetation_indices: Mapping[str, float] = field(default_factory=dict)
    whole_indices: Mapping[str, float] = field(default_factory=dict)
    threshold: float = float("nan")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "vegetation_indices", _frozen_mapping(self.vegetation_indices)
        )
        object.__setattr__(self, "whole_indices", _frozen_mapping(self.whole_indices))

    @property
    def index_keys(self) -> tuple[str, ...]:
        """Index keys present in this result, in selection order."""
        return tuple(self.whole_indices)

    def __repr__(self) -> str:
        """Return a short summary without the per-index maps."""
        parts = [
            f"coverage={self.vegetation_coverage:.2f}%",
            f"vegetation_pixels={self.vegetation_pixels}",
            f"total_pixels={self.total_pixels}",
        ]
        if not math.isnan(self.threshold):
            parts.append(f"threshold={self.threshold:.3f}")
        parts.append(f"indices={len(self.whole_indices)}")
        return f"{type(self).__name__}({', '.join(parts)})"

    def to_dict(self) -> dict[str, Any]:
        """Return a plain, JSON-friendly dictionary."""
        return {
            "total_pixels": self.total_pixels,
            "vegetation_pixels": self.vegetation_pixels,
            "vegetation_coverage": self.vegetation_coverage,
            "threshold": self.threshold,
            "indices": {
                "vegetation": dict(self.vegetation_indices),
                "whole": dict(self.whole_indices),
            },
        }


@dataclass(frozen=True)
class BatchRecord:
    """An ``AnalysisResult`` tagged with the image it came from.

    Attributes:
        filename: Image name as given to the batch runner.
        result: Analysis of that image.
    """

    filename: str
    result: AnalysisResult

    @property
    def total_pixels(self) -> int:
        return self.result.total_pixels

    @property
    def vegetation_pixels(self) -> int:
        return self.result.vegetation_pixels

    @property
    def vegetation_coverage(self) -> float:
        return self.result.vegetation_coverage

    @property
    def vegetation_indices(self) -> Mapping[str, float]:
        return self.result.vegetation_indices

    @property
    def whole_indices(self) -> Mapping[str, float]:
        return self.result.whole_indices


def records_to_dataframe(records: Sequence[BatchRecord]) -> pd.DataFrame:
    """Flatten batch records into a pandas DataFrame.

    One row per record in batch order. Index columns are named
    ``<key>_vegetation`` and ``<key>_whole``.

    Args:
        records: Records from :func:`vegscan.batch.run_batch`.

    Returns:
        DataFrame with one row per image.

    Example:
        >>> df = records_to_dataframe(records)
        >>> df.loc[0, "ExG_whole"]
    """
    import pandas as pd

    rows: list[dict[str, Any]] = []
    for record in records:
        row: dict[str, Any] = {
            "filename": record.filename,
            "total_pixels": record.total_pixels,
            "vegetation_pixels": record.vegetation_pixels,
            "vegetation_coverage": record.vegetation_coverage,
            "threshold": record.result.threshold,
        }
        for key, value in record.vegetation_indices.items():
            row[f"{key}_vegetation"] = value
        for key, value in record.whole_indices.items():
            row[f"{key}_whole"] = value
        rows.append(row)
    return pd.DataFrame(rows)


def save_mask_png(mask: VegetationMask, path: str | Path) -> Path:
    """Write a vegetation mask as a black and white PNG.

    Args:
        mask: 2-D boolean mask, vegetation ``True``.
        path: Output file path (will be created/overwritten).

    Returns:
        Path object pointing to the written file.

    Raises:
        ValueError: If the mask is not two-dimensional or is empty.
    """
    import matplotlib

    matplotlib.use("Agg")  # Non-interactive backend for file output
    import matplotlib.pyplot as plt

    from vegscan.analysis.classify import binary_image

    path = Path(path)
    mask = np.asarray(mask, dtype=bool)
    if mask.ndim != 2 or mask.size == 0:
        msg = f"Mask must be a non-empty 2-D array, got shape {mask.shape}"
        raise ValueError(msg)

    plt.imsave(path, binary_image(mask), format="png")
    return path
