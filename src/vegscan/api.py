"""Top-level engine functions for vegscan.

Every function takes its choices as explicit arguments; ``analyze`` and
``analyze_files`` read them from a ``Config`` instead, falling back to
the module default set by ``vegscan.configure()``.

Example:
    >>> import vegscan as vs
    >>> tau = vs.compute_threshold(pixels, "otsu")
    >>> result = vs.analyze_image(pixels, tau, ["ExG", "VARI"])
    >>> print(f"Coverage: {result.vegetation_coverage:.2f}%")
    >>>
    >>> records = vs.run_batch([("a.png", a), ("b.png", b)], "exg", 0.1)
    >>> csv_bytes = vs.export_csv(records, None, "exg", 0.1)
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from vegscan._types import PixelBuffer
from vegscan.analysis.aggregate import aggregate
from vegscan.analysis.classify import classify_pixels
from vegscan.analysis.threshold import compute_threshold
from vegscan.batch import run_batch
from vegscan.config import Config, get_default_config
from vegscan.exceptions import BatchAbortedError, DecodeError
from vegscan.export import export_csv
from vegscan.reader import read_image
from vegscan.results import AnalysisResult, BatchRecord

__all__ = [
    "analyze",
    "analyze_files",
    "analyze_image",
    "compute_threshold",
    "export_csv",
    "run_batch",
]


def analyze_image(
    buffer: PixelBuffer,
    threshold: float,
    keys: Iterable[str] | None = None,
    *,
    chunk_size: int | None = None,
) -> AnalysisResult:
    """Classify an image at *threshold* and compute index means.

    Args:
        buffer: RGB(A) pixels, shape ``(H, W, C)`` or ``(N, C)``.
        threshold: ExG threshold on the normalised scale.
        keys: Index keys to compute, in reporting order. ``None`` selects
            every index.
        chunk_size: Pixels classified per step.

    Returns:
        ``AnalysisResult`` for the image.

    Raises:
        InvalidInputError: If the buffer is empty or malformed, or a key
            is unknown.
    """
    sums = classify_pixels(buffer, threshold, keys, chunk_size=chunk_size)
    return aggregate(sums, threshold)


def analyze(buffer: PixelBuffer, config: Config | None = None) -> AnalysisResult:
    """Threshold and analyse one image using *config*.

    Args:
        buffer: RGB(A) pixels.
        config: Settings to use; defaults to ``get_default_config()``.

    Returns:
        ``AnalysisResult`` for the image.

    Example:
        >>> result = analyze(pixels, Config(threshold_method="exg"))
    """
    cfg = config or get_default_config()
    threshold = compute_threshold(buffer, cfg.threshold_method, cfg.fixed_value)
    return analyze_image(buffer, threshold, cfg.indices, chunk_size=cfg.chunk_size)


def analyze_files(
    paths: Iterable[str | Path],
    config: Config | None = None,
) -> list[BatchRecord]:
    """Decode image files and analyse them as one batch.

    Files are read in order before analysis starts, so a file that cannot
    be decoded aborts the batch without analysing any image.

    Args:
        paths: Image files; each record is named after the file.
        config: Settings to use; defaults to ``get_default_config()``.

    Returns:
        One ``BatchRecord`` per file, in input order.

    Raises:
        BatchAbortedError: If a file cannot be decoded or analysed.
    """
    cfg = config or get_default_config()
    images: list[tuple[str, PixelBuffer]] = []
    for position, path in enumerate(paths):
        path = Path(path)
        try:
            images.append((path.name, read_image(path)))
        except DecodeError as exc:
            raise BatchAbortedError(
                what=f"Batch analysis aborted at {path.name!r}",
                cause=exc.what,
                fix=exc.fix,
                filename=path.name,
                index=position,
            ) from exc
    return run_batch(
        images,
        cfg.threshold_method,
        cfg.fixed_value,
        cfg.indices,
        max_workers=cfg.max_workers,
        chunk_size=cfg.chunk_size,
    )
