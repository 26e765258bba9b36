"""Batch analysis over an ordered list of images.

Every image is thresholded, classified and aggregated on its own; no
state is shared between images. With ``max_workers > 1`` images run on
a thread pool, and each result is written to the slot of its input
position so output order always matches input order. The run is
fail-fast: the first failure aborts the batch and nothing is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from vegscan._types import NamedBuffer, PixelBuffer, ThresholdMethod
from vegscan.analysis.aggregate import aggregate
from vegscan.analysis.classify import classify_pixels
from vegscan.analysis.threshold import (
    compute_threshold,
    parse_method,
    validate_fixed_threshold,
)
from vegscan.exceptions import BatchAbortedError
from vegscan.indices import resolve_index_keys
from vegscan.results import AnalysisResult, BatchRecord

logger = logging.getLogger(__name__)


def _analyze_one(
    buffer: PixelBuffer,
    method: ThresholdMethod,
    fixed_value: float | None,
    keys: tuple[str, ...],
    chunk_size: int | None,
) -> AnalysisResult:
    threshold = compute_threshold(buffer, method, fixed_value)
    sums = classify_pixels(buffer, threshold, keys, chunk_size=chunk_size)
    return aggregate(sums, threshold)


def _abort(filename: str, position: int, exc: BaseException) -> BatchAbortedError:
    logger.error("Batch aborted at %s (image %d): %s", filename, position + 1, exc)
    return BatchAbortedError(
        what=f"Batch analysis aborted at {filename!r}",
        cause=f"{type(exc).__name__}: {exc}",
        fix="Fix or remove the failing image and run the batch again",
        filename=filename,
        index=position,
    )


def run_batch(
    images: Iterable[NamedBuffer],
    method: ThresholdMethod | str,
    fixed_value: float | None = None,
    keys: Iterable[str] | None = None,
    *,
    max_workers: int = 1,
    chunk_size: int | None = None,
) -> list[BatchRecord]:
    """Analyse ``(filename, pixels)`` pairs and collect one record each.

    Args:
        images: Images in the order their records should appear.
        method: ``"otsu"`` or ``"exg"``; applied to each image separately.
        fixed_value: Threshold for ``"exg"``.
        keys: Index keys to compute, in reporting order. ``None`` selects
            every index.
        max_workers: Images analysed concurrently. 1 runs sequentially.
        chunk_size: Passed to the pixel classifier.

    Returns:
        One ``BatchRecord`` per image, in input order.

    Raises:
        InvalidInputError: If the method, threshold or index selection is
            invalid (checked before any image is processed).
        BatchAbortedError: If any image fails; the original exception is
            chained as ``__cause__``.

    Example:
        >>> records = run_batch([("a.png", pixels)], "otsu", keys=["ExG"])
        >>> records[0].filename
        'a.png'
    """
    threshold_method = parse_method(method)
    selected = resolve_index_keys(keys)
    if threshold_method is ThresholdMethod.EXG and fixed_value is not None:
        fixed_value = validate_fixed_threshold(fixed_value)
    items = list(images)
    slots: list[AnalysisResult | None] = [None] * len(items)

    logger.info(
        "Analysing %d images (method=%s, workers=%d)",
        len(items),
        threshold_method.value,
        max_workers,
    )

    if max_workers <= 1:
        for position, (filename, buffer) in enumerate(items):
            try:
                slots[position] = _analyze_one(
                    buffer, threshold_method, fixed_value, selected, chunk_size
                )
            except Exception as exc:
                raise _abort(filename, position, exc) from exc
            logger.info("Analysed %s (%d/%d)", filename, position + 1, len(items))
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {
                pool.submit(
                    _analyze_one,
                    buffer,
                    threshold_method,
                    fixed_value,
                    selected,
                    chunk_size,
                ): position
                for position, (_, buffer) in enumerate(items)
            }
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            # Report the earliest failing image, not the first to fail.
            # Running images finish before their outcome is read.
            for future, position in futures.items():
                if future.cancelled():
                    continue
                exc = future.exception()
                if exc is not None:
                    raise _abort(items[position][0], position, exc) from exc
                slots[position] = future.result()
                logger.info("Analysed %s", items[position][0])

    return [
        BatchRecord(filename=filename, result=result)
        for (filename, _), result in zip(items, slots)
        if result is not None
    ]
