"""CSV export of batch results.

Layout, header first::

    Filename,Total Pixels,Vegetation Pixels,Vegetation Coverage (%),
    Threshold Method,Threshold Value,<Name> (Vegetation)...,<Name> (Whole)...

Fields are joined with ``,`` and rows with ``\\n``, with no quoting and
no trailing newline. Index display names are comma-free, and filenames
are written verbatim.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from pathlib import Path

from vegscan._types import ThresholdMethod
from vegscan.analysis.threshold import (
    DEFAULT_FIXED_THRESHOLD,
    parse_method,
    validate_fixed_threshold,
)
from vegscan.exceptions import InvalidInputError
from vegscan.indices import INDICES, resolve_index_keys
from vegscan.results import BatchRecord

logger = logging.getLogger(__name__)

_FIXED_COLUMNS: tuple[str, ...] = (
    "Filename",
    "Total Pixels",
    "Vegetation Pixels",
    "Vegetation Coverage (%)",
    "Threshold Method",
    "Threshold Value",
)
_AUTO_THRESHOLD_TEXT = "auto"
_FIELD_SEP = ","
_ROW_SEP = "\n"
# Enough digits to quantize any float without overflowing the context.
_DECIMAL_PRECISION = 400


def _format_number(value: float, decimals: int) -> str:
    """Fixed-point text; non-finite values as ``NaN``/``Infinity``.

    Ties on the exact binary value round away from zero, and zero is
    never signed, so ``0.03125`` gives ``0.0313`` and ``-0.0`` gives
    ``0.0000`` at four decimals.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        value = 0.0
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        rounded = Decimal(value).quantize(
            Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP
        )
    return f"{rounded:f}"


def header_row(keys: Sequence[str]) -> list[str]:
    """Column names for the selected *keys*, vegetation block first."""
    names = [INDICES[key].name for key in keys]
    return [
        *_FIXED_COLUMNS,
        *(f"{name} (Vegetation)" for name in names),
        *(f"{name} (Whole)" for name in names),
    ]


def _record_row(
    record: BatchRecord,
    keys: Sequence[str],
    method_text: str,
    threshold_text: str,
) -> list[str]:
    missing = [k for k in keys if k not in record.whole_indices]
    missing += [
        k for k in keys if k not in record.vegetation_indices and k not in missing
    ]
    if missing:
        raise InvalidInputError(
            what=f"Cannot export record {record.filename!r}",
            cause=f"Missing index values for: {', '.join(missing)}",
            fix="Export with the same index keys the batch was run with",
        )
    return [
        record.filename,
        str(record.total_pixels),
        str(record.vegetation_pixels),
        _format_number(record.vegetation_coverage, 2),
        method_text,
        threshold_text,
        *(_format_number(record.vegetation_indices[k], 4) for k in keys),
        *(_format_number(record.whole_indices[k], 4) for k in keys),
    ]


def export_csv(
    records: Sequence[BatchRecord],
    keys: Iterable[str] | None,
    method: ThresholdMethod | str,
    fixed_value: float | None = None,
) -> bytes:
    """Serialise batch records to CSV.

    Args:
        records: Records in the order rows should appear.
        keys: Index keys to export, in column order. ``None`` exports
            every index in registry order.
        method: Threshold method the batch ran with.
        fixed_value: Fixed threshold for ``"exg"``; ignored for ``"otsu"``.

    Returns:
        UTF-8 encoded CSV document.

    Raises:
        InvalidInputError: If a key is unknown, a record lacks a selected
            key, or the fixed threshold is out of range.

    Example:
        >>> export_csv([], ["ExG"], "otsu").decode().split(",")[-1]
        'Excess Green Index (Whole)'
    """
    selected = resolve_index_keys(keys)
    threshold_method = parse_method(method)
    if threshold_method is ThresholdMethod.OTSU:
        threshold_text = _AUTO_THRESHOLD_TEXT
    else:
        value = DEFAULT_FIXED_THRESHOLD if fixed_value is None else fixed_value
        threshold_text = _format_number(validate_fixed_threshold(value), 3)

    rows = [header_row(selected)]
    rows.extend(
        _record_row(record, selected, threshold_method.value, threshold_text)
        for record in records
    )
    text = _ROW_SEP.join(_FIELD_SEP.join(row) for row in rows)
    return text.encode("utf-8")


def csv_filename(today: date | None = None) -> str:
    """Date-stamped download name, e.g. ``vegetation_analysis_2024-05-01.csv``."""
    today = today or date.today()
    return f"vegetation_analysis_{today.isoformat()}.csv"


def write_csv(
    path: str | Path,
    records: Sequence[BatchRecord],
    keys: Iterable[str] | None,
    method: ThresholdMethod | str,
    fixed_value: float | None = None,
) -> Path:
    """Build the CSV document and write it to *path*.

    The document is fully built before the file is opened, so an export
    error never leaves a partial file behind. A directory *path* gets a
    :func:`csv_filename` inside it.

    Returns:
        Path of the written file.
    """
    payload = export_csv(records, keys, method, fixed_value)
    path = Path(path)
    if path.is_dir():
        path = path / csv_filename()
    path.write_bytes(payload)
    logger.info("Wrote %d rows to %s", len(records), path)
    return path
