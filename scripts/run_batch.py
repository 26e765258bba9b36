#!/usr/bin/env python3
"""Analyse a set of images and write the vegetation CSV report.

Usage:
    python run_batch.py IMAGE [IMAGE ...] --output results.csv

Example:
    python run_batch.py plots/*.jpg --method exg --threshold 0.1 \\
        --indices ExG GLI VARI --masks masks/ --output plots.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Check imports before running
try:
    import vegscan as vs
except ImportError:
    print("Error: vegscan not installed. Run: pip install vegscan")
    sys.exit(1)

from vegscan.analysis.classify import vegetation_mask
from vegscan.export import csv_filename, write_csv
from vegscan.results import save_mask_png


def write_masks(
    paths: list[Path],
    records: list[vs.BatchRecord],
    mask_dir: Path,
) -> None:
    """Save a black and white mask PNG next to each analysed image name."""
    mask_dir.mkdir(parents=True, exist_ok=True)
    for path, record in zip(paths, records):
        pixels = vs.read_image(path)
        mask = vegetation_mask(pixels, record.result.threshold)
        out = save_mask_png(mask, mask_dir / f"{path.stem}_mask.png")
        print(f"  Mask: {out}")


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the batch and write outputs."""
    parser = argparse.ArgumentParser(
        description="Vegetation coverage and RGB indices for a batch of images"
    )
    parser.add_argument("images", nargs="+", type=Path, help="Image files")
    parser.add_argument(
        "--method",
        choices=[m.value for m in vs.ThresholdMethod],
        default=vs.ThresholdMethod.OTSU.value,
        help="Thresholding method (default: otsu)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Fixed ExG threshold in [-1, 1] for --method exg",
    )
    parser.add_argument(
        "--indices",
        nargs="+",
        default=None,
        metavar="KEY",
        help=f"Index keys to compute (default: all of {' '.join(vs.INDEX_KEYS)})",
    )
    parser.add_argument("--workers", type=int, default=1, help="Parallel images")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="CSV path or directory (default: dated file in the working dir)",
    )
    parser.add_argument("--masks", type=Path, default=None, help="Mask PNG directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings: dict[str, object] = {
        "threshold_method": args.method,
        "max_workers": args.workers,
    }
    if args.threshold is not None:
        settings["threshold_value"] = args.threshold
    if args.indices is not None:
        settings["indices"] = args.indices

    try:
        config = vs.Config(**settings)
    except ValueError as exc:
        print(f"Error: invalid options\n{exc}")
        return 2

    print(f"Analysing {len(args.images)} images ({config.threshold_method.value})...")
    try:
        records = vs.analyze_files(args.images, config)
    except vs.VegScanError as exc:
        print(f"Error: {exc}")
        return 1

    for record in records:
        print(
            f"  {record.filename}: {record.vegetation_coverage:.2f}% vegetation "
            f"({record.vegetation_pixels}/{record.total_pixels} px)"
        )

    output = args.output or Path(csv_filename())
    written = write_csv(
        output, records, config.indices, config.threshold_method, config.fixed_value
    )
    print(f"CSV report: {written}")

    if args.masks is not None:
        write_masks(args.images, records, args.masks)

    return 0


if __name__ == "__main__":
    sys.exit(main())
