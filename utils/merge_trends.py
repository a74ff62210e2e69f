#!/usr/bin/env python3
"""Merge yearly Google Trends CSVs for one procedure into a tidy CSV.

Usage:
    python utils/merge_trends.py botox ./data/botox ./data/botox_2010to2024.csv

Output columns:
    country,region,year,procedure,interest

Unresolved country names are listed at the end of the run. Add them once to
``tidy_trends/data/aliases.yml`` to have them mapped next time.
"""

import argparse
import sys
import time
from pathlib import Path

from logging_config import get_tqdm_logger
from logging_config import setup_tqdm_logging
from tidy_trends.merge import discover_sources
from tidy_trends.merge import merge_trends
from tidy_trends.merge import write_tidy_csv
from tidy_trends.validation import MergeError
from tidy_trends.validation import ValidationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge yearly Google Trends CSVs into a tidy CSV")
    parser.add_argument("procedure", help='Procedure tag used to find the value column, e.g. "botox"')
    parser.add_argument("input_dir", type=Path, help="Directory with yearly CSVs such as botox_2010.csv")
    parser.add_argument("output_csv", type=Path, help="Path of the merged tidy CSV")
    parser.add_argument("--workers", type=int, default=1, help="Files to process in parallel (default: 1)")
    parser.add_argument("--unresolved-out", type=Path, help="Also write unresolved names to this file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", help="Optional log file path")
    return parser


def write_unresolved(names, path: Path) -> None:
    """Write unresolved names, one per line, sorted."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as file:
        for name in sorted(names):
            file.write(f"{name}\n")


def main(argv=None) -> None:
    """Run the merge and report unresolved names."""
    args = build_parser().parse_args(argv)

    setup_tqdm_logging(level=args.log_level, log_file=args.log_file)
    logger = get_tqdm_logger("tidy_trends.cli")

    logger.info(f"🚀 Merging '{args.procedure}' trends from {args.input_dir}")
    start_time = time.time()

    try:
        sources = discover_sources(args.input_dir)
        if not sources:
            raise MergeError(f"No CSV files found in {args.input_dir}")

        result = merge_trends(args.procedure, sources, max_workers=args.workers)
        write_tidy_csv(result.rows, args.output_csv)
    except (MergeError, ValidationError) as e:
        logger.error(f"❌ Merge failed: {e}")
        sys.exit(1)

    logger.info(f"✅ Wrote {len(result.rows)} rows → {args.output_csv} in {time.time() - start_time:.2f}s")
    logger.info(result.report.summary())

    unresolved = sorted(result.unresolved)
    if unresolved:
        logger.warning("Unresolved names (add to aliases.yml if you want them mapped):")
        logger.warning(", ".join(unresolved))
    else:
        logger.info("All country names resolved to region codes ✅")

    if args.unresolved_out:
        write_unresolved(unresolved, args.unresolved_out)
        logger.info(f"Unresolved names written to {args.unresolved_out}")


if __name__ == "__main__":
    main()
