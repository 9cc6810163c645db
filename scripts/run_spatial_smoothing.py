#!/usr/bin/env python
"""Smooth a pixel table with spatial kernels using a reproducible YAML config.

Usage:
    python scripts/run_spatial_smoothing.py --config configs/smoothing.template.yaml
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys


# Ensure local package import works when the script is executed directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from spatial_kernels.pipeline import run_smoothing_from_config


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run reproducible spatial smoothing pipeline")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to YAML config file (configs/*.yaml)",
    )
    parser.add_argument(
        "--limit-points",
        type=int,
        default=None,
        help="Optional debug limit: keep this many pixels nearest a seeded random anchor",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug messages from the kernel routines",
    )
    return parser


def main() -> None:
    args = _build_arg_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    run_dir = run_smoothing_from_config(
        config_path=args.config,
        limit_points=args.limit_points,
    )

    summary_path = run_dir / "summary.json"
    with summary_path.open("r", encoding="utf-8") as handle:
        summary = json.load(handle)

    print(f"Smoothing run complete: {run_dir}")
    print(
        "Summary:",
        {
            "n_points": summary["n_points"],
            "neighbors_mean": summary["neighbors_mean"],
            "isolated_point_count": summary["isolated_point_count"],
            "n_centers": summary["n_centers"],
        },
    )


if __name__ == "__main__":
    main()
