#!/usr/bin/env python3
"""Validate rotation counting against pre-extracted skeleton data.

Run the metrics engine over skeleton JSON files whose rotation count is
known and report measured vs expected rotations.
"""

from __future__ import annotations

import argparse
import csv
import sys
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from skate_analyzer.analysis.metrics import JumpMetricsEngine
from skate_analyzer.core.config import get_settings
from skate_analyzer.core.exceptions import MetricsPreconditionError, SampleDataError
from skate_analyzer.core.logging import get_logger, setup_logging
from skate_analyzer.pipeline.samples import SkeletonSample, load_skeleton_data

logger = get_logger(__name__)


@dataclass
class RotationResult:
    """Rotation measurement for one sample."""

    name: str
    air_time_s: float | None
    measured_rotations: float | None
    expected_rotations: float | None

    @property
    def error(self) -> float | None:
        if self.measured_rotations is None or self.expected_rotations is None:
            return None
        return self.measured_rotations - self.expected_rotations


def measure_sample(sample: SkeletonSample, engine: JumpMetricsEngine) -> RotationResult:
    """Compute metrics for one sample using its own markers."""
    try:
        metrics = engine.compute(sample.analysis, sample.markers, sample.marker_fps)
    except MetricsPreconditionError as e:
        logger.warning("%s: %s", sample.name, e)
        return RotationResult(sample.name, None, None, sample.expected_rotations)

    return RotationResult(
        name=sample.name,
        air_time_s=metrics.air_time,
        measured_rotations=metrics.rotations,
        expected_rotations=sample.expected_rotations,
    )


def collect_paths(inputs: list[Path]) -> list[Path]:
    """Expand directories into the JSON files they contain."""
    paths: list[Path] = []
    for item in inputs:
        if item.is_dir():
            paths.extend(sorted(item.glob("*.json")))
        else:
            paths.append(item)
    return paths


def print_results(results: list[RotationResult]) -> None:
    """Print validation results to console."""
    print("\n" + "=" * 64)
    print("ROTATION VALIDATION")
    print("=" * 64)
    print(f"{'Sample':<28} {'Air time':<10} {'Measured':<10} {'Expected':<10} {'Error':<8}")
    print("-" * 64)

    for r in results:
        air_str = f"{r.air_time_s:.3f}s" if r.air_time_s is not None else "N/A"
        measured_str = f"{r.measured_rotations:.2f}" if r.measured_rotations is not None else "N/A"
        expected_str = f"{r.expected_rotations:.2f}" if r.expected_rotations is not None else "N/A"
        error_str = f"{r.error:+.2f}" if r.error is not None else "N/A"
        print(f"{r.name:<28} {air_str:<10} {measured_str:<10} {expected_str:<10} {error_str:<8}")

    errors = [abs(r.error) for r in results if r.error is not None]
    if errors:
        print("-" * 64)
        print(f"Mean absolute error: {np.mean(errors):.3f} rev")
        print(f"Max error:           {max(errors):.3f} rev")


def write_csv(results: list[RotationResult], path: Path) -> None:
    """Write results to CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["sample", "air_time_s", "measured_rotations", "expected_rotations"])
        for r in results:
            writer.writerow([r.name, r.air_time_s, r.measured_rotations, r.expected_rotations])
    logger.info("Results saved to %s", path)


def main() -> int:
    """Run rotation validation script."""
    parser = argparse.ArgumentParser(description="Validate rotation counts on skeleton data")
    parser.add_argument(
        "inputs",
        type=Path,
        nargs="+",
        help="Skeleton JSON files or directories containing them",
    )
    parser.add_argument(
        "--noise-threshold",
        type=float,
        help="Counter-rotation noise threshold in degrees",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output CSV for results",
    )

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.file)

    rotation_settings = settings.rotation
    if args.noise_threshold is not None:
        rotation_settings = rotation_settings.model_copy(
            update={"noise_threshold_deg": args.noise_threshold}
        )
    engine = JumpMetricsEngine(rotation_settings, settings.angles)

    results: list[RotationResult] = []
    for path in collect_paths(args.inputs):
        try:
            sample = load_skeleton_data(path)
        except SampleDataError as e:
            logger.error("%s", e)
            continue
        results.append(measure_sample(sample, engine))

    if not results:
        logger.warning("No skeleton samples loaded")
        return 1

    print_results(results)

    if args.output:
        write_csv(results, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
