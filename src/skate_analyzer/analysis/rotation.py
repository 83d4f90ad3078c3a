"""Cumulative rotation tracking for circular angle signals.

Converts a wraparound orientation signal (shoulder line heading in [0, 360) or
(-180, 180]) into a signed, unbounded running total of rotation, using a
two-pass algorithm:

    Pass 1: sum the ±180°-wrapped frame deltas to find the dominant direction.
    Pass 2: re-accumulate raw deltas, folding any delta that runs against the
            dominant direction by more than the noise threshold into a
            continuation of the spin (±360°).

Reversals smaller than the noise threshold pass through unchanged, so small
landing wobble is kept rather than forced into the spin direction.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

from collections.abc import Sequence

from skate_analyzer.core.config import RotationSettings
from skate_analyzer.core.types import AngleSample, RotationDirection

FULL_TURN_DEG = 360.0
HALF_TURN_DEG = 180.0


def wrap_delta(diff: float) -> float:
    """Fold an angle difference into [-180, 180] with a single ±360° step."""
    if diff > HALF_TURN_DEG:
        return diff - FULL_TURN_DEG
    if diff < -HALF_TURN_DEG:
        return diff + FULL_TURN_DEG
    return diff


def dominant_direction(angles: Sequence[float]) -> tuple[RotationDirection, float]:
    """Classify the dominant rotation direction of a circular signal.

    Args:
        angles: Circular angle values in degrees, in time order

    Returns:
        Tuple of (direction, net wrapped rotation in degrees)
    """
    net = 0.0
    for previous, current in zip(angles, angles[1:]):
        net += wrap_delta(current - previous)

    if net > 0:
        return RotationDirection.CCW, net
    if net < 0:
        return RotationDirection.CW, net
    return RotationDirection.NONE, net


def direction_locked_delta(
    diff: float,
    direction: RotationDirection,
    noise_threshold: float,
) -> float:
    """Correct a raw frame delta toward the dominant direction.

    Args:
        diff: Raw (unwrapped) difference between consecutive angles
        direction: Dominant direction from the first pass
        noise_threshold: Largest counter-rotation accepted as jitter (degrees)

    Returns:
        Corrected delta in degrees
    """
    if direction is RotationDirection.CCW and diff < -noise_threshold:
        return diff + FULL_TURN_DEG
    if direction is RotationDirection.CW and diff > noise_threshold:
        return diff - FULL_TURN_DEG
    return diff


class CumulativeRotationTracker:
    """Two-pass direction-locked rotation accumulator.

    Stateless between calls: every ``track`` call works only on its input.
    """

    def __init__(self, settings: RotationSettings | None = None) -> None:
        """Initialize tracker with settings.

        Args:
            settings: Rotation parameters (uses defaults if None)
        """
        self.settings = settings or RotationSettings()

    @property
    def noise_threshold(self) -> float:
        """Counter-rotation magnitude treated as jitter (degrees)."""
        return self.settings.noise_threshold_deg

    def track(self, samples: Sequence[AngleSample]) -> list[AngleSample]:
        """Convert a circular angle series into cumulative rotation.

        Args:
            samples: Gap-free circular angle samples in time order

        Returns:
            Cumulative samples aligned with the input, starting at exactly 0.
            Empty when fewer than two samples are given.
        """
        if len(samples) < 2:
            return []

        angles = [s.angle for s in samples]
        direction, _ = dominant_direction(angles)

        cumulative: list[AngleSample] = [
            AngleSample(
                timestamp=samples[0].timestamp,
                frame_index=samples[0].frame_index,
                angle=0.0,
            )
        ]
        total = 0.0

        for i in range(1, len(samples)):
            diff = angles[i] - angles[i - 1]
            total += direction_locked_delta(diff, direction, self.noise_threshold)
            cumulative.append(
                AngleSample(
                    timestamp=samples[i].timestamp,
                    frame_index=samples[i].frame_index,
                    angle=total,
                )
            )

        return cumulative


def track_cumulative_rotation(
    samples: Sequence[AngleSample],
    settings: RotationSettings | None = None,
) -> list[AngleSample]:
    """Pure function form of ``CumulativeRotationTracker.track``."""
    return CumulativeRotationTracker(settings).track(samples)


def rotation_count(
    cumulative: Sequence[AngleSample],
    start_frame: int,
    end_frame: int,
) -> float | None:
    """Count revolutions completed between two frames.

    Uses the first sample at or after ``start_frame`` and the last sample at or
    before ``end_frame``.

    Args:
        cumulative: Cumulative rotation samples ordered by frame index
        start_frame: First analysis frame of the window
        end_frame: Last analysis frame of the window

    Returns:
        Revolutions as a float, or None if the window holds no usable pair
    """
    if len(cumulative) < 2:
        return None

    start = next((s for s in cumulative if s.frame_index >= start_frame), None)
    end = next((s for s in reversed(cumulative) if s.frame_index <= end_frame), None)

    if start is None or end is None or start.frame_index > end.frame_index:
        return None

    return abs(end.angle - start.angle) / FULL_TURN_DEG
