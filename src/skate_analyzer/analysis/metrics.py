"""Jump window resolution and metric computation.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from skate_analyzer.analysis.angles import AngleExtractor
from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.rotation import rotation_count
from skate_analyzer.core.config import AngleSettings, RotationSettings
from skate_analyzer.core.exceptions import (
    AnalysisIncompleteError,
    InvalidJumpWindowError,
    MetricsPreconditionError,
    MissingMarkersError,
)
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import AngleChannel, AngleSample, JumpMarkers, JumpMetrics

logger = get_logger(__name__)

GRAVITY = 9.81  # m/s^2

Trend = Literal["better", "worse", "same"]


def frame_to_timestamp(frame_number: int, fps: float = 30.0) -> float:
    """Convert a 0-indexed frame number to seconds."""
    return frame_number / fps


def timestamp_to_frame(timestamp: float, fps: float = 30.0) -> int:
    """Convert seconds to the nearest 0-indexed frame number."""
    return round(timestamp * fps)


def jump_height(air_time: float) -> float | None:
    """Apex height of a symmetric vertical flight.

    Time to apex is half the air time, so ``h = ½·g·(t/2)² = g·t²/8``.

    Args:
        air_time: Flight duration in seconds

    Returns:
        Height in meters, or None for non-positive air time
    """
    if air_time <= 0:
        return None
    return GRAVITY * air_time * air_time / 8


class JumpMetricsEngine:
    """Computes the metric bundle for one marked jump.

    Inputs are a completed ``VideoAnalysis`` and takeoff/landing markers given
    at the marker source's frame rate. The engine keeps no state between
    calls, so the same inputs always give the same metrics.
    """

    def __init__(
        self,
        rotation_settings: RotationSettings | None = None,
        angle_settings: AngleSettings | None = None,
    ) -> None:
        """Initialize engine with settings.

        Args:
            rotation_settings: Rotation tracking and window padding parameters
            angle_settings: Used when angles must be extracted on demand
        """
        self.rotation_settings = rotation_settings or RotationSettings()
        self._extractor = AngleExtractor(angle_settings, self.rotation_settings)

    def resolve_window(
        self,
        analysis: VideoAnalysis,
        markers: JumpMarkers,
        marker_fps: float,
    ) -> tuple[int, int]:
        """Map marker frames onto analysis frame indices.

        Marker frame numbers are converted to seconds with the marker frame
        rate; the analysis frame closest to that time is chosen. A marker that
        only carries a precomputed time uses it directly.

        Returns:
            Tuple of (takeoff_index, landing_index)

        Raises:
            MissingMarkersError: If takeoff or landing is not set
            InvalidJumpWindowError: If takeoff does not precede landing
        """
        takeoff_time = _marker_time(markers.takeoff_frame, markers.takeoff_time, marker_fps)
        landing_time = _marker_time(markers.landing_frame, markers.landing_time, marker_fps)
        if takeoff_time is None or landing_time is None:
            raise MissingMarkersError()

        takeoff_idx = analysis.closest_frame_index(takeoff_time)
        landing_idx = analysis.closest_frame_index(landing_time)
        if takeoff_idx is None or landing_idx is None:
            raise MissingMarkersError("Analysis has no frames to place markers on")

        if takeoff_idx >= landing_idx:
            raise InvalidJumpWindowError(
                f"Takeoff frame {takeoff_idx} must precede landing frame {landing_idx}"
            )

        return takeoff_idx, landing_idx

    def compute(
        self,
        analysis: VideoAnalysis,
        markers: JumpMarkers,
        marker_fps: float = 30.0,
        angles: Mapping[AngleChannel, list[AngleSample]] | None = None,
    ) -> JumpMetrics:
        """Compute metrics for a marked jump.

        Args:
            analysis: Completed frame store
            markers: Takeoff/landing markers
            marker_fps: Frame rate the marker frame numbers refer to
            angles: Precomputed angle analysis (extracted if None)

        Returns:
            Metric bundle; rotations may be None when shoulder data is lacking

        Raises:
            AnalysisIncompleteError: If the analysis is not complete
            MissingMarkersError: If a marker is missing
            InvalidJumpWindowError: If takeoff does not precede landing
        """
        if not analysis.is_complete:
            raise AnalysisIncompleteError()

        takeoff_idx, landing_idx = self.resolve_window(analysis, markers, marker_fps)
        return self.compute_for_window(analysis, takeoff_idx, landing_idx, angles)

    def compute_for_window(
        self,
        analysis: VideoAnalysis,
        takeoff_idx: int,
        landing_idx: int,
        angles: Mapping[AngleChannel, list[AngleSample]] | None = None,
    ) -> JumpMetrics:
        """Compute metrics for analysis frame indices that are already resolved.

        Raises:
            AnalysisIncompleteError: If the analysis is not complete
            InvalidJumpWindowError: If the indices are out of order, out of range
                or land on unprocessed frames
        """
        if not analysis.is_complete:
            raise AnalysisIncompleteError()
        if not 0 <= takeoff_idx < landing_idx < analysis.total_frames:
            raise InvalidJumpWindowError(
                f"Invalid jump window {takeoff_idx}..{landing_idx} "
                f"for {analysis.total_frames} frames"
            )
        if not (analysis[takeoff_idx].processed and analysis[landing_idx].processed):
            raise InvalidJumpWindowError(
                f"Jump window {takeoff_idx}..{landing_idx} reaches unprocessed frames"
            )

        air_time = analysis.timestamp_of(landing_idx) - analysis.timestamp_of(takeoff_idx)

        if angles is None:
            angles = self._extractor.analyze(analysis)
        rotations = self._rotations(analysis, angles, takeoff_idx, landing_idx)

        return JumpMetrics(
            air_time=air_time,
            takeoff_frame=takeoff_idx,
            landing_frame=landing_idx,
            rotations=rotations,
            max_height=jump_height(air_time),
        )

    def compute_or_empty(
        self,
        analysis: VideoAnalysis,
        markers: JumpMarkers,
        marker_fps: float = 30.0,
        angles: Mapping[AngleChannel, list[AngleSample]] | None = None,
    ) -> JumpMetrics:
        """Like ``compute`` but returns empty metrics on a precondition failure."""
        try:
            return self.compute(analysis, markers, marker_fps, angles)
        except MetricsPreconditionError as e:
            logger.info("Metrics unavailable: %s", e)
            return JumpMetrics.empty()

    def _rotations(
        self,
        analysis: VideoAnalysis,
        angles: Mapping[AngleChannel, list[AngleSample]],
        takeoff_idx: int,
        landing_idx: int,
    ) -> float | None:
        """Rotation count over the padded jump window."""
        cumulative = angles.get(AngleChannel.SHOULDER_CUMULATIVE_ROTATION, [])
        if not cumulative:
            return None

        # Rotation starts slightly before the marked takeoff and settles after landing
        padding = self.rotation_settings.window_padding_frames
        start = max(0, takeoff_idx - padding)
        end = min(analysis.last_processed_index or 0, landing_idx + padding)
        return rotation_count(cumulative, start, end)


def _marker_time(frame: int | None, time: float | None, fps: float) -> float | None:
    if frame is not None:
        return frame_to_timestamp(frame, fps)
    return time


@dataclass(frozen=True)
class MetricDelta:
    """One metric compared between the reference and user jumps."""

    reference: float | None
    user: float | None
    difference: float | None
    trend: Trend | None


@dataclass(frozen=True)
class MetricsComparison:
    """User jump compared against the reference jump."""

    air_time: MetricDelta
    rotations: MetricDelta
    height: MetricDelta


def _compare(reference: float | None, user: float | None, tolerance: float) -> MetricDelta:
    if reference is None or user is None:
        return MetricDelta(reference=reference, user=user, difference=None, trend=None)

    difference = user - reference
    trend: Trend
    if difference > tolerance:
        trend = "better"
    elif difference < -tolerance:
        trend = "worse"
    else:
        trend = "same"
    return MetricDelta(reference=reference, user=user, difference=difference, trend=trend)


def compare_metrics(reference: JumpMetrics, user: JumpMetrics) -> MetricsComparison:
    """Compare user metrics against reference metrics.

    Differences within 0.05 s of air time, 0.1 revolutions, or 2 cm of height
    are reported as ``same``.
    """
    return MetricsComparison(
        air_time=_compare(reference.air_time, user.air_time, 0.05),
        rotations=_compare(reference.rotations, user.rotations, 0.1),
        height=_compare(reference.max_height, user.max_height, 0.02),
    )
