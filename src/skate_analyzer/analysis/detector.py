"""Fallback takeoff/landing detection from landmark elevation signals.

Three independent detectors each propose a takeoff/landing pair with a
confidence; complete proposals are fused by confidence-weighted average and
the fused window is sanity-checked before use.

All heights are elevations (meters, positive up). MediaPipe world coordinates
have negative Y pointing up, so elevation is ``-y``.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.signals import (
    FloatArray,
    dynamic_threshold,
    gradient,
    moving_average,
    percentile,
    second_derivative,
)
from skate_analyzer.core.config import DetectionSettings
from skate_analyzer.core.exceptions import AnalysisIncompleteError
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import (
    DetectionCandidate,
    DetectionResult,
    JumpPhase,
    LandmarkIndex,
    LandmarkSet,
    get_landmark,
)

logger = get_logger(__name__)

# (confidence when complete, confidence when takeoff or landing is missing)
VELOCITY_CONFIDENCE = (0.8, 0.3)
ACCELERATION_CONFIDENCE = (0.7, 0.2)
GROUND_CONTACT_CONFIDENCE = (0.9, 0.4)

# Samples skipped before a velocity takeoff may be reported
VELOCITY_WARMUP_SAMPLES = 5
PRE_JUMP_OFFSET_SAMPLES = 5


def _mean_elevation(landmarks: LandmarkSet, *indices: LandmarkIndex) -> float | None:
    """Average elevation of the landmarks that are present."""
    values = [lm.y for idx in indices if (lm := get_landmark(landmarks, idx)) is not None]
    if not values:
        return None
    return -sum(values) / len(values)


@dataclass(frozen=True)
class JumpSignals:
    """Per-sample elevation signals over frames with usable world landmarks.

    Attributes:
        frame_indices: Analysis frame index of each sample
        timestamps: Video time of each sample (seconds)
        ankle: Mean ankle elevation
        hip: Mean hip elevation
        foot: Mean foot-tip elevation (falls back to ankles)
    """

    frame_indices: np.ndarray
    timestamps: FloatArray
    ankle: FloatArray
    hip: FloatArray
    foot: FloatArray

    def __len__(self) -> int:
        return int(self.frame_indices.size)

    @classmethod
    def from_analysis(cls, analysis: VideoAnalysis) -> JumpSignals:
        """Extract signals from every processed frame with world landmarks.

        Frames lacking ankles or hips are skipped.
        """
        indices: list[int] = []
        timestamps: list[float] = []
        ankle: list[float] = []
        hip: list[float] = []
        foot: list[float] = []

        for index, frame in analysis.valid_world_frames():
            world = frame.world_landmarks
            if world is None:
                continue

            ankle_e = _mean_elevation(world, LandmarkIndex.LEFT_ANKLE, LandmarkIndex.RIGHT_ANKLE)
            hip_e = _mean_elevation(world, LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP)
            if ankle_e is None or hip_e is None:
                continue
            foot_e = _mean_elevation(
                world, LandmarkIndex.LEFT_FOOT_INDEX, LandmarkIndex.RIGHT_FOOT_INDEX
            )

            indices.append(index)
            timestamps.append(frame.timestamp)
            ankle.append(ankle_e)
            hip.append(hip_e)
            foot.append(foot_e if foot_e is not None else ankle_e)

        return cls(
            frame_indices=np.asarray(indices, dtype=np.int64),
            timestamps=np.asarray(timestamps, dtype=np.float64),
            ankle=np.asarray(ankle, dtype=np.float64),
            hip=np.asarray(hip, dtype=np.float64),
            foot=np.asarray(foot, dtype=np.float64),
        )

    def smoothed(self, window_size: int) -> JumpSignals:
        """Copy with every elevation signal moving-averaged."""
        return JumpSignals(
            frame_indices=self.frame_indices,
            timestamps=self.timestamps,
            ankle=moving_average(self.ankle, window_size),
            hip=moving_average(self.hip, window_size),
            foot=moving_average(self.foot, window_size),
        )

    def position_of(self, frame_index: int) -> int:
        """Sample position whose frame index is closest to ``frame_index``."""
        pos = int(np.searchsorted(self.frame_indices, frame_index))
        if pos >= len(self):
            return len(self) - 1
        if pos > 0 and (
            frame_index - self.frame_indices[pos - 1] <= self.frame_indices[pos] - frame_index
        ):
            return pos - 1
        return pos


def _candidate(
    method: str,
    takeoff: int | None,
    landing: int | None,
    confidence: tuple[float, float],
) -> DetectionCandidate:
    complete = takeoff is not None and landing is not None
    return DetectionCandidate(
        method=method,
        takeoff_frame=takeoff,
        landing_frame=landing,
        confidence=confidence[0] if complete else confidence[1],
    )


def detect_by_velocity(
    signals: JumpSignals,
    velocities: FloatArray,
    settings: DetectionSettings,
) -> DetectionCandidate:
    """Sustained upward ankle velocity, then a fall that stops abruptly.

    The threshold is derived from the noise of the first
    ``baseline_samples`` velocities.
    """
    threshold = dynamic_threshold(
        velocities[: settings.baseline_samples], settings.velocity_std_multiplier
    )
    n = len(velocities)
    takeoff: int | None = None
    landing: int | None = None
    takeoff_pos = None

    for i in range(VELOCITY_WARMUP_SAMPLES, n - 3):
        if all(v > threshold for v in velocities[i : i + 3]):
            takeoff_pos = i
            takeoff = int(signals.frame_indices[i])
            break

    if takeoff_pos is not None:
        for i in range(takeoff_pos + settings.min_flight_samples, n - 2):
            if velocities[i] < -threshold and abs(velocities[i + 1]) < threshold * 0.5:
                landing = int(signals.frame_indices[i + 1])
                break

    return _candidate("velocity", takeoff, landing, VELOCITY_CONFIDENCE)


def detect_by_acceleration(
    signals: JumpSignals,
    accelerations: FloatArray,
    settings: DetectionSettings,
) -> DetectionCandidate:
    """Upward acceleration spikes at push-off and at landing impact."""
    threshold = dynamic_threshold(accelerations, settings.acceleration_std_multiplier)
    takeoff: int | None = None
    landing: int | None = None
    takeoff_pos = None

    for i, a in enumerate(accelerations):
        if a > threshold:
            takeoff_pos = i
            takeoff = int(signals.frame_indices[i])
            break

    if takeoff_pos is not None:
        for i in range(takeoff_pos + settings.min_flight_samples, len(accelerations)):
            if accelerations[i] > threshold:
                landing = int(signals.frame_indices[i])
                break

    return _candidate("acceleration", takeoff, landing, ACCELERATION_CONFIDENCE)


def detect_by_ground_contact(
    signals: JumpSignals,
    settings: DetectionSettings,
) -> DetectionCandidate:
    """Foot clearance above the estimated ice level.

    The ice level is a low percentile of foot elevation. A foot within
    ``contact_threshold_m`` of it is in contact. The first
    GROUNDED → AIRBORNE → LANDED cycle gives the window.
    """
    ground = percentile(signals.foot, settings.ground_percentile)
    phase = JumpPhase.GROUNDED
    takeoff: int | None = None
    landing: int | None = None

    # A takeoff needs a preceding contact sample
    in_contact_prev = bool(signals.foot[0] - ground < settings.contact_threshold_m)
    for i in range(1, len(signals)):
        in_contact = bool(signals.foot[i] - ground < settings.contact_threshold_m)

        if phase is JumpPhase.GROUNDED and in_contact_prev and not in_contact:
            phase = JumpPhase.AIRBORNE
            takeoff = int(signals.frame_indices[i])
        elif phase is JumpPhase.AIRBORNE and not in_contact_prev and in_contact:
            phase = JumpPhase.LANDED
            landing = int(signals.frame_indices[i])
            break

        in_contact_prev = in_contact

    return _candidate("ground_contact", takeoff, landing, GROUND_CONTACT_CONFIDENCE)


def fuse_candidates(candidates: Sequence[DetectionCandidate]) -> tuple[int, int] | None:
    """Confidence-weighted average of complete candidates.

    Returns:
        Tuple of (takeoff_frame, landing_frame) rounded half up, or None if
        no candidate found both events
    """
    complete = [c for c in candidates if c.is_complete and c.confidence > 0]
    if not complete:
        return None

    total_weight = sum(c.confidence for c in complete)
    takeoff = sum((c.takeoff_frame or 0) * c.confidence for c in complete) / total_weight
    landing = sum((c.landing_frame or 0) * c.confidence for c in complete) / total_weight
    return math.floor(takeoff + 0.5), math.floor(landing + 0.5)


def flight_time_confidence(flight_time: float) -> float:
    """Plausibility of a flight time for a figure skating jump."""
    if 0.3 <= flight_time <= 0.8:
        return 0.9
    if 0.2 <= flight_time <= 1.0:
        return 0.7
    return 0.5


def validate_detection(
    takeoff_frame: int,
    landing_frame: int,
    flight_time: float,
    signals: JumpSignals,
    settings: DetectionSettings | None = None,
) -> float | None:
    """Sanity-check a fused jump window.

    Args:
        takeoff_frame: Fused takeoff analysis frame index
        landing_frame: Fused landing analysis frame index
        flight_time: Seconds between the two frames
        signals: Smoothed signals the window was derived from
        settings: Flight time limits (uses defaults if None)

    Returns:
        Confidence of the window, or None if it is rejected
    """
    settings = settings or DetectionSettings()

    if flight_time < settings.min_flight_time_s:
        logger.debug("Rejected detection: flight time %.3fs too short", flight_time)
        return None
    if flight_time > settings.max_flight_time_s:
        logger.debug("Rejected detection: flight time %.3fs too long", flight_time)
        return None

    takeoff_pos = signals.position_of(takeoff_frame)
    landing_pos = signals.position_of(landing_frame)
    apex_pos = (takeoff_pos + landing_pos) // 2
    pre_pos = takeoff_pos - PRE_JUMP_OFFSET_SAMPLES if takeoff_pos > PRE_JUMP_OFFSET_SAMPLES else 0

    if signals.hip[apex_pos] <= signals.hip[pre_pos]:
        logger.debug("Rejected detection: no hip elevation gain during flight")
        return None

    return flight_time_confidence(flight_time)


class JumpDetector:
    """Estimates takeoff and landing when no markers are available."""

    def __init__(self, settings: DetectionSettings | None = None) -> None:
        """Initialize detector with settings.

        Args:
            settings: Detection parameters (uses defaults if None)
        """
        self.settings = settings or DetectionSettings()

    def candidates(self, signals: JumpSignals) -> list[DetectionCandidate]:
        """Run every detector over raw signals."""
        smoothed = signals.smoothed(self.settings.smoothing_window)
        velocities = gradient(smoothed.ankle, smoothed.timestamps)
        accelerations = second_derivative(signals.ankle, signals.timestamps)

        return [
            detect_by_velocity(smoothed, velocities, self.settings),
            detect_by_acceleration(smoothed, accelerations, self.settings),
            detect_by_ground_contact(smoothed, self.settings),
        ]

    def detect(self, analysis: VideoAnalysis) -> DetectionResult | None:
        """Detect the jump window of a completed analysis.

        Args:
            analysis: Completed frame store

        Returns:
            Validated detection with analysis frame indices, or None

        Raises:
            AnalysisIncompleteError: If the store is still being written
        """
        if not analysis.is_complete:
            raise AnalysisIncompleteError("Detection requires a completed analysis")

        signals = JumpSignals.from_analysis(analysis)
        if len(signals) < self.settings.min_samples:
            logger.debug("Not enough samples for detection (%d)", len(signals))
            return None

        candidates = self.candidates(signals)
        fused = fuse_candidates(candidates)
        if fused is None:
            logger.debug("No detector found a complete jump")
            return None

        takeoff, landing = fused
        flight_time = analysis.timestamp_of(landing) - analysis.timestamp_of(takeoff)
        confidence = validate_detection(
            takeoff,
            landing,
            flight_time,
            signals.smoothed(self.settings.smoothing_window),
            self.settings,
        )
        if confidence is None:
            return None

        logger.info(
            "Detected jump: frames %d-%d (%.2fs, confidence %.2f)",
            takeoff,
            landing,
            flight_time,
            confidence,
        )
        return DetectionResult(
            takeoff_frame=takeoff,
            landing_frame=landing,
            flight_time=flight_time,
            confidence=confidence,
            candidates=candidates,
        )


def detect_jump(
    analysis: VideoAnalysis,
    settings: DetectionSettings | None = None,
) -> DetectionResult | None:
    """Pure function form of ``JumpDetector.detect``."""
    return JumpDetector(settings).detect(analysis)
