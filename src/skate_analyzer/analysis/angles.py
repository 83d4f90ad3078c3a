"""Biomechanical angle extraction from world-space landmarks.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.rotation import CumulativeRotationTracker
from skate_analyzer.core.config import AngleSettings, RotationSettings
from skate_analyzer.core.exceptions import AnalysisIncompleteError
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import (
    AngleChannel,
    AngleSample,
    Landmark,
    LandmarkIndex,
    LandmarkSet,
    get_landmark,
)

logger = get_logger(__name__)

Vector = NDArray[np.float64]

# MediaPipe world coordinates: +X toward the subject's left, -Y up, Z depth
VERTICAL_UP: Vector = np.array([0.0, -1.0, 0.0])
HORIZONTAL: Vector = np.array([1.0, 0.0, 0.0])


def angle_between(a: Vector, b: Vector) -> float | None:
    """Angle between two vectors in degrees.

    Returns:
        Angle in [0, 180], or None if either vector has zero length
    """
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return None

    cosine = float(np.dot(a, b)) / (norm_a * norm_b)
    cosine = max(-1.0, min(1.0, cosine))
    return math.degrees(math.acos(cosine))


def joint_angle(proximal: Landmark, pivot: Landmark, distal: Landmark) -> float | None:
    """Raw angle at ``pivot`` between the proximal and distal segments."""
    a = proximal.as_array() - pivot.as_array()
    b = distal.as_array() - pivot.as_array()
    return angle_between(a, b)


def knee_flexion(hip: Landmark, knee: Landmark, ankle: Landmark) -> float | None:
    """Knee flexion with 0° at full extension.

    A straight leg puts the thigh and shin vectors nearly antiparallel (~180°
    raw), so flexion is ``180 - raw``, floored at zero.
    """
    raw = joint_angle(hip, knee, ankle)
    if raw is None:
        return None
    return max(0.0, 180.0 - raw)


def hip_flexion(shoulder: Landmark, hip: Landmark, knee: Landmark) -> float | None:
    """Angle between torso (hip→shoulder) and thigh (hip→knee)."""
    return joint_angle(shoulder, hip, knee)


def head_hip_alignment(nose: Landmark, left_hip: Landmark, right_hip: Landmark) -> float | None:
    """Deviation of the hip-center→nose line from vertical."""
    hip_center = (left_hip.as_array() + right_hip.as_array()) / 2
    return angle_between(nose.as_array() - hip_center, VERTICAL_UP)


def line_to_horizontal(left: Landmark, right: Landmark) -> float | None:
    """Angle between a left→right landmark line and the world horizontal."""
    return angle_between(right.as_array() - left.as_array(), HORIZONTAL)


def shoulder_rotation(left_shoulder: Landmark, right_shoulder: Landmark) -> float:
    """Heading of the shoulder line about the vertical axis, in [0, 360).

    Projects the shoulder vector onto the transverse (X-Z) plane. The result is
    circular; consumers must handle the 360°→0° wrap.
    """
    dx = right_shoulder.x - left_shoulder.x
    dz = right_shoulder.z - left_shoulder.z
    heading = math.degrees(math.atan2(dz, dx))
    if heading < 0:
        heading += 360.0
    # atan2 can round to exactly 360 for tiny negative angles
    return heading % 360.0


@dataclass(frozen=True)
class ChannelSpec:
    """Landmarks a channel needs and how to turn them into an angle."""

    landmarks: tuple[LandmarkIndex, ...]
    compute: Callable[..., float | None]


CHANNEL_SPECS: dict[AngleChannel, ChannelSpec] = {
    AngleChannel.LEFT_KNEE_FLEXION: ChannelSpec(
        (LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE, LandmarkIndex.LEFT_ANKLE),
        knee_flexion,
    ),
    AngleChannel.RIGHT_KNEE_FLEXION: ChannelSpec(
        (LandmarkIndex.RIGHT_HIP, LandmarkIndex.RIGHT_KNEE, LandmarkIndex.RIGHT_ANKLE),
        knee_flexion,
    ),
    AngleChannel.HIP_FLEXION: ChannelSpec(
        (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE),
        hip_flexion,
    ),
    AngleChannel.HEAD_HIP_ALIGNMENT: ChannelSpec(
        (LandmarkIndex.NOSE, LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP),
        head_hip_alignment,
    ),
    AngleChannel.WEIGHT_BEARING_HIP_ANGLE: ChannelSpec(
        (LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP),
        line_to_horizontal,
    ),
    AngleChannel.SHOULDER_ANGLE_TO_ICE: ChannelSpec(
        (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER),
        line_to_horizontal,
    ),
    AngleChannel.SHOULDER_ROTATION: ChannelSpec(
        (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER),
        shoulder_rotation,
    ),
}


CIRCULAR_CHANNELS = frozenset({AngleChannel.SHOULDER_ROTATION})


def extract_frame_angles(world_landmarks: LandmarkSet) -> dict[AngleChannel, float]:
    """Compute every angle channel available for one frame.

    A channel is omitted (never zero-filled) when any of its landmarks is
    missing or its geometry is degenerate.

    Args:
        world_landmarks: 33-point world landmark set, entries may be None

    Returns:
        Mapping of channel to angle in degrees
    """
    angles: dict[AngleChannel, float] = {}

    for channel, definition in CHANNEL_SPECS.items():
        points = [get_landmark(world_landmarks, idx) for idx in definition.landmarks]
        if any(p is None for p in points):
            continue

        value = definition.compute(*points)
        if value is not None and math.isfinite(value):
            angles[channel] = value

    return angles


def fill_gaps(
    samples: Sequence[AngleSample],
    timeline: Sequence[tuple[int, float]],
    tolerance: float = 0.01,
    circular: bool = False,
) -> list[AngleSample]:
    """Resample an angle series onto a complete frame timeline.

    Frames with a raw sample within ``tolerance`` seconds keep it; other frames
    get a linear interpolation between the nearest earlier and later samples,
    clamped to the first/last value outside the series range.

    Args:
        samples: Raw samples in time order
        timeline: ``(frame_index, timestamp)`` pairs to populate
        tolerance: Timestamp match tolerance in seconds
        circular: Interpolate along the shorter arc of a [0, 360) signal

    Returns:
        One sample per timeline entry, or an empty list if ``samples`` is empty
    """
    if not samples:
        return []

    times = np.array([s.timestamp for s in samples], dtype=np.float64)
    values = np.array([s.angle for s in samples], dtype=np.float64)
    if circular:
        interp_values = np.degrees(np.unwrap(np.radians(values)))
    else:
        interp_values = values

    filled: list[AngleSample] = []
    for frame_index, timestamp in timeline:
        pos = int(np.searchsorted(times, timestamp))
        neighbours = [i for i in (pos - 1, pos) if 0 <= i < len(times)]
        nearest = min(neighbours, key=lambda i: abs(times[i] - timestamp))

        if abs(times[nearest] - timestamp) < tolerance:
            angle = float(values[nearest])
        else:
            angle = float(np.interp(timestamp, times, interp_values))
            if circular:
                angle %= 360.0

        filled.append(AngleSample(timestamp=timestamp, frame_index=frame_index, angle=angle))

    return filled


def smooth_series(samples: Sequence[AngleSample], window: int = 3) -> list[AngleSample]:
    """Centered moving average of a (non-circular) angle series."""
    if window < 2 or len(samples) < window:
        return list(samples)

    half = window // 2
    smoothed: list[AngleSample] = []
    for i, sample in enumerate(samples):
        chunk = samples[max(0, i - half) : min(len(samples), i + half + 1)]
        mean = sum(s.angle for s in chunk) / len(chunk)
        smoothed.append(
            AngleSample(timestamp=sample.timestamp, frame_index=sample.frame_index, angle=mean)
        )
    return smoothed


class AngleExtractor:
    """Builds gap-filled angle series for a completed video analysis."""

    def __init__(
        self,
        settings: AngleSettings | None = None,
        rotation_settings: RotationSettings | None = None,
    ) -> None:
        """Initialize extractor with settings.

        Args:
            settings: Angle extraction parameters (uses defaults if None)
            rotation_settings: Parameters for the cumulative rotation channel
        """
        self.settings = settings or AngleSettings()
        self._tracker = CumulativeRotationTracker(rotation_settings)

    def analyze(self, analysis: VideoAnalysis) -> dict[AngleChannel, list[AngleSample]]:
        """Compute every angle channel over the processed frame timeline.

        Args:
            analysis: Completed frame store

        Returns:
            Mapping of channel to gap-filled samples, including the cumulative
            shoulder rotation derived from ``SHOULDER_ROTATION``. Non-circular
            channels are smoothed over ``smoothing_window`` frames.

        Raises:
            AnalysisIncompleteError: If the store is still being written
        """
        if not analysis.is_complete:
            raise AnalysisIncompleteError("Angles require a completed analysis")

        valid_frames = analysis.valid_world_frames()
        timeline = [(index, frame.timestamp) for index, frame in valid_frames]

        raw: dict[AngleChannel, list[AngleSample]] = {channel: [] for channel in CHANNEL_SPECS}
        for index, frame in valid_frames:
            if frame.world_landmarks is None:
                continue
            for channel, angle in extract_frame_angles(frame.world_landmarks).items():
                raw[channel].append(
                    AngleSample(timestamp=frame.timestamp, frame_index=index, angle=angle)
                )

        result: dict[AngleChannel, list[AngleSample]] = {
            channel: fill_gaps(
                samples,
                timeline,
                self.settings.timestamp_tolerance_s,
                circular=channel in CIRCULAR_CHANNELS,
            )
            for channel, samples in raw.items()
        }
        # Averaging across the 360° wrap would corrupt circular channels
        for channel, samples in result.items():
            if channel not in CIRCULAR_CHANNELS:
                result[channel] = smooth_series(samples, self.settings.smoothing_window)
        result[AngleChannel.SHOULDER_CUMULATIVE_ROTATION] = self._tracker.track(
            result[AngleChannel.SHOULDER_ROTATION]
        )

        logger.debug(
            "Extracted angles over %d frames (%d with shoulder rotation)",
            len(timeline),
            len(raw[AngleChannel.SHOULDER_ROTATION]),
        )
        return result

    def unreliable_channels(self, analysis: VideoAnalysis) -> list[AngleChannel]:
        """Channels whose landmarks are missing in too many processed frames.

        Reported for downstream consumers; extraction itself is not blocked.
        """
        unreliable: list[AngleChannel] = []
        for channel, definition in CHANNEL_SPECS.items():
            missing = 1.0 - analysis.landmark_coverage(definition.landmarks)
            if missing > self.settings.reliability_threshold:
                unreliable.append(channel)

        if AngleChannel.SHOULDER_ROTATION in unreliable:
            unreliable.append(AngleChannel.SHOULDER_CUMULATIVE_ROTATION)
        return unreliable


def analyze_angles(
    analysis: VideoAnalysis,
    settings: AngleSettings | None = None,
    rotation_settings: RotationSettings | None = None,
) -> dict[AngleChannel, list[AngleSample]]:
    """Pure function form of ``AngleExtractor.analyze``."""
    return AngleExtractor(settings, rotation_settings).analyze(analysis)
