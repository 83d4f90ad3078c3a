"""Core data types and structures."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class Landmark:
    """A single body landmark with 3D coordinates and optional visibility.

    Screen-space landmarks are normalized [0, 1] relative to frame dimensions.
    World-space landmarks are in meters around the hip midpoint, with negative
    Y pointing up.
    """

    x: float
    y: float
    z: float
    visibility: float | None = None

    def as_array(self) -> NDArray[np.float64]:
        """Coordinates as a float64 vector (x, y, z)."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)


class LandmarkIndex(Enum):
    """MediaPipe pose landmark indices (33-point topology)."""

    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


LANDMARK_COUNT = len(LandmarkIndex)

# A per-frame landmark set; individual entries may be missing
LandmarkSet = Sequence[Landmark | None]


def get_landmark(landmarks: LandmarkSet, index: LandmarkIndex) -> Landmark | None:
    """Look up a landmark, tolerating short or sparse landmark sets."""
    if index.value >= len(landmarks):
        return None
    return landmarks[index.value]


@dataclass(frozen=True, slots=True)
class PoseDetection:
    """One pose detector result with screen-space and world-space landmarks."""

    landmarks: tuple[Landmark | None, ...]
    world_landmarks: tuple[Landmark | None, ...] | None = None


class VideoRole(Enum):
    """Which of the two compared videos an analysis belongs to."""

    REFERENCE = "reference"
    USER = "user"


@dataclass(slots=True)
class FrameLandmarks:
    """Pose data stored for one analysis frame.

    Attributes:
        timestamp: Video time in seconds
        landmarks: Screen-space landmarks (None if no pose was detected)
        world_landmarks: World-space landmarks (None if unavailable)
        processed: Whether the analysis loop has visited this frame
    """

    timestamp: float
    landmarks: tuple[Landmark | None, ...] | None = None
    world_landmarks: tuple[Landmark | None, ...] | None = None
    processed: bool = False

    @property
    def has_world_landmarks(self) -> bool:
        """True when the frame carries usable world-space data."""
        return self.processed and self.world_landmarks is not None


@dataclass(frozen=True, slots=True)
class VideoFrame:
    """A decoded video frame handed to the pose detector.

    Attributes:
        image: BGR image array (OpenCV format)
        timestamp: Position in the video in seconds
        index: Decoded frame sequence number
    """

    image: NDArray[np.uint8]
    timestamp: float
    index: int


@dataclass(frozen=True, slots=True)
class AngleSample:
    """One angle value on an analysis frame."""

    timestamp: float
    frame_index: int
    angle: float


class AngleChannel(str, Enum):
    """Named biomechanical angle series."""

    LEFT_KNEE_FLEXION = "left_knee_flexion"
    RIGHT_KNEE_FLEXION = "right_knee_flexion"
    HIP_FLEXION = "hip_flexion"
    HEAD_HIP_ALIGNMENT = "head_hip_alignment"
    WEIGHT_BEARING_HIP_ANGLE = "weight_bearing_hip_angle"
    SHOULDER_ANGLE_TO_ICE = "shoulder_angle_to_ice"
    SHOULDER_ROTATION = "shoulder_rotation"
    SHOULDER_CUMULATIVE_ROTATION = "shoulder_cumulative_rotation"


AngleAnalysis = Mapping[AngleChannel, list[AngleSample]]


class RotationDirection(Enum):
    """Dominant rotation direction viewed from above."""

    CCW = auto()
    CW = auto()
    NONE = auto()


class JumpPhase(Enum):
    """States of the ground-contact state machine."""

    GROUNDED = auto()
    AIRBORNE = auto()
    LANDED = auto()


@dataclass(frozen=True, slots=True)
class JumpMarkers:
    """Takeoff/landing markers for one video.

    Frame numbers are expressed at the marker source's own frame rate, which
    may differ from the analysis sampling rate.
    """

    takeoff_frame: int | None = None
    takeoff_time: float | None = None
    landing_frame: int | None = None
    landing_time: float | None = None

    @property
    def is_complete(self) -> bool:
        """Both takeoff and landing are located by frame or time."""
        has_takeoff = self.takeoff_frame is not None or self.takeoff_time is not None
        has_landing = self.landing_frame is not None or self.landing_time is not None
        return has_takeoff and has_landing

    @classmethod
    def from_frames(cls, takeoff_frame: int, landing_frame: int, fps: float) -> JumpMarkers:
        """Build markers from frame numbers, precomputing their timestamps."""
        return cls(
            takeoff_frame=takeoff_frame,
            takeoff_time=takeoff_frame / fps,
            landing_frame=landing_frame,
            landing_time=landing_frame / fps,
        )


@dataclass(frozen=True, slots=True)
class JumpMetrics:
    """Metric bundle for one jump. Every field is independently optional.

    Attributes:
        air_time: Seconds between takeoff and landing
        takeoff_frame: Analysis frame index at takeoff
        landing_frame: Analysis frame index at landing
        rotations: Revolutions completed in the air
        max_height: Apex height in meters from flight time
    """

    air_time: float | None = None
    takeoff_frame: int | None = None
    landing_frame: int | None = None
    rotations: float | None = None
    max_height: float | None = None

    @classmethod
    def empty(cls) -> JumpMetrics:
        """All-absent metrics."""
        return cls()

    def to_dict(self) -> dict[str, float | int | None]:
        """Serialize to the camelCase output contract used by presentation layers."""
        return {
            "airTime": self.air_time,
            "takeoffFrame": self.takeoff_frame,
            "landingFrame": self.landing_frame,
            "rotations": self.rotations,
            "maxHeight": self.max_height,
        }

    def display(self) -> dict[str, str]:
        """Human-readable values, with ``--`` for anything absent."""
        return {
            "air_time": "--" if self.air_time is None else f"{self.air_time:.2f}s",
            "rotations": "--" if self.rotations is None else f"{self.rotations:.1f}",
            "height": "--" if self.max_height is None else f"{self.max_height * 100:.0f}cm",
        }


@dataclass(slots=True)
class DetectionCandidate:
    """Takeoff/landing estimate from a single detection method."""

    method: str
    takeoff_frame: int | None
    landing_frame: int | None
    confidence: float

    @property
    def is_complete(self) -> bool:
        """Both takeoff and landing were found."""
        return self.takeoff_frame is not None and self.landing_frame is not None


@dataclass(slots=True)
class DetectionResult:
    """Validated, fused takeoff/landing detection.

    Attributes:
        takeoff_frame: Analysis frame index of takeoff
        landing_frame: Analysis frame index of landing
        flight_time: Seconds between the two frames
        confidence: Confidence from the flight-time band [0, 1]
        candidates: Per-method estimates that went into the fusion
    """

    takeoff_frame: int
    landing_frame: int
    flight_time: float
    confidence: float
    candidates: list[DetectionCandidate] = field(default_factory=list)

    def to_markers(self, fps: float) -> JumpMarkers:
        """Express the detection as markers at the analysis frame rate."""
        return JumpMarkers.from_frames(self.takeoff_frame, self.landing_frame, fps)
