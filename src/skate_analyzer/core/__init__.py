"""Core infrastructure: config, types, exceptions, and logging."""

from skate_analyzer.core.config import Settings, get_settings
from skate_analyzer.core.exceptions import (
    AnalysisIncompleteError,
    AnalysisInProgressError,
    InvalidJumpWindowError,
    MetricsPreconditionError,
    MissingMarkersError,
    PoseEstimationError,
    SampleDataError,
    SkateAnalyzerError,
    VideoSourceError,
)
from skate_analyzer.core.logging import get_logger, role_logger, setup_logging
from skate_analyzer.core.types import (
    AngleChannel,
    AngleSample,
    DetectionResult,
    FrameLandmarks,
    JumpMarkers,
    JumpMetrics,
    Landmark,
    LandmarkIndex,
    PoseDetection,
    VideoFrame,
    VideoRole,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Landmark",
    "LandmarkIndex",
    "PoseDetection",
    "FrameLandmarks",
    "VideoFrame",
    "VideoRole",
    "AngleChannel",
    "AngleSample",
    "JumpMarkers",
    "JumpMetrics",
    "DetectionResult",
    # Exceptions
    "SkateAnalyzerError",
    "PoseEstimationError",
    "VideoSourceError",
    "AnalysisInProgressError",
    "MetricsPreconditionError",
    "AnalysisIncompleteError",
    "MissingMarkersError",
    "InvalidJumpWindowError",
    "SampleDataError",
    # Logging
    "setup_logging",
    "get_logger",
    "role_logger",
]
