"""Pytest fixtures for Skate Analyzer tests."""

from __future__ import annotations

import pytest
from skeletons import build_analysis, flight_elevation, make_world_landmarks

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.core.config import (
    AngleSettings,
    DetectionSettings,
    RotationSettings,
    Settings,
)


@pytest.fixture
def settings() -> Settings:
    """Fresh settings, bypassing the cached instance."""
    return Settings()


@pytest.fixture
def rotation_settings() -> RotationSettings:
    """Default rotation settings."""
    return RotationSettings()


@pytest.fixture
def angle_settings() -> AngleSettings:
    """Default angle settings."""
    return AngleSettings()


@pytest.fixture
def detection_settings() -> DetectionSettings:
    """Default detection settings."""
    return DetectionSettings()


@pytest.fixture
def standing_analysis() -> VideoAnalysis:
    """60 frames of a skater standing still, facing forward."""
    return build_analysis([make_world_landmarks() for _ in range(60)])


@pytest.fixture
def spinning_analysis() -> VideoAnalysis:
    """60 frames with the shoulders turning 36° CCW per frame."""
    return build_analysis(
        [make_world_landmarks(shoulder_heading=(i * 36.0) % 360.0) for i in range(60)]
    )


@pytest.fixture
def jump_analysis() -> VideoAnalysis:
    """90 frames: standing, a 0.5s jump leaving at frame 50, standing."""
    return build_analysis(
        [make_world_landmarks(elevation=flight_elevation(i, 50, 65)) for i in range(90)]
    )
