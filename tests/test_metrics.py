"""Tests for jump metric computation and comparison."""

from __future__ import annotations

import pytest
from skeletons import build_analysis, make_world_landmarks

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.metrics import (
    JumpMetricsEngine,
    compare_metrics,
    frame_to_timestamp,
    jump_height,
    timestamp_to_frame,
)
from skate_analyzer.core.config import RotationSettings
from skate_analyzer.core.exceptions import (
    AnalysisIncompleteError,
    InvalidJumpWindowError,
    MissingMarkersError,
)
from skate_analyzer.core.types import JumpMarkers, JumpMetrics, LandmarkIndex


class TestConversions:
    """Tests for frame/time helpers and the height formula."""

    def test_frame_to_timestamp(self) -> None:
        """Frame numbers convert at the given rate."""
        assert frame_to_timestamp(45, 30.0) == pytest.approx(1.5)
        assert frame_to_timestamp(45, 60.0) == pytest.approx(0.75)

    def test_timestamp_to_frame(self) -> None:
        """Times convert to the nearest frame."""
        assert timestamp_to_frame(1.5, 30.0) == 45
        assert timestamp_to_frame(0.52, 10.0) == 5

    def test_jump_height(self) -> None:
        """One second of flight reaches g/8 meters."""
        assert jump_height(1.0) == pytest.approx(1.22625, abs=1e-9)
        assert jump_height(0.5) == pytest.approx(0.30656, abs=1e-5)

    def test_jump_height_non_positive(self) -> None:
        """No flight, no height."""
        assert jump_height(0.0) is None
        assert jump_height(-0.2) is None


class TestJumpMetricsEngine:
    """Tests for computing metrics from a marked window."""

    def test_spinning_jump(self, spinning_analysis: VideoAnalysis) -> None:
        """Air time, rotations and height for a marked 1s window."""
        markers = JumpMarkers(takeoff_frame=10, landing_frame=40)
        metrics = JumpMetricsEngine().compute(spinning_analysis, markers, marker_fps=30.0)

        assert metrics.takeoff_frame == 10
        assert metrics.landing_frame == 40
        assert metrics.air_time == pytest.approx(1.0)
        # Padded window 8..42 covers 34 steps of 36°
        assert metrics.rotations == pytest.approx(3.4)
        assert metrics.max_height == pytest.approx(1.22625)

    def test_padding_setting(self, spinning_analysis: VideoAnalysis) -> None:
        """Without padding only the marked window counts."""
        engine = JumpMetricsEngine(RotationSettings(window_padding_frames=0))
        metrics = engine.compute(spinning_analysis, JumpMarkers(takeoff_frame=10, landing_frame=40))
        assert metrics.rotations == pytest.approx(3.0)

    def test_marker_rate_differs_from_analysis(self, spinning_analysis: VideoAnalysis) -> None:
        """Markers at 60 fps resolve to the same analysis frames."""
        markers = JumpMarkers(takeoff_frame=20, landing_frame=80)
        metrics = JumpMetricsEngine().compute(spinning_analysis, markers, marker_fps=60.0)

        assert metrics.takeoff_frame == 10
        assert metrics.landing_frame == 40
        assert metrics.air_time == pytest.approx(1.0)

    def test_time_only_markers(self, spinning_analysis: VideoAnalysis) -> None:
        """Markers may carry only a time."""
        markers = JumpMarkers(takeoff_time=10 / 30, landing_time=40 / 30)
        metrics = JumpMetricsEngine().compute(spinning_analysis, markers)
        assert (metrics.takeoff_frame, metrics.landing_frame) == (10, 40)

    def test_frame_takes_precedence_over_time(self, spinning_analysis: VideoAnalysis) -> None:
        """A marker frame number wins over a stale time."""
        markers = JumpMarkers(
            takeoff_frame=10, takeoff_time=0.0, landing_frame=40, landing_time=0.0
        )
        window = JumpMetricsEngine().resolve_window(spinning_analysis, markers, 30.0)
        assert window == (10, 40)

    def test_equal_markers_rejected(self, spinning_analysis: VideoAnalysis) -> None:
        """Takeoff must come strictly before landing."""
        with pytest.raises(InvalidJumpWindowError):
            JumpMetricsEngine().compute(
                spinning_analysis, JumpMarkers(takeoff_frame=20, landing_frame=20)
            )

    def test_reversed_markers_rejected(self, spinning_analysis: VideoAnalysis) -> None:
        """Landing before takeoff is invalid."""
        with pytest.raises(InvalidJumpWindowError):
            JumpMetricsEngine().compute(
                spinning_analysis, JumpMarkers(takeoff_frame=40, landing_frame=10)
            )

    def test_missing_marker(self, spinning_analysis: VideoAnalysis) -> None:
        """Both markers are required."""
        with pytest.raises(MissingMarkersError):
            JumpMetricsEngine().compute(spinning_analysis, JumpMarkers(takeoff_frame=10))

    def test_incomplete_analysis(self) -> None:
        """Metrics need a completed store."""
        analysis = build_analysis([make_world_landmarks() for _ in range(30)], complete=False)
        with pytest.raises(AnalysisIncompleteError):
            JumpMetricsEngine().compute(analysis, JumpMarkers(takeoff_frame=5, landing_frame=20))

    def test_window_out_of_range(self, spinning_analysis: VideoAnalysis) -> None:
        """Resolved indices must lie inside the store."""
        with pytest.raises(InvalidJumpWindowError):
            JumpMetricsEngine().compute_for_window(spinning_analysis, 10, 60)

    def test_compute_or_empty(self, spinning_analysis: VideoAnalysis) -> None:
        """Precondition failures yield empty metrics."""
        metrics = JumpMetricsEngine().compute_or_empty(spinning_analysis, JumpMarkers())
        assert metrics == JumpMetrics.empty()

    def test_no_shoulders_no_rotations(self) -> None:
        """Air time and height survive when rotation cannot be measured."""
        shoulders = (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER)
        analysis = build_analysis([make_world_landmarks(missing=shoulders) for _ in range(30)])
        metrics = JumpMetricsEngine().compute(
            analysis, JumpMarkers(takeoff_frame=5, landing_frame=20)
        )

        assert metrics.rotations is None
        assert metrics.air_time == pytest.approx(0.5)
        assert metrics.max_height is not None

    def test_idempotent(self, spinning_analysis: VideoAnalysis) -> None:
        """The same inputs always give the same metrics."""
        engine = JumpMetricsEngine()
        markers = JumpMarkers(takeoff_frame=10, landing_frame=40)
        assert engine.compute(spinning_analysis, markers) == engine.compute(
            spinning_analysis, markers
        )


class TestJumpMetrics:
    """Tests for the metric bundle and markers."""

    def test_display(self) -> None:
        """Values are formatted for humans."""
        display = JumpMetrics(air_time=0.5, rotations=3.4, max_height=0.30656).display()
        assert display == {"air_time": "0.50s", "rotations": "3.4", "height": "31cm"}

    def test_display_absent(self) -> None:
        """Absent values show as dashes."""
        assert set(JumpMetrics.empty().display().values()) == {"--"}

    def test_to_dict(self) -> None:
        """Serialization uses camelCase keys."""
        data = JumpMetrics(air_time=0.5, takeoff_frame=3, landing_frame=18).to_dict()
        assert data["airTime"] == 0.5
        assert data["takeoffFrame"] == 3
        assert data["maxHeight"] is None

    def test_markers_complete(self) -> None:
        """Markers are complete once both events are located."""
        assert not JumpMarkers(takeoff_frame=3).is_complete
        assert JumpMarkers(takeoff_frame=3, landing_time=0.6).is_complete
        assert JumpMarkers.from_frames(15, 30, 30.0).landing_time == pytest.approx(1.0)


class TestCompareMetrics:
    """Tests for reference/user comparison."""

    def test_trends(self) -> None:
        """Differences beyond the tolerance have a direction."""
        reference = JumpMetrics(air_time=0.5, rotations=3.0, max_height=0.3)
        user = JumpMetrics(air_time=0.6, rotations=2.95, max_height=0.2)
        comparison = compare_metrics(reference, user)

        assert comparison.air_time.trend == "better"
        assert comparison.air_time.difference == pytest.approx(0.1)
        assert comparison.rotations.trend == "same"
        assert comparison.height.trend == "worse"

    def test_missing_value(self) -> None:
        """A metric absent on either side has no trend."""
        comparison = compare_metrics(JumpMetrics(air_time=0.5), JumpMetrics.empty())
        assert comparison.air_time.reference == 0.5
        assert comparison.air_time.difference is None
        assert comparison.air_time.trend is None
