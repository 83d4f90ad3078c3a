"""Tests for the two-video analysis session."""

from __future__ import annotations

import pytest
from skeletons import build_analysis, make_world_landmarks

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.core.config import AnalysisSettings, DetectionSettings, Settings
from skate_analyzer.core.types import AngleChannel, JumpMarkers, JumpMetrics, VideoRole
from skate_analyzer.pipeline.session import AnalysisSession


class TestSessionState:
    """Tests for attaching analyses."""

    def test_empty_session(self, settings: Settings) -> None:
        """A new session has nothing to report."""
        session = AnalysisSession(settings)

        assert not session.has_valid_analysis()
        assert session.progress == 0.0
        assert session.metrics_for(VideoRole.USER) == JumpMetrics.empty()
        assert session.angles_for(VideoRole.USER) is None

    def test_valid_once_both_complete(
        self,
        settings: Settings,
        standing_analysis: VideoAnalysis,
        spinning_analysis: VideoAnalysis,
    ) -> None:
        """Both roles need completed analyses."""
        session = AnalysisSession(settings)
        session.set_analysis(VideoRole.REFERENCE, standing_analysis)

        assert not session.has_valid_analysis()
        assert session.progress == pytest.approx(0.5)

        session.set_analysis(VideoRole.USER, spinning_analysis)
        assert session.has_valid_analysis()
        assert session.progress == pytest.approx(1.0)

    def test_incomplete_analysis(self, settings: Settings) -> None:
        """Nothing is derived from a store still being written."""
        analysis = build_analysis([make_world_landmarks() for _ in range(30)], complete=False)
        session = AnalysisSession(settings)
        metrics = session.set_analysis(VideoRole.USER, analysis)

        assert metrics == JumpMetrics.empty()
        assert session.angles_for(VideoRole.USER) is None
        assert session.angle_series(VideoRole.USER, AngleChannel.SHOULDER_ROTATION) is None

    def test_replacing_analysis_drops_cached_angles(
        self,
        settings: Settings,
        standing_analysis: VideoAnalysis,
        spinning_analysis: VideoAnalysis,
    ) -> None:
        """Angles follow the currently attached analysis."""
        session = AnalysisSession(settings)
        session.set_analysis(VideoRole.USER, spinning_analysis)
        spinning = session.angle_series(VideoRole.USER, AngleChannel.SHOULDER_CUMULATIVE_ROTATION)

        session.set_analysis(VideoRole.USER, standing_analysis)
        standing = session.angle_series(VideoRole.USER, AngleChannel.SHOULDER_CUMULATIVE_ROTATION)

        assert spinning is not None and standing is not None
        assert spinning[-1].angle == pytest.approx(59 * 36.0)
        assert standing[-1].angle == pytest.approx(0.0)

    def test_clear(self, settings: Settings, spinning_analysis: VideoAnalysis) -> None:
        """Clearing drops everything."""
        session = AnalysisSession(settings)
        session.set_analysis(VideoRole.USER, spinning_analysis)
        session.set_markers(VideoRole.USER, JumpMarkers(takeoff_frame=10, landing_frame=40))
        session.clear()

        assert session.analysis_for(VideoRole.USER) is None
        assert session.markers_for(VideoRole.USER) is None
        assert session.metrics_for(VideoRole.USER) == JumpMetrics.empty()


class TestSessionMetrics:
    """Tests for metric recomputation."""

    def test_markers_drive_metrics(
        self, settings: Settings, spinning_analysis: VideoAnalysis
    ) -> None:
        """Setting markers recomputes metrics for that role."""
        session = AnalysisSession(settings)
        session.set_analysis(VideoRole.USER, spinning_analysis)
        markers = JumpMarkers(takeoff_frame=10, landing_frame=40)
        metrics = session.set_markers(VideoRole.USER, markers)

        assert metrics.rotations == pytest.approx(3.4)
        assert session.metrics_for(VideoRole.USER) == metrics
        assert session.markers_for(VideoRole.USER) == markers
        assert session.detection_for(VideoRole.USER) is None

    def test_markers_before_analysis(
        self, settings: Settings, spinning_analysis: VideoAnalysis
    ) -> None:
        """Markers set early are applied once the analysis arrives."""
        session = AnalysisSession(settings)
        assert session.set_markers(
            VideoRole.USER, JumpMarkers(takeoff_frame=10, landing_frame=40)
        ) == JumpMetrics.empty()

        metrics = session.set_analysis(VideoRole.USER, spinning_analysis)
        assert metrics.air_time == pytest.approx(1.0)

    def test_default_marker_rate(self, spinning_analysis: VideoAnalysis) -> None:
        """Marker frames default to the configured marker rate."""
        session = AnalysisSession(Settings(analysis=AnalysisSettings(marker_fps=60.0)))
        session.set_analysis(VideoRole.USER, spinning_analysis)
        markers = JumpMarkers(takeoff_frame=20, landing_frame=80)
        metrics = session.set_markers(VideoRole.USER, markers)

        assert (metrics.takeoff_frame, metrics.landing_frame) == (10, 40)

    def test_invalid_markers_give_empty_metrics(
        self, settings: Settings, spinning_analysis: VideoAnalysis
    ) -> None:
        """Precondition failures are not raised to the caller."""
        session = AnalysisSession(settings)
        session.set_analysis(VideoRole.USER, spinning_analysis)
        metrics = session.set_markers(
            VideoRole.USER, JumpMarkers(takeoff_frame=40, landing_frame=10)
        )
        assert metrics == JumpMetrics.empty()

    def test_auto_detection_fallback(
        self, settings: Settings, jump_analysis: VideoAnalysis
    ) -> None:
        """Without markers the detected window is used."""
        session = AnalysisSession(settings)
        metrics = session.set_analysis(VideoRole.USER, jump_analysis)
        detection = session.detection_for(VideoRole.USER)

        assert detection is not None
        assert metrics.takeoff_frame == detection.takeoff_frame
        assert metrics.landing_frame == detection.landing_frame
        assert metrics.air_time == pytest.approx(detection.flight_time)
        assert metrics.max_height is not None

    def test_markers_take_precedence(
        self, settings: Settings, jump_analysis: VideoAnalysis
    ) -> None:
        """Markers replace the detected window; clearing restores it."""
        session = AnalysisSession(settings)
        detected = session.set_analysis(VideoRole.USER, jump_analysis)

        markers = JumpMarkers(takeoff_frame=40, landing_frame=70)
        marked = session.set_markers(VideoRole.USER, markers)
        assert (marked.takeoff_frame, marked.landing_frame) == (40, 70)
        assert session.detection_for(VideoRole.USER) is None

        restored = session.clear_markers(VideoRole.USER)
        assert restored == detected

    def test_detection_disabled(self, jump_analysis: VideoAnalysis) -> None:
        """With detection off, no markers means no metrics."""
        session = AnalysisSession(Settings(detection=DetectionSettings(enabled=False)))
        metrics = session.set_analysis(VideoRole.USER, jump_analysis)

        assert metrics == JumpMetrics.empty()
        assert session.detection_for(VideoRole.USER) is None

    def test_no_jump_detected(self, settings: Settings, standing_analysis: VideoAnalysis) -> None:
        """A video without a jump has empty metrics."""
        session = AnalysisSession(settings)
        assert session.set_analysis(VideoRole.USER, standing_analysis) == JumpMetrics.empty()

    def test_comparison(self, settings: Settings, spinning_analysis: VideoAnalysis) -> None:
        """User metrics are compared against the reference."""
        session = AnalysisSession(settings)
        for role in VideoRole:
            session.set_analysis(role, spinning_analysis)
        session.set_markers(VideoRole.REFERENCE, JumpMarkers(takeoff_frame=10, landing_frame=40))
        session.set_markers(VideoRole.USER, JumpMarkers(takeoff_frame=10, landing_frame=30))

        comparison = session.comparison()
        assert comparison.air_time.trend == "worse"
        assert comparison.rotations.difference == pytest.approx(-1.0)
        assert comparison.height.trend == "worse"
