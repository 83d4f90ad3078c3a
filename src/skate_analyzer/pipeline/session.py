"""Per-comparison analysis state: stores, markers, angles, and metrics."""

from __future__ import annotations

import threading

from skate_analyzer.analysis.angles import AngleExtractor
from skate_analyzer.analysis.detector import JumpDetector
from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.metrics import JumpMetricsEngine, MetricsComparison, compare_metrics
from skate_analyzer.core.config import Settings, get_settings
from skate_analyzer.core.exceptions import MetricsPreconditionError
from skate_analyzer.core.logging import get_logger, role_logger
from skate_analyzer.core.types import (
    AngleAnalysis,
    AngleChannel,
    AngleSample,
    DetectionResult,
    JumpMarkers,
    JumpMetrics,
    VideoRole,
)

logger = get_logger(__name__)


class AnalysisSession:
    """Holds the reference and user analyses of one comparison.

    Metrics for a role are recomputed whenever its analysis or markers change.
    A recompute builds the new metrics completely before publishing them, so
    readers never see a half-updated bundle.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        detector: JumpDetector | None = None,
    ) -> None:
        """Initialize an empty session.

        Args:
            settings: Application settings (uses cached settings if None)
            detector: Fallback detector used when a role has no markers
        """
        self.settings = settings or get_settings()
        self._engine = JumpMetricsEngine(self.settings.rotation, self.settings.angles)
        self._extractor = AngleExtractor(self.settings.angles, self.settings.rotation)
        self._detector = detector or JumpDetector(self.settings.detection)
        self._lock = threading.Lock()

        self._analyses: dict[VideoRole, VideoAnalysis] = {}
        self._markers: dict[VideoRole, tuple[JumpMarkers, float]] = {}
        self._angles: dict[VideoRole, AngleAnalysis] = {}
        self._metrics: dict[VideoRole, JumpMetrics] = {}
        self._detections: dict[VideoRole, DetectionResult] = {}

    @property
    def progress(self) -> float:
        """Combined analysis progress of both videos [0, 1]."""
        total = 0.0
        for role in VideoRole:
            analysis = self._analyses.get(role)
            if analysis is not None:
                total += 1.0 if analysis.is_complete else analysis.progress
        return total / len(VideoRole)

    def has_valid_analysis(self) -> bool:
        """Both videos have completed analyses."""
        return all(
            role in self._analyses and self._analyses[role].is_complete for role in VideoRole
        )

    def set_analysis(self, role: VideoRole, analysis: VideoAnalysis) -> JumpMetrics:
        """Attach an analysis to a role, replacing any previous one.

        Returns:
            Metrics recomputed for the role
        """
        with self._lock:
            self._analyses[role] = analysis
            self._angles.pop(role, None)
        return self.refresh_metrics(role)

    def analysis_for(self, role: VideoRole) -> VideoAnalysis | None:
        """Analysis attached to a role."""
        return self._analyses.get(role)

    def set_markers(
        self,
        role: VideoRole,
        markers: JumpMarkers,
        marker_fps: float | None = None,
    ) -> JumpMetrics:
        """Set takeoff/landing markers for a role.

        Args:
            role: Which video the markers belong to
            markers: Takeoff/landing markers
            marker_fps: Frame rate of the marker frame numbers
                (``analysis.marker_fps`` setting if None)

        Returns:
            Metrics recomputed for the role
        """
        fps = marker_fps if marker_fps is not None else self.settings.analysis.marker_fps
        with self._lock:
            self._markers[role] = (markers, fps)
        return self.refresh_metrics(role)

    def clear_markers(self, role: VideoRole) -> JumpMetrics:
        """Remove a role's markers; metrics fall back to auto-detection."""
        with self._lock:
            self._markers.pop(role, None)
        return self.refresh_metrics(role)

    def markers_for(self, role: VideoRole) -> JumpMarkers | None:
        """Markers set for a role."""
        entry = self._markers.get(role)
        return entry[0] if entry is not None else None

    def angles_for(self, role: VideoRole) -> AngleAnalysis | None:
        """Angle analysis for a role, computed on first request.

        Returns:
            Channel series, or None while the role's analysis is missing or
            incomplete
        """
        cached = self._angles.get(role)
        if cached is not None:
            return cached

        analysis = self._analyses.get(role)
        if analysis is None or not analysis.is_complete:
            return None

        angles = self._extractor.analyze(analysis)
        unreliable = self._extractor.unreliable_channels(analysis)
        if unreliable:
            role_logger(logger, role.value).warning(
                "Unreliable channels: %s",
                ", ".join(channel.value for channel in unreliable),
            )

        with self._lock:
            if self._analyses.get(role) is analysis:
                self._angles[role] = angles
        return angles

    def angle_series(self, role: VideoRole, channel: AngleChannel) -> list[AngleSample] | None:
        """One channel of a role's angle analysis."""
        angles = self.angles_for(role)
        if angles is None:
            return None
        return angles.get(channel, [])

    def detection_for(self, role: VideoRole) -> DetectionResult | None:
        """Auto-detected jump window used for a role's current metrics."""
        return self._detections.get(role)

    def refresh_metrics(self, role: VideoRole) -> JumpMetrics:
        """Recompute metrics for a role from its analysis and markers.

        Markers take precedence; without them the fallback detector is used
        when detection is enabled. Any precondition failure yields empty
        metrics.
        """
        analysis = self._analyses.get(role)
        detection: DetectionResult | None = None

        if analysis is None or not analysis.is_complete:
            metrics = JumpMetrics.empty()
        else:
            angles = self.angles_for(role)
            entry = self._markers.get(role)
            if entry is not None:
                markers, marker_fps = entry
                metrics = self._engine.compute_or_empty(analysis, markers, marker_fps, angles)
            elif self.settings.detection.enabled:
                detection = self._detector.detect(analysis)
                metrics = self._metrics_from_detection(analysis, detection, angles)
            else:
                metrics = JumpMetrics.empty()

        with self._lock:
            self._metrics[role] = metrics
            if detection is not None:
                self._detections[role] = detection
            else:
                self._detections.pop(role, None)

        role_logger(logger, role.value).debug("Metrics: %s", metrics.display())
        return metrics

    def _metrics_from_detection(
        self,
        analysis: VideoAnalysis,
        detection: DetectionResult | None,
        angles: AngleAnalysis | None,
    ) -> JumpMetrics:
        if detection is None:
            return JumpMetrics.empty()
        try:
            return self._engine.compute_for_window(
                analysis, detection.takeoff_frame, detection.landing_frame, angles
            )
        except MetricsPreconditionError as e:
            logger.info("Detected window unusable: %s", e)
            return JumpMetrics.empty()

    def metrics_for(self, role: VideoRole) -> JumpMetrics:
        """Latest metrics for a role (empty when none computed)."""
        return self._metrics.get(role, JumpMetrics.empty())

    def comparison(self) -> MetricsComparison:
        """User metrics compared against reference metrics."""
        return compare_metrics(
            self.metrics_for(VideoRole.REFERENCE),
            self.metrics_for(VideoRole.USER),
        )

    def clear(self) -> None:
        """Drop all analyses, markers, and derived data."""
        with self._lock:
            self._analyses.clear()
            self._markers.clear()
            self._angles.clear()
            self._metrics.clear()
            self._detections.clear()
