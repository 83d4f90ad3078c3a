"""Video analysis loop: sample frames, run pose detection, fill the frame store."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Protocol

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.core.config import AnalysisSettings, PoseSettings
from skate_analyzer.core.exceptions import AnalysisInProgressError, PoseEstimationError
from skate_analyzer.core.logging import RoleLoggerAdapter, get_logger, role_logger
from skate_analyzer.core.types import PoseDetection, VideoFrame, VideoRole

logger = get_logger(__name__)

# Absorbs rounding in container timestamps when comparing against 1/fps
_SAMPLING_EPSILON_S = 1e-6

ProgressCallback = Callable[[VideoRole, float], None]


class PoseDetector(Protocol):
    """Anything that turns a frame into landmarks."""

    def detect(self, frame: VideoFrame) -> PoseDetection | None: ...


class FrameSource(Protocol):
    """A finite, time-ordered source of decoded frames."""

    @property
    def duration(self) -> float: ...

    def frames(self) -> Iterable[VideoFrame]: ...


class VideoAnalyzer:
    """Runs pose detection over whole videos at a fixed sampling rate.

    One analysis pass runs at a time. Passes are cancelled cooperatively: the
    flag is checked before each frame, and a cancelled pass leaves its store
    incomplete.
    """

    def __init__(
        self,
        detector: PoseDetector | None = None,
        settings: AnalysisSettings | None = None,
        pose_settings: PoseSettings | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize analyzer.

        Args:
            detector: Pose detector (a MediaPipe ``PoseEstimator`` if None)
            settings: Sampling settings (uses defaults if None)
            pose_settings: Settings for the default MediaPipe detector
            progress_callback: Called with (role, progress) after each frame
        """
        self.settings = settings or AnalysisSettings()
        self._pose_settings = pose_settings
        self._detector = detector
        self._progress_callback = progress_callback
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if an analysis pass is in progress."""
        return self._running

    @property
    def is_cancelled(self) -> bool:
        """Check if the current pass has been asked to stop."""
        return self._cancel.is_set()

    @property
    def detector(self) -> PoseDetector:
        """Pose detector, created on first use."""
        if self._detector is None:
            # Deferred so pure analysis use never loads MediaPipe
            from skate_analyzer.vision.pose import PoseEstimator

            self._detector = PoseEstimator(self._pose_settings)
        return self._detector

    def cancel(self) -> None:
        """Ask the running pass to stop before its next frame."""
        if self._running:
            logger.info("Analysis cancellation requested")
        self._cancel.set()

    def analyze(self, source: FrameSource, role: VideoRole) -> VideoAnalysis:
        """Analyze one video.

        Args:
            source: Frame source to consume
            role: Which video this is

        Returns:
            The filled store; complete unless the pass was cancelled

        Raises:
            AnalysisInProgressError: If another pass is running
        """
        self._begin()
        try:
            return self._analyze(source, role)
        finally:
            self._end()

    def analyze_both(
        self,
        reference: FrameSource,
        user: FrameSource,
    ) -> dict[VideoRole, VideoAnalysis]:
        """Analyze the reference video, then the user video.

        Returns:
            Stores keyed by role. A cancelled run stops early and may hold
            only the reference store, which is left incomplete.

        Raises:
            AnalysisInProgressError: If another pass is running
        """
        self._begin()
        try:
            results: dict[VideoRole, VideoAnalysis] = {}
            results[VideoRole.REFERENCE] = self._analyze(reference, VideoRole.REFERENCE)
            if self._cancel.is_set():
                return results

            results[VideoRole.USER] = self._analyze(user, VideoRole.USER)
            return results
        finally:
            self._end()

    def _begin(self) -> None:
        with self._lock:
            if self._running:
                raise AnalysisInProgressError()
            self._running = True
            self._cancel.clear()

    def _end(self) -> None:
        with self._lock:
            self._running = False

    def _analyze(self, source: FrameSource, role: VideoRole) -> VideoAnalysis:
        """Sample ``source`` at the analysis rate into a new store."""
        fps = self.settings.fps
        interval = 1.0 / fps
        analysis = VideoAnalysis.initialize(source.duration, fps)
        log = role_logger(logger, role.value)
        log.info(
            "Analyzing video: %.2fs at %.1f fps (%d frames)",
            source.duration,
            fps,
            analysis.total_frames,
        )

        frame_index = 0
        last_time: float | None = None

        for frame in source.frames():
            if self._cancel.is_set():
                log.info("Analysis cancelled after %d frames", analysis.processed_frames)
                return analysis

            if frame_index >= analysis.total_frames:
                break
            if last_time is not None and (
                frame.timestamp - last_time < interval - _SAMPLING_EPSILON_S
            ):
                continue

            detection = self._detect(frame, frame_index, log)
            analysis.record_frame(
                frame_index,
                detection.landmarks if detection is not None else None,
                detection.world_landmarks if detection is not None else None,
                timestamp=frame.timestamp,
            )
            frame_index += 1
            last_time = frame.timestamp

            if self._progress_callback is not None:
                self._progress_callback(role, analysis.progress)

        if self._cancel.is_set():
            return analysis

        analysis.complete()
        log.info(
            "Analysis complete: %d/%d frames, %d with world landmarks",
            analysis.processed_frames,
            analysis.total_frames,
            len(analysis.valid_world_frames()),
        )
        return analysis

    def _detect(
        self, frame: VideoFrame, frame_index: int, log: RoleLoggerAdapter
    ) -> PoseDetection | None:
        try:
            return self.detector.detect(frame)
        except PoseEstimationError as e:
            log.warning("Frame %d: detection failed: %s", frame_index, e)
            return None
