"""MediaPipe pose estimation wrapper using the Tasks API."""

from __future__ import annotations

import urllib.request
from pathlib import Path

import cv2
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from skate_analyzer.core.config import PoseSettings
from skate_analyzer.core.exceptions import PoseEstimationError
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import Landmark, PoseDetection, VideoFrame

logger = get_logger(__name__)

MODEL_URL_TEMPLATE = (
    "https://storage.googleapis.com/mediapipe-models/pose_landmarker/"
    "pose_landmarker_{variant}/float16/latest/pose_landmarker_{variant}.task"
)
MODEL_DIR = Path(__file__).parent.parent.parent.parent / "data" / "models"


def model_path(variant: str) -> Path:
    """Local path of the landmarker model for a variant."""
    return MODEL_DIR / f"pose_landmarker_{variant}.task"


def _download_model(variant: str) -> Path:
    """Download the pose landmarker model if not present.

    Args:
        variant: Model size ("lite", "full" or "heavy")

    Returns:
        Path to the downloaded model file

    Raises:
        PoseEstimationError: If download fails
    """
    path = model_path(variant)
    if path.exists():
        return path

    logger.info("Downloading MediaPipe pose landmarker model (%s)...", variant)
    MODEL_DIR.mkdir(parents=True, exist_ok=True)

    try:
        urllib.request.urlretrieve(MODEL_URL_TEMPLATE.format(variant=variant), path)
        logger.info("Model downloaded to %s", path)
        return path
    except Exception as e:
        raise PoseEstimationError(f"Failed to download model: {e}") from e


def _convert_landmarks(raw: list[object]) -> tuple[Landmark, ...]:
    landmarks: list[Landmark] = []
    for lm in raw:
        visibility = getattr(lm, "visibility", None)
        landmarks.append(
            Landmark(
                x=float(lm.x),  # type: ignore[attr-defined]
                y=float(lm.y),  # type: ignore[attr-defined]
                z=float(lm.z),  # type: ignore[attr-defined]
                visibility=float(visibility) if visibility is not None else None,
            )
        )
    return tuple(landmarks)


class PoseEstimator:
    """Wrapper for MediaPipe pose estimation using the Tasks API.

    Converts MediaPipe results to ``PoseDetection``/``Landmark`` types
    to avoid leaking MediaPipe objects throughout the codebase.
    Frames must be fed in increasing timestamp order (VIDEO running mode).
    """

    def __init__(self, settings: PoseSettings | None = None) -> None:
        """Initialize pose estimator with settings.

        Args:
            settings: Pose estimation settings (uses defaults if None)
        """
        self.settings = settings or PoseSettings()
        self._landmarker: vision.PoseLandmarker | None = None
        self._initialized = False
        self._last_timestamp_ms = -1

    @property
    def is_initialized(self) -> bool:
        """Check if MediaPipe model is loaded."""
        return self._initialized

    def initialize(self) -> None:
        """Load MediaPipe pose model.

        Raises:
            PoseEstimationError: If model fails to load
        """
        try:
            path = _download_model(self.settings.model_variant)

            base_options = python.BaseOptions(model_asset_path=str(path))

            options = vision.PoseLandmarkerOptions(
                base_options=base_options,
                running_mode=vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=self.settings.min_detection_confidence,
                min_pose_presence_confidence=self.settings.min_presence_confidence,
                min_tracking_confidence=self.settings.min_tracking_confidence,
                output_segmentation_masks=False,
            )

            self._landmarker = vision.PoseLandmarker.create_from_options(options)
            self._initialized = True
            self._last_timestamp_ms = -1
            logger.info("MediaPipe PoseLandmarker initialized (%s)", self.settings.model_variant)

        except PoseEstimationError:
            raise
        except Exception as e:
            raise PoseEstimationError(f"Failed to initialize MediaPipe: {e}") from e

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            self._initialized = False

    def detect(self, frame: VideoFrame) -> PoseDetection | None:
        """Run pose estimation on a frame.

        Args:
            frame: Decoded video frame

        Returns:
            Screen-space and world-space landmarks, or None if no pose detected

        Raises:
            PoseEstimationError: If estimation fails
        """
        if not self._initialized or self._landmarker is None:
            self.initialize()

        if self._landmarker is None:
            raise PoseEstimationError("Pose estimator not initialized")

        # VIDEO mode rejects non-increasing timestamps
        timestamp_ms = max(int(frame.timestamp * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        try:
            rgb_image = cv2.cvtColor(frame.image, cv2.COLOR_BGR2RGB)
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
            results = self._landmarker.detect_for_video(mp_image, timestamp_ms)
        except Exception as e:
            raise PoseEstimationError(f"Estimation failed at {frame.timestamp:.3f}s: {e}") from e

        if not results.pose_landmarks:
            return None

        world = None
        if results.pose_world_landmarks:
            world = _convert_landmarks(results.pose_world_landmarks[0])

        return PoseDetection(
            landmarks=_convert_landmarks(results.pose_landmarks[0]),
            world_landmarks=world,
        )

    def __enter__(self) -> PoseEstimator:
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()
