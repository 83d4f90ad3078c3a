"""Video file frame generator."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import cv2

from skate_analyzer.core.exceptions import VideoSourceError
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import VideoFrame

logger = get_logger(__name__)


class VideoFileSource:
    """Generator-based frame source for a recorded video file.

    Provides frames as VideoFrame instances carrying their position in the
    video, decoded in presentation order.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize source for a video file.

        Args:
            path: Path to the video file
        """
        self.path = Path(path)
        self._capture: cv2.VideoCapture | None = None
        self._fps = 0.0
        self._frame_count = 0

    @property
    def is_open(self) -> bool:
        """Check if the file is open for decoding."""
        return self._capture is not None

    @property
    def fps(self) -> float:
        """Native frame rate reported by the container."""
        self._ensure_open()
        return self._fps

    @property
    def duration(self) -> float:
        """Video duration in seconds (0 when the container reports nothing usable)."""
        self._ensure_open()
        if self._fps <= 0:
            return 0.0
        return self._frame_count / self._fps

    def open(self) -> None:
        """Open the video file.

        Raises:
            VideoSourceError: If the file cannot be opened
        """
        if self._capture is not None:
            return
        if not self.path.exists():
            raise VideoSourceError(f"Video file not found: {self.path}")

        capture = cv2.VideoCapture(str(self.path))
        if not capture.isOpened():
            capture.release()
            raise VideoSourceError(f"Failed to open video: {self.path}")

        self._capture = capture
        self._fps = float(capture.get(cv2.CAP_PROP_FPS) or 0.0)
        self._frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        logger.info(
            "Opened %s (%.2f fps, %d frames, %.2fs)",
            self.path.name,
            self._fps,
            self._frame_count,
            self.duration,
        )

    def close(self) -> None:
        """Release the decoder."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def _ensure_open(self) -> None:
        if self._capture is None:
            self.open()

    def frames(self) -> Generator[VideoFrame, None, None]:
        """Generate decoded frames from the start of the file.

        Yields:
            VideoFrame objects with image data and video time

        Raises:
            VideoSourceError: If decoding fails
        """
        self._ensure_open()
        capture = self._capture
        if capture is None:
            raise VideoSourceError(f"Video not open: {self.path}")

        capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
        index = 0
        while True:
            try:
                ok, image = capture.read()
            except cv2.error as e:
                raise VideoSourceError(f"Frame decode failed: {e}") from e
            if not ok or image is None:
                break

            timestamp = capture.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
            if timestamp <= 0 and index > 0 and self._fps > 0:
                # Some containers do not report a position
                timestamp = index / self._fps

            yield VideoFrame(image=image, timestamp=timestamp, index=index)
            index += 1

        logger.debug("Decoded %d frames from %s", index, self.path.name)

    def __iter__(self) -> Generator[VideoFrame, None, None]:
        """Allow direct iteration over the file."""
        return self.frames()

    def __enter__(self) -> VideoFileSource:
        """Context manager entry."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()
