"""Per-video landmark frame store.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence

from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import (
    FrameLandmarks,
    Landmark,
    LandmarkIndex,
    get_landmark,
)

logger = get_logger(__name__)


class VideoAnalysis:
    """Time-indexed pose landmarks for one analyzed video.

    The frame sequence is sized once from the video duration and the analysis
    frame rate. Frame indices are stable positions into that sequence. A single
    writer fills frames in increasing index order, then calls ``complete()``;
    derived computations only read a completed store.
    """

    def __init__(self, frames: list[FrameLandmarks], duration: float, fps: float) -> None:
        """Wrap an existing frame sequence.

        Args:
            frames: Pre-sized frame sequence
            duration: Video duration in seconds
            fps: Analysis sampling rate in frames per second
        """
        self._frames = frames
        self.duration = duration
        self.fps = fps
        self._processed = sum(1 for f in frames if f.processed)
        self._complete = False

    @classmethod
    def initialize(cls, duration: float, fps: float) -> VideoAnalysis:
        """Create an empty store with ``ceil(duration * fps)`` unprocessed frames.

        Args:
            duration: Video duration in seconds
            fps: Analysis sampling rate

        Returns:
            Store whose frames carry nominal ``i / fps`` timestamps
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        # Rounding first keeps e.g. 91/30 s at 30 fps from gaining a slot
        total = max(0, math.ceil(round(duration * fps, 6)))
        frames = [FrameLandmarks(timestamp=i / fps) for i in range(total)]
        return cls(frames, duration=duration, fps=fps)

    @property
    def frames(self) -> Sequence[FrameLandmarks]:
        """Read-only view of the frame sequence."""
        return tuple(self._frames)

    @property
    def total_frames(self) -> int:
        """Number of frame slots."""
        return len(self._frames)

    @property
    def processed_frames(self) -> int:
        """Number of frames the analysis loop has visited."""
        return self._processed

    @property
    def progress(self) -> float:
        """Fraction of frame slots processed [0, 1]."""
        if not self._frames:
            return 1.0 if self._complete else 0.0
        return self._processed / len(self._frames)

    @property
    def is_complete(self) -> bool:
        """Whether the writer has finished with this store."""
        return self._complete

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> FrameLandmarks:
        return self._frames[index]

    def __iter__(self) -> Iterator[FrameLandmarks]:
        return iter(self._frames)

    def record_frame(
        self,
        index: int,
        landmarks: Sequence[Landmark | None] | None,
        world_landmarks: Sequence[Landmark | None] | None = None,
        timestamp: float | None = None,
    ) -> bool:
        """Store the detection result for one frame.

        A ``None`` detection is stored as processed with no landmarks so that
        frame indices stay aligned with video time.

        Args:
            index: Frame slot to fill
            landmarks: Screen-space landmarks or None
            world_landmarks: World-space landmarks or None
            timestamp: Actual video time of the frame (keeps nominal time if None)

        Returns:
            True if the frame was written, False if it was out of range or
            already processed

        Raises:
            RuntimeError: If the store has already been completed
        """
        if self._complete:
            raise RuntimeError("Cannot record frames into a completed analysis")

        if index < 0 or index >= len(self._frames):
            logger.debug("Ignoring frame %d outside 0..%d", index, len(self._frames) - 1)
            return False

        frame = self._frames[index]
        if frame.processed:
            return False

        if timestamp is not None:
            previous = self._previous_timestamp(index)
            if previous is not None and timestamp < previous:
                logger.warning(
                    "Frame %d timestamp %.4fs precedes previous frame (%.4fs), clamping",
                    index,
                    timestamp,
                    previous,
                )
                timestamp = previous
            frame.timestamp = timestamp

        frame.landmarks = tuple(landmarks) if landmarks is not None else None
        frame.world_landmarks = tuple(world_landmarks) if world_landmarks is not None else None
        frame.processed = True
        self._processed += 1
        return True

    def _previous_timestamp(self, index: int) -> float | None:
        for i in range(index - 1, -1, -1):
            if self._frames[i].processed:
                return self._frames[i].timestamp
        return None

    def complete(self) -> None:
        """Mark the store as fully written; it becomes read-only.

        Unprocessed slots keep their nominal time only where it fits between
        the neighbouring processed frames, so timestamps never decrease.
        """
        self._align_unprocessed_timestamps()
        self._complete = True
        logger.debug(
            "Analysis complete: %d/%d frames processed",
            self._processed,
            len(self._frames),
        )

    def _align_unprocessed_timestamps(self) -> None:
        upper: list[float] = [math.inf] * len(self._frames)
        next_processed = math.inf
        for i in range(len(self._frames) - 1, -1, -1):
            upper[i] = next_processed
            if self._frames[i].processed:
                next_processed = self._frames[i].timestamp

        previous = -math.inf
        for i, frame in enumerate(self._frames):
            if not frame.processed:
                frame.timestamp = max(previous, min(frame.timestamp, upper[i]))
            previous = frame.timestamp

    @property
    def last_processed_index(self) -> int | None:
        """Index of the last processed slot, or None if nothing was processed."""
        for i in range(len(self._frames) - 1, -1, -1):
            if self._frames[i].processed:
                return i
        return None

    def valid_world_frames(self) -> list[tuple[int, FrameLandmarks]]:
        """Processed frames that carry world landmarks, with their indices."""
        return [(i, f) for i, f in enumerate(self._frames) if f.has_world_landmarks]

    def timestamp_of(self, index: int) -> float:
        """Timestamp of a frame slot."""
        return self._frames[index].timestamp

    def closest_frame_index(self, timestamp: float) -> int | None:
        """Find the processed frame whose timestamp is nearest to ``timestamp``.

        Linear scan over processed frames; the earliest frame wins ties.

        Returns:
            Frame index, or None if no frame has been processed
        """
        best_index: int | None = None
        best_diff = math.inf

        for i, frame in enumerate(self._frames):
            if not frame.processed:
                continue
            diff = abs(frame.timestamp - timestamp)
            if diff < best_diff:
                best_diff = diff
                best_index = i

        return best_index

    def landmarks_at(self, time: float) -> tuple[Landmark | None, ...] | None:
        """Screen-space landmarks of the processed frame closest to ``time``."""
        best: FrameLandmarks | None = None
        best_diff = math.inf

        for frame in self._frames:
            if not frame.processed or frame.landmarks is None:
                continue
            diff = abs(frame.timestamp - time)
            if diff < best_diff:
                best_diff = diff
                best = frame

        return best.landmarks if best is not None else None

    def landmark_coverage(self, indices: Iterable[LandmarkIndex]) -> float:
        """Fraction of processed frames where every listed world landmark is present.

        Frames whose pose was not detected at all count as missing.

        Returns:
            Coverage in [0, 1]; 0.0 when nothing has been processed
        """
        required = list(indices)
        processed = [f for f in self._frames if f.processed]
        if not processed:
            return 0.0

        covered = 0
        for frame in processed:
            if frame.world_landmarks is None:
                continue
            if all(get_landmark(frame.world_landmarks, idx) is not None for idx in required):
                covered += 1

        return covered / len(processed)
