"""Loader for pre-extracted skeleton data files.

Skeleton files hold pose landmarks that were extracted earlier, together with
hand-marked takeoff/landing frames and the expected rotation count::

    {
      "videoInfo": {"fps": 30, "takeoffFrame": 52, "landingFrame": 68,
                    "rotations": 2.0, "duration": 4.0},
      "frames": [
        {"frame": 0, "timestamp": 0.0,
         "landmarks": [{"x": ..., "y": ..., "z": ..., "visibility": ...}, ...],
         "worldLandmarks": [...]},
        ...
      ]
    }
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.core.exceptions import SampleDataError
from skate_analyzer.core.logging import get_logger
from skate_analyzer.core.types import FrameLandmarks, JumpMarkers, Landmark

logger = get_logger(__name__)


@dataclass(frozen=True)
class SkeletonSample:
    """A loaded skeleton file.

    Attributes:
        name: File stem, used in reports
        analysis: Completed store, one slot per sample frame
        markers: Takeoff/landing markers from the file
        marker_fps: Frame rate the marker frame numbers refer to
        expected_rotations: Known rotation count, if recorded
    """

    name: str
    analysis: VideoAnalysis
    markers: JumpMarkers
    marker_fps: float
    expected_rotations: float | None = None


def _parse_landmarks(raw: Any, where: str) -> tuple[Landmark | None, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        raise SampleDataError(f"{where}: landmarks must be a list")
    if len(raw) == 0:
        return None

    landmarks: list[Landmark | None] = []
    for point in raw:
        if point is None:
            landmarks.append(None)
            continue
        try:
            visibility = point.get("visibility")
            landmarks.append(
                Landmark(
                    x=float(point["x"]),
                    y=float(point["y"]),
                    z=float(point.get("z", 0.0)),
                    visibility=float(visibility) if visibility is not None else None,
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SampleDataError(f"{where}: invalid landmark {point!r}") from e
    return tuple(landmarks)


def parse_skeleton_data(data: Mapping[str, Any], name: str = "sample") -> SkeletonSample:
    """Build a sample from already-decoded skeleton JSON.

    Raises:
        SampleDataError: If required fields are missing or malformed
    """
    info = data.get("videoInfo")
    frames = data.get("frames")
    if not isinstance(info, Mapping) or not isinstance(frames, list):
        raise SampleDataError(f"{name}: expected 'videoInfo' object and 'frames' list")

    try:
        fps = float(info["fps"])
    except (KeyError, TypeError, ValueError) as e:
        raise SampleDataError(f"{name}: videoInfo.fps is required") from e
    if fps <= 0:
        raise SampleDataError(f"{name}: videoInfo.fps must be positive")

    entries: list[tuple[int, Mapping[str, Any]]] = []
    for position, entry in enumerate(frames):
        if not isinstance(entry, Mapping) or "frame" not in entry:
            raise SampleDataError(f"{name}: frames[{position}] has no frame number")
        try:
            frame_number = int(entry["frame"])
        except (TypeError, ValueError) as e:
            raise SampleDataError(
                f"{name}: frames[{position}] has invalid frame number {entry['frame']!r}"
            ) from e
        entries.append((frame_number, entry))
    entries.sort(key=lambda item: item[0])

    last_frame = entries[-1][0] if entries else -1
    duration = float(info.get("duration") or (last_frame + 1) / fps)
    total = max(last_frame + 1, round(duration * fps))

    slots = [FrameLandmarks(timestamp=i / fps) for i in range(total)]
    analysis = VideoAnalysis(slots, duration=duration, fps=fps)
    for frame_number, entry in entries:
        where = f"{name}: frame {frame_number}"
        timestamp = entry.get("timestamp")
        try:
            frame_time = float(timestamp) if timestamp is not None else None
        except (TypeError, ValueError) as e:
            raise SampleDataError(f"{where}: invalid timestamp {timestamp!r}") from e
        analysis.record_frame(
            frame_number,
            _parse_landmarks(entry.get("landmarks"), where),
            _parse_landmarks(entry.get("worldLandmarks"), where),
            timestamp=frame_time,
        )
    analysis.complete()

    takeoff = info.get("takeoffFrame")
    landing = info.get("landingFrame")
    if takeoff is not None and landing is not None:
        markers = JumpMarkers.from_frames(int(takeoff), int(landing), fps)
    else:
        markers = JumpMarkers(
            takeoff_frame=int(takeoff) if takeoff is not None else None,
            landing_frame=int(landing) if landing is not None else None,
        )

    rotations = info.get("rotations")
    return SkeletonSample(
        name=name,
        analysis=analysis,
        markers=markers,
        marker_fps=fps,
        expected_rotations=float(rotations) if rotations is not None else None,
    )


def load_skeleton_data(path: str | Path) -> SkeletonSample:
    """Load a skeleton JSON file.

    Args:
        path: Path to the skeleton file

    Returns:
        Parsed sample with a completed analysis

    Raises:
        SampleDataError: If the file is missing, not JSON, or malformed
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SampleDataError(f"Failed to read skeleton data {path}: {e}") from e

    if not isinstance(data, Mapping):
        raise SampleDataError(f"{path.name}: top level must be an object")

    sample = parse_skeleton_data(data, name=path.stem)
    logger.info(
        "Loaded %s: %d frames at %.1f fps (%d with world landmarks)",
        sample.name,
        sample.analysis.total_frames,
        sample.marker_fps,
        len(sample.analysis.valid_world_frames()),
    )
    return sample
