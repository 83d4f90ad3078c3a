"""Computer vision operations: video decoding and pose estimation."""

from skate_analyzer.vision.pose import PoseEstimator
from skate_analyzer.vision.video import VideoFileSource

__all__ = ["PoseEstimator", "VideoFileSource"]
