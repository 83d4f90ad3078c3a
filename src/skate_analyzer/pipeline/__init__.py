"""Video analysis orchestration and session state."""

from skate_analyzer.pipeline.analyzer import VideoAnalyzer
from skate_analyzer.pipeline.samples import SkeletonSample, load_skeleton_data
from skate_analyzer.pipeline.session import AnalysisSession

__all__ = ["VideoAnalyzer", "AnalysisSession", "SkeletonSample", "load_skeleton_data"]
