"""Pure analysis logic: frame store, angles, rotation, detection, and metrics.

This module contains NO I/O operations and NO OpenCV imports.
All functions operate on typed dataclasses and return results.
"""

from skate_analyzer.analysis.angles import AngleExtractor, analyze_angles
from skate_analyzer.analysis.detector import JumpDetector
from skate_analyzer.analysis.frame_store import VideoAnalysis
from skate_analyzer.analysis.metrics import JumpMetricsEngine, compare_metrics, jump_height
from skate_analyzer.analysis.rotation import CumulativeRotationTracker, rotation_count

__all__ = [
    "VideoAnalysis",
    "AngleExtractor",
    "analyze_angles",
    "CumulativeRotationTracker",
    "rotation_count",
    "JumpDetector",
    "JumpMetricsEngine",
    "compare_metrics",
    "jump_height",
]
