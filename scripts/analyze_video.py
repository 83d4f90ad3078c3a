#!/usr/bin/env python3
"""Analyze a single jump video.

Runs MediaPipe pose detection over the video, then computes jump metrics
from takeoff/landing markers or, when none are given, from auto-detection.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from skate_analyzer.analysis.angles import AngleExtractor
from skate_analyzer.core.config import get_settings
from skate_analyzer.core.exceptions import SkateAnalyzerError
from skate_analyzer.core.logging import get_logger, setup_logging
from skate_analyzer.core.types import JumpMarkers, VideoRole
from skate_analyzer.pipeline.analyzer import VideoAnalyzer
from skate_analyzer.pipeline.session import AnalysisSession
from skate_analyzer.vision.pose import PoseEstimator
from skate_analyzer.vision.video import VideoFileSource

logger = get_logger(__name__)


def print_progress(role: VideoRole, progress: float) -> None:
    """Render a single-line progress indicator."""
    print(f"\r{role.value}: {progress * 100:5.1f}%", end="", flush=True)


def main() -> int:
    """Run video analysis script."""
    parser = argparse.ArgumentParser(description="Analyze a figure skating jump video")
    parser.add_argument("video", type=Path, help="Path to video file")
    parser.add_argument("--takeoff", type=int, help="Takeoff frame number")
    parser.add_argument("--landing", type=int, help="Landing frame number")
    parser.add_argument(
        "--marker-fps",
        type=float,
        help="Frame rate of the takeoff/landing frame numbers (default: settings)",
    )
    parser.add_argument(
        "--fps",
        type=float,
        help="Analysis sampling rate (default: settings)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print metrics as JSON",
    )

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.file)

    analysis_settings = settings.analysis
    if args.fps is not None:
        analysis_settings = analysis_settings.model_copy(update={"fps": args.fps})

    try:
        with VideoFileSource(args.video) as source, PoseEstimator(settings.pose) as estimator:
            analyzer = VideoAnalyzer(
                estimator,
                analysis_settings,
                progress_callback=print_progress,
            )
            analysis = analyzer.analyze(source, VideoRole.USER)
        print()
    except SkateAnalyzerError as e:
        logger.error("Analysis failed: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    session = AnalysisSession(settings)
    session.set_analysis(VideoRole.USER, analysis)

    if args.takeoff is not None or args.landing is not None:
        markers = JumpMarkers(takeoff_frame=args.takeoff, landing_frame=args.landing)
        metrics = session.set_markers(VideoRole.USER, markers, args.marker_fps)
    else:
        metrics = session.metrics_for(VideoRole.USER)
        detection = session.detection_for(VideoRole.USER)
        if detection is None:
            logger.warning("No jump detected; pass --takeoff and --landing to mark it")
        else:
            logger.info(
                "Auto-detected takeoff %d, landing %d (confidence %.2f)",
                detection.takeoff_frame,
                detection.landing_frame,
                detection.confidence,
            )

    unreliable = AngleExtractor(settings.angles).unreliable_channels(analysis)

    if args.json:
        output = metrics.to_dict()
        output["unreliableChannels"] = [channel.value for channel in unreliable]
        print(json.dumps(output, indent=2))
    else:
        display = metrics.display()
        print("\n" + "=" * 40)
        print("JUMP METRICS")
        print("=" * 40)
        print(f"Air time:   {display['air_time']}")
        print(f"Rotations:  {display['rotations']}")
        print(f"Height:     {display['height']}")
        if unreliable:
            print(f"Unreliable: {', '.join(channel.value for channel in unreliable)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
