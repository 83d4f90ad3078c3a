"""Custom exceptions for Skate Analyzer."""


class SkateAnalyzerError(Exception):
    """Base exception for all Skate Analyzer errors."""

    pass


class PoseEstimationError(SkateAnalyzerError):
    """Pose estimation failed or returned invalid data."""

    def __init__(self, message: str = "Pose estimation failed") -> None:
        self.message = message
        super().__init__(self.message)


class VideoSourceError(SkateAnalyzerError):
    """Video file could not be opened or read."""

    def __init__(self, message: str = "Video source error") -> None:
        self.message = message
        super().__init__(self.message)


class AnalysisInProgressError(SkateAnalyzerError):
    """A video analysis pass is already running."""

    def __init__(self, message: str = "Analysis already in progress") -> None:
        self.message = message
        super().__init__(self.message)


class MetricsPreconditionError(SkateAnalyzerError):
    """Jump metrics cannot be computed from the given inputs."""

    def __init__(self, message: str = "Metrics precondition violated") -> None:
        self.message = message
        super().__init__(self.message)


class AnalysisIncompleteError(MetricsPreconditionError):
    """The frame store has not been marked complete."""

    def __init__(self, message: str = "Video analysis is not complete") -> None:
        super().__init__(message)


class MissingMarkersError(MetricsPreconditionError):
    """Takeoff or landing marker has not been set."""

    def __init__(self, message: str = "Takeoff and landing markers are required") -> None:
        super().__init__(message)


class InvalidJumpWindowError(MetricsPreconditionError):
    """Resolved takeoff frame is not before the resolved landing frame."""

    def __init__(self, message: str = "Takeoff must precede landing") -> None:
        super().__init__(message)


class SampleDataError(SkateAnalyzerError):
    """Pre-extracted skeleton data is malformed."""

    def __init__(self, message: str = "Invalid skeleton data") -> None:
        self.message = message
        super().__init__(self.message)
