"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PoseSettings(BaseSettings):
    """MediaPipe pose landmarker settings."""

    model_config = SettingsConfigDict(env_prefix="POSE_")

    model_variant: Literal["lite", "full", "heavy"] = "lite"
    min_detection_confidence: float = 0.3
    min_presence_confidence: float = 0.3
    min_tracking_confidence: float = 0.3


class AnalysisSettings(BaseSettings):
    """Frame sampling for the video analysis pass."""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    fps: float = Field(default=30.0, gt=0)
    marker_fps: float = Field(default=30.0, gt=0)


class AngleSettings(BaseSettings):
    """Angle extraction and gap filling parameters."""

    model_config = SettingsConfigDict(env_prefix="ANGLE_")

    timestamp_tolerance_s: float = 0.01
    reliability_threshold: float = 0.5
    smoothing_window: int = 3


class RotationSettings(BaseSettings):
    """Cumulative rotation tracking parameters."""

    model_config = SettingsConfigDict(env_prefix="ROTATION_")

    noise_threshold_deg: float = Field(default=20.0, ge=0)
    window_padding_frames: int = Field(default=2, ge=0)


class DetectionSettings(BaseSettings):
    """Fallback takeoff/landing auto-detection parameters."""

    model_config = SettingsConfigDict(env_prefix="DETECTION_")

    enabled: bool = True
    min_samples: int = 10
    smoothing_window: int = 3
    velocity_std_multiplier: float = 2.0
    acceleration_std_multiplier: float = 2.5
    baseline_samples: int = 30
    ground_percentile: float = 10.0
    contact_threshold_m: float = 0.02
    min_flight_samples: int = 8
    min_flight_time_s: float = 0.1
    max_flight_time_s: float = 1.5


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pose: PoseSettings = Field(default_factory=PoseSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    angles: AngleSettings = Field(default_factory=AngleSettings)
    rotation: RotationSettings = Field(default_factory=RotationSettings)
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
