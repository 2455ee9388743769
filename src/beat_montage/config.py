"""
Centralized Configuration for Beat Montage

Single source of truth for paths, timeline constants, job limits,
analysis backend and encoding settings. Every value can be overridden
through an environment variable.

Usage:
    from beat_montage.config import get_settings

    settings = get_settings()
    frame_rate = settings.timeline.frame_rate
    settings.paths.ensure_directories()
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

from .exceptions import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


# =============================================================================
# Path Configuration
# =============================================================================
@dataclass
class PathConfig:
    """All filesystem paths used by Beat Montage."""

    assets_dir: Path = field(default_factory=lambda: Path(os.environ.get("ASSETS_DIR", "/data/assets")))
    video_dir: Path = field(default_factory=lambda: Path(os.environ.get("VIDEO_DIR", "/data/assets/videos")))
    music_dir: Path = field(default_factory=lambda: Path(os.environ.get("MUSIC_DIR", "/data/assets/music")))
    upload_dir: Path = field(default_factory=lambda: Path(os.environ.get("UPLOAD_DIR", "/data/uploads")))
    output_dir: Path = field(default_factory=lambda: Path(os.environ.get("OUTPUT_DIR", "/data/downloads")))

    def ensure_directories(self) -> None:
        """Create all directories if they don't exist."""
        for path in [self.assets_dir, self.video_dir, self.music_dir, self.upload_dir, self.output_dir]:
            path.mkdir(parents=True, exist_ok=True)

    def source_video_for(self, source_id: str) -> Path:
        """Local path of the 480p source render for a source id."""
        return self.video_dir / f"source_{source_id}_480p.mp4"

    def output_path_for(self, run_id: str) -> Path:
        """Where the finished montage of a run is written."""
        return self.output_dir / f"final_montage_{run_id}.mp4"


# =============================================================================
# Timeline Configuration
# =============================================================================
@dataclass
class TimelineConfig:
    """Frame grid and fade parameters the assembly engine is built on."""

    frame_rate: float = field(default_factory=lambda: float(os.environ.get("FRAME_RATE", "59.94")))
    fade_window: float = field(default_factory=lambda: float(os.environ.get("FADE_WINDOW", "2.0")))
    # Bookend clips carry the source's own audio; 0 disables them
    intro_duration: float = field(default_factory=lambda: float(os.environ.get("INTRO_DURATION", "0") or "0"))
    outro_duration: float = field(default_factory=lambda: float(os.environ.get("OUTRO_DURATION", "0") or "0"))


# =============================================================================
# Job Configuration
# =============================================================================
@dataclass
class JobConfig:
    """Background job limits and retention."""

    retention_seconds: float = field(default_factory=lambda: float(os.environ.get("RUN_RETENTION_SECONDS", "600")))
    max_concurrent_jobs: int = field(default_factory=lambda: int(os.environ.get("MAX_CONCURRENT_JOBS", "2")))
    max_pending_jobs: int = field(default_factory=lambda: int(os.environ.get("MAX_PENDING_JOBS", "16")))
    clear_output_on_start: bool = field(default_factory=lambda: _env_bool("CLEAR_OUTPUT_ON_START", "true"))


# =============================================================================
# Analysis Configuration
# =============================================================================
@dataclass
class AnalysisConfig:
    """Video understanding backend (Gemini generateContent)."""

    project_id: str = field(default_factory=lambda: os.environ.get("GCP_PROJECT_ID", "mlb-montage-maker"))
    region: str = field(default_factory=lambda: os.environ.get("GCP_REGION", "us-central1"))
    bucket: str = field(default_factory=lambda: os.environ.get("GCP_BUCKET_ID", "mlb-montage-maker"))
    model: str = field(default_factory=lambda: os.environ.get("ANALYSIS_MODEL", "gemini-2.0-flash-exp"))
    # Full generateContent URL; built from project/region/model when empty
    endpoint: str = field(default_factory=lambda: os.environ.get("ANALYSIS_ENDPOINT", ""))
    api_key: str = field(default_factory=lambda: os.environ.get("GOOGLE_API_KEY", ""))
    access_token: str = field(default_factory=lambda: os.environ.get("ANALYSIS_ACCESS_TOKEN", ""))
    timeout: float = field(default_factory=lambda: float(os.environ.get("ANALYSIS_TIMEOUT", "300")))
    cache_ttl: float = field(default_factory=lambda: float(os.environ.get("ANALYSIS_CACHE_TTL", "3600")))
    single_flight: bool = field(default_factory=lambda: _env_bool("ANALYSIS_SINGLE_FLIGHT", "false"))
    system_prompt_file: Optional[str] = field(default_factory=lambda: os.environ.get("ANALYSIS_SYSTEM_PROMPT_FILE") or None)

    @property
    def generate_content_url(self) -> str:
        if self.endpoint:
            return self.endpoint
        return (
            f"https://{self.region}-aiplatform.googleapis.com/v1/projects/{self.project_id}"
            f"/locations/{self.region}/publishers/google/models/{self.model}:generateContent"
        )


# =============================================================================
# Encoding Configuration
# =============================================================================
@dataclass
class EncodingConfig:
    """FFmpeg encoding settings for the final montage."""

    ffmpeg_bin: str = field(default_factory=lambda: os.environ.get("FFMPEG_BIN", "ffmpeg"))
    ffprobe_bin: str = field(default_factory=lambda: os.environ.get("FFPROBE_BIN", "ffprobe"))
    codec: str = field(default_factory=lambda: os.environ.get("OUTPUT_CODEC", "libx264"))
    preset: str = field(default_factory=lambda: os.environ.get("FFMPEG_PRESET", "veryfast"))
    crf: int = field(default_factory=lambda: int(os.environ.get("FINAL_CRF", "23")))
    audio_codec: str = field(default_factory=lambda: os.environ.get("AUDIO_CODEC", "aac"))
    audio_bitrate: str = field(default_factory=lambda: os.environ.get("AUDIO_BITRATE", "128k"))
    render_timeout: int = field(default_factory=lambda: int(os.environ.get("RENDER_TIMEOUT", "1800")))
    probe_timeout: int = field(default_factory=lambda: int(os.environ.get("FFPROBE_TIMEOUT", "30")))


# =============================================================================
# Server Configuration
# =============================================================================
@dataclass
class ServerConfig:
    """HTTP surface settings."""

    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "3000")))
    max_upload_mb: int = field(default_factory=lambda: int(os.environ.get("MAX_UPLOAD_MB", "100")))


# =============================================================================
# Main Settings Class
# =============================================================================
@dataclass
class Settings:
    """
    Main configuration container.

    Usage:
        from beat_montage.config import get_settings

        settings = get_settings()
        output = settings.paths.output_path_for(run_id)
        if settings.analysis.single_flight:
            ...
    """

    paths: PathConfig = field(default_factory=PathConfig)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)
    jobs: JobConfig = field(default_factory=JobConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self):
        """Coerce string paths and reject timeline values the engine cannot use."""
        for name in ("assets_dir", "video_dir", "music_dir", "upload_dir", "output_dir"):
            value = getattr(self.paths, name)
            if isinstance(value, str):
                setattr(self.paths, name, Path(value))
        if self.timeline.frame_rate <= 0:
            raise ConfigurationError(f"FRAME_RATE must be positive, got {self.timeline.frame_rate}")
        if self.timeline.fade_window < 0:
            raise ConfigurationError(f"FADE_WINDOW must not be negative, got {self.timeline.fade_window}")

    def reload(self) -> "Settings":
        """Reload settings from environment (useful after env changes)."""
        return Settings()


# =============================================================================
# Global Settings Instance (Singleton)
# =============================================================================
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (lazy initialization)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload of settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
