from pydantic import BaseModel, Field


class SyncConfig(BaseModel):
    """Tunables for keeping the panel strip in step with playback."""

    # Display window
    window_size: int = 6
    bootstrap_threshold: str = "01-30"  # left-align while the anchor is at or before this bucket

    # Discovery scan on load
    discovery_min_found: int = 6
    discovery_max_seconds: float = 60 * 60
    discovery_fallback_seconds: float = 60 * 10  # used when the duration never becomes known
    discovery_concurrency: int = 1
    discovery_probe_delay: float = 0.04
    duration_wait_attempts: int = 50
    duration_wait_interval: float = 0.1

    # Job polling
    poll_attempts: int = 30
    poll_interval: float = 5.0

    # Periodic activities
    trigger_interval: float = 5.0
    render_interval: float = 0.25
    keyframe_interval: float = 0.2

    # Frame capture and placeholders
    capture_size: int = 1024
    capture_quality: int = 85
    placeholder_size: int = 512
    placeholder_blur: float = 18
    placeholder_darken: float = 0.5
    placeholder_quality: int = 82

    # Curated "mm:ss" moments per video that trigger like a user action
    keyframes: dict[str, list[str]] = Field(default_factory=dict)
