"""Time quantization onto a fixed frame grid."""

import math

# Smallest duration the filter graph can express (6 decimal places)
TIME_EPSILON = 1e-6


def frame_duration(frame_rate: float) -> float:
    """Length of one frame in seconds."""
    if not math.isfinite(frame_rate) or frame_rate <= 0:
        raise ValueError(f"frame_rate must be a positive number, got {frame_rate!r}")
    return 1 / frame_rate


def align_to_frame(seconds: float, frame_rate: float) -> float:
    """
    Snap a timestamp to the nearest frame boundary.

    Example at 59.94 fps: 1.0 -> 60 frames -> 1.001001...
    """
    step = frame_duration(frame_rate)
    return round(seconds / step) * step
