"""
Clip pool validation.

The analysis model is asked for a JSON array of key moments, but its output
is untrusted: it may be wrapped in Markdown fences, may not be an array at
all, or may point outside the source video. Whatever comes back, the
allocator gets a non-empty pool of valid clips; when nothing usable
survives, one clip spanning the whole source takes its place.
"""

import json
import math
from typing import Any, List, Optional

from ..exceptions import AnalysisParseError
from ..logger import log_warning, logger
from .frame_grid import TIME_EPSILON
from .models import SourceClip


def parse_timestamp(value: Any) -> float:
    """
    Convert an analysis timestamp to seconds.

    Accepts numbers and "SS", "MM:SS" or "HH:MM:SS" strings, with
    fractional seconds allowed in the last field.

    Raises:
        ValueError: if the value cannot be read as a timestamp
    """
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        parts = value.strip().split(":")
        if not 1 <= len(parts) <= 3 or any(part.strip() == "" for part in parts):
            raise ValueError(f"not a timestamp: {value!r}")
        seconds = 0.0
        for part in parts:
            seconds = seconds * 60 + float(part)
    else:
        raise ValueError(f"not a timestamp: {value!r}")

    if not math.isfinite(seconds):
        raise ValueError(f"not a timestamp: {value!r}")
    return seconds


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_analysis_response(raw_text: Optional[str]) -> List[Any]:
    """
    Decode the model's text into a list of candidate clips.

    Raises:
        AnalysisParseError: if the text is not a JSON array
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise AnalysisParseError("analysis response is empty")
    try:
        data = json.loads(_strip_code_fence(raw_text))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"analysis response is not JSON: {e}") from e
    if not isinstance(data, list):
        raise AnalysisParseError(f"analysis response is a {type(data).__name__}, expected an array")
    return data


def fallback_clip(source_duration: float) -> SourceClip:
    """A single clip covering the whole source video."""
    return SourceClip(0.0, source_duration)


def validate_clip(item: Any, source_duration: float) -> Optional[SourceClip]:
    """Return a SourceClip for a well-formed item inside the source, else None."""
    if not isinstance(item, dict):
        return None
    try:
        start = parse_timestamp(item.get("start_timestamp"))
        end = parse_timestamp(item.get("end_timestamp"))
    except ValueError:
        return None
    if start < 0 or end - start <= TIME_EPSILON or end > source_duration:
        return None
    return SourceClip(start, end)


def clips_from_analysis(raw_text: Optional[str], source_duration: float) -> List[SourceClip]:
    """
    Build the clip pool from raw analysis output.

    Never raises for malformed model output; falls back to the full source.
    """
    if not source_duration > 0:
        raise ValueError(f"source duration must be positive, got {source_duration}")

    try:
        items = parse_analysis_response(raw_text)
    except AnalysisParseError as e:
        logger.warning(f"Unusable analysis response, using full source as the only clip: {e}")
        return [fallback_clip(source_duration)]

    clips = [clip for clip in (validate_clip(item, source_duration) for item in items) if clip]
    dropped = len(items) - len(clips)
    if dropped:
        logger.warning(f"Dropped {dropped} of {len(items)} analysis clips outside the source bounds")

    if not clips:
        log_warning("No valid clips in analysis response, using full source as the only clip")
        return [fallback_clip(source_duration)]
    return clips
