"""
Core data model for the montage assembly engine.
"""

import math
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Any

from ..exceptions import InvalidRequest
from .frame_grid import align_to_frame


@dataclass(frozen=True)
class Region:
    """Output window of the montage, in seconds of the music track."""
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def aligned(self, frame_rate: float) -> "Region":
        return Region(align_to_frame(self.start, frame_rate), align_to_frame(self.end, frame_rate))


@dataclass(frozen=True)
class SourceClip:
    """A key moment of the source video, [start, end) in seconds."""
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class ClipCursor:
    """Read position inside one clip for a single allocation pass."""
    original_start: float
    current_position: float
    end: float

    @classmethod
    def for_clip(cls, clip: SourceClip) -> "ClipCursor":
        return cls(original_start=clip.start, current_position=clip.start, end=clip.end)

    @property
    def available(self) -> float:
        return self.end - self.current_position

    def reset(self) -> None:
        self.current_position = self.original_start


@dataclass(frozen=True)
class Segment:
    """One trimmed piece of source footage on the output timeline."""
    source_start: float
    duration: float
    clip_index: int = 0


@dataclass
class MontagePlan:
    """Everything the graph builder needs, computed without touching media."""
    region: Region
    intervals: List[float]
    clips: List[SourceClip]
    segments: List[Segment]

    @property
    def total_duration(self) -> float:
        return sum(segment.duration for segment in self.segments)


class RunStatus(str, Enum):
    """Lifecycle states of a montage run."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.PROCESSING


@dataclass
class Run:
    """One montage job as tracked by the run store."""
    id: str
    status: RunStatus = RunStatus.PROCESSING
    progress: int = 0
    message: str = ""
    result_path: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    # Files to reclaim on cleanup; never exposed to clients
    output_path: Optional[str] = None
    audio_upload: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Public snapshot for status responses."""
        data = asdict(self)
        data.pop("output_path")
        data.pop("audio_upload")
        data["status"] = self.status.value
        return data


def _as_seconds(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequest(f"{name} must be a number")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidRequest(f"{name} must be finite")
    return number


@dataclass
class MontageRequest:
    """A validated montage submission."""
    source_id: str
    region: Region
    beat_markers: List[float]
    music_name: Optional[str] = None
    audio_upload: Optional[Path] = None

    @classmethod
    def from_payload(cls, payload: Any, audio_upload: Optional[Path] = None) -> "MontageRequest":
        """
        Validate a raw submission.

        Accepts both the editor's field names (gamePk, reelRegion) and the
        neutral ones (sourceId, region).

        Raises:
            InvalidRequest: on any missing or malformed field
        """
        if not isinstance(payload, dict):
            raise InvalidRequest("Montage data must be a JSON object")

        source_id = payload.get("sourceId", payload.get("gamePk"))
        if source_id is None or str(source_id).strip() == "":
            raise InvalidRequest("Missing required field: sourceId")
        source_id = str(source_id).strip()
        if Path(source_id).name != source_id or source_id in (".", ".."):
            raise InvalidRequest("sourceId must not contain path separators")

        raw_region = payload.get("region", payload.get("reelRegion"))
        if not isinstance(raw_region, dict):
            raise InvalidRequest("Missing required field: region")
        start = _as_seconds(raw_region.get("start"), "region.start")
        end = _as_seconds(raw_region.get("end"), "region.end")
        if start < 0:
            raise InvalidRequest("region.start must not be negative")
        if start >= end:
            raise InvalidRequest("region.start must be before region.end")

        markers = payload.get("beatMarkers")
        if not isinstance(markers, list):
            raise InvalidRequest("Missing required field: beatMarkers")
        beat_markers = [_as_seconds(marker, "beatMarkers[]") for marker in markers]

        music_name = payload.get("musicName")
        if music_name is not None and not isinstance(music_name, str):
            raise InvalidRequest("musicName must be a string")
        if audio_upload is None and not music_name:
            raise InvalidRequest("A music track is required: upload one or set musicName")

        return cls(
            source_id=source_id,
            region=Region(start, end),
            beat_markers=beat_markers,
            music_name=music_name,
            audio_upload=audio_upload,
        )
