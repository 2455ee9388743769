"""
Clip Cursor Allocator

Tiles the beat slots of a montage across a cyclic pool of source clips.

Each clip keeps its own read cursor for the whole pass, and a single
round-robin pointer walks the pool. The pointer moves on after every
emitted segment, not after every slot, so consecutive cuts rotate through
the pool even when a slot is filled by one piece of footage. A clip that
runs dry restarts from its own beginning (wraparound), which lets a short
pool cover an arbitrarily long song.

Usage:
    from beat_montage.core.clip_allocator import allocate_segments

    segments = allocate_segments([5.0], [SourceClip(0, 2)])
    # -> (0, 2), (0, 2), (0, 1)
"""

from dataclasses import replace
from typing import Iterable, List, Sequence

from ..logger import logger
from .beat_intervals import calculate_beat_intervals
from .frame_grid import TIME_EPSILON
from .models import ClipCursor, MontagePlan, Region, Segment, SourceClip


class ClipAllocator:
    """Stateful allocator for one pass over a clip pool."""

    def __init__(self, clips: Sequence[SourceClip]):
        if not clips:
            raise ValueError("clip pool must not be empty")
        for clip in clips:
            if not clip.duration > TIME_EPSILON:
                raise ValueError(f"clip {clip} has no footage to allocate")

        self.clips = list(clips)
        self.cursors = [ClipCursor.for_clip(clip) for clip in self.clips]
        self.clip_index = 0
        self.wraparounds = 0

    def fill(self, interval: float) -> List[Segment]:
        """
        Emit the segments that cover one slot, advancing shared state.

        Remainders below TIME_EPSILON are float noise, not footage: they are
        folded into the last segment of the slot instead of becoming a
        segment of their own.
        """
        if interval < 0:
            raise ValueError(f"interval must not be negative, got {interval}")

        segments: List[Segment] = []
        remaining = interval
        while remaining > TIME_EPSILON:
            pool_index = self.clip_index % len(self.cursors)
            cursor = self.cursors[pool_index]

            available = cursor.available
            if available <= TIME_EPSILON:
                cursor.reset()
                available = cursor.available
                self.wraparounds += 1

            duration = min(remaining, available)
            segments.append(Segment(
                source_start=cursor.current_position,
                duration=duration,
                clip_index=pool_index,
            ))

            cursor.current_position += duration
            remaining -= duration
            self.clip_index += 1

        if segments and remaining > 0:
            last = segments[-1]
            segments[-1] = replace(last, duration=last.duration + remaining)
            self.cursors[last.clip_index].current_position += remaining

        return segments

    def allocate(self, intervals: Iterable[float]) -> List[Segment]:
        segments: List[Segment] = []
        for interval in intervals:
            segments.extend(self.fill(interval))
        return segments


def allocate_segments(intervals: Iterable[float], clips: Sequence[SourceClip]) -> List[Segment]:
    """Fill every interval in order from a fresh allocator."""
    allocator = ClipAllocator(clips)
    segments = allocator.allocate(intervals)
    logger.debug(
        f"Allocated {len(segments)} segments from {len(allocator.clips)} clips "
        f"({allocator.wraparounds} wraparounds)"
    )
    return segments


def build_montage_plan(
    beat_markers: Iterable[float],
    region: Region,
    clips: Sequence[SourceClip],
    frame_rate: float,
) -> MontagePlan:
    """Compute slots and segments for a request without touching media."""
    intervals = calculate_beat_intervals(beat_markers, region, frame_rate)
    segments = allocate_segments(intervals, clips)
    return MontagePlan(
        region=region.aligned(frame_rate),
        intervals=intervals,
        clips=list(clips),
        segments=segments,
    )
