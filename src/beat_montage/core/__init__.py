"""
Montage assembly engine.

Pure planning (frame grid, beat slots, clip allocation, filter graph) plus
the job lifecycle that runs analysis and rendering in the background.
"""

from .beat_intervals import calculate_beat_intervals
from .clip_allocator import ClipAllocator, allocate_segments, build_montage_plan
from .frame_grid import align_to_frame
from .graph_builder import FilterGraph, build_filter_graph
from .models import MontagePlan, MontageRequest, Region, Run, RunStatus, Segment, SourceClip

__all__ = [
    "align_to_frame",
    "calculate_beat_intervals",
    "ClipAllocator",
    "allocate_segments",
    "build_montage_plan",
    "FilterGraph",
    "build_filter_graph",
    "MontagePlan",
    "MontageRequest",
    "Region",
    "Run",
    "RunStatus",
    "Segment",
    "SourceClip",
]
