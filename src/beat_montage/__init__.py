"""
Beat Montage - beat-synced highlight montages

Planning (no media access):
    from beat_montage import Region, SourceClip, build_montage_plan, build_filter_graph

    plan = build_montage_plan([1.5, 3.0, 4.5], Region(0, 6), [SourceClip(12, 18)], frame_rate=59.94)
    graph = build_filter_graph(plan.segments, plan.region, fade_window=2.0)

Server:
    from beat_montage.web_ui.app import create_app
    create_app().run(port=3000)
"""

__version__ = "0.1.0"

from .core import (
    Region,
    SourceClip,
    Segment,
    MontagePlan,
    align_to_frame,
    calculate_beat_intervals,
    allocate_segments,
    build_montage_plan,
    build_filter_graph,
)

__all__ = [
    "Region",
    "SourceClip",
    "Segment",
    "MontagePlan",
    "align_to_frame",
    "calculate_beat_intervals",
    "allocate_segments",
    "build_montage_plan",
    "build_filter_graph",
]
