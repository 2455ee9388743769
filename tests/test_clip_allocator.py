"""
Tests for the clip cursor allocator.
"""

import random
import re

import pytest

from beat_montage.core.clip_allocator import (
    ClipAllocator,
    allocate_segments,
    build_montage_plan,
)
from beat_montage.core.frame_grid import TIME_EPSILON
from beat_montage.core.graph_builder import build_filter_graph
from beat_montage.core.models import Region, Segment, SourceClip

# trim/atrim duration of exactly zero means "until end of input" to FFmpeg
ZERO_DURATION = re.compile(r"duration=0(?![.\d])")

DECIMAL_POOL = [SourceClip(75.9, 80.7), SourceClip(12.3, 14.1), SourceClip(101.45, 103.05)]


class TestAllocateSegments:

    def test_single_short_clip_wraps_around(self):
        """A 5s slot over a 2s clip replays it from the start."""
        segments = allocate_segments([5.0], [SourceClip(0, 2)])
        assert [(s.source_start, s.duration) for s in segments] == [(0, 2), (0, 2), (0, 1)]

    def test_round_robin_per_segment(self):
        clips = [SourceClip(0, 10), SourceClip(20, 30)]
        segments = allocate_segments([1.0, 1.0, 1.0], clips)
        assert segments == [
            Segment(0.0, 1.0, 0),
            Segment(20.0, 1.0, 1),
            Segment(1.0, 1.0, 0),
        ]

    def test_slot_spills_into_next_clip(self):
        clips = [SourceClip(0, 1), SourceClip(10, 12)]
        segments = allocate_segments([2.5], clips)
        assert segments == [Segment(0.0, 1.0, 0), Segment(10.0, 1.5, 1)]

    def test_cursors_persist_across_slots(self):
        clips = [SourceClip(0, 4)]
        segments = allocate_segments([1.0, 1.0, 1.0], clips)
        assert [s.source_start for s in segments] == [0.0, 1.0, 2.0]

    def test_zero_interval_emits_nothing(self):
        segments = allocate_segments([0.0, 1.0], [SourceClip(5, 8)])
        assert segments == [Segment(5.0, 1.0, 0)]

    @pytest.mark.parametrize("intervals", [
        [3.0, 0.0, 4.0, 3.0],
        [0.25] * 40,
        [12.5, 0.5, 7.75],
        [],
    ])
    @pytest.mark.parametrize("clips", [
        [SourceClip(0, 2)],
        [SourceClip(1, 1.5), SourceClip(30, 33), SourceClip(60, 61)],
    ])
    def test_segments_cover_slots_inside_clips(self, intervals, clips):
        segments = allocate_segments(intervals, clips)

        assert sum(s.duration for s in segments) == pytest.approx(sum(intervals))
        for segment in segments:
            clip = clips[segment.clip_index]
            assert segment.duration > 0
            assert segment.source_start >= clip.start
            assert segment.source_start + segment.duration <= clip.end + 1e-9


class TestClipAllocator:

    def test_counts_wraparounds(self):
        allocator = ClipAllocator([SourceClip(0, 2)])
        allocator.allocate([5.0])
        assert allocator.wraparounds == 2
        assert allocator.clip_index == 3

    def test_empty_pool_rejected(self):
        with pytest.raises(ValueError):
            ClipAllocator([])

    def test_zero_length_clip_rejected(self):
        with pytest.raises(ValueError):
            ClipAllocator([SourceClip(0, 2), SourceClip(3, 3)])

    def test_negative_interval_rejected(self):
        allocator = ClipAllocator([SourceClip(0, 2)])
        with pytest.raises(ValueError):
            allocator.fill(-0.5)


def test_build_montage_plan():
    plan = build_montage_plan([7, 3, 3], Region(0, 10), [SourceClip(0, 2)], 1.0)

    assert plan.region == Region(0.0, 10.0)
    assert plan.intervals == [3.0, 0.0, 4.0, 3.0]
    assert plan.total_duration == pytest.approx(10.0)
    assert all(s.clip_index == 0 for s in plan.segments)


class TestFloatResidue:
    """Decimal timestamps are not exact in binary; noise must not become footage."""

    def test_noise_does_not_split_a_slot(self):
        allocator = ClipAllocator([SourceClip(0.0, 0.3)])
        segments = allocator.fill(0.1 + 0.2)

        assert len(segments) == 1
        assert segments[0].duration == pytest.approx(0.3)
        assert allocator.clip_index == 1

    def test_decimal_pool_segments_are_real_footage(self):
        plan = build_montage_plan([22.825, 29.642], Region(18.87, 31.74), DECIMAL_POOL, 59.94)

        assert all(segment.duration > TIME_EPSILON for segment in plan.segments)
        assert plan.total_duration == pytest.approx(plan.region.duration)

        graph = build_filter_graph(plan.segments, plan.region, fade_window=2.0)
        assert not ZERO_DURATION.search(graph.to_string())

    def test_graph_never_has_zero_duration_trim(self):
        rng = random.Random(59_94)
        for _ in range(500):
            start = round(rng.uniform(0, 60), 2)
            region = Region(start, start + round(rng.uniform(1, 30), 2))
            markers = [round(rng.uniform(region.start, region.end), 3) for _ in range(rng.randint(0, 12))]
            clips = []
            for _ in range(rng.randint(1, 5)):
                clip_start = round(rng.uniform(0, 200), 1)
                clips.append(SourceClip(clip_start, round(clip_start + rng.uniform(0.3, 6), 1)))

            plan = build_montage_plan(markers, region, clips, 59.94)
            if not plan.segments:
                continue
            text = build_filter_graph(plan.segments, plan.region, fade_window=2.0).to_string()

            assert not ZERO_DURATION.search(text), (region, markers, clips)
            assert all(segment.duration > TIME_EPSILON for segment in plan.segments)
            assert plan.total_duration == pytest.approx(plan.region.duration)
            for segment in plan.segments:
                clip = clips[segment.clip_index]
                assert segment.source_start + segment.duration <= clip.end + 2 * TIME_EPSILON
