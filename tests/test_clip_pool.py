"""
Tests for analysis response validation and the fallback clip.
"""

import json

import pytest

from beat_montage.core.clip_pool import (
    clips_from_analysis,
    parse_analysis_response,
    parse_timestamp,
    validate_clip,
)
from beat_montage.core.models import SourceClip
from beat_montage.exceptions import AnalysisParseError


class TestParseTimestamp:

    @pytest.mark.parametrize("value,expected", [
        ("00:01:05", 65.0),
        ("01:00:00", 3600.0),
        ("1:30", 90.0),
        ("12.5", 12.5),
        ("00:00:07.25", 7.25),
        (7, 7.0),
        (3.5, 3.5),
    ])
    def test_valid(self, value, expected):
        assert parse_timestamp(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "1::2", "1:2:3:4", "nan", "inf", None, True, [1]])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestParseAnalysisResponse:

    def test_plain_array(self):
        assert parse_analysis_response('[{"a": 1}]') == [{"a": 1}]

    def test_markdown_fence_is_stripped(self):
        text = '```json\n[{"start_timestamp": "00:00:01"}]\n```'
        assert parse_analysis_response(text) == [{"start_timestamp": "00:00:01"}]

    @pytest.mark.parametrize("text", [None, "", "   ", "not json", '{"clips": []}', "42"])
    def test_rejects_non_arrays(self, text):
        with pytest.raises(AnalysisParseError):
            parse_analysis_response(text)


class TestValidateClip:

    def test_valid_clip(self):
        item = {"start_timestamp": "00:00:10", "end_timestamp": "00:00:14", "description": "home run"}
        assert validate_clip(item, 60.0) == SourceClip(10.0, 14.0)

    @pytest.mark.parametrize("item", [
        "00:00:10",
        {"start_timestamp": "00:00:10"},
        {"start_timestamp": "00:00:20", "end_timestamp": "00:00:10"},
        {"start_timestamp": "00:00:10", "end_timestamp": "00:00:10"},
        {"start_timestamp": 10.0, "end_timestamp": 10.0000001},
        {"start_timestamp": -1, "end_timestamp": 5},
        {"start_timestamp": "00:00:50", "end_timestamp": "00:01:10"},
        {"start_timestamp": "soon", "end_timestamp": "later"},
    ])
    def test_invalid_clips(self, item):
        assert validate_clip(item, 60.0) is None

    def test_end_equal_to_duration_is_allowed(self):
        assert validate_clip({"start_timestamp": 50, "end_timestamp": 60}, 60.0) == SourceClip(50.0, 60.0)


class TestClipsFromAnalysis:

    def test_keeps_valid_clips_in_order(self):
        raw = json.dumps([
            {"start_timestamp": "00:00:05", "end_timestamp": "00:00:08"},
            {"start_timestamp": "00:00:30", "end_timestamp": "00:00:35"},
        ])
        assert clips_from_analysis(raw, 60.0) == [SourceClip(5.0, 8.0), SourceClip(30.0, 35.0)]

    def test_drops_out_of_bounds_clips(self):
        raw = json.dumps([
            {"start_timestamp": "00:00:05", "end_timestamp": "00:00:08"},
            {"start_timestamp": "00:02:00", "end_timestamp": "00:02:05"},
        ])
        assert clips_from_analysis(raw, 60.0) == [SourceClip(5.0, 8.0)]

    @pytest.mark.parametrize("raw", [
        None,
        "I could not watch this video.",
        '{"start_timestamp": "00:00:01", "end_timestamp": "00:00:02"}',
        "[]",
        '[{"start_timestamp": "00:05:00", "end_timestamp": "00:06:00"}]',
    ])
    def test_falls_back_to_whole_source(self, raw):
        assert clips_from_analysis(raw, 42.0) == [SourceClip(0.0, 42.0)]

    def test_requires_positive_duration(self):
        with pytest.raises(ValueError):
            clips_from_analysis("[]", 0)
