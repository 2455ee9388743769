"""
Tests for submission validation and run snapshots.
"""

from pathlib import Path

import pytest

from beat_montage.core.models import MontageRequest, Region, Run, RunStatus
from beat_montage.exceptions import InvalidRequest


class TestMontageRequest:

    def test_editor_field_names(self, payload):
        request = MontageRequest.from_payload(payload)

        assert request.source_id == "745804"
        assert request.region == Region(0.0, 10.0)
        assert request.beat_markers == [2.5, 5.0, 7.5]
        assert request.music_name == "anthem.mp3"

    def test_neutral_field_names(self):
        request = MontageRequest.from_payload({
            "sourceId": 42,
            "region": {"start": 1, "end": 3},
            "beatMarkers": [],
            "musicName": "a.mp3",
        })
        assert request.source_id == "42"
        assert request.region == Region(1.0, 3.0)

    def test_upload_replaces_music_name(self, payload):
        del payload["musicName"]
        request = MontageRequest.from_payload(payload, audio_upload=Path("/tmp/audioFile-1.mp3"))
        assert request.audio_upload == Path("/tmp/audioFile-1.mp3")

    @pytest.mark.parametrize("mutate", [
        lambda p: p.pop("gamePk"),
        lambda p: p.pop("reelRegion"),
        lambda p: p.pop("beatMarkers"),
        lambda p: p.pop("musicName"),
        lambda p: p.update(gamePk="../etc"),
        lambda p: p.update(reelRegion={"start": 5, "end": 5}),
        lambda p: p.update(reelRegion={"start": 8, "end": 2}),
        lambda p: p.update(reelRegion={"start": -1, "end": 2}),
        lambda p: p.update(reelRegion={"start": "0", "end": 2}),
        lambda p: p.update(reelRegion={"start": 0, "end": float("inf")}),
        lambda p: p.update(beatMarkers="1,2,3"),
        lambda p: p.update(beatMarkers=[1, "two"]),
        lambda p: p.update(beatMarkers=[True]),
        lambda p: p.update(musicName=7),
    ])
    def test_invalid_payloads(self, payload, mutate):
        mutate(payload)
        with pytest.raises(InvalidRequest):
            MontageRequest.from_payload(payload)

    @pytest.mark.parametrize("payload", [None, [], "montage"])
    def test_non_object_payload(self, payload):
        with pytest.raises(InvalidRequest):
            MontageRequest.from_payload(payload)


def test_run_snapshot_hides_internal_paths():
    run = Run(id="r1", output_path="/data/downloads/x.mp4", audio_upload="/data/uploads/a.mp3")
    data = run.to_dict()

    assert data["status"] == "processing"
    assert "output_path" not in data
    assert "audio_upload" not in data


def test_terminal_states():
    assert not RunStatus.PROCESSING.is_terminal
    assert RunStatus.COMPLETED.is_terminal
    assert RunStatus.FAILED.is_terminal
