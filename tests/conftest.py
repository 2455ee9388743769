import threading
import time

import pytest

from beat_montage.config import get_settings
from beat_montage.core.job_manager import MontageJobManager
from beat_montage.web_ui.app import create_app


class FakeWorkflow:
    """Stands in for analysis + render; writes a dummy montage."""

    def __init__(self):
        self.gate = None
        self.error = None
        self.calls = []

    def hold(self):
        self.gate = threading.Event()
        return self.gate

    def release(self):
        if self.gate is not None:
            self.gate.set()

    def execute(self, inputs, progress):
        self.calls.append(inputs.run_id)
        if self.gate is not None:
            self.gate.wait(5)
        progress.advance(inputs.run_id, 10, "Analyzing video...")
        if self.error is not None:
            raise self.error
        progress.advance(inputs.run_id, 70, "Rendering montage...")
        inputs.output_path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return inputs.output_path


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings rooted in a temp dir, with a source video and a music track on disk."""
    monkeypatch.setenv("ASSETS_DIR", str(tmp_path / "assets"))
    monkeypatch.setenv("VIDEO_DIR", str(tmp_path / "assets" / "videos"))
    monkeypatch.setenv("MUSIC_DIR", str(tmp_path / "assets" / "music"))
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "downloads"))
    monkeypatch.setattr("beat_montage.config._settings", None)

    settings = get_settings()
    settings.paths.ensure_directories()
    settings.paths.source_video_for("745804").write_bytes(b"video")
    (settings.paths.music_dir / "anthem.mp3").write_bytes(b"ID3")
    return settings


@pytest.fixture
def payload():
    return {
        "gamePk": "745804",
        "reelRegion": {"start": 0.0, "end": 10.0},
        "beatMarkers": [2.5, 5.0, 7.5],
        "musicName": "anthem.mp3",
    }


@pytest.fixture
def workflow():
    return FakeWorkflow()


@pytest.fixture
def manager(settings, workflow):
    manager = MontageJobManager(workflow, settings=settings)
    yield manager
    workflow.release()
    manager.shutdown(wait=True)


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    def _wait(predicate, timeout=5.0, interval=0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return _wait


@pytest.fixture
def client(manager, settings):
    """Flask test client."""
    app = create_app(manager=manager, settings=settings)
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
