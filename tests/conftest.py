import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Keep test runs out of the user's log directory
os.environ.setdefault("VIDEO_TRIMMER_LOG_DIR", tempfile.mkdtemp(prefix="video-trimmer-logs-"))

from video_trimmer.config import TrimmerSettings
from video_trimmer.file_service import FileService
from video_trimmer.models import ExportResult, VideoAsset
from video_trimmer.player import Player
from video_trimmer.session import TrimSession


class FakePlayer(Player):
    """Records commands; seeks complete immediately unless deferred."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.defer_seeks = False
        self.pending_seeks = []

    def load(self, path):
        self.calls.append(("load", Path(path)))
        self.current_time = 0.0

    def play(self):
        self.calls.append(("play",))
        self._emit_playing(True)

    def pause(self):
        self.calls.append(("pause",))
        self._emit_playing(False)

    def seek(self, time, completion=None):
        self.calls.append(("seek", time))
        if self.defer_seeks:
            self.pending_seeks.append((time, completion))
            return
        self.current_time = time
        if completion:
            completion()

    def finish_seeks(self):
        pending, self.pending_seeks = self.pending_seeks, []
        for time, completion in pending:
            self.current_time = time
            if completion:
                completion()

    def cleanup(self):
        self.calls.append(("cleanup",))
        self._emit_playing(False)

    def report(self, position):
        """Simulate a periodic position report."""
        self._emit_position(position)

    def seeks(self):
        return [call[1] for call in self.calls if call[0] == "seek"]


class FakeScanner:
    def __init__(self, assets=None):
        self.assets = assets or {}
        self.scanned = []

    def scan(self, path):
        self.scanned.append(Path(path))
        return self.assets[Path(path).name]

    def probe_duration(self, path):
        return None


class FakeExporter:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []
        self.prepare_calls = 0
        self.cancel_calls = 0

    def prepare(self):
        self.prepare_calls += 1

    def export(self, request, progress_callback=None):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if progress_callback:
            progress_callback(0.5)
        if self.result is not None:
            return self.result
        request.output_path.write_bytes(b"trimmed")
        return ExportResult.success(request.output_path, request.trim_range.duration)

    def cancel(self):
        self.cancel_calls += 1


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_asset(path, duration=60.0, size=1000, width=1920, height=1080, frame_rate=30.0):
    return VideoAsset.create(
        path=Path(path),
        duration=duration,
        size=size,
        width=width,
        height=height,
        frame_rate=frame_rate
    )


@pytest.fixture
def output_dir(tmp_path):
    folder = tmp_path / "out"
    folder.mkdir()
    return folder


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "video.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def exporter():
    return FakeExporter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def file_service(output_dir, tmp_path):
    settings = TrimmerSettings(
        output_dir=output_dir,
        working_dir=tmp_path / "work",
        use_working_copy=False
    )
    return FileService(settings)


@pytest.fixture
def session(player, exporter, file_service, clock, source_file):
    scanner = FakeScanner({source_file.name: make_asset(source_file)})
    return TrimSession(
        player,
        scanner=scanner,
        exporter=exporter,
        file_service=file_service,
        clock=clock
    )


@pytest.fixture
def loaded_session(session, source_file):
    assert session.load(source_file)
    return session
