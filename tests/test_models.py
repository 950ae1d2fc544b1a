from pathlib import Path

import pytest

from video_trimmer.config import TrimmerSettings
from video_trimmer.models import ExportResult, TrimRange, VideoAsset, check_asset_limits


def test_valid_asset():
    asset = VideoAsset.create(Path("clip.mp4"), 60.0, 2048, 1920, 1080, 29.97)
    assert asset.is_valid
    assert asset.error_message is None
    assert asset.file_name == "clip.mp4"
    assert asset.resolution == "1920x1080"
    assert asset.formatted_duration == "01:00"
    assert asset.formatted_size == "2.0 KB"


@pytest.mark.parametrize("duration, size, width, height, message", [
    (7200.5, 100, 640, 480, "Duration exceeds the limit (120 min)"),
    (0.0, 100, 640, 480, "Could not determine video duration"),
    (60.0, 1073741825, 640, 480, "File size exceeds the limit (1 GB)"),
    (60.0, 100, 0, 480, "Could not determine video resolution"),
])
def test_asset_limits(duration, size, width, height, message):
    assert check_asset_limits(duration, size, width, height) == message
    asset = VideoAsset.create(Path("clip.mp4"), duration, size, width, height, 30.0)
    assert not asset.is_valid
    assert asset.error_message == message


def test_first_failing_limit_wins():
    assert check_asset_limits(9000.0, 2 ** 31, 0, 0) == "Duration exceeds the limit (120 min)"
    assert check_asset_limits(0.0, 2 ** 31, 0, 0) == "Could not determine video duration"
    assert check_asset_limits(60.0, 2 ** 31, 0, 0) == "File size exceeds the limit (1 GB)"


def test_limits_are_inclusive():
    assert check_asset_limits(7200.0, 1073741824, 1, 1) is None


def test_trim_range_helpers():
    r = TrimRange(2.0, 5.5)
    assert r.duration == pytest.approx(3.5)

    copy = r.copy()
    copy.start = 0.0
    assert r.start == 2.0

    r.set_full_duration(30.0)
    assert r == TrimRange(0.0, 30.0)


def test_export_result_factories(tmp_path):
    ok = ExportResult.success(tmp_path / "x.mp4", 3.0)
    assert ok.is_success and not ok.is_cancelled
    assert ok.duration == 3.0

    cancelled = ExportResult.cancelled()
    assert cancelled.is_cancelled and not cancelled.is_success

    failed = ExportResult.failed("boom")
    assert failed.status == ExportResult.FAILED
    assert failed.error == "boom"


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDEO_TRIMMER_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.delenv("VIDEO_TRIMMER_WORK_DIR", raising=False)

    settings = TrimmerSettings.default()
    assert settings.output_dir == tmp_path / "out"
    assert settings.working_dir is None
    assert settings.get_working_dir() == Path.home() / ".video-trimmer" / "work"
    assert settings.use_working_copy
