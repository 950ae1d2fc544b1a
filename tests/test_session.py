import pytest

from video_trimmer.config import TrimmerSettings
from video_trimmer.errors import PlaybackError
from video_trimmer.file_service import FileService
from video_trimmer.models import ExportResult, SessionState, TrimRange
from video_trimmer.session import TrimSession

from conftest import FakeExporter, FakePlayer, FakeScanner, make_asset


class TestLoading:

    def test_starts_idle(self, session):
        assert session.state == SessionState.IDLE
        assert session.asset is None
        assert not session.can_start_export
        assert not session.can_play
        assert session.duration_formatted == "00:00"

    def test_load_resets_range_and_state(self, loaded_session, player, source_file):
        assert loaded_session.state == SessionState.READY
        assert loaded_session.trim_range == TrimRange(0.0, 60.0)
        assert loaded_session.current_time == 0.0
        assert loaded_session.output_file_name == "video_trimmed.mp4"
        assert ("load", source_file) in player.calls
        assert loaded_session.can_start_export

    def test_unsupported_extension_is_rejected(self, session, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        assert not session.load(notes)
        assert session.asset is None
        assert "Unsupported" in session.error_message
        assert not session.is_loading

    def test_invalid_asset_is_rejected(self, session, tmp_path):
        load_id = session.begin_load(tmp_path / "big.mp4")
        asset = make_asset(tmp_path / "big.mp4", duration=9000.0)

        assert not session.complete_load(load_id, asset)
        assert session.asset is None
        assert session.state == SessionState.IDLE
        assert session.error_message == "Duration exceeds the limit (120 min)"

    def test_newer_load_supersedes_older(self, session, tmp_path):
        first = session.begin_load(tmp_path / "a.mp4")
        second = session.begin_load(tmp_path / "b.mp4")

        assert not session.complete_load(first, make_asset(tmp_path / "a.mp4", duration=10.0))
        assert session.asset is None
        assert session.is_loading

        assert session.complete_load(second, make_asset(tmp_path / "b.mp4", duration=20.0))
        assert session.asset.file_name == "b.mp4"
        assert not session.fail_load(first, RuntimeError("late"))
        assert session.error_message is None

    def test_player_load_error_keeps_asset(self, tmp_path, file_service, source_file):
        class BrokenPlayer(FakePlayer):
            def load(self, path):
                raise PlaybackError("Cannot decode video")

        session = TrimSession(
            BrokenPlayer(),
            scanner=FakeScanner({source_file.name: make_asset(source_file)}),
            exporter=FakeExporter(),
            file_service=file_service
        )

        assert session.load(source_file)
        assert session.asset is not None
        assert session.error_message == "Cannot decode video"

    def test_working_copy_is_scanned(self, tmp_path, source_file):
        settings = TrimmerSettings(
            output_dir=tmp_path / "out",
            working_dir=tmp_path / "work",
            use_working_copy=True
        )
        scanner = FakeScanner({source_file.name: make_asset(source_file)})
        session = TrimSession(
            FakePlayer(), scanner=scanner, exporter=FakeExporter(),
            file_service=FileService(settings)
        )

        assert session.load(source_file)
        assert scanner.scanned == [tmp_path / "work" / "Videos" / "video.mp4"]

    def test_reset_returns_to_idle(self, loaded_session, player, exporter):
        loaded_session.reset_state()

        assert loaded_session.state == SessionState.IDLE
        assert loaded_session.asset is None
        assert not loaded_session.is_processing
        assert exporter.cancel_calls == 0
        assert ("cleanup",) in player.calls

    def test_reset_keeps_running_export_until_it_finishes(self, loaded_session, exporter,
                                                           source_file):
        request = loaded_session.begin_export()
        loaded_session.reset_state()

        assert loaded_session.asset is None
        assert loaded_session.is_processing
        assert exporter.cancel_calls == 1

        assert loaded_session.load(source_file)
        assert loaded_session.begin_export() is None
        assert not loaded_session.can_start_export

        assert loaded_session.complete_export(ExportResult.cancelled(), request.export_id)
        assert not loaded_session.is_processing
        assert loaded_session.begin_export() is not None

    def test_failed_load_keeps_current_video(self, loaded_session, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        assert not loaded_session.load(notes)
        assert loaded_session.asset.file_name == "video.mp4"
        assert "Unsupported" in loaded_session.error_message
        assert loaded_session.state == SessionState.READY


class TestTrimRange:

    def test_range_edit_moves_to_editing(self, loaded_session):
        loaded_session.set_start(5.0)
        assert loaded_session.state == SessionState.EDITING
        assert loaded_session.trim_range == TrimRange(5.0, 60.0)
        assert loaded_session.start_time_formatted == "00:05.000"

    def test_end_before_start_pulls_start_back(self, loaded_session):
        loaded_session.seek(10.0)
        loaded_session.set_start_to_playhead()
        assert loaded_session.trim_range == TrimRange(10.0, 60.0)

        loaded_session.set_end(5.0)
        assert loaded_session.trim_range.start == pytest.approx(4.9)
        assert loaded_session.trim_range.end == 5.0
        assert loaded_session.can_start_export

    def test_edits_without_asset_are_ignored(self, session):
        session.set_start(3.0)
        session.set_end(4.0)
        assert session.trim_range == TrimRange()
        assert session.state == SessionState.IDLE

    def test_edits_while_exporting_are_ignored(self, loaded_session):
        loaded_session.begin_export()
        loaded_session.set_start(20.0)
        assert loaded_session.trim_range == TrimRange(0.0, 60.0)

    def test_reset_trim(self, loaded_session, player):
        loaded_session.set_start(10.0)
        loaded_session.set_end(20.0)
        loaded_session.seek(15.0)

        loaded_session.reset_trim()

        assert loaded_session.trim_range == TrimRange(0.0, 60.0)
        assert loaded_session.state == SessionState.READY
        assert loaded_session.current_time == 0.0
        assert player.seeks()[-1] == 0.0

    def test_listeners_are_notified(self, loaded_session):
        seen = []
        loaded_session.add_listener(seen.append)
        loaded_session.set_start(1.0)
        assert seen and seen[-1] is loaded_session

        loaded_session.remove_listener(seen.append)
        count = len(seen)
        loaded_session.set_start(2.0)
        assert len(seen) == count

    def test_timeline_fractions(self, loaded_session):
        loaded_session.set_start(15.0)
        loaded_session.set_end(45.0)
        loaded_session.seek(30.0)
        assert loaded_session.timeline_fractions() == pytest.approx((0.25, 0.75, 0.5))


class TestPlayback:

    def test_toggle_play_is_debounced(self, loaded_session, clock, player):
        assert loaded_session.toggle_play()
        assert loaded_session.is_playing

        clock.advance(0.05)
        assert not loaded_session.toggle_play()
        assert loaded_session.is_playing

        clock.advance(0.1)
        assert loaded_session.toggle_play()
        assert not loaded_session.is_playing
        assert [c for c in player.calls if c[0] in ("play", "pause")] == [("play",), ("pause",)]

    def test_toggle_play_without_asset(self, session):
        assert not session.toggle_play()

    def test_position_reports_during_seek_are_ignored(self, loaded_session, player):
        player.defer_seeks = True
        loaded_session.seek(30.0)

        player.report(12.0)
        assert loaded_session.current_time == 30.0

        player.finish_seeks()
        player.report(30.1)
        assert loaded_session.current_time == pytest.approx(30.1)

    def test_seek_is_clamped(self, loaded_session, player):
        loaded_session.seek(-5.0)
        loaded_session.seek(500.0)
        assert player.seeks() == [0.0, 60.0]

    def test_skip(self, loaded_session):
        loaded_session.skip_backward()
        assert loaded_session.current_time == 0.0
        loaded_session.skip_forward()
        assert loaded_session.current_time == pytest.approx(0.333)

    def test_seek_to_timeline_position(self, loaded_session):
        loaded_session.seek_to_timeline_position(0.5)
        assert loaded_session.current_time == 30.0
        loaded_session.seek_to_timeline_position(1.5)
        assert loaded_session.current_time == 60.0

    def test_playback_error_is_reported(self, loaded_session):
        loaded_session.report_playback_error("Decoder error")
        assert loaded_session.error_message == "Decoder error"


class TestPreview:

    @pytest.fixture
    def previewing(self, loaded_session):
        loaded_session.set_start(2.0)
        loaded_session.set_end(5.0)
        loaded_session.toggle_preview()
        return loaded_session

    def test_preview_starts_inside_range(self, previewing, player):
        assert previewing.state == SessionState.PREVIEWING
        assert previewing.is_preview_mode
        assert previewing.preview_loop_active
        assert previewing.is_playing
        assert player.seeks() == [pytest.approx(2.1)]

    def test_playback_loops_inside_range(self, previewing, player):
        player.report(3.0)
        player.report(5.0)
        assert player.seeks() == [pytest.approx(2.1), pytest.approx(2.1)]

        player.report(1.9)
        assert len(player.seeks()) == 3
        assert player.calls[-1] == ("play",)

    def test_range_change_rebuilds_loop(self, previewing, player):
        previewing.set_start(3.0)

        assert previewing.state == SessionState.PREVIEWING
        assert player.seeks()[-1] == 3.0

        player.report(4.0)
        player.report(5.0)
        assert player.seeks()[-1] == pytest.approx(3.1)

    def test_preview_off_keeps_playing(self, previewing, player):
        previewing.toggle_preview()

        assert previewing.state == SessionState.EDITING
        assert not previewing.preview_loop_active
        assert previewing.is_playing

        seeks = len(player.seeks())
        player.report(6.0)
        assert len(player.seeks()) == seeks

    def test_seek_outside_range_while_previewing(self, previewing, player):
        previewing.seek_in_preview_mode(20.0)
        assert player.seeks()[-1] == pytest.approx(2.1)
        assert previewing.is_playing

        previewing.seek_in_preview_mode(4.0)
        assert player.seeks()[-1] == 4.0

    def test_timeline_seek_is_kept_inside_bounds(self, previewing, player):
        previewing.seek_to_timeline_position(0.9, (0.05, 0.0625))
        assert player.seeks()[-1] == 3.75


class TestExport:

    def test_export_writes_file(self, loaded_session, output_dir, exporter):
        loaded_session.set_start(1.0)
        loaded_session.set_end(3.0)
        progress = []

        result = loaded_session.run_export(progress.append)

        assert result.is_success
        assert (output_dir / "video_trimmed.mp4").exists()
        assert exporter.requests[0].trim_range == TrimRange(1.0, 3.0)
        assert progress == [0.5]
        assert loaded_session.progress == 1.0
        assert not loaded_session.is_processing
        assert loaded_session.status_message == "Saved video_trimmed.mp4"
        assert loaded_session.last_output_path == output_dir / "video_trimmed.mp4"
        assert loaded_session.last_output_duration == pytest.approx(2.0)

    def test_repeated_export_gets_new_name(self, loaded_session, output_dir):
        loaded_session.run_export()
        loaded_session.run_export()
        assert (output_dir / "video_trimmed_1.mp4").exists()
        assert loaded_session.output_file_name == "video_trimmed_1.mp4"

    def test_only_one_export_at_a_time(self, loaded_session):
        assert loaded_session.begin_export() is not None
        assert loaded_session.begin_export() is None
        assert not loaded_session.can_start_export

    def test_export_without_asset(self, session):
        assert session.begin_export() is None
        assert session.run_export() is None

    def test_request_is_a_snapshot(self, loaded_session):
        request = loaded_session.begin_export()
        loaded_session.trim_range.start = 30.0
        assert request.trim_range.start == 0.0

    def test_cancel_is_idempotent(self, loaded_session, exporter):
        loaded_session.begin_export()
        loaded_session.cancel_export()
        loaded_session.cancel_export()
        assert exporter.cancel_calls == 1

        assert loaded_session.complete_export(ExportResult.cancelled())
        assert loaded_session.status_message == "Trim cancelled"
        assert loaded_session.progress == 0.0

        loaded_session.cancel_export()
        assert exporter.cancel_calls == 1

    def test_failed_export(self, loaded_session):
        loaded_session.begin_export()
        loaded_session.update_progress(0.4)
        assert loaded_session.progress == 0.4

        loaded_session.complete_export(ExportResult.failed("disk full"))

        assert loaded_session.error_message == "Trim failed: disk full"
        assert loaded_session.last_output_path is None
        assert loaded_session.can_start_export

    def test_progress_outside_export_is_ignored(self, loaded_session):
        loaded_session.update_progress(0.7)
        assert loaded_session.progress == 0.0

    def test_late_result_is_ignored(self, loaded_session):
        assert not loaded_session.complete_export(ExportResult.failed("late"))
        assert loaded_session.error_message is None

    def test_begin_export_arms_exporter(self, loaded_session, exporter):
        first = loaded_session.begin_export()
        loaded_session.complete_export(ExportResult.cancelled(), first.export_id)
        second = loaded_session.begin_export()

        assert exporter.prepare_calls == 2
        assert second.export_id > first.export_id

    def test_result_for_another_export_is_ignored(self, loaded_session):
        first = loaded_session.begin_export()
        loaded_session.complete_export(ExportResult.cancelled(), first.export_id)
        second = loaded_session.begin_export()

        loaded_session.update_progress(0.9, first.export_id)
        assert loaded_session.progress == 0.0
        assert not loaded_session.complete_export(ExportResult.failed("stale"), first.export_id)
        assert loaded_session.is_processing
        assert loaded_session.error_message is None

        loaded_session.update_progress(0.3, second.export_id)
        assert loaded_session.progress == 0.3
        assert loaded_session.complete_export(ExportResult.failed("disk full"), second.export_id)
        assert not loaded_session.is_processing

    def test_os_error_during_export_fails_it(self, tmp_path, player, file_service, source_file):
        session = TrimSession(
            player,
            scanner=FakeScanner({source_file.name: make_asset(source_file)}),
            exporter=FakeExporter(error=PermissionError("Permission denied")),
            file_service=file_service
        )
        session.load(source_file)

        result = session.run_export()

        assert result.status == ExportResult.FAILED
        assert not session.is_processing
        assert session.error_message == "Trim failed: Permission denied"
        assert session.can_start_export
