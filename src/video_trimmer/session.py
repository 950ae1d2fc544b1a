"""
Trim session controller.

Owns the loaded asset, the trim range and the playback state. Every command
arrives on the UI thread; collaborators report back on the UI thread too.
Listeners registered with add_listener are called after every change.
"""
import time
from pathlib import Path
from typing import Callable

from .config import REWIND_BUFFER, SKIP_DURATION, TOGGLE_DEBOUNCE
from .errors import ExportError, PlaybackError, ScanError, TrimmerError
from .exporter import FFmpegExporter
from .file_service import FileService
from .logger import get_logger, log_exception
from .models import (
    ExportRequest, ExportResult, PlaybackState, SessionState, TrimRange, VideoAsset
)
from .naming import resolve_output_path
from .player import Player
from .preview_loop import PreviewLoopController
from .scanner import FFprobeScanner
from . import trim_range as clamp
from .utils import format_duration, format_time, is_supported_video


class TrimSession:
    """State machine behind the trimmer window."""

    def __init__(
        self,
        player: Player,
        scanner: FFprobeScanner | None = None,
        exporter: FFmpegExporter | None = None,
        file_service: FileService | None = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.player = player
        self.scanner = scanner or FFprobeScanner()
        self.exporter = exporter or FFmpegExporter(self.scanner)
        self.file_service = file_service or FileService()
        self._clock = clock

        self.state = SessionState.IDLE
        self.asset: VideoAsset | None = None
        self.trim_range = TrimRange()
        self.playback = PlaybackState()

        self.is_loading = False
        self.is_processing = False
        self.progress = 0.0
        self.error_message: str | None = None
        self.status_message: str | None = None
        self.output_file_name = ""
        self.last_result: ExportResult | None = None

        self._listeners: list[Callable[['TrimSession'], None]] = []
        self._edited = False
        self._load_id = 0
        self._pending_load_id: int | None = None
        self._export_id = 0
        self._export_request: ExportRequest | None = None
        self._cancel_requested = False
        self._last_toggle_time: float | None = None
        self._seek_generation = 0
        self._seek_target: float | None = None

        self._preview_loop = PreviewLoopController(player, REWIND_BUFFER)
        player.add_position_observer(self.on_position_report)
        player.add_playing_observer(self.on_playing_changed)

    # Listeners

    def add_listener(self, callback: Callable[['TrimSession'], None]):
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[['TrimSession'], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback(self)

    # Derived state

    @property
    def current_time(self) -> float:
        return self.playback.current_time

    @property
    def is_preview_mode(self) -> bool:
        return self.playback.is_preview_mode

    @property
    def is_playing(self) -> bool:
        return self.playback.is_playing

    @property
    def preview_loop_active(self) -> bool:
        return self._preview_loop.active

    @property
    def trim_duration(self) -> float:
        return self.trim_range.duration

    @property
    def can_start_export(self) -> bool:
        if self.asset is None or self.is_processing:
            return False
        return clamp.validate_trim_range(self.trim_range, self.asset).is_valid

    @property
    def can_play(self) -> bool:
        return self.asset is not None

    @property
    def can_set_times(self) -> bool:
        return self.asset is not None and not self.is_processing

    @property
    def start_time_formatted(self) -> str:
        return format_time(self.trim_range.start)

    @property
    def end_time_formatted(self) -> str:
        return format_time(self.trim_range.end)

    @property
    def current_time_formatted(self) -> str:
        return format_time(self.playback.current_time)

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.asset.duration) if self.asset else "00:00"

    def timeline_fractions(self) -> tuple[float, float, float]:
        """Start, end and playhead as fractions of the asset duration."""
        if self.asset is None or self.asset.duration <= 0:
            return 0.0, 0.0, 0.0
        duration = self.asset.duration
        return (
            self.trim_range.start / duration,
            self.trim_range.end / duration,
            min(1.0, max(0.0, self.playback.current_time / duration)),
        )

    def is_in_trim_range(self, time_value: float) -> bool:
        return self.trim_range.start <= time_value <= self.trim_range.end

    # Loading

    def scan_source(self, path: Path) -> VideoAsset:
        """
        Make the working copy of a source and scan it.

        Does not touch session state, so it may run on a worker thread.

        Raises:
            ScanError: unsupported or unreadable source
            FilesystemError: the working copy failed
        """
        path = Path(path)
        if not is_supported_video(path):
            raise ScanError(f"Unsupported file format: {path.suffix or path.name}")

        if self.file_service.settings.use_working_copy:
            path = self.file_service.copy_to_working_dir(path)
        return self.scanner.scan(path)

    def begin_load(self, path: Path) -> int:
        """Start a load; any load still pending is superseded."""
        self._load_id += 1
        self._pending_load_id = self._load_id
        self.is_loading = True
        self.error_message = None
        get_logger().info(f"Loading {path} (load #{self._load_id})")
        self._notify()
        return self._load_id

    def is_current_load(self, load_id: int) -> bool:
        return load_id == self._pending_load_id

    def complete_load(self, load_id: int, asset: VideoAsset) -> bool:
        """
        Apply a finished scan.

        Returns:
            True if the asset became the session's asset
        """
        logger = get_logger()
        if not self.is_current_load(load_id):
            logger.debug(f"Discarding stale load #{load_id}")
            return False

        self._pending_load_id = None
        self.is_loading = False

        if not asset.is_valid:
            self.error_message = asset.error_message or "Invalid video file"
            logger.warning(f"Rejected {asset.file_name}: {self.error_message}")
            self._notify()
            return False

        self._preview_loop.stop()
        self.asset = asset
        self.trim_range = TrimRange(0.0, asset.duration)
        self.playback = PlaybackState()
        self._edited = False
        self._seek_target = None
        self.state = SessionState.READY
        self.last_result = None
        self.status_message = None

        try:
            self.player.load(asset.path)
        except PlaybackError as e:
            log_exception(e, "Player could not load video")
            self.error_message = str(e)

        self.output_file_name = self._suggest_output_name()
        logger.info(f"Loaded {asset.file_name} ({asset.formatted_duration})")
        self._notify()
        return True

    def fail_load(self, load_id: int, error: Exception) -> bool:
        if not self.is_current_load(load_id):
            get_logger().debug(f"Discarding stale load error #{load_id}: {error}")
            return False

        self._pending_load_id = None
        self.is_loading = False
        self.error_message = str(error)
        log_exception(error, "Load failed")
        self._notify()
        return True

    def load(self, path: Path) -> bool:
        """Load a source synchronously."""
        load_id = self.begin_load(path)
        try:
            asset = self.scan_source(path)
        except TrimmerError as e:
            self.fail_load(load_id, e)
            return False
        return self.complete_load(load_id, asset)

    def _suggest_output_name(self) -> str:
        try:
            folder = self.file_service.destination_folder()
            return resolve_output_path(self.asset.path, folder, self.asset.path.suffix).name
        except TrimmerError as e:
            get_logger().warning(f"No output name available: {e}")
            return ""

    def reset_state(self):
        """
        Drop the asset and return to idle. A pending load is discarded.

        A running export is cancelled but stays in flight until its terminal
        result arrives through complete_export.
        """
        self._pending_load_id = None
        self.cancel_export()
        self._preview_loop.stop()
        self.player.cleanup()

        self.asset = None
        self.trim_range = TrimRange()
        self.playback = PlaybackState()
        self.state = SessionState.IDLE
        self.is_loading = False
        self.error_message = None
        self.status_message = None
        self.output_file_name = ""
        self._edited = False
        self._seek_target = None
        get_logger().info("Session reset")
        self._notify()

    unload = reset_state

    # Trim range

    def _apply_range(self, new_range: TrimRange):
        self.trim_range = new_range
        self._edited = True
        get_logger().debug(
            f"Trim range [{new_range.start:.3f}, {new_range.end:.3f}]"
        )

        if self.playback.is_preview_mode:
            if not self.is_in_trim_range(self.playback.current_time):
                self.seek(self.trim_range.start)
            self._preview_loop.start(self.trim_range.start, self.trim_range.end)
        else:
            self.state = SessionState.EDITING
        self._notify()

    def set_start(self, time_value: float):
        if not self.can_set_times:
            return
        self._apply_range(clamp.set_start(self.trim_range, time_value, self.asset.duration))

    def set_end(self, time_value: float):
        if not self.can_set_times:
            return
        self._apply_range(clamp.set_end(self.trim_range, time_value, self.asset.duration))

    def set_start_to_playhead(self):
        self.set_start(self.playback.current_time)

    def set_end_to_playhead(self):
        self.set_end(self.playback.current_time)

    def reset_trim(self):
        """Back to the full duration with the playhead at 0."""
        if not self.can_set_times:
            return
        self.trim_range = TrimRange(0.0, self.asset.duration)
        self._edited = False
        self.seek(0.0)
        if self.playback.is_preview_mode:
            self._preview_loop.start(self.trim_range.start, self.trim_range.end)
        else:
            self.state = SessionState.READY
        self._notify()

    # Playback

    def seek(self, time_value: float, completion: Callable[[], None] | None = None):
        """
        Seek the player.

        The target is the current time until the seek lands; position
        reports arriving before that are stale and ignored.
        """
        if self.asset is None:
            return
        target = max(0.0, min(time_value, self.asset.duration))
        self._seek_generation += 1
        generation = self._seek_generation
        self._seek_target = target
        self.playback.current_time = target

        def done():
            if generation == self._seek_generation:
                self._seek_target = None
                self.playback.current_time = target
                self._notify()
            if completion:
                completion()

        self.player.seek(target, done)
        self._notify()

    def on_position_report(self, position: float):
        if self._seek_target is not None:
            return
        self.playback.current_time = position
        self._notify()

    def on_playing_changed(self, is_playing: bool):
        self.playback.is_playing = is_playing
        self._notify()

    def report_playback_error(self, message: str):
        get_logger().error(f"Playback error: {message}")
        self.error_message = message
        self._notify()

    def toggle_play(self) -> bool:
        """
        Play or pause. Calls within TOGGLE_DEBOUNCE of the previous one are
        dropped, since menu, shortcut and button can fire together.

        Returns:
            True if the command was applied
        """
        now = self._clock()
        if self._last_toggle_time is not None and now - self._last_toggle_time < TOGGLE_DEBOUNCE:
            get_logger().debug("toggle_play skipped (debounce)")
            return False
        self._last_toggle_time = now

        if self.asset is None:
            return False

        if self.playback.is_playing:
            self.player.pause()
            self.playback.is_playing = False
        else:
            self.player.play()
            self.playback.is_playing = True
            if self.playback.is_preview_mode:
                self._preview_loop.start(self.trim_range.start, self.trim_range.end)

        self._notify()
        return True

    def skip_forward(self):
        self.seek(self.playback.current_time + SKIP_DURATION)

    def skip_backward(self):
        self.seek(self.playback.current_time - SKIP_DURATION)

    def seek_to_timeline_position(
        self,
        fraction: float,
        bounds: tuple[float, float] | None = None
    ):
        """Seek to a fraction of the duration, kept inside bounds while previewing."""
        if self.asset is None:
            return
        if self.playback.is_preview_mode and bounds is not None:
            fraction = max(bounds[0], min(bounds[1], fraction))
        fraction = max(0.0, min(1.0, fraction))
        target = fraction * self.asset.duration
        if self.playback.is_preview_mode:
            self.seek_in_preview_mode(target)
        else:
            self.seek(target)

    def seek_in_preview_mode(self, time_value: float):
        if self.asset is None:
            return
        self.player.pause()
        self.playback.is_playing = False
        if self.is_in_trim_range(time_value):
            target = time_value
        else:
            target = self.trim_range.start + REWIND_BUFFER
        self.seek(target, self._resume_preview)

    # Preview

    def toggle_preview(self):
        if self.asset is None:
            return

        logger = get_logger()
        if not self.playback.is_preview_mode:
            self.playback.is_preview_mode = True
            self.state = SessionState.PREVIEWING
            logger.info("Preview on")

            if not self.is_in_trim_range(self.playback.current_time):
                self.player.pause()
                self.playback.is_playing = False
                self.seek(self.trim_range.start + REWIND_BUFFER, self._resume_preview)
            else:
                self._preview_loop.start(self.trim_range.start, self.trim_range.end)
                if not self.playback.is_playing:
                    self.player.play()
                    self.playback.is_playing = True
        else:
            # Playback keeps running, just unlooped
            self.playback.is_preview_mode = False
            self._preview_loop.stop()
            self.state = SessionState.EDITING if self._edited else SessionState.READY
            logger.info("Preview off")

        self._notify()

    def _resume_preview(self):
        if not self.playback.is_preview_mode:
            return
        self._preview_loop.start(self.trim_range.start, self.trim_range.end)
        self.player.play()
        self.playback.is_playing = True
        self._notify()

    # Export

    def begin_export(self) -> ExportRequest | None:
        """
        Validate and reserve an export.

        Only one export is in flight at a time: until the previous request's
        terminal result reached complete_export, this returns None, even
        after the session was reset.

        Returns:
            The request to hand to the exporter, or None when the export is
            not allowed right now
        """
        logger = get_logger()
        if self._export_request is not None:
            logger.warning(
                f"Export rejected: export #{self._export_request.export_id} has not finished"
            )
            return None
        if self.asset is None:
            logger.debug("Export rejected: no video loaded")
            return None

        validation = clamp.validate_trim_range(self.trim_range, self.asset)
        if not validation.is_valid:
            logger.warning(f"Export rejected: {validation.error_message}")
            return None

        try:
            folder = self.file_service.destination_folder()
            output_path = resolve_output_path(self.asset.path, folder, self.asset.path.suffix)
        except TrimmerError as e:
            log_exception(e, "No output path")
            self.error_message = str(e)
            self._notify()
            return None

        self._export_id += 1
        request = ExportRequest(
            self.asset, self.trim_range.copy(), output_path, export_id=self._export_id
        )
        self.exporter.prepare()
        self._export_request = request
        self._cancel_requested = False
        self.is_processing = True
        self.progress = 0.0
        self.error_message = None
        self.status_message = None
        self.output_file_name = output_path.name

        logger.info(
            f"Export #{request.export_id} {self.asset.file_name} [{request.trim_range.start:.3f}, "
            f"{request.trim_range.end:.3f}] -> {output_path}"
        )
        self._notify()
        return request

    def is_current_export(self, export_id: int | None) -> bool:
        """True if export_id is the export in flight; None stands for it."""
        if self._export_request is None:
            return False
        return export_id is None or export_id == self._export_request.export_id

    def update_progress(self, fraction: float, export_id: int | None = None):
        if not self.is_current_export(export_id):
            return
        self.progress = max(0.0, min(1.0, fraction))
        self._notify()

    def complete_export(self, result: ExportResult, export_id: int | None = None) -> bool:
        """
        Apply the exporter's terminal result.

        Args:
            result: Terminal result
            export_id: Id of the request the result belongs to, None for the
                export in flight

        Returns:
            False if the result is late, duplicate or belongs to another export
        """
        logger = get_logger()
        if not self.is_current_export(export_id):
            logger.debug(f"Ignoring export result '{result.status}' for export #{export_id}")
            return False

        self.is_processing = False
        self._export_request = None
        self._cancel_requested = False
        self.last_result = result

        if result.is_success:
            self.progress = 1.0
            self.output_file_name = result.output_path.name
            self.status_message = f"Saved {result.output_path.name}"
            logger.info(f"Export finished: {result.output_path}")
        elif result.is_cancelled:
            self.progress = 0.0
            self.status_message = "Trim cancelled"
            logger.info("Export cancelled")
        else:
            self.progress = 0.0
            self.error_message = f"Trim failed: {result.error}"
            logger.error(self.error_message)

        self._notify()
        return True

    @property
    def last_output_path(self) -> Path | None:
        if self.last_result and self.last_result.is_success:
            return self.last_result.output_path
        return None

    @property
    def last_output_duration(self) -> float | None:
        if self.last_result and self.last_result.is_success:
            return self.last_result.duration
        return None

    def run_export(
        self,
        progress_callback: Callable[[float], None] | None = None
    ) -> ExportResult | None:
        """
        Export synchronously on the calling thread.

        Only for callers without an event loop; the window runs the exporter
        on a worker and calls begin_export/complete_export itself.
        """
        request = self.begin_export()
        if request is None:
            return None

        def on_progress(fraction: float):
            self.update_progress(fraction, request.export_id)
            if progress_callback:
                progress_callback(fraction)

        try:
            result = self.exporter.export(request, on_progress)
        except (ExportError, OSError) as e:
            log_exception(e, "Export failed")
            result = ExportResult.failed(str(e))

        self.complete_export(result, request.export_id)
        return result

    def cancel_export(self):
        """Ask the exporter to stop. No-op without an export or when already asked."""
        if not self.is_processing or self._cancel_requested:
            return
        self._cancel_requested = True
        get_logger().info("Cancel requested")
        self.exporter.cancel()
