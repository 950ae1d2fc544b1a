"""Lossless (stream copy) export of a trim range using ffmpeg."""
import platform
import subprocess
import threading
import time
from pathlib import Path
from typing import Callable

from .errors import ExportError
from .ffmpeg_manager import get_ffmpeg_path
from .logger import get_logger
from .models import ExportRequest, ExportResult
from .scanner import FFprobeScanner

FASTSTART_EXTENSIONS = {'.mp4', '.mov', '.m4v'}


def get_temp_path(output_path: Path) -> Path:
    """Temporary file written while exporting, renamed on success."""
    return output_path.with_name(f"{output_path.stem}.tmp{output_path.suffix}")


def build_command(request: ExportRequest, output_path: Path) -> list[str]:
    """Build the ffmpeg stream-copy command for a request."""
    trim = request.trim_range
    cmd = [
        get_ffmpeg_path(),
        '-y',
        '-ss', f"{trim.start:.3f}",
        '-i', str(request.source_path),
        '-t', f"{trim.duration:.3f}",
        '-map', '0',
        '-c', 'copy',
        '-avoid_negative_ts', 'make_zero',
    ]
    if output_path.suffix.lower() in FASTSTART_EXTENSIONS:
        cmd.extend(['-movflags', '+faststart'])
    cmd.extend(['-progress', 'pipe:1', '-nostats', str(output_path)])
    return cmd


def parse_progress_line(line: str, duration: float) -> float | None:
    """Turn an ffmpeg "-progress" line into a 0.0 - 1.0 fraction."""
    if not line.startswith('out_time_ms=') or duration <= 0:
        return None
    try:
        out_time_us = int(line.split('=', 1)[1])
    except ValueError:
        return None
    return max(0.0, min(1.0, out_time_us / 1000000 / duration))


class FFmpegExporter:
    """Runs one ffmpeg export at a time."""

    STALL_TIMEOUT = 10  # seconds without ffmpeg output

    def __init__(self, scanner: FFprobeScanner | None = None):
        self.scanner = scanner or FFprobeScanner()
        self._process: subprocess.Popen | None = None
        self._cancelled = threading.Event()

    def prepare(self):
        """Arm the exporter for a new request, before the worker thread starts."""
        self._cancelled.clear()

    def cancel(self):
        """
        Request the running export to stop. Safe to call at any time.

        A cancel that arrives between prepare() and export() stops that
        export before ffmpeg is started.
        """
        self._cancelled.set()
        process = self._process
        if process and process.poll() is None:
            get_logger().warning("Cancelling export")
            process.kill()

    def export(
        self,
        request: ExportRequest,
        progress_callback: Callable[[float], None] | None = None
    ) -> ExportResult:
        """
        Export request.trim_range of the source to request.output_path.

        Args:
            request: What to export and where
            progress_callback: Callback for progress updates (0.0 - 1.0)

        Returns:
            ExportResult with status success, cancelled or failed

        Raises:
            ExportError: ffmpeg could not be started
        """
        try:
            return self._export(request, progress_callback)
        finally:
            self._cancelled.clear()

    def _export(
        self,
        request: ExportRequest,
        progress_callback: Callable[[float], None] | None
    ) -> ExportResult:
        logger = get_logger()
        if self._cancelled.is_set():
            logger.info("Export cancelled before ffmpeg started")
            return ExportResult.cancelled()

        output_path = Path(request.output_path)
        temp_path = get_temp_path(output_path)
        duration = request.trim_range.duration

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create {output_path.parent}: {e}")
            return ExportResult.failed(f"Destination folder unavailable: {output_path.parent}")

        cmd = build_command(request, temp_path)
        logger.debug(f"FFmpeg command: {' '.join(cmd)}")

        popen_kwargs = {
            'stdout': subprocess.PIPE,
            'stderr': subprocess.PIPE,
            'text': True,
            'errors': 'replace',
            'encoding': 'utf-8'
        }
        if platform.system() == 'Windows':
            popen_kwargs['creationflags'] = subprocess.CREATE_NO_WINDOW

        try:
            self._process = subprocess.Popen(cmd, **popen_kwargs)
        except OSError as e:
            raise ExportError(f"Could not start ffmpeg: {e}") from e

        logger.info(f"FFmpeg process started (PID: {self._process.pid})")
        # cancel() may have run while Popen was starting and found no process
        if self._cancelled.is_set():
            self._process.kill()

        try:
            return_code, stalled, stderr = self._wait(self._process, duration, progress_callback)
        finally:
            self._process = None

        # A process that already exited cleanly wins over a late cancel
        if return_code == 0:
            return self._finish(temp_path, output_path, progress_callback)

        self._remove_partial(temp_path)

        if self._cancelled.is_set():
            logger.info("Export cancelled")
            return ExportResult.cancelled()

        if stalled:
            return ExportResult.failed("ffmpeg stopped responding")

        stderr = stderr.strip()
        error_msg = stderr[-500:] if stderr else f"FFmpeg exit code: {return_code}"
        logger.error(f"FFmpeg failed: {error_msg}")
        return ExportResult.failed(error_msg)

    def _finish(
        self,
        temp_path: Path,
        output_path: Path,
        progress_callback: Callable[[float], None] | None
    ) -> ExportResult:
        """Move the finished temp file into place without replacing anything."""
        logger = get_logger()
        if output_path.exists():
            # Written by someone else after the name was resolved
            self._remove_partial(temp_path)
            logger.error(f"Refusing to overwrite {output_path}")
            return ExportResult.failed(f"{output_path.name} already exists")

        try:
            temp_path.replace(output_path)
        except OSError as e:
            self._remove_partial(temp_path)
            logger.error(f"Could not move {temp_path.name} to {output_path.name}: {e}")
            return ExportResult.failed(f"Could not write {output_path.name}")

        if progress_callback:
            progress_callback(1.0)
        result_duration = self.scanner.probe_duration(output_path)
        logger.info(f"Successfully created: {output_path.name}")
        return ExportResult.success(output_path, result_duration)

    def _wait(
        self,
        process: subprocess.Popen,
        duration: float,
        progress_callback: Callable[[float], None] | None
    ) -> tuple[int | None, bool, str]:
        """Wait for ffmpeg, returns (exit code, stalled, stderr output)."""
        logger = get_logger()
        last_activity_time = [time.time()]
        stderr_lines: list[str] = []

        def read_progress():
            for line in process.stdout:
                last_activity_time[0] = time.time()
                progress = parse_progress_line(line.strip(), duration)
                if progress is not None and progress_callback:
                    progress_callback(progress)

        def read_stderr():
            for line in process.stderr:
                last_activity_time[0] = time.time()
                stderr_lines.append(line)

        progress_thread = threading.Thread(target=read_progress, daemon=True)
        stderr_thread = threading.Thread(target=read_stderr, daemon=True)
        progress_thread.start()
        stderr_thread.start()

        stalled = False
        while True:
            try:
                return_code = process.wait(timeout=0.5)
                logger.info(f"FFmpeg finished with return code: {return_code}")
                break
            except subprocess.TimeoutExpired:
                pass

            if self._cancelled.is_set():
                process.kill()
                return_code = process.wait()
                break

            time_since_activity = time.time() - last_activity_time[0]
            if time_since_activity > self.STALL_TIMEOUT:
                logger.warning(f"Process stalled for {time_since_activity:.0f}s, killing...")
                process.kill()
                return_code = process.wait()
                stalled = True
                break

        progress_thread.join(timeout=2.0)
        stderr_thread.join(timeout=1.0)
        return return_code, stalled, ''.join(stderr_lines)

    def _remove_partial(self, temp_path: Path):
        try:
            if temp_path.exists():
                temp_path.unlink()
                get_logger().debug(f"Removed partial file: {temp_path}")
        except OSError as e:
            get_logger().warning(f"Could not remove partial file {temp_path}: {e}")
