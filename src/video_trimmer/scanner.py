"""Read source video metadata with ffprobe."""
import json
import subprocess
from pathlib import Path

from .errors import ScanError
from .ffmpeg_manager import get_ffprobe_path, get_subprocess_args
from .logger import get_logger
from .models import VideoAsset


def parse_frame_rate(rate: str | None) -> float:
    """Parse an ffprobe rate like "30000/1001"."""
    if not rate:
        return 0.0
    try:
        if '/' in rate:
            num, den = rate.split('/')
            return float(num) / float(den) if float(den) > 0 else 0.0
        return float(rate)
    except ValueError:
        return 0.0


def get_rotation(stream: dict) -> int:
    """Get the display rotation of a video stream in degrees."""
    rotate_tag = stream.get('tags', {}).get('rotate')
    if rotate_tag is not None:
        try:
            return int(float(rotate_tag))
        except ValueError:
            pass

    for side_data in stream.get('side_data_list', []):
        if 'rotation' in side_data:
            try:
                return int(float(side_data['rotation']))
            except (TypeError, ValueError):
                continue

    return 0


def parse_probe_data(data: dict, path: Path, size: int) -> VideoAsset:
    """
    Build a VideoAsset from ffprobe JSON output.

    Width and height are swapped for streams displayed rotated by a quarter
    turn, so the asset reports the presented orientation.
    """
    video_stream = None
    for stream in data.get('streams', []):
        if stream.get('codec_type') == 'video':
            video_stream = stream
            break

    try:
        duration = float(data.get('format', {}).get('duration', 0) or 0)
    except ValueError:
        duration = 0.0

    if video_stream:
        width = int(video_stream.get('width', 0) or 0)
        height = int(video_stream.get('height', 0) or 0)
        if abs(get_rotation(video_stream)) % 180 == 90:
            width, height = height, width

        fps = parse_frame_rate(video_stream.get('avg_frame_rate'))
        if fps <= 0:
            fps = parse_frame_rate(video_stream.get('r_frame_rate'))
        if duration <= 0:
            try:
                duration = float(video_stream.get('duration', 0) or 0)
            except ValueError:
                duration = 0.0
    else:
        width = height = 0
        fps = 0.0

    return VideoAsset.create(
        path=path,
        duration=duration,
        size=size,
        width=width,
        height=height,
        frame_rate=fps
    )


def run_ffprobe(video_path: Path) -> dict:
    """
    Run ffprobe and return its parsed JSON output.

    Raises:
        ScanError: ffprobe is missing, fails, or prints garbage
    """
    cmd = [
        get_ffprobe_path(),
        '-v', 'quiet',
        '-print_format', 'json',
        '-show_format',
        '-show_streams',
        str(video_path)
    ]
    get_logger().debug(f"ffprobe command: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, **get_subprocess_args(timeout=30))
    except FileNotFoundError as e:
        raise ScanError("ffprobe not found") from e
    except subprocess.TimeoutExpired as e:
        raise ScanError(f"ffprobe timed out reading {video_path.name}") from e

    if result.returncode != 0:
        raise ScanError(f"Unsupported or unreadable file: {video_path.name}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ScanError(f"Invalid ffprobe output for {video_path.name}") from e


class FFprobeScanner:
    """Asset scanner backed by ffprobe."""

    def scan(self, path: Path) -> VideoAsset:
        """
        Get video information for a source file.

        Args:
            path: Path to video file

        Returns:
            VideoAsset; check is_valid for the source limits

        Raises:
            ScanError: the file cannot be read
        """
        path = Path(path)
        if not path.is_file():
            raise ScanError(f"File not found: {path}")

        data = run_ffprobe(path)
        asset = parse_probe_data(data, path, path.stat().st_size)

        get_logger().info(
            f"Scanned {asset.file_name}: {asset.duration:.2f}s, "
            f"{asset.resolution}, {asset.frame_rate:.2f} fps, {asset.formatted_size}"
        )
        return asset

    def probe_duration(self, path: Path) -> float | None:
        """Read back the duration of a written file, None if unreadable."""
        try:
            data = run_ffprobe(Path(path))
            return float(data.get('format', {}).get('duration', 0)) or None
        except (ScanError, ValueError) as e:
            get_logger().warning(f"Could not read duration of {path}: {e}")
            return None
