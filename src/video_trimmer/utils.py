"""Utility functions for video trimmer."""
from pathlib import Path

from .config import SUPPORTED_FORMATS


def _split_seconds(seconds: float) -> tuple[int, int, int]:
    total = int(seconds)
    return total // 3600, (total % 3600) // 60, total % 60


def format_duration(seconds: float) -> str:
    """Format seconds as MM:SS, or HH:MM:SS from one hour up."""
    hours, minutes, secs = _split_seconds(max(0.0, seconds))
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_time(seconds: float) -> str:
    """Format seconds as MM:SS.mmm, or HH:MM:SS.mmm from one hour up."""
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, minutes, secs = _split_seconds(total_ms // 1000)
    millis = total_ms % 1000
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
    return f"{minutes:02d}:{secs:02d}.{millis:03d}"


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as a human readable size."""
    if size_bytes <= 0:
        return "0 B"

    size = float(size_bytes)
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024.0
        i += 1

    if i == 0:
        return f"{int(size)} B"
    return f"{size:.1f} {units[i]}"


def is_supported_video(path: Path) -> bool:
    """Check the file extension against the supported formats."""
    return Path(path).suffix.lower().lstrip('.') in SUPPORTED_FORMATS


def get_video_files(folder_path: Path) -> list[Path]:
    """
    Get all supported video files from a folder.

    Args:
        folder_path: Path to folder containing videos

    Returns:
        Sorted list of video file paths
    """
    videos = []

    if folder_path.exists() and folder_path.is_dir():
        for file in folder_path.iterdir():
            if file.is_file() and is_supported_video(file):
                videos.append(file)

    return sorted(videos)
