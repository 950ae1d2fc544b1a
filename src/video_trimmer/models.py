"""Data model for video trimmer."""
from dataclasses import dataclass
from pathlib import Path

from .config import MAX_DURATION, MAX_FILE_SIZE
from .utils import format_duration, format_file_size


class SessionState:
    """States of a trim session."""
    IDLE = "idle"  # no asset loaded
    READY = "ready"  # asset loaded, full range
    EDITING = "editing"  # range changed by the user
    PREVIEWING = "previewing"  # playback looped inside the range


@dataclass(frozen=True)
class VideoAsset:
    """Loaded source video. Replaced wholesale when another file is loaded."""
    path: Path
    duration: float  # seconds
    size: int  # bytes
    width: int
    height: int
    frame_rate: float
    is_valid: bool = True
    error_message: str | None = None

    @classmethod
    def create(
        cls,
        path: Path,
        duration: float,
        size: int,
        width: int,
        height: int,
        frame_rate: float
    ) -> 'VideoAsset':
        """Build an asset and derive its validity from the source limits."""
        error = check_asset_limits(duration, size, width, height)
        return cls(
            path=Path(path),
            duration=duration,
            size=size,
            width=width,
            height=height,
            frame_rate=frame_rate,
            is_valid=error is None,
            error_message=error
        )

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)

    @property
    def formatted_size(self) -> str:
        return format_file_size(self.size)


def check_asset_limits(duration: float, size: int, width: int, height: int) -> str | None:
    """
    Check a source against the duration, size and resolution limits.

    Returns:
        None when the source is usable, otherwise the reason it is not
    """
    if duration > MAX_DURATION:
        return f"Duration exceeds the limit ({int(MAX_DURATION // 60)} min)"
    if duration <= 0:
        return "Could not determine video duration"
    if size > MAX_FILE_SIZE:
        return "File size exceeds the limit (1 GB)"
    if width <= 0 or height <= 0:
        return "Could not determine video resolution"
    return None


@dataclass
class TrimRange:
    """The [start, end] interval selected for export, in seconds."""
    start: float = 0.0
    end: float = 0.0

    @property
    def duration(self) -> float:
        return self.end - self.start

    def set_full_duration(self, duration: float):
        self.start = 0.0
        self.end = duration

    def copy(self) -> 'TrimRange':
        return TrimRange(self.start, self.end)


@dataclass
class PlaybackState:
    """Playhead and play/preview flags."""
    current_time: float = 0.0
    is_playing: bool = False
    is_preview_mode: bool = False


@dataclass(frozen=True)
class ExportRequest:
    """Snapshot handed to the exporter."""
    asset: VideoAsset
    trim_range: TrimRange
    output_path: Path
    export_id: int = 0  # issued by the session, tags progress and results

    @property
    def source_path(self) -> Path:
        return self.asset.path


@dataclass(frozen=True)
class ExportResult:
    """Terminal outcome of one export attempt."""
    status: str  # success, cancelled, failed
    output_path: Path | None = None
    duration: float | None = None
    error: str | None = None

    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @classmethod
    def success(cls, output_path: Path, duration: float | None) -> 'ExportResult':
        return cls(cls.SUCCESS, output_path=output_path, duration=duration)

    @classmethod
    def cancelled(cls) -> 'ExportResult':
        return cls(cls.CANCELLED)

    @classmethod
    def failed(cls, reason: str) -> 'ExportResult':
        return cls(cls.FAILED, error=reason)

    @property
    def is_success(self) -> bool:
        return self.status == self.SUCCESS

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.CANCELLED


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a user-facing validation check."""
    is_valid: bool
    error_message: str | None = None

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return cls(True)

    @classmethod
    def invalid(cls, message: str) -> 'ValidationResult':
        return cls(False, message)
