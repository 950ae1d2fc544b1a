"""Constants and runtime settings for video trimmer."""
import os
from dataclasses import dataclass
from pathlib import Path


# Trim range
MIN_TRIM_DURATION = 0.1  # seconds
TIME_EPSILON = 1e-9

# Playback
REWIND_BUFFER = 0.1  # seconds added after a preview-loop seek
SKIP_DURATION = 0.333  # 1/3 second
TOGGLE_DEBOUNCE = 0.1  # seconds
POSITION_REPORT_INTERVAL = 0.1  # seconds

# Source limits
MAX_FILE_SIZE = 1073741824  # 1 GB
MAX_DURATION = 7200.0  # 120 minutes
SUPPORTED_FORMATS = ('mp4', 'mov', 'avi', 'mkv', 'm4v')

# Output naming
MAX_NAMING_ATTEMPTS = 1000
TRIMMED_SUFFIX = "_trimmed"


@dataclass
class TrimmerSettings:
    """Where exports go and where the working copy of a source lives."""
    output_dir: Path | None = None  # None = ~/Downloads
    working_dir: Path | None = None
    use_working_copy: bool = True

    @classmethod
    def default(cls) -> 'TrimmerSettings':
        output_dir = os.environ.get('VIDEO_TRIMMER_OUTPUT_DIR')
        working_dir = os.environ.get('VIDEO_TRIMMER_WORK_DIR')
        return cls(
            output_dir=Path(output_dir) if output_dir else None,
            working_dir=Path(working_dir) if working_dir else None,
        )

    def get_working_dir(self) -> Path:
        if self.working_dir:
            return self.working_dir
        return Path.home() / ".video-trimmer" / "work"
