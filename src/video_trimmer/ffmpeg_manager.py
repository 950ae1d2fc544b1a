"""FFmpeg binary manager - handles bundled or system ffmpeg/ffprobe."""
import os
import sys
import platform
import subprocess
from pathlib import Path


def get_subprocess_args(**kwargs) -> dict:
    """
    Get subprocess arguments with Windows console window hidden.

    Args:
        **kwargs: Additional subprocess arguments

    Returns:
        Dict of subprocess arguments
    """
    args = {
        'capture_output': kwargs.get('capture_output', True),
        'text': kwargs.get('text', True),
        'timeout': kwargs.get('timeout', 30),
    }

    # On Windows, hide the console window
    if platform.system() == 'Windows':
        args['creationflags'] = subprocess.CREATE_NO_WINDOW
    else:
        # On Unix, detach from the terminal
        args['start_new_session'] = True

    for key, value in kwargs.items():
        if key not in ['capture_output', 'text', 'timeout']:
            args[key] = value

    return args


def get_platform_name() -> str:
    system = platform.system()
    if system == "Windows":
        return "windows"
    elif system == "Darwin":
        return "macos"
    return "linux"


def get_bundled_ffmpeg_dir() -> Path | None:
    """
    Get the directory containing bundled ffmpeg binaries.

    $VIDEO_TRIMMER_FFMPEG_DIR wins over the ffmpeg_bin folders.
    """
    platform_name = get_platform_name()
    candidates = []

    override = os.environ.get('VIDEO_TRIMMER_FFMPEG_DIR')
    if override:
        candidates.append(Path(override))

    # When running from source
    project_root = Path(__file__).parent.parent.parent
    candidates.append(project_root / "ffmpeg_bin" / platform_name)
    candidates.append(project_root / "ffmpeg_bin")

    # When running from PyInstaller bundle
    if getattr(sys, 'frozen', False):
        candidates.append(Path(sys._MEIPASS) / "ffmpeg_bin" / platform_name)
        candidates.append(Path(sys._MEIPASS) / "ffmpeg_bin")

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


def _get_tool_path(name: str) -> str:
    """
    Get the path to an ffmpeg tool executable.

    Priority:
    1. Bundled binary
    2. Tool in PATH
    """
    bundled_dir = get_bundled_ffmpeg_dir()

    if bundled_dir:
        exe_name = f"{name}.exe" if platform.system() == "Windows" else name
        tool_path = bundled_dir / exe_name
        if tool_path.exists():
            return str(tool_path)

    return name


def get_ffmpeg_path() -> str:
    return _get_tool_path("ffmpeg")


def get_ffprobe_path() -> str:
    return _get_tool_path("ffprobe")


def _check_tool(tool_path: str, name: str) -> tuple[bool, str]:
    try:
        result = subprocess.run(
            [tool_path, "-version"],
            **get_subprocess_args(timeout=10)
        )

        if result.returncode == 0:
            # Version is on the first line
            return True, result.stdout.split('\n')[0]
        return False, f"{name} failed: {result.stderr[:100] if result.stderr else 'Unknown error'}"

    except FileNotFoundError:
        return False, f"{name} not found, install ffmpeg or use a bundled build"
    except subprocess.TimeoutExpired:
        return False, f"{name} did not respond"
    except OSError as e:
        return False, f"Error while checking {name}: {str(e)}"


def check_ffmpeg() -> tuple[bool, str]:
    """
    Check if ffmpeg is available.

    Returns:
        Tuple of (is_available, version_or_error_message)
    """
    return _check_tool(get_ffmpeg_path(), "ffmpeg")


def check_ffprobe() -> tuple[bool, str]:
    """
    Check if ffprobe is available.

    Returns:
        Tuple of (is_available, version_or_error_message)
    """
    return _check_tool(get_ffprobe_path(), "ffprobe")


if __name__ == "__main__":
    for label, check, path in (
        ("ffmpeg", check_ffmpeg, get_ffmpeg_path),
        ("ffprobe", check_ffprobe, get_ffprobe_path),
    ):
        available, msg = check()
        print(f"Checking {label}...")
        print(f"  Available: {available}")
        print(f"  Message: {msg}")
        print(f"  Path: {path()}")
