#!/usr/bin/env python3
"""Video Trimmer - lossless trimming of a single video."""
import argparse
import sys
from pathlib import Path

from . import __version__
from .config import TrimmerSettings
from .ffmpeg_manager import check_ffmpeg, check_ffprobe
from .logger import get_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="video-trimmer",
        description="Preview a video, mark a range and export it without re-encoding."
    )
    parser.add_argument('file', nargs='?', help='Video file to open')
    parser.add_argument('--output-dir', help='Folder trimmed videos are written to')
    parser.add_argument('--debug', action='store_true', help='Log debug output to the console')
    parser.add_argument('-v', '--version', action='version', version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None):
    """Application entry point."""
    args = parse_args(argv)
    logger = get_logger(debug=args.debug)

    for name, check in (("ffmpeg", check_ffmpeg), ("ffprobe", check_ffprobe)):
        available, msg = check()
        if not available:
            # The window shows the details; keep running so the user sees them
            logger.warning(f"{name}: {msg}")

    file_path = None
    if args.file:
        file_path = Path(args.file).resolve()
        if not file_path.is_file():
            print(f"ERROR: File not found: {args.file}")
            sys.exit(1)

    settings = TrimmerSettings.default()
    if args.output_dir:
        settings.output_dir = Path(args.output_dir).expanduser()

    from .gui import run
    sys.exit(run(settings, file_path))


if __name__ == "__main__":
    main()
