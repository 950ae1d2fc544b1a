"""Logging system for video trimmer application."""
import os
import sys
import logging
import traceback
from datetime import datetime
from pathlib import Path

LOGGER_NAME = 'video_trimmer'
LOG_FILE_NAME = "log.txt"


def get_log_dir() -> Path:
    """
    Folder the log file is written to.

    Next to the executable for a PyInstaller build, otherwise
    $VIDEO_TRIMMER_LOG_DIR or ~/.video-trimmer.
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    override = os.environ.get('VIDEO_TRIMMER_LOG_DIR')
    if override:
        return Path(override)
    return Path.home() / ".video-trimmer"


def get_log_file_path() -> Path:
    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / LOG_FILE_NAME


def setup_logging(debug: bool = False) -> logging.Logger:
    """Setup logging to the log file (everything) and the console (INFO, or DEBUG with --debug)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    log_file = get_log_file_path()
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(module)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)

    logger.info("=" * 60)
    logger.info(f"Video Trimmer session started at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 60)

    return logger


# Global logger instance
_logger: logging.Logger | None = None


def get_logger(debug: bool = False) -> logging.Logger:
    """
    Get or create the global logger instance.

    Passing debug=True to an existing logger lowers its console level too.
    """
    global _logger
    if _logger is None:
        _logger = setup_logging(debug)
    elif debug:
        for handler in _logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.DEBUG)
    return _logger


def log_exception(exc: BaseException, context: str = ""):
    """Log an error line for exc, its traceback goes to DEBUG."""
    logger = get_logger()
    message = f"{type(exc).__name__}: {exc}"
    logger.error(f"{context}: {message}" if context else message)
    if exc.__traceback__ is not None:
        logger.debug(''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
