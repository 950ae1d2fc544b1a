"""Output file naming without overwriting existing files."""
from datetime import datetime
from pathlib import Path

from .config import MAX_NAMING_ATTEMPTS, TRIMMED_SUFFIX
from .errors import NamingExhaustedError


def _pick_extension(source: Path, preferred_extension: str | None) -> str:
    ext = (preferred_extension or "").lstrip('.')
    if not ext:
        ext = source.suffix.lstrip('.')
    return ext


def _file_name(base_name: str, ext: str) -> str:
    return f"{base_name}.{ext}" if ext else base_name


def resolve_output_path(
    source: Path,
    folder: Path,
    preferred_extension: str | None = None,
    max_attempts: int = MAX_NAMING_ATTEMPTS
) -> Path:
    """
    Find a free output path for a trimmed copy of source.

    Tries "<stem>_trimmed.<ext>", then "<stem>_trimmed_1.<ext>",
    "<stem>_trimmed_2.<ext>" and so on. Only checks for existence,
    nothing is written.

    Args:
        source: Source video path
        folder: Destination folder
        preferred_extension: Output extension, defaults to the source's
        max_attempts: Number of numbered names to try

    Returns:
        Path that does not exist yet

    Raises:
        NamingExhaustedError: every candidate is taken
    """
    source = Path(source)
    folder = Path(folder)
    base_name = f"{source.stem}{TRIMMED_SUFFIX}"
    ext = _pick_extension(source, preferred_extension)

    candidate = folder / _file_name(base_name, ext)
    if not candidate.exists():
        return candidate

    for counter in range(1, max_attempts + 1):
        candidate = folder / _file_name(f"{base_name}_{counter}", ext)
        if not candidate.exists():
            return candidate

    raise NamingExhaustedError(folder, base_name, max_attempts)


def name_with_timestamp(
    source: Path,
    extension: str | None = None,
    now: datetime | None = None
) -> str:
    """Build "<stem>_trimmed_<YYYYMMDDHHMMSS>.<ext>" without touching the filesystem."""
    source = Path(source)
    ext = _pick_extension(source, extension)
    timestamp = (now or datetime.now()).strftime('%Y%m%d%H%M%S')
    return _file_name(f"{source.stem}{TRIMMED_SUFFIX}_{timestamp}", ext)
