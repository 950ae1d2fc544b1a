"""Exception types raised by video trimmer collaborators."""


class TrimmerError(Exception):
    """Base class for all video trimmer errors."""


class ValidationError(TrimmerError):
    """Invalid trim range or source asset."""


class ScanError(TrimmerError):
    """Source file could not be read, is unsupported or over a limit."""


class PlaybackError(TrimmerError):
    """Player could not decode or become ready."""


class ExportError(TrimmerError):
    """Export could not be started or the exporter failed."""


class NamingExhaustedError(TrimmerError):
    """No free output name was found within the attempt limit."""

    def __init__(self, folder, base_name: str, attempts: int):
        super().__init__(
            f"No free name for '{base_name}' in {folder} after {attempts} attempts"
        )
        self.folder = folder
        self.base_name = base_name
        self.attempts = attempts


class FilesystemError(TrimmerError):
    """Copy, remove or folder lookup failed."""
