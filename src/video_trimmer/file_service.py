"""Filesystem collaborator: working copies, destination folder, reveal."""
import platform
import shutil
import subprocess
from pathlib import Path

from .config import TrimmerSettings
from .errors import FilesystemError
from .logger import get_logger
from .utils import get_video_files


class FileService:
    """Filesystem operations used by the trim session."""

    def __init__(self, settings: TrimmerSettings | None = None):
        self.settings = settings or TrimmerSettings.default()

    def copy_to_working_dir(self, path: Path, subfolder: str = "Videos") -> Path:
        """
        Copy a source file into the working directory.

        An older copy with the same name is replaced.

        Returns:
            Path of the local copy

        Raises:
            FilesystemError: the folder cannot be created or the copy fails
        """
        path = Path(path)
        target_folder = self.settings.get_working_dir() / subfolder
        local_path = target_folder / path.name

        if local_path.resolve() == path.resolve():
            return local_path

        try:
            target_folder.mkdir(parents=True, exist_ok=True)
            self.remove_file(local_path)
            shutil.copy2(path, local_path)
        except OSError as e:
            raise FilesystemError(f"Could not copy {path.name}: {e}") from e

        get_logger().debug(f"Working copy: {local_path}")
        return local_path

    def destination_folder(self) -> Path:
        """
        Folder exports are written to: the configured output dir or ~/Downloads.

        Raises:
            FilesystemError: the folder does not exist and cannot be created
        """
        folder = self.settings.output_dir or Path.home() / "Downloads"
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Destination folder unavailable: {folder}") from e
        return folder

    def file_exists(self, path: Path) -> bool:
        return Path(path).exists()

    def remove_file(self, path: Path):
        """Remove a file if it exists."""
        path = Path(path)
        if not path.exists():
            return
        try:
            path.unlink()
        except OSError as e:
            raise FilesystemError(f"Could not remove {path.name}: {e}") from e

    def list_videos(self, folder: Path | None = None) -> list[Path]:
        """List supported videos in a folder, the destination folder by default."""
        return get_video_files(Path(folder) if folder else self.destination_folder())

    def reveal_in_folder(self, path: Path):
        """Show a file in the platform file manager."""
        path = Path(path)
        system = platform.system()
        if system == "Windows":
            cmd = ["explorer", f"/select,{path}"]
        elif system == "Darwin":
            cmd = ["open", "-R", str(path)]
        else:
            cmd = ["xdg-open", str(path.parent)]

        try:
            subprocess.Popen(cmd)
        except OSError as e:
            get_logger().warning(f"Could not reveal {path}: {e}")
