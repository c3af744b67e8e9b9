"""
Filesystem operations for scanning and relocating library folders.

Everything the curator does to the disk goes through FileSystemOperations so
that errors surface uniformly as FilesystemError / OrganizationError.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from utils.exceptions import FilesystemError, OrganizationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_EXTENSIONS = ['.mp3', '.wav', '.flac', '.aac', '.ogg', '.wma']

MAX_DUPLICATE_SUFFIX = 1000


def absolute_path(path) -> Path:
    """Expand ~ and make a path absolute, so layout matching sees the artist segment."""
    return Path(path).expanduser().resolve()


class FileSystemOperations:
    """Directory listing, moving and merging with consistent error handling."""

    def __init__(self, audio_extensions: List[str]):
        """
        Args:
            audio_extensions: Supported extensions (with dots). Order is kept:
                the first extension with a match wins when picking a file.
        """
        self.audio_extensions = [ext.lower() for ext in audio_extensions]
        self._extension_set = set(self.audio_extensions)

    def is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self._extension_set

    def list_subfolders(self, folder: Path) -> List[Path]:
        return sorted(p for p in folder.iterdir() if p.is_dir())

    def list_audio_files(self, folder: Path) -> List[Path]:
        """
        Audio files directly inside a folder, grouped by extension order and
        sorted by name within each extension.
        """
        files = [p for p in folder.iterdir() if p.is_file() and self.is_audio_file(p)]
        order = {ext: index for index, ext in enumerate(self.audio_extensions)}
        return sorted(files, key=lambda p: (order[p.suffix.lower()], p.name.lower()))

    def first_audio_file(self, folder: Path) -> Optional[Path]:
        files = self.list_audio_files(folder)
        return files[0] if files else None

    def count_audio_files(self, folder: Path, recursive: bool = True) -> int:
        pattern = "**/*" if recursive else "*"
        try:
            return sum(1 for p in folder.glob(pattern) if p.is_file() and self.is_audio_file(p))
        except OSError as e:
            logger.warning(f"Cannot count audio files in {folder}: {e}")
            return 0

    def list_descendant_folders(self, root: Path) -> List[Path]:
        """
        The root plus every directory beneath it, materialized and sorted.

        Raises:
            FilesystemError: If the root does not exist or cannot be read
        """
        if not root.exists():
            raise FilesystemError(str(root), "scan", "Directory does not exist")
        if not root.is_dir():
            raise FilesystemError(str(root), "scan", "Path is not a directory")

        try:
            next(root.iterdir(), None)
        except PermissionError as e:
            raise FilesystemError(str(root), "scan", f"Permission denied: {e}")
        except OSError as e:
            raise FilesystemError(str(root), "scan", f"OS error: {e}")

        folders = [root]
        try:
            folders.extend(sorted(p for p in root.rglob("*") if p.is_dir()))
        except OSError as e:
            logger.warning(f"Directory enumeration under {root} stopped early: {e}")
        return folders

    def ensure_directory(self, path: Path, dry_run: bool = False) -> Path:
        if dry_run or path.is_dir():
            return path
        try:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {path}")
        except OSError as e:
            raise FilesystemError(str(path), "mkdir", str(e))
        return path

    def remove_if_empty(self, path: Path, dry_run: bool = False) -> bool:
        """Delete a directory only if it has no entries left."""
        try:
            if not path.is_dir() or any(path.iterdir()):
                return False
            if not dry_run:
                path.rmdir()
            logger.info(f"Removed empty folder: {path}")
            return True
        except OSError as e:
            raise FilesystemError(str(path), "rmdir", str(e))

    def move_path(self, source: Path, destination: Path, dry_run: bool = False) -> Path:
        """
        Move a file or directory, renaming on collision.

        Returns:
            The path the source ended up at

        Raises:
            OrganizationError: If the move fails
        """
        if not source.exists():
            raise OrganizationError(str(source), str(destination), "Source does not exist")

        if destination.exists():
            destination = self.generate_unique_path(destination)
            logger.warning(f"Destination exists, using: {destination}")

        if dry_run:
            logger.info(f"[dry-run] Would move: {source} -> {destination}")
            return destination

        try:
            self.ensure_directory(destination.parent)
            shutil.move(str(source), str(destination))
        except (OSError, shutil.Error) as e:
            raise OrganizationError(str(source), str(destination), str(e))

        logger.info(f"Moved: {source} -> {destination}")
        return destination

    def merge_directory(self, source: Path, target: Path, dry_run: bool = False) -> int:
        """
        Move the contents of source into target, recursing into directories
        that exist on both sides. Identical files are dropped from the source,
        differing ones get a numbered suffix. Emptied source folders are removed.

        Returns:
            Number of files moved or dropped
        """
        if not source.is_dir():
            raise OrganizationError(str(source), str(target), "Source is not a directory")
        if source.resolve() == target.resolve():
            raise OrganizationError(str(source), str(target), "Source and target are the same folder")

        self.ensure_directory(target, dry_run)
        affected = 0

        for child in sorted(source.iterdir()):
            counterpart = target / child.name
            if child.is_dir() and counterpart.is_dir():
                affected += self.merge_directory(child, counterpart, dry_run)
            elif child.is_file() and counterpart.is_file() and self._files_are_identical(child, counterpart):
                if not dry_run:
                    child.unlink()
                logger.info(f"Dropped duplicate file: {child}")
                affected += 1
            else:
                moved = 1 if child.is_file() else self.count_files(child)
                self.move_path(child, counterpart, dry_run)
                affected += moved

        self.remove_if_empty(source, dry_run)
        return affected

    def count_files(self, folder: Path) -> int:
        return sum(1 for p in folder.rglob("*") if p.is_file())

    def generate_unique_path(self, path: Path) -> Path:
        """Append ' (N)' before the suffix until the path is free."""
        stem = path.stem if path.is_file() else path.name
        suffix = path.suffix if path.is_file() else ""

        for counter in range(1, MAX_DUPLICATE_SUFFIX + 1):
            candidate = path.parent / f"{stem} ({counter}){suffix}"
            if not candidate.exists():
                return candidate

        raise FilesystemError(str(path), "unique_path", "Too many duplicates")

    def _files_are_identical(self, path1: Path, path2: Path) -> bool:
        """Same size and byte content."""
        try:
            if path1.stat().st_size != path2.stat().st_size:
                return False
            with open(path1, 'rb') as f1, open(path2, 'rb') as f2:
                while True:
                    chunk1 = f1.read(1024 * 1024)
                    chunk2 = f2.read(1024 * 1024)
                    if chunk1 != chunk2:
                        return False
                    if not chunk1:
                        return True
        except OSError:
            return False
