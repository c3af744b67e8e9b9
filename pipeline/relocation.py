"""
Moving validated artist folders into a destination library and merging
artist folders that turned out to be the same artist.
"""

import logging
from pathlib import Path

from filesystem.file_ops import FileSystemOperations
from models.schemas import OperationOutcome
from utils.exceptions import FilesystemError, OrganizationError

logger = logging.getLogger(__name__)


class FolderRelocator:
    """Relocates artist folders, merging into existing ones on collision."""

    def __init__(self, file_ops: FileSystemOperations):
        self.file_ops = file_ops

    def move(self, artist_folder: Path, destination_root: Path, dry_run: bool = False) -> OperationOutcome:
        """
        Move ``artist_folder`` to ``destination_root/<artist>``. If that
        folder already exists the two are merged.
        """
        target = destination_root / artist_folder.name

        if artist_folder.resolve() == target.resolve():
            return OperationOutcome(source=artist_folder, destination=target, action="move",
                                    success=True, dry_run=dry_run, message="Already in place")
        if target.resolve().is_relative_to(artist_folder.resolve()):
            return OperationOutcome(source=artist_folder, destination=target, action="move",
                                    success=False, dry_run=dry_run,
                                    message="Destination is inside the source folder")

        if target.exists():
            logger.info(f"{target} exists, merging {artist_folder} into it")
            outcome = self.merge(artist_folder, target, dry_run)
            return outcome.model_copy(update={'action': "move"})

        try:
            moved = self.file_ops.count_files(artist_folder)
            self.file_ops.ensure_directory(destination_root, dry_run)
            final = self.file_ops.move_path(artist_folder, target, dry_run)
        except (OrganizationError, FilesystemError) as e:
            logger.error(str(e))
            return OperationOutcome(source=artist_folder, destination=target, action="move",
                                    success=False, dry_run=dry_run, message=str(e))

        return OperationOutcome(source=artist_folder, destination=final, action="move",
                                success=True, dry_run=dry_run,
                                message=f"Moved {moved} files", files_affected=moved)

    def merge(self, source: Path, target: Path, dry_run: bool = False) -> OperationOutcome:
        """Merge ``source`` into ``target``; colliding files get a numbered suffix."""
        if target.resolve().is_relative_to(source.resolve()):
            return OperationOutcome(source=source, destination=target, action="merge",
                                    success=False, dry_run=dry_run,
                                    message="Target is the source folder or lies inside it")
        try:
            affected = self.file_ops.merge_directory(source, target, dry_run)
        except (OrganizationError, FilesystemError) as e:
            logger.error(str(e))
            return OperationOutcome(source=source, destination=target, action="merge",
                                    success=False, dry_run=dry_run, message=str(e))

        return OperationOutcome(source=source, destination=target, action="merge",
                                success=True, dry_run=dry_run,
                                message=f"Merged {affected} files", files_affected=affected)
