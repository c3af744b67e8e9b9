"""
Rewrite embedded tags from the Artist/YYYY - Album/NN - Title naming.
"""

import logging
from pathlib import Path
from typing import List, Optional

from filesystem.audio_tags import MutagenTagReader, read_fields
from filesystem.file_ops import DEFAULT_AUDIO_EXTENSIONS, FileSystemOperations
from filesystem.path_patterns import infer_track_naming
from models.schemas import LogEntry, OperationOutcome, TrackNaming
from utils.exceptions import FileProcessingError, NamingError
from utils.scan_log import ScanLog

logger = logging.getLogger(__name__)


class FolderTagger:
    """Tags every conforming audio file below a validated artist folder."""

    def __init__(self, tag_reader=None, file_ops: Optional[FileSystemOperations] = None,
                 scan_log: Optional[ScanLog] = None):
        self.tag_reader = tag_reader or MutagenTagReader()
        self.file_ops = file_ops or FileSystemOperations(DEFAULT_AUDIO_EXTENSIONS)
        self.scan_log = scan_log

    def collect_tracks(self, folder: Path) -> List[Path]:
        return sorted(p for p in folder.rglob("*") if p.is_file() and self.file_ops.is_audio_file(p))

    def tag_folder(self, folder: Path, dry_run: bool = False) -> OperationOutcome:
        """
        Tag the audio files below ``folder``. Files whose path does not follow
        the layout are left untouched and counted as skipped.
        """
        tagged, skipped = 0, 0
        failures = []

        for track_path in self.collect_tracks(folder):
            try:
                naming = infer_track_naming(track_path)
            except NamingError as e:
                logger.info(f"Not tagging {track_path}: {e.reason}")
                skipped += 1
                continue

            if dry_run:
                logger.info(f"[dry-run] Would tag {track_path.name}: {naming.artist} / "
                            f"{naming.year} - {naming.album} / {naming.track:02d} {naming.title}")
                tagged += 1
                continue

            try:
                self.tag_file(track_path, naming)
            except FileProcessingError as e:
                logger.warning(str(e))
                failures.append(track_path)
                self._log(track_path, "Bad", str(e))
                continue

            tagged += 1
            self._log(track_path, "Good")

        message = f"{tagged} tagged, {skipped} skipped, {len(failures)} failed"
        logger.info(f"{folder}: {message}")
        return OperationOutcome(
            source=folder, action="tag", success=not failures,
            dry_run=dry_run, message=message, files_affected=tagged
        )

    def tag_file(self, track_path: Path, naming: TrackNaming):
        handle = self.tag_reader.open(track_path)
        logger.debug(f"Tags before {track_path.name}: {read_fields(handle, ['title', 'album', 'track'])}")

        handle.set('title', naming.title)
        handle.set('performers', [naming.artist])
        handle.set('album_artists', [naming.artist])
        handle.set('album', naming.album)
        handle.set('year', naming.year)
        handle.set('track', naming.track)
        if naming.disc is not None:
            handle.set('disc', naming.disc)

        handle.save()

    def _log(self, track_path: Path, status: str, details: Optional[str] = None):
        if self.scan_log is None:
            return
        self.scan_log.append(LogEntry(
            status=status, path=str(track_path), function="tag", type="File", details=details
        ))
