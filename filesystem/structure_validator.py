"""
Folder validation: the Good/Bad gate in front of tagging, moving and merging.

Every folder under a starting path is walked through a fixed sequence of
checks (skip list, existence, emptiness, artist-vs-album, audio discovery,
corruption probe, layout match). Per-folder problems become ValidationResult
data; only a missing or unreadable starting path aborts a scan.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from filesystem.audio_tags import MutagenTagReader
from filesystem.file_ops import DEFAULT_AUDIO_EXTENSIONS, FileSystemOperations, absolute_path
from filesystem.path_patterns import (
    DISC_FOLDER_PATTERN, extract_artist_folder_path, is_album_folder_name,
    match_album_layout
)
from models.schemas import LogEntry, Reason, Status, ValidationResult
from utils.exceptions import ConfigurationError, NamingError
from utils.logging_config import log_processing_progress
from utils.scan_log import ScanLog

logger = logging.getLogger(__name__)


PathLike = Union[str, Path]


def normalize_prefix(path: PathLike) -> str:
    """Lower-cased, forward-slashed, with exactly one trailing separator."""
    return str(path).replace('\\', '/').rstrip('/').lower() + '/'


def unit_paths(results: Iterable[ValidationResult], status: Status = Status.GOOD) -> List[Path]:
    """Deduplicated unit paths of the results with ``status``, in first-seen order."""
    paths: List[Path] = []
    for result in results:
        if result.status is status and result.unit_path not in paths:
            paths.append(result.unit_path)
    return paths


@dataclass
class ScanContext:
    """
    State that lives for exactly one validation run: the skip prefixes and
    the paths already written to the scan log, kept apart for Good and Bad.
    """

    skip_prefixes: List[str] = field(default_factory=list)
    scan_log: Optional[ScanLog] = None
    function: str = "validate"
    logged_good: Set[str] = field(default_factory=set)
    logged_bad: Set[str] = field(default_factory=set)

    @classmethod
    def create(cls, skip_list: Iterable[PathLike] = (), scan_log: Optional[ScanLog] = None,
               function: str = "validate") -> "ScanContext":
        prefixes = [normalize_prefix(absolute_path(entry)) for entry in skip_list if str(entry).strip()]
        return cls(skip_prefixes=prefixes, scan_log=scan_log, function=function)

    def skip_entry_for(self, folder: Path) -> Optional[str]:
        normalized = normalize_prefix(folder)
        for prefix in self.skip_prefixes:
            if normalized.startswith(prefix):
                return prefix
        return None

    def record(self, result: ValidationResult) -> bool:
        """Write a Good or Bad result to the scan log unless its unit was already written."""
        if result.status is Status.GOOD:
            seen = self.logged_good
        elif result.status is Status.BAD:
            seen = self.logged_bad
        else:
            return False

        key = str(result.unit_path)
        if key in seen:
            return False
        seen.add(key)

        if self.scan_log is not None:
            self.scan_log.append(LogEntry.from_validation(result, self.function))
        return True


class StructureValidator:
    """Classifies folders as Good, Bad, Skipped or Error."""

    def __init__(self, tag_reader=None, audio_extensions: Optional[List[str]] = None,
                 file_ops: Optional[FileSystemOperations] = None):
        """
        Args:
            tag_reader: Object whose ``probe(path)`` raises for unreadable
                audio. Defaults to mutagen.
            audio_extensions: Supported extensions, in priority order
            file_ops: Filesystem collaborator (built from audio_extensions if omitted)
        """
        self.tag_reader = tag_reader or MutagenTagReader()
        self.file_ops = file_ops or FileSystemOperations(audio_extensions or DEFAULT_AUDIO_EXTENSIONS)

    def validate_detailed(
        self,
        starting_path: PathLike,
        skip_list: Iterable[PathLike] = (),
        scan_log: Optional[ScanLog] = None,
        function: str = "validate"
    ) -> List[ValidationResult]:
        """
        Validate the starting folder and every folder beneath it.

        Args:
            starting_path: Root of the scan
            skip_list: Path prefixes whose whole subtree is skipped
            scan_log: Optional sink for first-seen Good and Bad units
            function: Name recorded in the scan log's Function field

        Returns:
            One ValidationResult per folder, in sorted path order

        Raises:
            ConfigurationError: If no starting path was given
            FilesystemError: If the starting path is missing or unreadable
        """
        if starting_path is None or not str(starting_path).strip():
            raise ConfigurationError("A starting path is required for validation")

        root = absolute_path(starting_path)
        folders = self.file_ops.list_descendant_folders(root)
        context = ScanContext.create(skip_list, scan_log, function)

        logger.info(f"Validating {len(folders)} folders under {root}")
        results = []
        for index, folder in enumerate(folders, start=1):
            result = self.validate_folder(folder, context)
            context.record(result)
            results.append(result)
            log_processing_progress(index, len(folders), logger)

        counts = Counter(result.status.value for result in results)
        logger.info("Validation finished: " + ", ".join(
            f"{status}={count}" for status, count in sorted(counts.items())
        ))
        return results

    def validate_simple(
        self,
        starting_path: PathLike,
        good_only: bool = True,
        skip_list: Iterable[PathLike] = (),
        scan_log: Optional[ScanLog] = None
    ) -> List[Path]:
        """
        Deduplicated Good units (artist folders) or, with ``good_only=False``,
        Bad units, in the order they were first found.
        """
        results = self.validate_detailed(starting_path, skip_list, scan_log)
        return unit_paths(results, Status.GOOD if good_only else Status.BAD)

    def validate_folder(self, folder: Path, context: Optional[ScanContext] = None) -> ValidationResult:
        """Run the per-folder checks. Never raises for filesystem trouble."""
        context = context or ScanContext()
        folder = absolute_path(folder)

        skip_entry = context.skip_entry_for(folder)
        if skip_entry:
            return ValidationResult(path=folder, reason=Reason.SKIPPED,
                                    details=f"Matches skip list entry '{skip_entry}'")

        try:
            return self._check_folder(folder)
        except OSError as e:
            logger.debug(f"Cannot read {folder}: {e}")
            return ValidationResult(path=folder, reason=Reason.NOT_FOUND,
                                    details=f"Cannot read folder: {e}")

    def _check_folder(self, folder: Path) -> ValidationResult:
        if not folder.is_dir():
            return ValidationResult(path=folder, reason=Reason.NOT_FOUND,
                                    details="Folder no longer exists")

        entries = list(folder.iterdir())
        if not entries:
            return ValidationResult(path=folder, reason=Reason.EMPTY,
                                    details="Folder has no files or subfolders")

        album_folders = [p for p in sorted(entries) if p.is_dir() and is_album_folder_name(p.name)]

        if album_folders:
            representative = None
            for album_folder in album_folders:
                representative = self._find_representative(album_folder)
                if representative:
                    break
            if representative is None:
                return ValidationResult(
                    path=folder, reason=Reason.NO_MUSIC_FILES,
                    details=f"None of {len(album_folders)} album folders contain audio files"
                )
        else:
            representative = self._find_representative(folder)
            if representative is None:
                return ValidationResult(path=folder, reason=Reason.NO_MUSIC_FILES,
                                        details="No supported audio files found")

        try:
            self.tag_reader.probe(representative)
        except Exception as e:
            logger.debug(f"Corrupted audio file {representative}: {e}")
            return ValidationResult(path=folder, reason=Reason.CORRUPTED_FILE,
                                    details=f"{representative.name}: {e}",
                                    log_path=folder)

        return self._match_layout(folder, representative)

    def _find_representative(self, folder: Path) -> Optional[Path]:
        """First audio file in the folder, else in its first disc subfolder holding any."""
        first = self.file_ops.first_audio_file(folder)
        if first:
            return first

        for subfolder in self.file_ops.list_subfolders(folder):
            if DISC_FOLDER_PATTERN.match(subfolder.name):
                first = self.file_ops.first_audio_file(subfolder)
                if first:
                    return first
        return None

    def _match_layout(self, folder: Path, representative: Path) -> ValidationResult:
        layout = match_album_layout(representative)
        if layout:
            try:
                artist_path = extract_artist_folder_path(representative, layout.artist)
            except NamingError as e:
                return ValidationResult(path=folder, reason=Reason.BAD_STRUCTURE,
                                        details=str(e), log_path=representative.parent)
            return ValidationResult(
                path=folder, reason=Reason.VALID,
                details=f"{layout.layout} layout, artist '{layout.artist}'",
                log_path=artist_path
            )

        return ValidationResult(
            path=folder, reason=Reason.BAD_STRUCTURE,
            details=f"'{representative.name}' is not at Artist/YYYY - Album/NN - Title",
            log_path=representative.parent
        )
