"""
Semantic folder classification for human review.

Unlike the validator this never gates anything: it surveys one folder,
runs an ordered table of rules (first hit wins) and returns the structure
type with a heuristic confidence, notes and suggested next steps.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from filesystem.file_ops import DEFAULT_AUDIO_EXTENSIONS, FileSystemOperations, absolute_path
from filesystem.path_patterns import (
    is_album_folder_name, is_compilation_folder_name, is_disc_folder_name
)
from filesystem.structure_validator import ScanContext
from models.schemas import LogEntry, StructureAnalysis, StructureMetadata, StructureType
from utils.exceptions import FilesystemError
from utils.scan_log import ScanLog

logger = logging.getLogger(__name__)

# Drive roots and container-ish words that rarely name a real artist
SUSPICIOUS_NAME_PATTERN = re.compile(r"(?i)^[a-z]:\\?$|\b(?:compilations?|temp|backup)\b")

MANUAL_REVIEW = "MANUAL REVIEW REQUIRED"


@dataclass
class FolderSurvey:
    """Everything the rules look at, gathered in one pass over a folder."""

    path: Path
    direct_audio: List[Path]
    subfolders: List[Path]
    subfolder_audio: Dict[Path, int]

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def has_direct_audio(self) -> bool:
        return bool(self.direct_audio)

    @property
    def album_folders(self) -> List[Path]:
        return [p for p in self.subfolders if is_album_folder_name(p.name)]

    @property
    def compilation_folders(self) -> List[Path]:
        return [p for p in self.subfolders if is_compilation_folder_name(p.name)]

    @property
    def plain_album_folders(self) -> List[Path]:
        """Album folders that are not 'YYYY - Album - Artist' compilation entries."""
        return [p for p in self.album_folders if not is_compilation_folder_name(p.name)]

    @property
    def disc_folders(self) -> List[Path]:
        return [p for p in self.subfolders if is_disc_folder_name(p.name)]

    @property
    def album_audio_files(self) -> int:
        return sum(self.subfolder_audio[p] for p in self.album_folders)

    @property
    def total_audio_files(self) -> int:
        return len(self.direct_audio) + sum(self.subfolder_audio.values())

    def with_audio(self, folders: List[Path]) -> List[Path]:
        return [p for p in folders if self.subfolder_audio[p] > 0]

    def metadata(self) -> StructureMetadata:
        return StructureMetadata(
            direct_audio_files=len(self.direct_audio),
            subfolders=len(self.subfolders),
            album_subfolders=len(self.album_folders),
            disc_subfolders=len(self.disc_folders),
            compilation_subfolders=len(self.compilation_folders),
            total_audio_files=self.total_audio_files,
            album_audio_files=self.album_audio_files,
            has_direct_audio=self.has_direct_audio,
        )


@dataclass
class Classification:
    structure_type: StructureType
    confidence: float
    details: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def _names(folders: List[Path], limit: int = 3) -> str:
    shown = ", ".join(f"'{p.name}'" for p in folders[:limit])
    if len(folders) > limit:
        shown += f" and {len(folders) - limit} more"
    return shown


def classify_artist_folder(survey: FolderSurvey) -> Optional[Classification]:
    albums = survey.plain_album_folders
    albums_with_audio = survey.with_audio(albums)
    if not albums or survey.has_direct_audio or not albums_with_audio:
        return None

    confidence = 0.9
    details = [
        f"{len(albums)} album folder(s) named 'YYYY - Album': {_names(albums)}",
        f"{len(albums_with_audio)} of them contain audio, none directly in this folder",
    ]
    recommendations = ["Validate and tag as an artist folder"]

    if not survey.name or SUSPICIOUS_NAME_PATTERN.search(survey.name):
        confidence -= 0.3
        details.append(f"Folder name '{survey.name}' looks like a container, not an artist")
        recommendations.append("Check that this folder really holds a single artist")
    if len(survey.album_folders) < 2:
        confidence -= 0.2
        details.append("Only one album folder found")

    empty_albums = [p for p in albums if p not in albums_with_audio]
    if empty_albums:
        recommendations.append(f"Album folders without audio: {_names(empty_albums)}")

    return Classification(StructureType.ARTIST_FOLDER, confidence, details, recommendations)


def classify_album(survey: FolderSurvey) -> Optional[Classification]:
    if not survey.has_direct_audio or survey.album_folders or len(survey.subfolders) > 2:
        return None

    details = [f"{len(survey.direct_audio)} audio file(s) directly in the folder"]

    disc_folders = survey.disc_folders
    if disc_folders:
        details.append(f"Disc subfolder(s): {_names(disc_folders)}")
        return Classification(
            StructureType.MULTI_DISC_ALBUM, 0.85, details,
            ["Keep disc folders as 'Disc N' below the album, or set disc numbers in the tags"]
        )

    confidence = 0.8
    if is_album_folder_name(survey.name):
        confidence += 0.1
        details.append("Folder name follows 'YYYY - Album'")
        recommendations = ["Validate the parent artist folder before tagging"]
    else:
        confidence -= 0.2
        details.append(f"Folder name '{survey.name}' does not follow 'YYYY - Album'")
        recommendations = ["Rename the folder to 'YYYY - Album' and place it in an artist folder"]

    return Classification(StructureType.SIMPLE_ALBUM, confidence, details, recommendations)


def classify_mixed_album(survey: FolderSurvey) -> Optional[Classification]:
    if not survey.has_direct_audio or not survey.album_folders:
        return None

    albums = survey.album_folders
    return Classification(
        StructureType.MIXED_ALBUM, 0.3,
        [
            f"{len(survey.direct_audio)} audio file(s) directly in the folder",
            f"{len(albums)} album folder(s) alongside them: {_names(albums)}",
        ],
        [
            f"{MANUAL_REVIEW}: loose tracks sit next to album folders",
            "Option 1: treat the root files as the album and ignore the subfolders",
            "Option 2: treat each subfolder as a separate release and move the root files out",
        ]
    )


def classify_compilation(survey: FolderSurvey) -> Optional[Classification]:
    compilations = survey.compilation_folders
    if not compilations or survey.has_direct_audio:
        return None

    return Classification(
        StructureType.COMPILATION_FOLDER, 0.7,
        [f"{len(compilations)} folder(s) named 'YYYY - Album - Artist': {_names(compilations)}"],
        ["Move the releases under a 'Various Artists' folder or add this folder to the skip list"]
    )


def classify_disc_set(survey: FolderSurvey) -> Optional[Classification]:
    disc_folders = survey.disc_folders
    if len(disc_folders) <= 1 or survey.has_direct_audio:
        return None

    return Classification(
        StructureType.MULTI_DISC_ALBUM, 0.8,
        [f"{len(disc_folders)} disc subfolders: {_names(disc_folders)}"],
        ["Name the folder 'YYYY - Album' so the disc layout validates"]
    )


def classify_ambiguous(survey: FolderSurvey) -> Optional[Classification]:
    if survey.total_audio_files == 0:
        return None

    return Classification(
        StructureType.AMBIGUOUS_STRUCTURE, 0.2,
        [f"{survey.total_audio_files} audio file(s) in {len(survey.subfolders)} subfolder(s), no known layout"],
        [f"{MANUAL_REVIEW}: reorganize into Artist/YYYY - Album/NN - Title"]
    )


def classify_non_music(survey: FolderSurvey) -> Optional[Classification]:
    return Classification(
        StructureType.NON_MUSIC_FOLDER, 0.9,
        ["No supported audio files anywhere below this folder"],
        ["Add to the skip list or remove it from the library"]
    )


# Order is the tie-break: most specific first
RULES: List[Callable[[FolderSurvey], Optional[Classification]]] = [
    classify_artist_folder,
    classify_album,
    classify_mixed_album,
    classify_compilation,
    classify_disc_set,
    classify_ambiguous,
    classify_non_music,
]


class StructureAnalyzer:
    """Read-only classifier producing StructureAnalysis records."""

    def __init__(self, audio_extensions: Optional[List[str]] = None,
                 file_ops: Optional[FileSystemOperations] = None):
        self.file_ops = file_ops or FileSystemOperations(audio_extensions or DEFAULT_AUDIO_EXTENSIONS)

    def survey(self, path: Path) -> FolderSurvey:
        """
        Raises:
            FilesystemError: If the folder is missing or cannot be listed
        """
        path = absolute_path(path)
        if not path.is_dir():
            raise FilesystemError(str(path), "analyze", "Not an existing directory")

        try:
            direct_audio = self.file_ops.list_audio_files(path)
            subfolders = self.file_ops.list_subfolders(path)
        except OSError as e:
            raise FilesystemError(str(path), "analyze", str(e))

        return FolderSurvey(
            path=path,
            direct_audio=direct_audio,
            subfolders=subfolders,
            subfolder_audio={p: self.file_ops.count_audio_files(p) for p in subfolders},
        )

    def analyze(self, path: Union[str, Path]) -> StructureAnalysis:
        survey = self.survey(path)

        for rule in RULES:
            classification = rule(survey)
            if classification is not None:
                break

        logger.debug(f"{survey.path}: {classification.structure_type.value} "
                     f"via {rule.__name__}")

        return StructureAnalysis(
            path=survey.path,
            folder_name=survey.name,
            structure_type=classification.structure_type,
            confidence=classification.confidence,
            details=classification.details,
            recommendations=classification.recommendations,
            metadata=survey.metadata(),
        )

    def analyze_tree(
        self,
        root: Union[str, Path],
        skip_list: Iterable[Union[str, Path]] = (),
        scan_log: Optional[ScanLog] = None
    ) -> List[StructureAnalysis]:
        """Analyze the root and every folder beneath it, honouring the skip list."""
        root = absolute_path(root)
        context = ScanContext.create(skip_list)
        analyses = []

        for folder in self.file_ops.list_descendant_folders(root):
            if context.skip_entry_for(folder):
                continue
            try:
                analysis = self.analyze(folder)
            except FilesystemError as e:
                logger.warning(str(e))
                continue

            analyses.append(analysis)
            if scan_log is not None:
                scan_log.append(LogEntry.from_analysis(analysis, "analyze"))

        logger.info(f"Analyzed {len(analyses)} folders under {root}")
        return analyses
