"""
Pydantic schemas for folder validation, structure analysis and scan logs.

ValidationResult is the gate every destructive operation checks, while
StructureAnalysis is an advisory annotation for human review. LogEntry is the
persisted JSON-lines projection of both.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


class Reason(str, Enum):
    """Why a folder was classified the way it was."""

    UNKNOWN = "Unknown"
    SKIPPED = "Skipped"
    NOT_FOUND = "NotFound"
    EMPTY = "Empty"
    NO_MUSIC_FILES = "NoMusicFiles"
    CORRUPTED_FILE = "CorruptedFile"
    BAD_STRUCTURE = "BadStructure"
    VALID = "Valid"


class Status(str, Enum):
    """Coarse bucket derived from a Reason."""

    UNKNOWN = "Unknown"
    SKIPPED = "Skipped"
    ERROR = "Error"
    BAD = "Bad"
    GOOD = "Good"


def status_for_reason(reason: Reason) -> Status:
    if reason is Reason.VALID:
        return Status.GOOD
    if reason is Reason.NOT_FOUND:
        return Status.ERROR
    if reason is Reason.SKIPPED:
        return Status.SKIPPED
    if reason is Reason.UNKNOWN:
        return Status.UNKNOWN
    return Status.BAD


class LogFormat(str, Enum):
    JSON = "JSON"
    TEXT = "Text"

    @classmethod
    def parse(cls, value: str) -> "LogFormat":
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise ValueError(f"Unknown log format: {value}")


class ValidationResult(BaseModel):
    """Outcome of validating one folder. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Folder that was enumerated")
    reason: Reason = Field(default=Reason.UNKNOWN)
    details: str = Field(default="", description="Human-readable explanation")
    log_path: Optional[Path] = Field(
        default=None,
        description="Unit recorded in the scan log: artist folder for Good, "
                    "the representative file's folder for BadStructure"
    )

    @computed_field
    @property
    def is_valid(self) -> bool:
        return self.reason is Reason.VALID

    @computed_field
    @property
    def status(self) -> Status:
        return status_for_reason(self.reason)

    @property
    def unit_path(self) -> Path:
        return self.log_path or self.path


class StructureType(str, Enum):
    ARTIST_FOLDER = "ArtistFolder"
    SIMPLE_ALBUM = "SimpleAlbum"
    MIXED_ALBUM = "MixedAlbum"
    MULTI_DISC_ALBUM = "MultiDiscAlbum"
    COMPILATION_FOLDER = "CompilationFolder"
    AMBIGUOUS_STRUCTURE = "AmbiguousStructure"
    NON_MUSIC_FOLDER = "NonMusicFolder"


class StructureMetadata(BaseModel):
    """Counts gathered while surveying a folder."""

    direct_audio_files: int = 0
    subfolders: int = 0
    album_subfolders: int = 0
    disc_subfolders: int = 0
    compilation_subfolders: int = 0
    total_audio_files: int = 0
    album_audio_files: int = 0
    has_direct_audio: bool = False


class StructureAnalysis(BaseModel):
    """Semantic classification of one folder with supporting notes."""

    model_config = ConfigDict(validate_assignment=True)

    path: Path
    folder_name: str
    structure_type: StructureType
    confidence: float = Field(..., description="Heuristic score, floored at 0.1")
    details: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    metadata: StructureMetadata = Field(default_factory=StructureMetadata)

    @field_validator('confidence', mode='before')
    @classmethod
    def clamp_confidence(cls, v):
        """Keep the score inside [0.1, 1.0] however the penalties stacked."""
        value = round(float(v), 2)
        return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, value))


class LogEntry(BaseModel):
    """One line of the scan log. Serialized with the capitalized aliases."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=datetime.now, alias="Timestamp")
    status: str = Field(..., alias="Status")
    path: str = Field(..., alias="Path")
    function: str = Field(..., alias="Function")
    type: str = Field(default="Folder", alias="Type")
    reason: Optional[str] = Field(default=None, alias="Reason")
    details: Optional[str] = Field(default=None, alias="Details")
    structure_type: Optional[str] = Field(default=None, alias="StructureType")
    confidence: Optional[float] = Field(default=None, alias="Confidence")
    structure_details: Optional[List[str]] = Field(default=None, alias="StructureDetails")
    recommendations: Optional[List[str]] = Field(default=None, alias="Recommendations")
    metadata: Optional[Dict[str, Any]] = Field(default=None, alias="Metadata")

    @classmethod
    def from_validation(cls, result: ValidationResult, function: str) -> "LogEntry":
        return cls(
            status=result.status.value,
            path=str(result.unit_path),
            function=function,
            type="Folder",
            reason=result.reason.value,
            details=result.details or None,
        )

    @classmethod
    def from_analysis(cls, analysis: StructureAnalysis, function: str) -> "LogEntry":
        return cls(
            status="Analyzed",
            path=str(analysis.path),
            function=function,
            type="Folder",
            structure_type=analysis.structure_type.value,
            confidence=analysis.confidence,
            structure_details=list(analysis.details),
            recommendations=list(analysis.recommendations),
            metadata=analysis.metadata.model_dump(),
        )

    def to_json_line(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_text_line(self) -> str:
        line = f"{self.timestamp:%Y-%m-%d %H:%M:%S} [{self.status}] {self.function} {self.type}: {self.path}"
        if self.reason:
            line += f" - {self.reason}"
        if self.structure_type:
            line += f" - {self.structure_type} ({self.confidence:.2f})"
        if self.details:
            line += f": {self.details}"
        return line


class TrackNaming(BaseModel):
    """Tag values inferred from a conforming track path."""

    artist: str = Field(..., min_length=1)
    year: int = Field(..., ge=1000, le=9999)
    album: str = Field(..., min_length=1)
    track: int = Field(..., ge=0)
    title: str = Field(..., min_length=1)
    disc: Optional[int] = Field(default=None, ge=0)

    @field_validator('artist', 'album', 'title')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip()


class OperationOutcome(BaseModel):
    """Result of one orchestration step (tag, move, merge) on one folder."""

    source: Path
    destination: Optional[Path] = None
    action: str
    success: bool
    dry_run: bool = False
    message: str = ""
    files_affected: int = 0
