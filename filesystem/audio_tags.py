"""
Audio tag access backed by mutagen.

The validator only needs to know whether a file opens; the tagger reads and
writes a small set of named fields through TagHandle.
"""

import logging
from pathlib import Path
from typing import List, Optional

import mutagen

from utils.exceptions import MetadataExtractionError, MetadataWriteError

logger = logging.getLogger(__name__)

# TagHandle field -> mutagen "easy" key
EASY_KEYS = {
    'title': 'title',
    'performers': 'artist',
    'album_artists': 'albumartist',
    'album': 'album',
    'year': 'date',
    'track': 'tracknumber',
    'disc': 'discnumber',
    'genres': 'genre',
    'comment': 'comment',
    'composers': 'composer',
}

LIST_FIELDS = {'performers', 'album_artists', 'genres', 'composers'}
NUMBER_FIELDS = {'year', 'track', 'disc'}


class TagHandle:
    """Get/set access to the tags of one opened audio file."""

    def __init__(self, path: Path, audio):
        self.path = path
        self._audio = audio
        if self._audio.tags is None:
            try:
                self._audio.add_tags()
            except Exception as e:
                logger.debug(f"Could not add an empty tag block to {path}: {e}")

    def get(self, field: str):
        key = self._easy_key(field)
        try:
            values = self._audio.get(key) if self._audio.tags is not None else None
        except (KeyError, ValueError):
            values = None

        if not values:
            return [] if field in LIST_FIELDS else None
        if field in LIST_FIELDS:
            return [str(v) for v in values]

        value = str(values[0])
        if field in NUMBER_FIELDS:
            # "3/12" track numbers and "1997-08-26" dates
            head = value.split('/')[0].split('-')[0].strip()
            return int(head) if head.isdigit() else None
        return value

    def set(self, field: str, value) -> bool:
        """
        Set a field. Returns False when the file's tag format has no slot for it.
        """
        key = self._easy_key(field)
        if value is None:
            return False

        if field in LIST_FIELDS:
            values = [str(v) for v in value]
        else:
            values = [str(value)]

        try:
            self._audio[key] = values
        except (KeyError, ValueError, TypeError) as e:
            logger.debug(f"{self.path.name}: tag '{field}' not supported ({e})")
            return False
        return True

    def save(self):
        try:
            self._audio.save()
        except Exception as e:
            raise MetadataWriteError(str(self.path), str(e))

    @staticmethod
    def _easy_key(field: str) -> str:
        try:
            return EASY_KEYS[field]
        except KeyError:
            raise ValueError(f"Unknown tag field: {field}")


class MutagenTagReader:
    """Opens audio files through mutagen's format-neutral easy interface."""

    def open(self, file_path: Path) -> TagHandle:
        """
        Open an audio file for tag access.

        Raises:
            MetadataExtractionError: If mutagen fails or does not recognize the file
        """
        try:
            audio = mutagen.File(str(file_path), easy=True)
        except Exception as e:
            raise MetadataExtractionError(str(file_path), str(e) or type(e).__name__)

        if audio is None:
            raise MetadataExtractionError(str(file_path), "not a recognized audio file")

        return TagHandle(Path(file_path), audio)

    def probe(self, file_path: Path) -> None:
        """Raise MetadataExtractionError unless the file opens."""
        self.open(file_path)


def read_fields(handle: TagHandle, fields: Optional[List[str]] = None) -> dict:
    """Snapshot of the named fields, for logging before/after a rewrite."""
    return {field: handle.get(field) for field in (fields or EASY_KEYS)}
