"""
Path patterns for the Artist/YYYY - Album/NN - Title.ext library layout.

Pure functions: nothing here touches the filesystem. Both '/' and '\\' are
accepted as separators and every pattern is case-insensitive, because library
conventions are inconsistent about case.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from models.schemas import TrackNaming
from utils.exceptions import NamingError

PathLike = Union[str, Path]

# Folder name patterns shared by the validator and the analyzer
ALBUM_FOLDER_PATTERN = re.compile(r"^\d{4} - .+$")
COMPILATION_FOLDER_PATTERN = re.compile(r"^\d{4} - .+ - .+$")
DISC_MARKER_PATTERN = re.compile(r"(?i)(disc|cd)\s*\d+")
DISC_FOLDER_PATTERN = re.compile(r"(?i)^(?:disc|cd)\s*\d+$")

# Artist/YYYY - Album/NN - Title.ext, album name without a disc marker
FLAT_ALBUM_LAYOUT = re.compile(
    r"[\\/](?P<artist>[^\\/]+)[\\/]"
    r"(?P<year>\d{4}) - (?P<album>(?![^\\/]*\b(?:disc|cd)\s*\d)[^\\/]+)[\\/]"
    r"(?P<track>\d{2}|\d-\d{2}) - (?P<title>[^\\/]+)\.(?P<ext>[^.\\/]+)$",
    re.IGNORECASE
)

# Artist/YYYY - Album - CD1/NN - Title.ext or Artist/YYYY - Album/Disc 1/NN - Title.ext
DISC_ALBUM_LAYOUT = re.compile(
    r"[\\/](?P<artist>[^\\/]+)[\\/]"
    r"(?P<year>\d{4}) - (?P<album>[^\\/]+?)"
    r"(?:"
    r" - (?:disc|cd)\s*(?P<inline_disc>\d+)[\\/]"
    r"|"
    r"[\\/](?:disc|cd)\s*(?P<folder_disc>\d+)[\\/]"
    r")"
    r"(?P<track>\d{2}|\d-\d{2}) - (?P<title>[^\\/]+)\.(?P<ext>[^.\\/]+)$",
    re.IGNORECASE
)


@dataclass(frozen=True)
class LayoutMatch:
    """Whether a file path follows an accepted layout, and its artist segment."""

    matched: bool
    artist: str = ""
    layout: str = ""

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = LayoutMatch(False)


def is_album_folder_name(name: str) -> bool:
    return bool(ALBUM_FOLDER_PATTERN.match(name))


def is_compilation_folder_name(name: str) -> bool:
    return bool(COMPILATION_FOLDER_PATTERN.match(name))


def is_disc_folder_name(name: str) -> bool:
    return bool(DISC_MARKER_PATTERN.search(name))


def matches_flat_album_layout(full_path: PathLike) -> LayoutMatch:
    """Match .../Artist/YYYY - Album/NN - Title.ext (no disc marker in the album name)."""
    match = FLAT_ALBUM_LAYOUT.search(str(full_path))
    if not match:
        return NO_MATCH
    return LayoutMatch(True, match.group('artist'), 'flat')


def matches_disc_album_layout(full_path: PathLike) -> LayoutMatch:
    """
    Match an album split into discs.

    The disc may be a literal subfolder (``Disc 1``, ``CD2``) below the album
    folder or an inline ``- Disc N`` / ``- CDN`` suffix on the album folder
    itself. One of the two is required, so a path never matches both this and
    the flat layout.
    """
    match = DISC_ALBUM_LAYOUT.search(str(full_path))
    if not match:
        return NO_MATCH
    return LayoutMatch(True, match.group('artist'), 'disc')


def match_album_layout(full_path: PathLike) -> LayoutMatch:
    """Try the flat layout, then the disc layout. First match wins."""
    result = matches_flat_album_layout(full_path)
    if result:
        return result
    return matches_disc_album_layout(full_path)


def extract_artist_folder_path(full_path: PathLike, artist: str) -> Path:
    """
    Rebuild the path prefix up to and including the artist segment.

    The first component equal to ``artist`` wins, so an artist name repeated
    higher up in the tree resolves to the higher folder.

    Raises:
        NamingError: If the segment does not occur in the path
    """
    parts = Path(full_path).parts
    for index, part in enumerate(parts):
        if part == artist:
            return Path(*parts[:index + 1])
    raise NamingError(str(full_path), f"artist segment '{artist}' not found")


def infer_track_naming(full_path: PathLike) -> TrackNaming:
    """
    Infer tag values from a conforming track path.

    Disc numbers come from a disc subfolder or inline album suffix, falling
    back to the ``N-NN`` form of the track number.

    Raises:
        NamingError: If the path follows neither accepted layout
    """
    text = str(full_path)
    match = FLAT_ALBUM_LAYOUT.search(text) or DISC_ALBUM_LAYOUT.search(text)
    if not match:
        raise NamingError(text, "does not follow Artist/YYYY - Album/NN - Title")

    groups = match.groupdict()
    track_spec = groups['track']
    disc: Optional[int] = None
    if '-' in track_spec:
        disc_part, track_part = track_spec.split('-', 1)
        disc = int(disc_part)
        track = int(track_part)
    else:
        track = int(track_spec)

    folder_disc = groups.get('folder_disc') or groups.get('inline_disc')
    if folder_disc:
        disc = int(folder_disc)

    return TrackNaming(
        artist=groups['artist'],
        year=int(groups['year']),
        album=groups['album'],
        track=track,
        title=groups['title'],
        disc=disc,
    )
