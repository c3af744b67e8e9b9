"""Tests for StructureValidator."""

import json
from pathlib import Path

import pytest

from filesystem.structure_validator import ScanContext, StructureValidator, normalize_prefix, unit_paths
from models.schemas import Reason, Status, ValidationResult
from utils.exceptions import ConfigurationError, FilesystemError
from utils.scan_log import ScanLog

from conftest import StubTagReader, make_tree


def by_path(results):
    return {result.path: result for result in results}


@pytest.fixture
def validator(tag_reader):
    return StructureValidator(tag_reader=tag_reader)


class TestSingleFolderChecks:
    def test_empty_folder(self, validator, music_root):
        folder = music_root / "Empty"
        folder.mkdir()

        result = validator.validate_folder(folder)

        assert result.reason is Reason.EMPTY
        assert result.status is Status.BAD
        assert result.is_valid is False

    def test_non_audio_only_is_no_music_not_empty(self, validator, music_root):
        make_tree(music_root, "Artwork/cover.jpg")

        result = validator.validate_folder(music_root / "Artwork")

        assert result.reason is Reason.NO_MUSIC_FILES
        assert result.status is Status.BAD

    def test_missing_folder_is_not_found(self, validator, music_root):
        result = validator.validate_folder(music_root / "Gone")

        assert result.reason is Reason.NOT_FOUND
        assert result.status is Status.ERROR

    def test_corrupted_representative_file(self, music_root):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        validator = StructureValidator(tag_reader=StubTagReader(corrupt={"01 - Breed.mp3"}))

        result = validator.validate_folder(music_root / "Nirvana" / "1991 - Nevermind")

        assert result.reason is Reason.CORRUPTED_FILE
        assert result.status is Status.BAD
        assert "can't sync to MPEG frame" in result.details

    def test_album_folder_is_good_for_its_artist(self, validator, music_root):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Smells Like Teen Spirit.mp3")

        result = validator.validate_folder(music_root / "Nirvana" / "1991 - Nevermind")

        assert result.is_valid
        assert result.status is Status.GOOD
        assert result.unit_path == music_root / "Nirvana"

    def test_artist_folder_uses_album_subfolder_file(self, validator, tag_reader, music_root):
        make_tree(music_root,
                  "Nirvana/1989 - Bleach/cover.jpg",
                  "Nirvana/1991 - Nevermind/02 - In Bloom.mp3",
                  "Nirvana/1991 - Nevermind/01 - Smells Like Teen Spirit.mp3")

        result = validator.validate_folder(music_root / "Nirvana")

        assert result.reason is Reason.VALID
        assert tag_reader.opened == [
            music_root / "Nirvana" / "1991 - Nevermind" / "01 - Smells Like Teen Spirit.mp3"
        ]

    def test_artist_folder_with_silent_albums(self, validator, music_root):
        make_tree(music_root, "Nirvana/1991 - Nevermind/notes.txt", "Nirvana/1993 - In Utero/")

        result = validator.validate_folder(music_root / "Nirvana")

        assert result.reason is Reason.NO_MUSIC_FILES

    def test_extension_order_picks_representative(self, validator, tag_reader, music_root):
        make_tree(music_root,
                  "Muse/2003 - Absolution/01 - Intro.flac",
                  "Muse/2003 - Absolution/02 - Apocalypse Please.mp3")

        validator.validate_folder(music_root / "Muse" / "2003 - Absolution")

        assert tag_reader.opened[0].name == "02 - Apocalypse Please.mp3"

    def test_album_with_only_disc_subfolders(self, validator, music_root):
        make_tree(music_root, "Pink Floyd/1979 - The Wall/Disc 1/01 - In The Flesh.mp3")

        result = validator.validate_folder(music_root / "Pink Floyd" / "1979 - The Wall")

        assert result.is_valid
        assert result.unit_path == music_root / "Pink Floyd"

    def test_bad_structure_logs_the_files_folder(self, validator, music_root):
        make_tree(music_root, "BadArtist/NotAYear - Album/track.mp3")

        result = validator.validate_folder(music_root / "BadArtist" / "NotAYear - Album")

        assert result.reason is Reason.BAD_STRUCTURE
        assert result.unit_path == music_root / "BadArtist" / "NotAYear - Album"


class TestSkipList:
    def test_prefix_normalization(self):
        assert normalize_prefix("/music/Various/") == "/music/various/"
        assert normalize_prefix(r"C:\Music\Various") == "c:/music/various/"

    def test_sibling_with_common_prefix_is_not_skipped(self, music_root):
        context = ScanContext.create([music_root / "Various"])

        assert context.skip_entry_for(music_root / "Various" / "Sub")
        assert context.skip_entry_for(music_root / "Various Artists") is None

    def test_whole_subtree_is_skipped_without_opening_files(self, validator, tag_reader, music_root):
        make_tree(music_root,
                  "Various/1999 - Hits/01 - Song.mp3",
                  "Various/Nested/Deeper/02 - Other.mp3",
                  "Nirvana/1991 - Nevermind/01 - Breed.mp3")

        results = by_path(validator.validate_detailed(music_root, skip_list=[str(music_root / "Various")]))

        skipped = [path for path, result in results.items() if result.reason is Reason.SKIPPED]
        assert sorted(skipped) == sorted([
            music_root / "Various",
            music_root / "Various" / "1999 - Hits",
            music_root / "Various" / "Nested",
            music_root / "Various" / "Nested" / "Deeper",
        ])
        assert all("Various" not in path.parts for path in tag_reader.opened)

    def test_skip_list_is_case_insensitive(self, validator, music_root):
        make_tree(music_root, "Various/1999 - Hits/01 - Song.mp3")

        results = by_path(validator.validate_detailed(music_root, skip_list=[str(music_root / "VARIOUS")]))

        assert results[music_root / "Various"].status is Status.SKIPPED


class TestLibraryScan:
    def test_nirvana_library(self, validator, music_root):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Smells Like Teen Spirit.mp3")

        results = by_path(validator.validate_detailed(music_root))

        assert results[music_root].reason is Reason.NO_MUSIC_FILES
        assert results[music_root / "Nirvana"].status is Status.GOOD
        assert validator.validate_simple(music_root) == [music_root / "Nirvana"]

    def test_bad_structure_library(self, validator, music_root):
        make_tree(music_root, "BadArtist/NotAYear - Album/track.mp3")

        bad = validator.validate_simple(music_root, good_only=False)

        assert music_root / "BadArtist" / "NotAYear - Album" in bad

    def test_repeated_scans_are_identical(self, validator, music_root):
        make_tree(music_root,
                  "Nirvana/1991 - Nevermind/01 - Breed.mp3",
                  "Empty/",
                  "Art/cover.jpg",
                  "BadArtist/NotAYear - Album/track.mp3")

        def snapshot():
            return [(r.path, r.is_valid, r.reason, r.status) for r in validator.validate_detailed(music_root)]

        assert snapshot() == snapshot()

    def test_scan_log_deduplicates_units(self, validator, music_root, tmp_path):
        make_tree(music_root,
                  "Nirvana/1991 - Nevermind/01 - Breed.mp3",
                  "Nirvana/1993 - In Utero/01 - Serve The Servants.mp3",
                  "BadArtist/NotAYear - Album/track.mp3")
        scan_log = ScanLog(tmp_path / "scan.jsonl")
        scan_log.initialize()

        validator.validate_detailed(music_root, scan_log=scan_log)

        entries = [json.loads(line) for line in scan_log.path.read_text(encoding='utf-8').splitlines()]
        good = [e["Path"] for e in entries if e["Status"] == "Good"]
        bad = [e["Path"] for e in entries if e["Status"] == "Bad"]
        assert good == [str(music_root / "Nirvana")]
        assert bad.count(str(music_root / "BadArtist" / "NotAYear - Album")) == 1
        assert all({"Timestamp", "Status", "Path", "Function", "Type"} <= set(e) for e in entries)

    def test_second_run_appends_again(self, validator, music_root, tmp_path):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        scan_log = ScanLog(tmp_path / "scan.jsonl")

        validator.validate_detailed(music_root, scan_log=scan_log)
        validator.validate_detailed(music_root, scan_log=scan_log)

        lines = scan_log.path.read_text(encoding='utf-8').splitlines()
        assert sum('"Good"' in line for line in lines) == 2

    def test_missing_starting_path_aborts(self, validator, music_root):
        with pytest.raises(FilesystemError):
            validator.validate_detailed(music_root / "nope")

    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_blank_starting_path_is_rejected(self, validator, path):
        with pytest.raises(ConfigurationError):
            validator.validate_detailed(path)


class TestRelativePaths:
    def test_current_directory_as_starting_path(self, validator, music_root, monkeypatch):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        monkeypatch.chdir(music_root)

        results = by_path(validator.validate_detailed("."))

        assert results[music_root / "Nirvana"].reason is Reason.VALID
        assert results[music_root / "Nirvana" / "1991 - Nevermind"].unit_path == music_root / "Nirvana"

    def test_artist_folder_as_relative_starting_path(self, validator, music_root, monkeypatch):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        monkeypatch.chdir(music_root)

        assert validator.validate_simple("Nirvana") == [music_root / "Nirvana"]
        assert validator.validate_folder(Path("Nirvana")).is_valid

    def test_relative_skip_entry_matches_absolute_folders(self, validator, music_root, monkeypatch):
        make_tree(music_root, "Various/1999 - Hits/01 - Song.mp3", "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        monkeypatch.chdir(music_root)

        results = by_path(validator.validate_detailed(music_root, skip_list=["Various"]))

        assert results[music_root / "Various" / "1999 - Hits"].status is Status.SKIPPED
        assert results[music_root / "Nirvana"].status is Status.GOOD


class TestUnreadableFolders:
    def test_unreadable_folder_does_not_stop_the_scan(self, validator, music_root, monkeypatch):
        make_tree(music_root, "Locked/cover.jpg", "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        original_iterdir = Path.iterdir

        def iterdir(self):
            if self.name == "Locked":
                raise PermissionError(13, "Permission denied", str(self))
            return original_iterdir(self)

        monkeypatch.setattr(Path, "iterdir", iterdir)

        results = by_path(validator.validate_detailed(music_root))

        locked = results[music_root / "Locked"]
        assert locked.reason is Reason.NOT_FOUND
        assert locked.status is Status.ERROR
        assert "Permission denied" in locked.details
        assert results[music_root / "Nirvana"].status is Status.GOOD


class TestUnitPaths:
    def test_deduplicated_in_first_seen_order(self, tmp_path):
        results = [
            ValidationResult(path=tmp_path / "B" / "1999 - X", reason=Reason.VALID, log_path=tmp_path / "B"),
            ValidationResult(path=tmp_path / "Empty", reason=Reason.EMPTY),
            ValidationResult(path=tmp_path / "A", reason=Reason.VALID),
            ValidationResult(path=tmp_path / "B", reason=Reason.VALID),
        ]

        assert unit_paths(results) == [tmp_path / "B", tmp_path / "A"]
        assert unit_paths(results, Status.BAD) == [tmp_path / "Empty"]


class TestRepresentativeFileCheck:
    def test_reader_only_needs_probe(self, music_root):
        make_tree(music_root, "Nirvana/1991 - Nevermind/01 - Breed.mp3")
        probed = []

        class ProbeOnly:
            def probe(self, path):
                probed.append(path)

        result = StructureValidator(tag_reader=ProbeOnly()).validate_folder(music_root / "Nirvana")

        assert result.is_valid
        assert probed == [music_root / "Nirvana" / "1991 - Nevermind" / "01 - Breed.mp3"]
