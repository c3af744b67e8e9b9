"""Tests for FileSystemOperations."""

import pytest

from filesystem.file_ops import DEFAULT_AUDIO_EXTENSIONS, FileSystemOperations
from utils.exceptions import FilesystemError, OrganizationError

from conftest import make_tree


@pytest.fixture
def file_ops():
    return FileSystemOperations(DEFAULT_AUDIO_EXTENSIONS)


class TestListing:
    def test_audio_detection_ignores_case(self, file_ops, tmp_path):
        assert file_ops.is_audio_file(tmp_path / "01 - Song.FLAC")
        assert not file_ops.is_audio_file(tmp_path / "cover.jpg")

    def test_audio_files_follow_extension_order(self, file_ops, tmp_path):
        make_tree(tmp_path, "b.flac", "a.flac", "z.mp3", "cover.jpg", "sub/c.mp3")

        names = [p.name for p in file_ops.list_audio_files(tmp_path)]

        assert names == ["z.mp3", "a.flac", "b.flac"]
        assert file_ops.first_audio_file(tmp_path).name == "z.mp3"

    def test_first_audio_file_of_silent_folder(self, file_ops, tmp_path):
        make_tree(tmp_path, "cover.jpg")
        assert file_ops.first_audio_file(tmp_path) is None

    def test_counts(self, file_ops, tmp_path):
        make_tree(tmp_path, "a.mp3", "sub/b.ogg", "sub/deeper/c.wma", "sub/notes.txt")

        assert file_ops.count_audio_files(tmp_path) == 3
        assert file_ops.count_audio_files(tmp_path, recursive=False) == 1
        assert file_ops.count_files(tmp_path) == 4

    def test_descendant_folders(self, file_ops, tmp_path):
        make_tree(tmp_path, "b/", "a/nested/", "a/file.mp3")

        folders = file_ops.list_descendant_folders(tmp_path)

        assert folders == [tmp_path, tmp_path / "a", tmp_path / "a" / "nested", tmp_path / "b"]

    def test_descendant_folders_of_missing_root(self, file_ops, tmp_path):
        with pytest.raises(FilesystemError, match="does not exist"):
            file_ops.list_descendant_folders(tmp_path / "missing")

    def test_descendant_folders_of_a_file(self, file_ops, tmp_path):
        make_tree(tmp_path, "a.mp3")
        with pytest.raises(FilesystemError, match="not a directory"):
            file_ops.list_descendant_folders(tmp_path / "a.mp3")


class TestMovePath:
    def test_move_directory(self, file_ops, tmp_path):
        make_tree(tmp_path, "src/Nirvana/1991 - Nevermind/01 - Breed.mp3")

        moved = file_ops.move_path(tmp_path / "src" / "Nirvana", tmp_path / "dst" / "Nirvana")

        assert moved == tmp_path / "dst" / "Nirvana"
        assert (moved / "1991 - Nevermind" / "01 - Breed.mp3").is_file()
        assert not (tmp_path / "src" / "Nirvana").exists()

    def test_collision_gets_numbered_suffix(self, file_ops, tmp_path):
        make_tree(tmp_path, "src/01 - Breed.mp3", "dst/01 - Breed.mp3")

        moved = file_ops.move_path(tmp_path / "src" / "01 - Breed.mp3", tmp_path / "dst" / "01 - Breed.mp3")

        assert moved.name == "01 - Breed (1).mp3"

    def test_dry_run_leaves_disk_alone(self, file_ops, tmp_path):
        make_tree(tmp_path, "src/a.mp3")

        file_ops.move_path(tmp_path / "src" / "a.mp3", tmp_path / "dst" / "a.mp3", dry_run=True)

        assert (tmp_path / "src" / "a.mp3").exists()
        assert not (tmp_path / "dst").exists()

    def test_missing_source(self, file_ops, tmp_path):
        with pytest.raises(OrganizationError):
            file_ops.move_path(tmp_path / "nope", tmp_path / "dst")


class TestMergeDirectory:
    def test_merge_into_existing_artist(self, file_ops, tmp_path):
        make_tree(tmp_path,
                  "inbox/Nirvana/1993 - In Utero/01 - Serve The Servants.mp3",
                  "inbox/Nirvana/1991 - Nevermind/02 - In Bloom.mp3",
                  "library/Nirvana/1991 - Nevermind/01 - Breed.mp3")

        affected = file_ops.merge_directory(tmp_path / "inbox" / "Nirvana", tmp_path / "library" / "Nirvana")

        target = tmp_path / "library" / "Nirvana"
        assert affected == 2
        assert (target / "1993 - In Utero" / "01 - Serve The Servants.mp3").is_file()
        assert (target / "1991 - Nevermind" / "02 - In Bloom.mp3").is_file()
        assert not (tmp_path / "inbox" / "Nirvana").exists()

    def test_identical_files_are_dropped_and_different_ones_kept(self, file_ops, tmp_path):
        make_tree(tmp_path, "a/same.mp3", "b/same.mp3", "b/diff.mp3")
        (tmp_path / "a" / "diff.mp3").write_bytes(b"another take")
        (tmp_path / "b" / "diff.mp3").write_bytes(b"original")

        file_ops.merge_directory(tmp_path / "a", tmp_path / "b")

        assert sorted(p.name for p in (tmp_path / "b").iterdir()) == ["diff (1).mp3", "diff.mp3", "same.mp3"]
        assert not (tmp_path / "a").exists()

    def test_merge_into_itself(self, file_ops, tmp_path):
        make_tree(tmp_path, "a/x.mp3")
        with pytest.raises(OrganizationError):
            file_ops.merge_directory(tmp_path / "a", tmp_path / "a")

    def test_dry_run_merge(self, file_ops, tmp_path):
        make_tree(tmp_path, "a/x.mp3", "a/sub/y.mp3")

        affected = file_ops.merge_directory(tmp_path / "a", tmp_path / "b", dry_run=True)

        assert affected == 2
        assert (tmp_path / "a" / "x.mp3").exists()
        assert not (tmp_path / "b").exists()


class TestHelpers:
    def test_unique_path_for_folder(self, file_ops, tmp_path):
        make_tree(tmp_path, "Nirvana/", "Nirvana (1)/")
        assert file_ops.generate_unique_path(tmp_path / "Nirvana") == tmp_path / "Nirvana (2)"

    def test_remove_if_empty(self, file_ops, tmp_path):
        make_tree(tmp_path, "empty/", "full/a.mp3")

        assert file_ops.remove_if_empty(tmp_path / "empty") is True
        assert file_ops.remove_if_empty(tmp_path / "full") is False
        assert not (tmp_path / "empty").exists()
