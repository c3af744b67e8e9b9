"""Shared fixtures: library trees built under tmp_path and a stand-in tag reader."""

import os
from pathlib import Path

import pytest

from utils.config_loader import load_config
from utils.exceptions import MetadataExtractionError, MetadataWriteError


class StubTagHandle:
    def __init__(self, path: Path, fail_save: bool = False):
        self.path = path
        self.fields = {}
        self.saved = False
        self.fail_save = fail_save

    def get(self, field):
        return self.fields.get(field)

    def set(self, field, value):
        self.fields[field] = value
        return True

    def save(self):
        if self.fail_save:
            raise MetadataWriteError(str(self.path), "read-only file")
        self.saved = True


class StubTagReader:
    """Opens everything except files named in ``corrupt``; remembers every handle."""

    def __init__(self, corrupt=(), unsaveable=()):
        self.corrupt = set(corrupt)
        self.unsaveable = set(unsaveable)
        self.opened = []
        self.handles = {}

    def open(self, path):
        path = Path(path)
        self.opened.append(path)
        if path.name in self.corrupt:
            raise MetadataExtractionError(str(path), "can't sync to MPEG frame")
        handle = StubTagHandle(path, fail_save=path.name in self.unsaveable)
        self.handles[path] = handle
        return handle

    def probe(self, path):
        self.open(path)


def make_tree(root: Path, *entries: str) -> Path:
    """
    Create files and folders below root. Entries ending in '/' are folders,
    everything else is a file with placeholder bytes.
    """
    for entry in entries:
        target = root / entry
        if entry.endswith('/'):
            target.mkdir(parents=True, exist_ok=True)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"not really audio")
    return root


@pytest.fixture
def tag_reader():
    return StubTagReader()


@pytest.fixture
def music_root(tmp_path):
    root = tmp_path / "Music"
    root.mkdir()
    return root


@pytest.fixture
def config(monkeypatch):
    for name in list(os.environ):
        if name.startswith("LIBRARY_CURATOR_"):
            monkeypatch.delenv(name)
    return load_config(None)
