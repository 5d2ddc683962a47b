# tests/test_files.py
import os
from pathlib import Path

import pytest

from panelfs.errors import (
    AlreadyExists,
    InvalidName,
    IsDirectory,
    NotFound,
    NotWritable,
    Unexpected,
)
from panelfs.models import DownloadContent, TextContent
from panelfs.services.files import (
    FileAccessService,
    is_text_viewable,
    mime_type_for,
    mode_to_string,
)


def test_write_then_read_round_trips_text(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "notes.txt"
    content = "first line\nzweite Zeile: äöü ß\r\n漢字 and emoji 🎉\n\nend"

    fs.write(p, content)
    result = fs.read(p, for_viewing=True)

    assert isinstance(result, TextContent)
    assert result.content == content
    assert result.writable is True
    assert result.path == p


def test_reading_twice_is_stable(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "config.yaml"
    p.write_text("a: 1\n", encoding="utf-8")

    first = fs.read(p, for_viewing=True)
    second = fs.read(p, for_viewing=True)
    assert first.content == second.content
    assert first.writable == second.writable


def test_read_without_view_is_a_download(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "notes.txt"
    p.write_bytes("héllo".encode("utf-8"))

    result = fs.read(p, for_viewing=False)
    assert isinstance(result, DownloadContent)
    assert result.filename == "notes.txt"
    assert result.mime_type == "text/plain"
    assert result.size_bytes == len("héllo".encode("utf-8"))


def test_binary_types_download_even_when_viewing(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "logo.png"
    p.write_bytes(b"\x89PNG\r\n\x1a\n")

    result = fs.read(p, for_viewing=True)
    assert isinstance(result, DownloadContent)
    assert result.mime_type == "image/png"


def test_read_missing_and_directory(tmp_path: Path):
    fs = FileAccessService()
    with pytest.raises(NotFound):
        fs.read(tmp_path / "missing.txt", for_viewing=True)
    with pytest.raises(IsDirectory):
        fs.read(tmp_path, for_viewing=True)


def test_write_creates_missing_file(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "new.txt"
    fs.write(p, "x")
    assert p.read_text(encoding="utf-8") == "x"


def test_write_fully_overwrites(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "a.txt"
    p.write_text("a much longer original body", encoding="utf-8")
    fs.write(p, "short")
    assert p.read_text(encoding="utf-8") == "short"


def test_write_into_missing_directory_is_io_error(tmp_path: Path):
    fs = FileAccessService()
    with pytest.raises(Unexpected):
        fs.write(tmp_path / "nope" / "a.txt", "x")


def test_write_refuses_unwritable_existing_file(tmp_path: Path, monkeypatch):
    fs = FileAccessService()
    p = tmp_path / "locked.txt"
    p.write_text("keep", encoding="utf-8")
    monkeypatch.setattr(fs, "is_writable", lambda path: False)

    with pytest.raises(NotWritable):
        fs.write(p, "changed")
    assert p.read_text(encoding="utf-8") == "keep"


def test_write_to_directory_is_rejected(tmp_path: Path):
    fs = FileAccessService()
    with pytest.raises(IsDirectory):
        fs.write(tmp_path, "x")


def test_stat(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "data.json"
    p.write_text("{}", encoding="utf-8")

    record = fs.stat(p)
    assert record.resolved_path == p
    assert record.is_directory is False
    assert record.size_bytes == 2
    assert record.mime_type == "application/json"
    assert fs.stat(tmp_path).is_directory is True


def test_mime_classification():
    assert mime_type_for(Path("a.TXT")) == "text/plain"
    assert mime_type_for(Path("a.yml")) == "application/x-yaml"
    assert mime_type_for(Path("a.js")) == "application/javascript"
    assert mime_type_for(Path("a.unknown")) == "application/octet-stream"
    assert mime_type_for(Path("Makefile")) == "application/octet-stream"

    assert is_text_viewable("text/html")
    assert is_text_viewable("application/json")
    assert is_text_viewable("application/typescript")
    assert not is_text_viewable("image/png")
    assert not is_text_viewable("application/octet-stream")


def test_mode_to_string():
    assert mode_to_string(0o755, True) == "drwxr-xr-x"
    assert mode_to_string(0o640, False) == "-rw-r-----"


def test_list_dir(tmp_path: Path):
    fs = FileAccessService()
    (tmp_path / "b.txt").write_text("hello", encoding="utf-8")
    (tmp_path / "a_dir").mkdir()

    entries = fs.list_dir(tmp_path)
    assert [e.name for e in entries] == ["a_dir", "b.txt"]
    assert entries[0].type == "folder"
    assert entries[0].permissions.startswith("d")
    assert entries[1].type == "file"
    assert entries[1].size == 5
    assert entries[1].modified is not None


def test_list_dir_errors(tmp_path: Path):
    fs = FileAccessService()
    (tmp_path / "f.txt").write_text("x", encoding="utf-8")
    with pytest.raises(NotFound):
        fs.list_dir(tmp_path / "missing")
    with pytest.raises(NotFound):
        fs.list_dir(tmp_path / "f.txt")


def test_create_item(tmp_path: Path):
    fs = FileAccessService()
    created = fs.create_item(tmp_path, "new.txt", "file")
    assert created.is_file() and created.read_bytes() == b""

    folder = fs.create_item(tmp_path, "sub", "folder")
    assert folder.is_dir()

    with pytest.raises(AlreadyExists):
        fs.create_item(tmp_path, "new.txt", "file")


@pytest.mark.parametrize("name", ["", "   ", ".", "..", "a/b", "..\\x"])
def test_create_item_rejects_bad_names(tmp_path: Path, name):
    with pytest.raises(InvalidName):
        FileAccessService().create_item(tmp_path, name, "file")


def test_create_item_rejects_bad_kind_and_parent(tmp_path: Path):
    fs = FileAccessService()
    with pytest.raises(InvalidName):
        fs.create_item(tmp_path, "x", "symlink")
    with pytest.raises(NotFound):
        fs.create_item(tmp_path / "missing", "x", "file")


@pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses file permission bits")
def test_write_refuses_read_only_file(tmp_path: Path):
    fs = FileAccessService()
    p = tmp_path / "readonly.txt"
    p.write_text("keep", encoding="utf-8")
    p.chmod(0o444)
    try:
        assert fs.read(p, for_viewing=True).writable is False
        with pytest.raises(NotWritable):
            fs.write(p, "changed")
        assert p.read_text(encoding="utf-8") == "keep"
    finally:
        p.chmod(0o644)
