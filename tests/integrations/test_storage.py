"""Tests for storage integration module.

Tests cover:
- Filesystem detection for local paths and URLs
- Path building for local and remote storage
- Reading, writing, deleting and listing files
"""

import uuid
from datetime import datetime
from pathlib import Path

import pytest

from taxlogic.integrations.storage import (
    build_full_path,
    delete,
    exists,
    get_filesystem,
    list_files,
    read_bytes,
    write_bytes,
)


@pytest.fixture
def memory_url() -> str:
    """Unique in-memory storage root per test."""
    return f"memory://taxlogic-{uuid.uuid4().hex}"


class TestGetFilesystem:
    """Tests for get_filesystem function."""

    def test_local_path_returns_local_filesystem(self, tmp_path: Path) -> None:
        fs = get_filesystem(str(tmp_path))
        assert "LocalFileSystem" in type(fs).__name__

    def test_file_url_returns_local_filesystem(self, tmp_path: Path) -> None:
        fs = get_filesystem(f"file://{tmp_path}")
        assert "LocalFileSystem" in type(fs).__name__

    def test_memory_url_returns_memory_filesystem(self, memory_url: str) -> None:
        fs = get_filesystem(memory_url)
        assert "MemoryFileSystem" in type(fs).__name__


class TestBuildFullPath:
    def test_local(self) -> None:
        assert build_full_path("/data/sessions", "abc.json") == "/data/sessions/abc.json"
        assert build_full_path("file:///data/sessions", "abc.json") == "/data/sessions/abc.json"
        assert build_full_path("/data/sessions", "") == "/data/sessions"

    def test_remote(self) -> None:
        assert build_full_path("s3://bucket/prefix/", "/a/b.md") == "bucket/prefix/a/b.md"
        assert build_full_path("s3://bucket", "") == "bucket"


class TestReadWrite:
    """Round trips through local and in-memory storage."""

    def test_local_write_creates_directories(self, tmp_path: Path) -> None:
        path = write_bytes(str(tmp_path), "nested/dir/file.txt", b"hello")

        assert path == str(tmp_path / "nested" / "dir" / "file.txt")
        assert read_bytes(str(tmp_path), "nested/dir/file.txt") == b"hello"

    def test_memory_round_trip(self, memory_url: str) -> None:
        write_bytes(memory_url, "jane/notes.md", b"# Notes")

        assert exists(memory_url, "jane/notes.md")
        assert read_bytes(memory_url, "jane/notes.md") == b"# Notes"

    def test_read_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_bytes(str(tmp_path), "missing.json")

    def test_overwrite(self, tmp_path: Path) -> None:
        write_bytes(str(tmp_path), "a.json", b"1")
        write_bytes(str(tmp_path), "a.json", b"2")
        assert read_bytes(str(tmp_path), "a.json") == b"2"


class TestDelete:
    def test_delete_existing(self, tmp_path: Path) -> None:
        write_bytes(str(tmp_path), "a.json", b"{}")

        assert delete(str(tmp_path), "a.json") is True
        assert not exists(str(tmp_path), "a.json")

    def test_delete_missing(self, tmp_path: Path) -> None:
        assert delete(str(tmp_path), "a.json") is False


class TestListFiles:
    """Tests for list_files function."""

    def test_returns_sorted_file_info(self, tmp_path: Path) -> None:
        write_bytes(str(tmp_path), "b.json", b"{}")
        write_bytes(str(tmp_path), "a.json", b"{ }")

        files = list_files(str(tmp_path))

        assert [f["name"] for f in files] == ["a.json", "b.json"]
        assert files[0]["size"] == 3
        assert files[0]["type"] == "file"
        assert isinstance(files[0]["mtime"], datetime)

    def test_excludes_directories(self, tmp_path: Path) -> None:
        write_bytes(str(tmp_path), "sub/inner.json", b"{}")
        write_bytes(str(tmp_path), "top.json", b"{}")

        assert [f["name"] for f in list_files(str(tmp_path))] == ["top.json"]

    def test_subpath(self, tmp_path: Path) -> None:
        write_bytes(str(tmp_path), "sub/inner.json", b"{}")
        assert [f["name"] for f in list_files(str(tmp_path), "sub")] == ["inner.json"]

    def test_nonexistent_returns_empty_list(self, tmp_path: Path) -> None:
        assert list_files(str(tmp_path / "nope")) == []

    def test_memory_listing(self, memory_url: str) -> None:
        write_bytes(memory_url, "x.json", b"{}")

        files = list_files(memory_url)

        assert [f["name"] for f in files] == ["x.json"]
        assert isinstance(files[0]["mtime"], datetime)
