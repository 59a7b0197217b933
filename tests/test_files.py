"""Tests for the path-level file operations."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from fstree import files
from fstree.errors import NotASymLinkError, UnknownAttributeError
from fstree.filesystem import RealFileSystem
from fstree.memory import MemoryFileSystem
from fstree.paths import FsPath, join, parent
from fstree.types import CreateResult, OpenOption

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX permissions")


@pytest.fixture
def fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def work(fs: MemoryFileSystem) -> FsPath:
    return join(fs, "/work")


class TestCreate:
    """Tests for idempotent creation."""

    def test_create_dir_twice(self, fs: MemoryFileSystem, work: FsPath) -> None:
        """Test a second create_dir is a no-op reporting EXISTS."""
        path = work / "dir"

        assert files.create_dir(path) is CreateResult.CREATED
        assert files.create_dir(path) is CreateResult.EXISTS

        with files.list_dir(work) as entries:
            assert list(entries) == [path]

    def test_create_file_twice(self, work: FsPath) -> None:
        """Test a second create_file keeps the content."""
        path = work / "file"
        files.create_file(path)
        files.write_bytes(path, b"data")

        assert files.create_file(path) is CreateResult.EXISTS
        assert files.read_bytes(path) == b"data"

    def test_existing_entry_is_logged(
        self, work: FsPath, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a no-op creation is logged at debug level."""
        caplog.set_level(logging.DEBUG, logger="fstree.files")
        files.create_dir(work / "dir")

        files.create_dir(work / "dir")

        assert "already exists" in caplog.text

    def test_create_dirs(self, fs: MemoryFileSystem) -> None:
        """Test missing parents are created."""
        path = join(fs, "/a/b/c")

        assert files.create_dirs(path) is CreateResult.CREATED
        assert files.is_dir(path)
        assert files.create_dirs(path) is CreateResult.EXISTS

    def test_create_dirs_through_file(self, fs: MemoryFileSystem) -> None:
        """Test a file in the way is an error."""
        files.create_file(join(fs, "/a"))

        with pytest.raises(FileExistsError):
            files.create_dirs(join(fs, "/a/b"))

    def test_create_links_return_link(self, work: FsPath) -> None:
        """Test link creation returns the link path."""
        target = work / "target"
        files.create_file(target)

        assert files.create_hard_link(work / "hard", target) == work / "hard"
        assert files.create_symlink(work / "soft", target) == work / "soft"
        assert files.read_symlink(work / "soft") == target

    def test_read_symlink_on_file(self, work: FsPath) -> None:
        """Test regular files are not links."""
        files.create_file(work / "file")

        with pytest.raises(NotASymLinkError):
            files.read_symlink(work / "file")

    def test_dangling_symlink_exists_without_following(self, work: FsPath) -> None:
        """Test dangling links exist only when not followed."""
        link = files.create_symlink(work / "link", work / "missing")

        assert files.is_symlink(link)
        assert not files.exists(link)
        assert files.exists(link, follow_symlinks=False)


class TestTempEntries:
    """Tests for temporary files and directories."""

    def test_temp_dir_in_directory(self, work: FsPath) -> None:
        """Test a prefixed directory is created inside the given one."""
        path = files.create_temp_dir(work, prefix="build-")

        assert path.name.startswith("build-")
        assert files.is_dir(path)
        assert parent(path) == work

    def test_temp_names_are_unique(self, work: FsPath) -> None:
        """Test consecutive calls yield distinct entries."""
        first = files.create_temp_file(work)
        second = files.create_temp_file(work)

        assert first != second
        assert first.name.endswith(".tmp")
        assert files.is_file(first) and files.is_file(second)

    def test_temp_name_collisions(self, work: FsPath) -> None:
        """Test giving up when every generated name is taken."""
        with patch("fstree.files.secrets.token_hex", return_value="fixed"):
            files.create_temp_dir(work)
            with pytest.raises(FileExistsError):
                files.create_temp_dir(work)

    def test_temp_file_on_host(self) -> None:
        """Test the host temporary directory is the default."""
        path = files.create_temp_file(prefix="fstree-", suffix=".txt")
        try:
            assert isinstance(path.fs, RealFileSystem)
            assert files.is_file(path)
        finally:
            files.delete(path)


class TestContent:
    """Tests for reading and writing content."""

    def test_write_and_read_lines(self, work: FsPath) -> None:
        """Test lines are written with a trailing newline each."""
        path = work / "lines"

        files.write_lines(path, ["one", "two"])

        assert files.read_bytes(path) == b"one\ntwo\n"
        assert files.read_lines(path) == ["one", "two"]

    def test_read_lines_mixed_breaks(self, work: FsPath) -> None:
        """Test every line terminator is recognized."""
        path = files.write_bytes(work / "mixed", b"a\r\nb\rc\nd")

        assert files.read_lines(path) == ["a", "b", "c", "d"]

    def test_read_lines_empty(self, work: FsPath) -> None:
        """Test an empty file has no lines."""
        path = work / "empty"
        files.create_file(path)

        assert files.read_lines(path) == []

    def test_blank_lines_kept(self, work: FsPath) -> None:
        """Test only the final line break is dropped."""
        path = files.write_bytes(work / "blank", b"a\n\nb\n\n")

        assert files.read_lines(path) == ["a", "", "b", ""]

    def test_encoding(self, work: FsPath) -> None:
        """Test text is encoded with the requested codec."""
        path = files.write_lines(work / "latin", ["café"], encoding="latin-1")

        assert files.read_bytes(path) == b"caf\xe9\n"
        assert files.read_text(path, encoding="latin-1") == "café\n"

    def test_append(self, work: FsPath) -> None:
        """Test append mode keeps earlier content."""
        path = files.write_lines(work / "log", ["first"])

        files.write_lines(path, ["second"], options=OpenOption.WRITE | OpenOption.APPEND)

        assert files.read_lines(path) == ["first", "second"]

    def test_create_new_refuses_existing(self, work: FsPath) -> None:
        """Test CREATE_NEW fails when the file exists."""
        path = files.write_bytes(work / "f", b"x")

        with pytest.raises(FileExistsError):
            files.write_bytes(path, b"y", OpenOption.WRITE | OpenOption.CREATE_NEW)

    def test_size(self, work: FsPath) -> None:
        path = files.write_bytes(work / "f", b"12345")

        assert files.size(path) == 5


class TestListing:
    """Tests for directory streams."""

    @pytest.fixture
    def listing(self, work: FsPath) -> FsPath:
        for name in ("matching", "mat", "other", "readme.md", "setup.py"):
            files.create_file(work / name)
        return work

    def test_list_all(self, listing: FsPath) -> None:
        """Test every entry is listed as a full path."""
        with files.list_dir(listing) as entries:
            names = sorted(entry.name for entry in entries)

        assert names == ["mat", "matching", "other", "readme.md", "setup.py"]

    def test_glob(self, listing: FsPath) -> None:
        """Test only names matching the glob are listed."""
        with files.list_dir(listing, "mat*") as entries:
            names = sorted(entry.name for entry in entries)

        assert names == ["mat", "matching"]

    def test_glob_alternatives(self, listing: FsPath) -> None:
        """Test brace groups match any alternative."""
        with files.list_dir(listing, "*.{md,py}") as entries:
            names = sorted(entry.name for entry in entries)

        assert names == ["readme.md", "setup.py"]

    def test_glob_is_case_sensitive(self, listing: FsPath) -> None:
        with files.list_dir(listing, "MAT*") as entries:
            assert list(entries) == []

    def test_early_break_releases_handle(self, fs: MemoryFileSystem, listing: FsPath) -> None:
        """Test leaving the block mid-iteration closes the stream."""
        with files.list_dir(listing) as entries:
            for _ in entries:
                assert fs.open_handles == 1
                break

        assert entries.closed
        assert fs.open_handles == 0

    def test_exhaustion_releases_handle(self, fs: MemoryFileSystem, listing: FsPath) -> None:
        """Test a fully consumed stream closes itself."""
        stream = files.list_dir(listing)

        list(stream)

        assert stream.closed
        assert fs.open_handles == 0

    def test_abandoned_iterator_releases_handle(
        self, fs: MemoryFileSystem, listing: FsPath
    ) -> None:
        """Test closing the iterator closes the stream."""
        iterator = iter(files.list_dir(listing))
        next(iterator)

        iterator.close()

        assert fs.open_handles == 0

    def test_single_iteration(self, listing: FsPath) -> None:
        """Test a stream cannot be iterated twice."""
        with files.list_dir(listing) as entries:
            iter(entries)
            with pytest.raises(RuntimeError):
                iter(entries)

    def test_closed_stream(self, listing: FsPath) -> None:
        """Test a closed stream cannot be iterated."""
        stream = files.list_dir(listing)
        stream.close()
        stream.close()

        with pytest.raises(ValueError):
            iter(stream)

    def test_list_missing_directory(self, work: FsPath) -> None:
        with pytest.raises(FileNotFoundError):
            files.list_dir(work / "missing")

    def test_glob_matcher(self) -> None:
        """Test the matcher supports classes and nested groups."""
        matches = files.glob_matcher("file[0-9].{txt,{md,rst}}")

        assert matches("file1.txt")
        assert matches("file2.rst")
        assert not matches("fileA.txt")

    def test_glob_matcher_unclosed_group(self) -> None:
        with pytest.raises(ValueError):
            files.glob_matcher("*.{md")


class TestMetadata:
    """Tests for attributes and permissions."""

    def test_permission_strings(self) -> None:
        """Test conversion between modes and permission strings."""
        assert files.permissions_to_string(0o750) == "rwxr-x---"
        assert files.permissions_from_string("rw-r--r--") == 0o644

    @pytest.mark.parametrize("perms", ["rwx", "rwxrwxrwz", "xwrxwrxwr"])
    def test_invalid_permission_string(self, perms: str) -> None:
        with pytest.raises(ValueError):
            files.permissions_from_string(perms)

    def test_posix_permissions(self, work: FsPath) -> None:
        """Test setting permissions changes what the owner may do."""
        path = files.write_bytes(work / "f", b"x")

        files.set_posix_permissions(path, "r-x------")

        assert files.posix_permissions(path) == "r-x------"
        assert files.is_readable(path)
        assert files.is_executable(path)
        assert not files.is_writable(path)

    def test_attribute(self, work: FsPath) -> None:
        """Test reading single attributes from each view."""
        path = files.write_bytes(work / "f", b"abc")

        assert files.attribute(path, "size") == 3
        assert files.attribute(path, "basic:isRegularFile") is True
        assert files.attribute(path, "posix:permissions") == "rw-r--r--"
        assert files.attribute(path, "owner:owner") == "user"

    def test_unknown_attribute(self, work: FsPath) -> None:
        """Test unsupported views and names are rejected."""
        path = files.write_bytes(work / "f", b"abc")

        with pytest.raises(UnknownAttributeError):
            files.attribute(path, "dos:hidden")
        with pytest.raises(UnknownAttributeError):
            files.attribute(path, "basic:permissions")

    def test_read_attributes(self, work: FsPath) -> None:
        """Test reading listed and wildcard attributes."""
        path = work / "dir"
        files.create_dir(path)

        listed = files.read_attributes(path, "isDirectory, size")
        everything = files.read_attributes(path, "posix:*")

        assert listed == {"isDirectory": True, "size": 0}
        assert everything["group"] == "group"
        assert everything["isSymbolicLink"] is False

    def test_read_attributes_unknown(self, work: FsPath) -> None:
        with pytest.raises(UnknownAttributeError):
            files.read_attributes(work, "basic:size,colour")

    def test_last_modified(self, work: FsPath) -> None:
        """Test modification times round trip in milliseconds."""
        path = work / "f"
        files.create_file(path)

        files.set_last_modified(path, 1_500_000_000_000)

        assert files.last_modified(path) == 1_500_000_000_000

    def test_set_attribute_datetime(self, work: FsPath) -> None:
        """Test times can be set from a datetime."""
        path = work / "f"
        files.create_file(path)
        when = datetime(2020, 1, 1, tzinfo=timezone.utc)

        files.set_attribute(path, "lastAccessTime", when)

        assert files.attribute(path, "lastAccessTime") == when

    def test_set_attribute_keeps_microseconds(self, fs: MemoryFileSystem, work: FsPath) -> None:
        """Test datetimes far from the epoch convert without rounding."""
        path = work / "f"
        files.create_file(path)
        when = datetime(2021, 3, 4, 5, 6, 7, 123457, tzinfo=timezone.utc)

        files.set_attribute(path, "lastModifiedTime", when)

        assert fs.stat(path.pure).mtime_ns == 1_614_834_367_123_457_000
        assert files.attribute(path, "lastModifiedTime") == when

    def test_set_attribute_on_symlink(self, work: FsPath) -> None:
        """Test times can be set on a link without touching its target."""
        target = work / "target"
        files.create_file(target)
        files.set_last_modified(target, 1_000_000_000_000)
        link = files.create_symlink(work / "link", target)

        files.set_attribute(link, "lastModifiedTime", 1_500_000_000_000, follow_symlinks=False)

        assert files.last_modified(link, follow_symlinks=False) == 1_500_000_000_000
        assert files.last_modified(target) == 1_000_000_000_000

    def test_set_attribute_read_only(self, work: FsPath) -> None:
        """Test attributes that cannot be written are rejected."""
        with pytest.raises(UnknownAttributeError):
            files.set_attribute(work, "size", 0)

    def test_owner(self, work: FsPath) -> None:
        assert files.owner(work) == "user"

    def test_is_hidden(self, work: FsPath) -> None:
        assert files.is_hidden(work / ".env")
        assert not files.is_hidden(work / "env")

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("index.html", "text/html"), ("notes.txt", "text/plain"), ("blob", None)],
    )
    def test_probe_content_type(self, work: FsPath, name: str, expected: str | None) -> None:
        assert files.probe_content_type(work / name) == expected

    @posix_only
    def test_host_permissions(self, real_root: FsPath) -> None:
        """Test permissions on the host filesystem."""
        path = files.write_bytes(real_root / "script", b"#!/bin/sh\n")

        files.set_posix_permissions(path, "rwxr-xr-x")

        assert files.posix_permissions(path) == "rwxr-xr-x"


class TestSameFile:
    """Tests for is_same_file."""

    def test_equal_paths(self, work: FsPath) -> None:
        """Test equal paths are the same file even when missing."""
        assert files.is_same_file(work / "missing", work / "missing")

    def test_hard_link(self, work: FsPath) -> None:
        """Test a hard link and its target are the same file."""
        target = files.write_bytes(work / "target", b"x")
        link = files.create_hard_link(work / "link", target)

        assert files.is_same_file(target, link)

    def test_symlink(self, work: FsPath) -> None:
        """Test a symlink resolves to its target."""
        target = files.write_bytes(work / "target", b"x")
        link = files.create_symlink(work / "link", target)

        assert files.is_same_file(link, target)

    def test_copies_differ(self, work: FsPath) -> None:
        """Test a copy is a different file."""
        target = files.write_bytes(work / "target", b"x")
        copied = files.copy(target, work / "copy")

        assert not files.is_same_file(target, copied)

    def test_other_provider(self, work: FsPath) -> None:
        """Test paths of different providers are never the same file."""
        other = join(MemoryFileSystem(), "/work")

        assert not files.is_same_file(work, other)


class TestCopyMove:
    """Tests for copy, move and delete across providers."""

    def test_delete(self, work: FsPath) -> None:
        path = files.write_bytes(work / "f", b"x")

        assert files.delete(path) is True
        assert files.delete(path) is False

    def test_copy_to_host(self, work: FsPath, real_root: FsPath) -> None:
        """Test file content crosses providers."""
        source = files.write_bytes(work / "f", b"payload")

        target = files.copy(source, real_root / "f")

        assert files.read_bytes(target) == b"payload"
        assert files.exists(source)

    def test_copy_to_host_existing(self, work: FsPath, real_root: FsPath) -> None:
        """Test an existing target needs replace_existing."""
        source = files.write_bytes(work / "f", b"new")
        target = files.write_bytes(real_root / "f", b"old")

        with pytest.raises(FileExistsError):
            files.copy(source, target)
        files.copy(source, target, replace_existing=True)

        assert files.read_bytes(target) == b"new"

    def test_copy_directory_to_host(self, work: FsPath, real_root: FsPath) -> None:
        """Test directories cross providers without content."""
        source = work / "dir"
        files.create_dir(source)
        files.create_file(source / "inner")

        target = files.copy(source, real_root / "dir")

        assert files.is_dir(target)
        with files.list_dir(target) as entries:
            assert list(entries) == []

    def test_move_from_host(self, work: FsPath, real_root: FsPath) -> None:
        """Test a move across providers removes the source."""
        source = files.write_bytes(real_root / "f", b"moved")

        target = files.move(source, work / "f")

        assert files.read_bytes(target) == b"moved"
        assert not files.exists(source)

    def test_move_within_provider(self, work: FsPath) -> None:
        source = files.write_bytes(work / "a", b"x")

        files.move(source, work / "b")

        assert not files.exists(source)
        assert files.read_bytes(work / "b") == b"x"

    def test_copy_onto_itself(self, fs: MemoryFileSystem, work: FsPath) -> None:
        """Test copying a file onto itself keeps the entry and its links."""
        path = files.write_lines(work / "f", ["keep me"])
        link = files.create_hard_link(work / "link", path)

        files.copy(path, path, replace_existing=True)

        assert files.read_lines(path) == ["keep me"]
        assert files.is_same_file(path, link)
        assert fs.stat(path.pure).nlink == 2

    def test_copy_onto_itself_on_host(self, real_root: FsPath) -> None:
        """Test copying a host file onto itself does not delete it."""
        path = files.write_lines(real_root / "f", ["keep me"])

        files.copy(path, path, replace_existing=True)
        files.copy(path, path)

        assert files.read_lines(path) == ["keep me"]
