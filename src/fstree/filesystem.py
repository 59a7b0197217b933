"""Host filesystem provider.

This module provides the production implementation of the
:class:`~fstree.protocols.FileSystemProvider` protocol. ``RealFileSystem``
wraps standard library ``os``, ``pathlib`` and ``shutil`` operations.
"""

from __future__ import annotations

import errno
import os
import shutil
import stat as stat_module
import sys
from contextlib import contextmanager
from pathlib import Path, PurePath
from typing import Iterator

from fstree.errors import NotASymLinkError, TargetMissingError
from fstree.types import CreateResult, EntryKind, FileStat, OpenOption

if sys.platform != "win32":
    import grp
    import pwd


def _kind(mode: int) -> EntryKind:
    if stat_module.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat_module.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat_module.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


def _user_name(uid: int) -> str:
    if sys.platform == "win32":
        return str(uid)
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    if sys.platform == "win32":
        return str(gid)
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def _same_entry(source: PurePath, target: PurePath, follow_symlinks: bool) -> bool:
    try:
        first = os.stat(source, follow_symlinks=follow_symlinks)
        second = os.stat(target, follow_symlinks=follow_symlinks)
    except FileNotFoundError:
        return False
    return os.path.samestat(first, second)


def _open_flags(options: OpenOption) -> int:
    if OpenOption.APPEND in options and OpenOption.TRUNCATE_EXISTING in options:
        raise ValueError("APPEND and TRUNCATE_EXISTING cannot be combined")
    flags = os.O_WRONLY | getattr(os, "O_BINARY", 0)
    if OpenOption.CREATE_NEW in options:
        flags |= os.O_CREAT | os.O_EXCL
    elif OpenOption.CREATE in options:
        flags |= os.O_CREAT
    if OpenOption.APPEND in options:
        flags |= os.O_APPEND
    elif OpenOption.TRUNCATE_EXISTING in options:
        flags |= os.O_TRUNC
    return flags


class RealFileSystem:
    """Production filesystem implementation.

    Wraps standard library Path, os and shutil operations.
    Satisfies the FileSystemProvider protocol structurally.
    """

    flavour: type[PurePath] = type(PurePath())

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def working_directory(self) -> PurePath:
        """Return the process working directory."""
        return self.flavour(os.getcwd())

    def to_uri(self, path: PurePath) -> str:
        """Return a ``file://`` URI for an absolute path."""
        return Path(path).as_uri()

    def exists(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path exists."""
        if follow_symlinks:
            return os.path.exists(path)
        return os.path.lexists(path)

    def is_file(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a regular file."""
        if follow_symlinks:
            return os.path.isfile(path)
        return os.path.isfile(path) and not os.path.islink(path)

    def is_dir(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a directory."""
        if follow_symlinks:
            return os.path.isdir(path)
        return os.path.isdir(path) and not os.path.islink(path)

    def is_symlink(self, path: PurePath) -> bool:
        """Check if a path is a symbolic link."""
        return os.path.islink(path)

    def is_hidden(self, path: PurePath) -> bool:
        """Dot files are hidden; on Windows the hidden attribute counts too."""
        if path.name.startswith("."):
            return True
        if sys.platform == "win32":
            attributes = os.stat(path).st_file_attributes
            return bool(attributes & stat_module.FILE_ATTRIBUTE_HIDDEN)
        return False

    def access(self, path: PurePath, mode: int) -> bool:
        """Check access to a path for the current user."""
        return os.access(path, mode)

    def stat(self, path: PurePath, follow_symlinks: bool = True) -> FileStat:
        """Read the attributes of a path."""
        result = os.stat(path, follow_symlinks=follow_symlinks)
        return FileStat(
            kind=_kind(result.st_mode),
            size=result.st_size,
            mode=stat_module.S_IMODE(result.st_mode),
            mtime_ns=result.st_mtime_ns,
            atime_ns=result.st_atime_ns,
            ctime_ns=result.st_ctime_ns,
            owner=_user_name(result.st_uid),
            group=_group_name(result.st_gid),
            nlink=result.st_nlink,
            file_key=(result.st_dev, result.st_ino),
        )

    def read_symlink(self, path: PurePath) -> PurePath:
        """Return the stored target of a symbolic link."""
        if not os.path.islink(path):
            if not os.path.lexists(path):
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
            raise NotASymLinkError(path=str(path))
        return self.flavour(os.readlink(path))

    def create_directory(self, path: PurePath) -> CreateResult:
        """Create a directory unless the path already exists."""
        try:
            os.mkdir(path)
        except FileExistsError:
            return CreateResult.EXISTS
        return CreateResult.CREATED

    def create_file(self, path: PurePath) -> CreateResult:
        """Create an empty regular file unless the path already exists."""
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
        except FileExistsError:
            return CreateResult.EXISTS
        os.close(fd)
        return CreateResult.CREATED

    def create_hard_link(self, link: PurePath, existing: PurePath) -> None:
        """Create a hard link to an existing entry."""
        try:
            os.link(existing, link, follow_symlinks=False)
        except FileNotFoundError as exc:
            if not os.path.lexists(existing):
                raise TargetMissingError(link=str(link), target=str(existing)) from exc
            raise

    def create_symlink(self, link: PurePath, target: PurePath) -> None:
        """Create a symbolic link. The target does not need to exist."""
        os.symlink(target, link, target_is_directory=os.path.isdir(target))

    def read_bytes(self, path: PurePath) -> bytes:
        """Read the whole content of a file."""
        return Path(path).read_bytes()

    def write_bytes(self, path: PurePath, data: bytes, options: OpenOption) -> None:
        """Write bytes to a file, opened according to ``options``."""
        fd = os.open(path, _open_flags(options), 0o666)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)

    @contextmanager
    def scandir(self, path: PurePath) -> Iterator[Iterator[str]]:
        """Open a directory for listing; the handle closes with the context."""
        with os.scandir(path) as entries:
            yield (entry.name for entry in entries)

    def delete(self, path: PurePath) -> bool:
        """Remove a file, link or empty directory if it exists."""
        if not os.path.lexists(path):
            return False
        if os.path.isdir(path) and not os.path.islink(path):
            os.rmdir(path)
        else:
            os.unlink(path)
        return True

    def move(self, source: PurePath, target: PurePath, replace_existing: bool = False) -> None:
        """Move or rename an entry."""
        if replace_existing:
            os.replace(source, target)
            return
        if os.path.lexists(target):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(target))
        os.rename(source, target)

    def copy(
        self,
        source: PurePath,
        target: PurePath,
        replace_existing: bool = False,
        follow_symlinks: bool = True,
    ) -> None:
        """Copy one entry. Directories are copied without their content."""
        if os.path.lexists(target):
            if _same_entry(source, target, follow_symlinks):
                return
            if not replace_existing:
                raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(target))
            self.delete(target)
        if not follow_symlinks and os.path.islink(source):
            os.symlink(os.readlink(source), target)
        elif os.path.isdir(source):
            os.mkdir(target)
            shutil.copystat(source, target)
        else:
            shutil.copy2(source, target)

    def chmod(self, path: PurePath, mode: int, follow_symlinks: bool = True) -> None:
        """Set the permission bits of a path."""
        os.chmod(path, mode, follow_symlinks=follow_symlinks)

    def set_times(
        self,
        path: PurePath,
        mtime_ns: int | None = None,
        atime_ns: int | None = None,
        follow_symlinks: bool = True,
    ) -> None:
        """Set the modification and/or access time of a path."""
        current = os.stat(path, follow_symlinks=follow_symlinks)
        os.utime(
            path,
            ns=(
                current.st_atime_ns if atime_ns is None else atime_ns,
                current.st_mtime_ns if mtime_ns is None else mtime_ns,
            ),
            follow_symlinks=follow_symlinks,
        )
