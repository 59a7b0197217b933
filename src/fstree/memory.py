"""In-memory filesystem provider.

``MemoryFileSystem`` is an isolated POSIX namespace living in process
memory. It supports regular files, directories, hard links and symbolic
links, and raises the same built-in ``OSError`` subclasses as the host
filesystem. Each instance is independent, which makes it a disposable
target for tree fixtures.

Example:
    >>> fs = create_fs([["greeting", "hello"]])
    >>> fs.read_bytes(PurePosixPath("/greeting"))
    b'hello\\n'
"""

from __future__ import annotations

import errno
import itertools
import logging
import os
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath
from typing import Any, Iterator, Sequence

from fstree.errors import NotASymLinkError, TargetMissingError
from fstree.types import CreateResult, EntryKind, FileStat, OpenOption

logger = logging.getLogger(__name__)

# Symbolic links followed while resolving a single path before giving up
MAX_SYMLINK_HOPS = 40

DEFAULT_WORKING_DIRECTORY = "/work"

_instance_ids = itertools.count(1)


def _os_error(cls: type[OSError], code: int, path: object) -> OSError:
    return cls(code, os.strerror(code), str(path))


class _Entry:
    __slots__ = ("mode", "mtime_ns", "atime_ns", "ctime_ns", "inode", "nlink")

    kind = EntryKind.OTHER

    def __init__(self, inode: int, mode: int) -> None:
        now = time.time_ns()
        self.inode = inode
        self.mode = mode
        self.mtime_ns = now
        self.atime_ns = now
        self.ctime_ns = now
        self.nlink = 1

    def touch(self) -> None:
        self.mtime_ns = time.time_ns()

    @property
    def size(self) -> int:
        return 0


class _Directory(_Entry):
    __slots__ = ("children",)

    kind = EntryKind.DIRECTORY

    def __init__(self, inode: int, mode: int = 0o755) -> None:
        super().__init__(inode, mode)
        self.children: dict[str, _Entry] = {}


class _RegularFile(_Entry):
    __slots__ = ("data",)

    kind = EntryKind.FILE

    def __init__(self, inode: int, mode: int = 0o644) -> None:
        super().__init__(inode, mode)
        self.data = bytearray()

    @property
    def size(self) -> int:
        return len(self.data)


class _SymbolicLink(_Entry):
    __slots__ = ("target",)

    kind = EntryKind.SYMLINK

    def __init__(self, inode: int, target: PurePosixPath) -> None:
        super().__init__(inode, 0o777)
        self.target = target

    @property
    def size(self) -> int:
        return len(str(self.target).encode())


@dataclass
class _Location:
    """Where a path lands after resolution.

    ``parent`` and ``name`` are None when the path resolved to a directory
    already on the walk (the root, or a path ending in ``..``).
    """

    ancestors: tuple[_Directory, ...]
    parent: _Directory | None
    name: str | None
    entry: _Entry | None


class MemoryFileSystem:
    """Isolated in-memory filesystem with POSIX path semantics.

    Satisfies the FileSystemProvider protocol structurally.

    Args:
        name: Label used in URIs and repr. Generated when not given.
        working_directory: Absolute directory relative paths resolve
            against. Created on construction.
        owner: User name reported as owner of every entry.
        group: Group name reported for every entry.
    """

    flavour: type[PurePath] = PurePosixPath

    def __init__(
        self,
        name: str | None = None,
        working_directory: str = DEFAULT_WORKING_DIRECTORY,
        owner: str = "user",
        group: str = "group",
    ) -> None:
        self.name = name or f"memfs-{next(_instance_ids)}"
        self.owner = owner
        self.group = group
        self._inodes = itertools.count(1)
        self._root = _Directory(next(self._inodes))
        self._open_handles = 0
        cwd = PurePosixPath(working_directory)
        if not cwd.is_absolute():
            raise ValueError(f"working directory must be absolute: {working_directory}")
        self._cwd = cwd
        self._make_dirs(cwd)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @property
    def open_handles(self) -> int:
        """Number of directory listings currently holding a handle."""
        return self._open_handles

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _absolute(self, path: PurePath) -> PurePosixPath:
        pure = PurePosixPath(path)
        if pure.is_absolute():
            return pure
        return self._cwd / pure

    def _locate(self, path: PurePath, follow_symlinks: bool = True) -> _Location:
        """Walk ``path`` from the root, following links on the way.

        Intermediate symbolic links are always followed. The last
        component is followed only when ``follow_symlinks`` is set.

        Raises:
            FileNotFoundError: If an intermediate component is missing.
            NotADirectoryError: If an intermediate component is a file.
            OSError: ``ELOOP`` when too many links are followed.
        """
        parts = deque(self._absolute(path).parts[1:])
        stack: list[_Directory] = [self._root]
        hops = 0
        while parts:
            part = parts.popleft()
            if part in ("", "."):
                continue
            if part == "..":
                if len(stack) > 1:
                    stack.pop()
                continue
            current = stack[-1]
            entry = current.children.get(part)
            last = not parts
            if isinstance(entry, _SymbolicLink) and (follow_symlinks or not last):
                hops += 1
                if hops > MAX_SYMLINK_HOPS:
                    raise _os_error(OSError, errno.ELOOP, path)
                target = entry.target
                if target.is_absolute():
                    stack = [self._root]
                    parts.extendleft(reversed(target.parts[1:]))
                else:
                    parts.extendleft(reversed(target.parts))
                continue
            if last:
                return _Location(tuple(stack), current, part, entry)
            if entry is None:
                raise _os_error(FileNotFoundError, errno.ENOENT, path)
            if not isinstance(entry, _Directory):
                raise _os_error(NotADirectoryError, errno.ENOTDIR, path)
            stack.append(entry)
        return _Location(tuple(stack[:-1]), None, None, stack[-1])

    def _lookup(self, path: PurePath, follow_symlinks: bool = True) -> _Entry | None:
        try:
            return self._locate(path, follow_symlinks).entry
        except OSError:
            return None

    def _existing(self, path: PurePath, follow_symlinks: bool = True) -> _Entry:
        entry = self._locate(path, follow_symlinks).entry
        if entry is None:
            raise _os_error(FileNotFoundError, errno.ENOENT, path)
        return entry

    def _vacant(self, path: PurePath) -> _Location:
        """Locate a path that is about to be created."""
        location = self._locate(path, follow_symlinks=False)
        if location.entry is not None:
            raise _os_error(FileExistsError, errno.EEXIST, path)
        return location

    def _attach(self, location: _Location, entry: _Entry) -> None:
        assert location.parent is not None and location.name is not None
        location.parent.children[location.name] = entry
        location.parent.touch()

    def _make_dirs(self, path: PurePosixPath) -> None:
        current = PurePosixPath("/")
        for part in path.parts[1:]:
            current = current / part
            self.create_directory(current)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def working_directory(self) -> PurePath:
        """Return the working directory relative paths resolve against."""
        return self._cwd

    def to_uri(self, path: PurePath) -> str:
        """Return a ``memfs://`` URI for an absolute path."""
        return f"memfs://{self.name}{self._absolute(path).as_posix()}"

    def exists(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path exists."""
        return self._lookup(path, follow_symlinks) is not None

    def is_file(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a regular file."""
        return isinstance(self._lookup(path, follow_symlinks), _RegularFile)

    def is_dir(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a directory."""
        return isinstance(self._lookup(path, follow_symlinks), _Directory)

    def is_symlink(self, path: PurePath) -> bool:
        """Check if a path is a symbolic link."""
        return isinstance(self._lookup(path, follow_symlinks=False), _SymbolicLink)

    def is_hidden(self, path: PurePath) -> bool:
        """Dot files are hidden."""
        return PurePosixPath(path).name.startswith(".")

    def access(self, path: PurePath, mode: int) -> bool:
        """Check the owner permission bits of a path."""
        entry = self._lookup(path)
        if entry is None:
            return False
        owner_bits = (entry.mode >> 6) & 0o7
        return owner_bits & mode == mode

    def stat(self, path: PurePath, follow_symlinks: bool = True) -> FileStat:
        """Read the attributes of a path."""
        entry = self._existing(path, follow_symlinks)
        return FileStat(
            kind=entry.kind,
            size=entry.size,
            mode=entry.mode,
            mtime_ns=entry.mtime_ns,
            atime_ns=entry.atime_ns,
            ctime_ns=entry.ctime_ns,
            owner=self.owner,
            group=self.group,
            nlink=entry.nlink,
            file_key=(self.name, entry.inode),
        )

    def read_symlink(self, path: PurePath) -> PurePath:
        """Return the stored target of a symbolic link."""
        entry = self._existing(path, follow_symlinks=False)
        if not isinstance(entry, _SymbolicLink):
            raise NotASymLinkError(path=str(path))
        return entry.target

    # -------------------------------------------------------------------------
    # Creation and removal
    # -------------------------------------------------------------------------

    def create_directory(self, path: PurePath) -> CreateResult:
        """Create a directory unless the path already exists."""
        location = self._locate(path, follow_symlinks=False)
        if location.entry is not None:
            return CreateResult.EXISTS
        self._attach(location, _Directory(next(self._inodes)))
        return CreateResult.CREATED

    def create_file(self, path: PurePath) -> CreateResult:
        """Create an empty regular file unless the path already exists."""
        location = self._locate(path, follow_symlinks=False)
        if location.entry is not None:
            return CreateResult.EXISTS
        self._attach(location, _RegularFile(next(self._inodes)))
        return CreateResult.CREATED

    def create_hard_link(self, link: PurePath, existing: PurePath) -> None:
        """Create a hard link to an existing entry."""
        target = self._lookup(existing, follow_symlinks=False)
        if target is None:
            raise TargetMissingError(link=str(link), target=str(existing))
        if isinstance(target, _Directory):
            raise _os_error(PermissionError, errno.EPERM, existing)
        location = self._vacant(link)
        target.nlink += 1
        self._attach(location, target)

    def create_symlink(self, link: PurePath, target: PurePath) -> None:
        """Create a symbolic link. The target does not need to exist."""
        location = self._vacant(link)
        self._attach(location, _SymbolicLink(next(self._inodes), PurePosixPath(target)))

    def delete(self, path: PurePath) -> bool:
        """Remove a file, link or empty directory if it exists."""
        location = self._locate(path, follow_symlinks=False)
        entry = location.entry
        if entry is None:
            return False
        if location.parent is None or location.name is None:
            raise _os_error(PermissionError, errno.EBUSY, path)
        if isinstance(entry, _Directory) and entry.children:
            raise _os_error(OSError, errno.ENOTEMPTY, path)
        del location.parent.children[location.name]
        location.parent.touch()
        entry.nlink -= 1
        return True

    def move(self, source: PurePath, target: PurePath, replace_existing: bool = False) -> None:
        """Move or rename an entry."""
        origin = self._locate(source, follow_symlinks=False)
        entry = origin.entry
        if entry is None:
            raise _os_error(FileNotFoundError, errno.ENOENT, source)
        if origin.parent is None or origin.name is None:
            raise _os_error(PermissionError, errno.EBUSY, source)
        destination = self._locate(target, follow_symlinks=False)
        if destination.entry is entry:
            return
        if any(ancestor is entry for ancestor in destination.ancestors):
            raise _os_error(OSError, errno.EINVAL, target)
        if destination.entry is not None:
            if not replace_existing:
                raise _os_error(FileExistsError, errno.EEXIST, target)
            if isinstance(entry, _Directory) and not isinstance(destination.entry, _Directory):
                raise _os_error(NotADirectoryError, errno.ENOTDIR, target)
            if isinstance(destination.entry, _Directory) and not isinstance(entry, _Directory):
                raise _os_error(IsADirectoryError, errno.EISDIR, target)
            self.delete(target)
            destination = self._locate(target, follow_symlinks=False)
        del origin.parent.children[origin.name]
        origin.parent.touch()
        self._attach(destination, entry)

    def copy(
        self,
        source: PurePath,
        target: PurePath,
        replace_existing: bool = False,
        follow_symlinks: bool = True,
    ) -> None:
        """Copy one entry. Directories are copied without their content."""
        entry = self._existing(source, follow_symlinks)
        if self._lookup(target, follow_symlinks) is entry:
            return
        if self._lookup(target, follow_symlinks=False) is not None:
            if not replace_existing:
                raise _os_error(FileExistsError, errno.EEXIST, target)
            self.delete(target)
        location = self._vacant(target)
        clone: _Entry
        if isinstance(entry, _SymbolicLink):
            clone = _SymbolicLink(next(self._inodes), entry.target)
        elif isinstance(entry, _Directory):
            clone = _Directory(next(self._inodes), entry.mode)
        else:
            assert isinstance(entry, _RegularFile)
            clone = _RegularFile(next(self._inodes), entry.mode)
            clone.data[:] = entry.data
        clone.mtime_ns = entry.mtime_ns
        self._attach(location, clone)

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def read_bytes(self, path: PurePath) -> bytes:
        """Read the whole content of a file."""
        entry = self._existing(path)
        if isinstance(entry, _Directory):
            raise _os_error(IsADirectoryError, errno.EISDIR, path)
        assert isinstance(entry, _RegularFile)
        entry.atime_ns = time.time_ns()
        return bytes(entry.data)

    def write_bytes(self, path: PurePath, data: bytes, options: OpenOption) -> None:
        """Write bytes to a file, opened according to ``options``."""
        if OpenOption.APPEND in options and OpenOption.TRUNCATE_EXISTING in options:
            raise ValueError("APPEND and TRUNCATE_EXISTING cannot be combined")
        location = self._locate(path)
        entry = location.entry
        if entry is None:
            if not options & (OpenOption.CREATE | OpenOption.CREATE_NEW):
                raise _os_error(FileNotFoundError, errno.ENOENT, path)
            entry = _RegularFile(next(self._inodes))
            self._attach(location, entry)
        elif OpenOption.CREATE_NEW in options:
            raise _os_error(FileExistsError, errno.EEXIST, path)
        if isinstance(entry, _Directory):
            raise _os_error(IsADirectoryError, errno.EISDIR, path)
        assert isinstance(entry, _RegularFile)
        if OpenOption.APPEND in options:
            entry.data.extend(data)
        elif OpenOption.TRUNCATE_EXISTING in options:
            entry.data[:] = data
        else:
            entry.data[: len(data)] = data
        entry.touch()

    @contextmanager
    def scandir(self, path: PurePath) -> Iterator[Iterator[str]]:
        """Open a directory for listing; the handle closes with the context.

        The listing is a snapshot taken when the handle is opened.
        """
        entry = self._existing(path)
        if not isinstance(entry, _Directory):
            raise _os_error(NotADirectoryError, errno.ENOTDIR, path)
        names = list(entry.children)
        self._open_handles += 1
        try:
            yield iter(names)
        finally:
            self._open_handles -= 1

    # -------------------------------------------------------------------------
    # Attributes
    # -------------------------------------------------------------------------

    def chmod(self, path: PurePath, mode: int, follow_symlinks: bool = True) -> None:
        """Set the permission bits of a path."""
        self._existing(path, follow_symlinks).mode = mode & 0o7777

    def set_times(
        self,
        path: PurePath,
        mtime_ns: int | None = None,
        atime_ns: int | None = None,
        follow_symlinks: bool = True,
    ) -> None:
        """Set the modification and/or access time of a path."""
        entry = self._existing(path, follow_symlinks)
        if mtime_ns is not None:
            entry.mtime_ns = mtime_ns
        if atime_ns is not None:
            entry.atime_ns = atime_ns


def create_fs(tree: Sequence[Any] = (), root: str = "/", **kwargs: Any) -> MemoryFileSystem:
    """Create a fresh in-memory filesystem populated from a tree literal.

    Args:
        tree: Tree literal handed to :func:`fstree.tree.build_tree`.
        root: Directory the tree is built under.
        **kwargs: Passed to :class:`MemoryFileSystem`.

    Returns:
        The populated filesystem.
    """
    from fstree.tree import build_tree

    fs = MemoryFileSystem(**kwargs)
    logger.debug("Building tree of %d nodes in %s", len(tree), fs)
    build_tree(fs, root, tree)
    return fs
