"""Shared data types for fstree."""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = ["CreateResult", "EntryKind", "FileStat", "OpenOption", "DEFAULT_OPEN_OPTIONS"]


class CreateResult(enum.Enum):
    """Outcome of an idempotent create call."""

    CREATED = "created"
    EXISTS = "exists"


class EntryKind(str, enum.Enum):
    """Kind of entry a path points to."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


class OpenOption(enum.Flag):
    """How :func:`fstree.files.write_bytes` opens its target."""

    WRITE = enum.auto()
    APPEND = enum.auto()
    TRUNCATE_EXISTING = enum.auto()
    CREATE = enum.auto()
    CREATE_NEW = enum.auto()


DEFAULT_OPEN_OPTIONS = OpenOption.CREATE | OpenOption.TRUNCATE_EXISTING | OpenOption.WRITE


@dataclass(frozen=True)
class FileStat:
    """Attributes of a filesystem entry.

    Attributes:
        kind: What the entry is.
        size: Size in bytes.
        mode: Permission bits (``0o777`` mask).
        mtime_ns: Last modification time in nanoseconds since the epoch.
        atime_ns: Last access time in nanoseconds since the epoch.
        ctime_ns: Creation (or metadata change) time in nanoseconds.
        owner: Name of the owning user.
        group: Name of the owning group.
        nlink: Number of hard links.
        file_key: Value identifying the underlying entry, shared by hard links.
    """

    kind: EntryKind
    size: int
    mode: int
    mtime_ns: int
    atime_ns: int
    ctime_ns: int
    owner: str
    group: str
    nlink: int
    file_key: object

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind is EntryKind.SYMLINK
