"""Protocol definitions for filesystem providers.

A provider represents one filesystem namespace. The path and file facades
in :mod:`fstree.paths` and :mod:`fstree.files` only talk to providers
through this interface, so the host filesystem and the in-memory one are
interchangeable.

Providers receive :class:`~pathlib.PurePath` values of their own
``flavour``. Relative paths are resolved against ``working_directory()``.
All implementations satisfy the protocol structurally (duck typing).
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import PurePath
from typing import Iterator, Protocol, runtime_checkable

from fstree.types import CreateResult, FileStat, OpenOption


@runtime_checkable
class FileSystemProvider(Protocol):
    """Protocol for filesystem operations.

    Attributes:
        flavour: The ``PurePath`` subclass used for paths in this namespace.
    """

    flavour: type[PurePath]

    def working_directory(self) -> PurePath:
        """Return the absolute directory relative paths resolve against."""
        ...

    def to_uri(self, path: PurePath) -> str:
        """Return a URI for an absolute path.

        Args:
            path: Absolute path in this namespace.

        Returns:
            URI string identifying the path.
        """
        ...

    def exists(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path exists.

        Args:
            path: Path to check.
            follow_symlinks: Check the link target instead of the link.

        Returns:
            True if path exists, False otherwise.
        """
        ...

    def is_file(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a regular file."""
        ...

    def is_dir(self, path: PurePath, follow_symlinks: bool = True) -> bool:
        """Check if a path is a directory."""
        ...

    def is_symlink(self, path: PurePath) -> bool:
        """Check if a path is a symbolic link."""
        ...

    def is_hidden(self, path: PurePath) -> bool:
        """Check if a path is considered hidden in this namespace."""
        ...

    def access(self, path: PurePath, mode: int) -> bool:
        """Check access to a path.

        Args:
            path: Path to check.
            mode: Bitwise OR of ``os.R_OK``, ``os.W_OK`` and ``os.X_OK``.

        Returns:
            True if every requested permission is granted.
        """
        ...

    def stat(self, path: PurePath, follow_symlinks: bool = True) -> FileStat:
        """Read the attributes of a path.

        Raises:
            FileNotFoundError: If the path does not exist.
        """
        ...

    def read_symlink(self, path: PurePath) -> PurePath:
        """Return the stored target of a symbolic link.

        Raises:
            NotASymLinkError: If the path is not a symbolic link.
        """
        ...

    def create_directory(self, path: PurePath) -> CreateResult:
        """Create a directory unless the path already exists.

        The existence check is atomic with the creation.

        Returns:
            ``CreateResult.EXISTS`` if something already exists at the path.

        Raises:
            FileNotFoundError: If the parent directory does not exist.
        """
        ...

    def create_file(self, path: PurePath) -> CreateResult:
        """Create an empty regular file unless the path already exists."""
        ...

    def create_hard_link(self, link: PurePath, existing: PurePath) -> None:
        """Create a hard link to an existing entry.

        Raises:
            TargetMissingError: If ``existing`` does not exist.
            FileExistsError: If ``link`` already exists.
        """
        ...

    def create_symlink(self, link: PurePath, target: PurePath) -> None:
        """Create a symbolic link. The target does not need to exist.

        Raises:
            FileExistsError: If ``link`` already exists.
        """
        ...

    def read_bytes(self, path: PurePath) -> bytes:
        """Read the whole content of a file."""
        ...

    def write_bytes(self, path: PurePath, data: bytes, options: OpenOption) -> None:
        """Write bytes to a file.

        Args:
            path: Path to the file.
            data: Content to write.
            options: How to open the file (create, truncate, append...).
        """
        ...

    def scandir(self, path: PurePath) -> AbstractContextManager[Iterator[str]]:
        """Open a directory for listing.

        The returned context manager holds the directory handle and yields
        an iterator over entry names, in provider order. The handle is
        released when the context exits.

        Raises:
            NotADirectoryError: If the path is not a directory.
        """
        ...

    def delete(self, path: PurePath) -> bool:
        """Remove a file, link or empty directory.

        Returns:
            True if removed, False if nothing existed at the path.
        """
        ...

    def move(self, source: PurePath, target: PurePath, replace_existing: bool = False) -> None:
        """Move or rename an entry.

        Raises:
            FileExistsError: If target exists and ``replace_existing`` is False.
            NotADirectoryError: If a directory would replace a non-directory.
            IsADirectoryError: If a non-directory would replace a directory.
        """
        ...

    def copy(
        self,
        source: PurePath,
        target: PurePath,
        replace_existing: bool = False,
        follow_symlinks: bool = True,
    ) -> None:
        """Copy one entry. Directories are copied without their content.

        Copying an entry onto itself leaves it untouched.
        """
        ...

    def chmod(self, path: PurePath, mode: int, follow_symlinks: bool = True) -> None:
        """Set the permission bits of a path."""
        ...

    def set_times(
        self,
        path: PurePath,
        mtime_ns: int | None = None,
        atime_ns: int | None = None,
        follow_symlinks: bool = True,
    ) -> None:
        """Set the modification and/or access time of a path."""
        ...
