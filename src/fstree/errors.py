"""Exception types raised by fstree.

Every error derives from :class:`FsTreeError` and, where one fits, from the
matching built-in exception, so callers may catch either.
"""

from __future__ import annotations

__all__ = [
    "FsTreeError",
    "IllegalNodeTypeError",
    "InvalidPathError",
    "MalformedNodeError",
    "MissingLinkTargetError",
    "NotASymLinkError",
    "TargetMissingError",
    "TypeMismatchError",
    "UnknownAttributeError",
]


class FsTreeError(Exception):
    """Base class for fstree errors.

    Attributes:
        path: String form of the path the error is about, if any.
    """

    def __init__(self, *args: object, path: str | None = None) -> None:
        super().__init__(*args)
        self.path = path

    def __reduce__(self) -> tuple[object, ...]:
        cls = type(self)
        return cls.__new__, (cls, *self.args), self.__dict__

    @property
    def _prefix(self) -> str:
        if self.path is None:
            return ""
        return f"{self.path}: "

    def __str__(self) -> str:
        message = self.args[0] if self.args else ""
        return f"{self._prefix}{message}"


class MalformedNodeError(FsTreeError, ValueError):
    """A tree literal node does not have a valid shape."""


class IllegalNodeTypeError(MalformedNodeError):
    """A node's ``type`` attribute is outside the recognized set."""

    def __init__(self, *, node: str, value: object, path: str | None = None) -> None:
        super().__init__(path=path)
        self.node = node
        self.value = value

    def __str__(self) -> str:
        return f"{self._prefix}illegal type {self.value!r} for node {self.node!r}"


class MissingLinkTargetError(MalformedNodeError):
    """A link node has no ``link-to`` attribute."""

    def __init__(self, *, path: str) -> None:
        super().__init__(path=path)

    def __str__(self) -> str:
        return f"{self._prefix}attribute 'link-to' missing"


class TargetMissingError(FsTreeError, FileNotFoundError):
    """A hard link was requested for a target that does not exist."""

    def __init__(self, *, link: str, target: str) -> None:
        super().__init__(path=target)
        self.link = link
        self.target = target

    def __str__(self) -> str:
        return f"{self._prefix}cannot link {self.link}: target does not exist"


class NotASymLinkError(FsTreeError, OSError):
    """The path is not a symbolic link."""

    def __init__(self, *, path: str) -> None:
        super().__init__(path=path)

    def __str__(self) -> str:
        return f"{self._prefix}not a symbolic link"


class InvalidPathError(FsTreeError, ValueError):
    """A path segment cannot be turned into a path."""

    def __init__(self, message: str, *, segment: object) -> None:
        super().__init__(message)
        self.segment = segment

    def __str__(self) -> str:
        return f"invalid path segment {self.segment!r}: {self.args[0]}"


class TypeMismatchError(FsTreeError, FileExistsError):
    """A tree node collides with an existing entry of another kind."""

    def __init__(self, *, path: str, expected: str) -> None:
        super().__init__(path=path)
        self.expected = expected

    def __str__(self) -> str:
        return f"{self._prefix}exists but is not a {self.expected}"


class UnknownAttributeError(FsTreeError, ValueError):
    """An attribute name is not supported by the attribute views."""

    def __init__(self, *, name: str) -> None:
        super().__init__()
        self.name = name

    def __str__(self) -> str:
        return f"unknown attribute: {self.name}"
