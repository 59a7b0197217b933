"""Provider-scoped paths.

An :class:`FsPath` pairs a pure path with the provider it belongs to. Two
paths are equal only when they share the same provider object and the same
pure path, so identical strings from different filesystems never compare
equal.

Paths are built with :func:`join`, whose base is one of:

- a provider: the segments form a path in that namespace;
- an existing :class:`FsPath`: the segments are appended to it;
- a bare string: the first segment, resolved against :func:`default_fs`.
"""

from __future__ import annotations

import functools
from pathlib import PurePath, PureWindowsPath
from typing import TYPE_CHECKING, Iterator, Union

from fstree.errors import InvalidPathError

if TYPE_CHECKING:
    from fstree.protocols import FileSystemProvider

__all__ = [
    "FsPath",
    "PathBase",
    "absolute",
    "default_fs",
    "filename",
    "get_fs",
    "is_absolute",
    "join",
    "normalize",
    "parent",
    "relativize",
    "resolve",
    "root",
    "split",
    "uri",
]

_WINDOWS_FORBIDDEN = set('<>"|?*')


@functools.lru_cache(maxsize=None)
def default_fs() -> FileSystemProvider:
    """Return the host filesystem provider."""
    from fstree.filesystem import RealFileSystem

    return RealFileSystem()


class FsPath:
    """Immutable path bound to a filesystem provider.

    Attributes:
        fs: Provider the path belongs to.
        pure: Pure path in the provider's flavour.
    """

    __slots__ = ("_fs", "_pure")

    def __init__(self, fs: FileSystemProvider, pure: PurePath) -> None:
        object.__setattr__(self, "_fs", fs)
        object.__setattr__(self, "_pure", pure)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def fs(self) -> FileSystemProvider:
        return self._fs

    @property
    def pure(self) -> PurePath:
        return self._pure

    @property
    def name(self) -> str:
        return self._pure.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FsPath):
            return NotImplemented
        return self._fs is other._fs and self._pure == other._pure

    def __hash__(self) -> int:
        return hash((id(self._fs), self._pure))

    def __lt__(self, other: FsPath) -> bool:
        if not isinstance(other, FsPath) or other._fs is not self._fs:
            return NotImplemented
        return self._pure < other._pure

    def __str__(self) -> str:
        return str(self._pure)

    def __repr__(self) -> str:
        return f"FsPath({self._fs!r}, {str(self._pure)!r})"

    def __truediv__(self, segment: str) -> FsPath:
        return join(self, segment)

    def __iter__(self) -> Iterator[FsPath]:
        return iter(split(self))


PathBase = Union["FileSystemProvider", FsPath, str]


def _check_segment(flavour: type[PurePath], segment: object, first: bool) -> str:
    if not isinstance(segment, str):
        raise InvalidPathError("path segments must be strings", segment=segment)
    if "\0" in segment:
        raise InvalidPathError("NUL character in path", segment=segment)
    if issubclass(flavour, PureWindowsPath):
        rest = segment
        if first:
            rest = segment[len(PureWindowsPath(segment).drive) :]
        bad = _WINDOWS_FORBIDDEN.intersection(rest)
        if ":" in rest:
            bad.add(":")
        if bad:
            raise InvalidPathError(f"illegal characters {sorted(bad)}", segment=segment)
    return segment


def _make(fs: FileSystemProvider, pure: PurePath | None, segments: tuple[str, ...]) -> FsPath:
    flavour = fs.flavour
    checked = [_check_segment(flavour, s, pure is None and i == 0) for i, s in enumerate(segments)]
    if pure is None:
        if not checked:
            raise InvalidPathError("at least one segment is required", segment=None)
        pure = flavour(checked[0])
        checked = checked[1:]
    separators = "/\\" if issubclass(flavour, PureWindowsPath) else "/"
    # later segments are appended even when they look absolute
    rest = [s.lstrip(separators) for s in checked]
    return FsPath(fs, pure.joinpath(*(s for s in rest if s)))


def join(base: PathBase, *segments: str) -> FsPath:
    """Build a path by appending segments to a base.

    Args:
        base: A provider, an existing path, or a bare string taken as the
            first segment of a path on the default provider.
        *segments: Further path segments.

    Returns:
        The joined path.

    Raises:
        InvalidPathError: If a segment is not a valid path string.
    """
    if isinstance(base, FsPath):
        return _make(base.fs, base.pure, segments)
    if isinstance(base, str):
        return _make(default_fs(), None, (base, *segments))
    return _make(base, None, segments)


def resolve(parent: FsPath, other: FsPath | str) -> FsPath:
    """Resolve ``other`` against ``parent``.

    An absolute ``other`` is returned as is; a relative one is appended.
    """
    if isinstance(other, str):
        other = join(parent.fs, other)
    if other.fs is not parent.fs:
        raise ValueError("paths belong to different filesystems")
    if other.pure.is_absolute():
        return other
    return FsPath(parent.fs, parent.pure / other.pure)


def get_fs(path: FsPath) -> FileSystemProvider:
    """Return the provider a path belongs to."""
    return path.fs


def is_absolute(path: FsPath) -> bool:
    return path.pure.is_absolute()


def absolute(path: FsPath) -> FsPath:
    """Make a path absolute against its provider's working directory."""
    if path.pure.is_absolute():
        return path
    return FsPath(path.fs, path.fs.working_directory() / path.pure)


def filename(path: FsPath) -> FsPath | None:
    """Return the last component as a relative path, None for a bare root."""
    name = path.pure.name
    if not name:
        return None
    return FsPath(path.fs, path.fs.flavour(name))


def parent(path: FsPath) -> FsPath | None:
    """Return the parent path, or None when there is none."""
    pure = path.pure
    if pure.parent == pure or not pure.name:
        return None
    if not pure.anchor and len(pure.parts) == 1:
        return None
    return FsPath(path.fs, pure.parent)


def root(path: FsPath) -> FsPath | None:
    """Return the root component, or None for a relative path."""
    anchor = path.pure.anchor
    if not anchor:
        return None
    return FsPath(path.fs, path.fs.flavour(anchor))


def split(path: FsPath) -> list[FsPath]:
    """Return the name components of a path, root excluded."""
    pure = path.pure
    names = pure.parts[1:] if pure.anchor else pure.parts
    return [FsPath(path.fs, path.fs.flavour(name)) for name in names]


def normalize(path: FsPath) -> FsPath:
    """Remove redundant ``.`` and ``..`` components.

    ``..`` directly under the root is dropped; leading ``..`` of a relative
    path are kept.
    """
    pure = path.pure
    anchor = pure.anchor
    names: list[str] = []
    for part in pure.parts[1:] if anchor else pure.parts:
        if part == ".":
            continue
        if part == "..":
            if names and names[-1] != "..":
                names.pop()
                continue
            if anchor:
                continue
        names.append(part)
    flavour = path.fs.flavour
    if anchor:
        return FsPath(path.fs, flavour(anchor, *names))
    return FsPath(path.fs, flavour(*names) if names else flavour())


def relativize(origin: FsPath, other: FsPath) -> FsPath:
    """Build the relative path that leads from ``origin`` to ``other``.

    Raises:
        ValueError: If only one of the paths is absolute, or the paths have
            different roots or providers.
    """
    if origin.fs is not other.fs:
        raise ValueError("paths belong to different filesystems")
    if origin.pure.anchor != other.pure.anchor:
        raise ValueError(f"cannot relativize {origin} against {other}: different roots")
    start = split(normalize(origin))
    end = split(normalize(other))
    common = 0
    for a, b in zip(start, end):
        if a != b:
            break
        common += 1
    names = [".."] * (len(start) - common) + [p.name for p in end[common:]]
    flavour = origin.fs.flavour
    return FsPath(origin.fs, flavour(*names) if names else flavour())


def uri(path: FsPath) -> str:
    """Return a URI for the absolute form of a path."""
    return path.fs.to_uri(absolute(path).pure)
