"""Query, creation, I/O and metadata operations on provider-scoped paths.

Every function takes :class:`~fstree.paths.FsPath` values and forwards to
the provider carried by the path (``path.fs``). Where a function accepts a
bare string instead, the string is resolved against the default provider.
"""

from __future__ import annotations

import fnmatch
import logging
import mimetypes
import os
import re
import secrets
import tempfile
from contextlib import ExitStack
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Iterator

from fstree.errors import UnknownAttributeError
from fstree.paths import FsPath, default_fs, join
from fstree.types import DEFAULT_OPEN_OPTIONS, CreateResult, FileStat, OpenOption

__all__ = [
    "DEFAULT_ENCODING",
    "DirectoryStream",
    "attribute",
    "copy",
    "create_dir",
    "create_dirs",
    "create_file",
    "create_hard_link",
    "create_symlink",
    "create_temp_dir",
    "create_temp_file",
    "delete",
    "exists",
    "glob_matcher",
    "is_dir",
    "is_executable",
    "is_file",
    "is_hidden",
    "is_readable",
    "is_same_file",
    "is_symlink",
    "is_writable",
    "last_modified",
    "list_dir",
    "move",
    "owner",
    "permissions_from_string",
    "permissions_to_string",
    "posix_permissions",
    "probe_content_type",
    "read_attributes",
    "read_bytes",
    "read_lines",
    "read_symlink",
    "read_text",
    "set_attribute",
    "set_last_modified",
    "set_posix_permissions",
    "size",
    "write_bytes",
    "write_lines",
]

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

# Attempts at picking an unused temporary name before giving up
_TEMP_ATTEMPTS = 100


def _as_path(path: FsPath | str) -> FsPath:
    if isinstance(path, FsPath):
        return path
    return join(path)


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def exists(path: FsPath, follow_symlinks: bool = True) -> bool:
    """Check if a path exists.

    Args:
        path: Path to check.
        follow_symlinks: When False a dangling symbolic link still counts as
            existing.
    """
    return path.fs.exists(path.pure, follow_symlinks)


def is_file(path: FsPath, follow_symlinks: bool = True) -> bool:
    return path.fs.is_file(path.pure, follow_symlinks)


def is_dir(path: FsPath, follow_symlinks: bool = True) -> bool:
    return path.fs.is_dir(path.pure, follow_symlinks)


def is_symlink(path: FsPath) -> bool:
    return path.fs.is_symlink(path.pure)


def is_hidden(path: FsPath) -> bool:
    return path.fs.is_hidden(path.pure)


def is_readable(path: FsPath) -> bool:
    return path.fs.access(path.pure, os.R_OK)


def is_writable(path: FsPath) -> bool:
    return path.fs.access(path.pure, os.W_OK)


def is_executable(path: FsPath) -> bool:
    return path.fs.access(path.pure, os.X_OK)


def is_same_file(first: FsPath, second: FsPath) -> bool:
    """Check if two paths locate the same entry.

    Equal paths are the same file without touching the filesystem. Paths of
    different providers never are.
    """
    if first == second:
        return True
    if first.fs is not second.fs:
        return False
    return first.fs.stat(first.pure).file_key == second.fs.stat(second.pure).file_key


def read_symlink(path: FsPath) -> FsPath:
    """Return the target stored in a symbolic link.

    Raises:
        NotASymLinkError: If the path is not a symbolic link.
    """
    return FsPath(path.fs, path.fs.read_symlink(path.pure))


# -----------------------------------------------------------------------------
# Creation and removal
# -----------------------------------------------------------------------------


def create_dir(path: FsPath) -> CreateResult:
    """Create a directory; an existing entry at the path is left alone.

    Returns:
        ``CreateResult.EXISTS`` when nothing had to be created.
    """
    result = path.fs.create_directory(path.pure)
    if result is CreateResult.EXISTS:
        logger.debug("Directory already exists: %s", path)
    return result


def create_dirs(path: FsPath) -> CreateResult:
    """Create a directory along with any missing parents.

    Raises:
        FileExistsError: If a component exists and is not a directory.
    """
    pure = path.pure
    result = CreateResult.EXISTS
    for current in [*reversed(pure.parents), pure]:
        if not current.name:
            continue
        result = path.fs.create_directory(current)
        if result is CreateResult.EXISTS and not path.fs.is_dir(current):
            raise FileExistsError(f"{current} exists and is not a directory")
    return result


def create_file(path: FsPath) -> CreateResult:
    """Create an empty file; an existing entry at the path is left alone.

    Returns:
        ``CreateResult.EXISTS`` when nothing had to be created.
    """
    result = path.fs.create_file(path.pure)
    if result is CreateResult.EXISTS:
        logger.debug("File already exists: %s", path)
    return result


def create_hard_link(link: FsPath, existing: FsPath) -> FsPath:
    """Create a hard link at ``link`` to ``existing``.

    Raises:
        TargetMissingError: If ``existing`` does not exist.
    """
    link.fs.create_hard_link(link.pure, existing.pure)
    return link


def create_symlink(link: FsPath, target: FsPath) -> FsPath:
    """Create a symbolic link at ``link`` pointing to ``target``.

    The target is stored as given and does not need to exist.
    """
    link.fs.create_symlink(link.pure, target.pure)
    return link


def _create_temp(
    directory: FsPath | str | None,
    prefix: str,
    suffix: str,
    create: Callable[[FsPath], CreateResult],
) -> FsPath:
    if directory is None:
        directory = join(default_fs(), tempfile.gettempdir())
    directory = _as_path(directory)
    for _ in range(_TEMP_ATTEMPTS):
        candidate = join(directory, f"{prefix}{secrets.token_hex(8)}{suffix}")
        if create(candidate) is CreateResult.CREATED:
            return candidate
    raise FileExistsError(f"no unused temporary name in {directory}")


def create_temp_dir(directory: FsPath | str | None = None, prefix: str = "") -> FsPath:
    """Create a new, uniquely named directory.

    Args:
        directory: Where to create it. Defaults to the system temporary
            directory of the host filesystem.
        prefix: Start of the generated name.
    """
    return _create_temp(directory, prefix, "", create_dir)


def create_temp_file(
    directory: FsPath | str | None = None, prefix: str = "", suffix: str = ".tmp"
) -> FsPath:
    """Create a new, uniquely named empty file."""
    return _create_temp(directory, prefix, suffix, create_file)


def delete(path: FsPath) -> bool:
    """Delete a file, link or empty directory if it exists.

    Returns:
        True if something was deleted.
    """
    return path.fs.delete(path.pure)


def copy(
    source: FsPath,
    target: FsPath,
    replace_existing: bool = False,
    follow_symlinks: bool = True,
) -> FsPath:
    """Copy a single entry. Directories are copied without their content.

    Paths may belong to different providers; regular file content is then
    transferred through memory.
    """
    if source.fs is target.fs:
        source.fs.copy(source.pure, target.pure, replace_existing, follow_symlinks)
        return target
    if is_dir(source, follow_symlinks):
        if exists(target, follow_symlinks=False):
            if not replace_existing:
                raise FileExistsError(str(target))
            delete(target)
        create_dir(target)
        return target
    options = OpenOption.WRITE | OpenOption.TRUNCATE_EXISTING
    options |= OpenOption.CREATE if replace_existing else OpenOption.CREATE_NEW
    write_bytes(target, read_bytes(source), options)
    return target


def move(source: FsPath, target: FsPath, replace_existing: bool = False) -> FsPath:
    """Move or rename an entry, across providers if needed."""
    if source.fs is target.fs:
        source.fs.move(source.pure, target.pure, replace_existing)
    else:
        copy(source, target, replace_existing)
        delete(source)
    return target


# -----------------------------------------------------------------------------
# Content
# -----------------------------------------------------------------------------


def read_bytes(path: FsPath) -> bytes:
    return path.fs.read_bytes(path.pure)


def read_text(path: FsPath, encoding: str = DEFAULT_ENCODING) -> str:
    return read_bytes(path).decode(encoding)


def read_lines(path: FsPath, encoding: str = DEFAULT_ENCODING) -> list[str]:
    """Read a file as a list of lines.

    Lines end at ``\\n``, ``\\r\\n`` or ``\\r``; terminators are dropped and a
    final line break does not produce an empty last line.
    """
    text = read_text(path, encoding)
    if not text:
        return []
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def write_bytes(path: FsPath, data: bytes, options: OpenOption | None = None) -> FsPath:
    """Write bytes to a file.

    Args:
        path: File to write.
        data: Content.
        options: Open options. Defaults to create and truncate.

    Returns:
        The path written to.
    """
    path.fs.write_bytes(path.pure, bytes(data), options or DEFAULT_OPEN_OPTIONS)
    return path


def write_lines(
    path: FsPath,
    lines: Iterable[str],
    encoding: str = DEFAULT_ENCODING,
    options: OpenOption | None = None,
    newline: str = "\n",
) -> FsPath:
    """Write each string as one line, each followed by ``newline``."""
    text = "".join(f"{line}{newline}" for line in lines)
    return write_bytes(path, text.encode(encoding), options)


# -----------------------------------------------------------------------------
# Directory listing
# -----------------------------------------------------------------------------


def _split_alternatives(body: str) -> list[str]:
    parts, depth, start = [], 0, 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(body[start:index])
            start = index + 1
    parts.append(body[start:])
    return parts


def _expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups into separate fnmatch patterns."""
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    for end in range(start, len(pattern)):
        if pattern[end] == "{":
            depth += 1
        elif pattern[end] == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        raise ValueError(f"unclosed group in glob {pattern!r}")
    head, body, tail = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]
    return [
        expanded
        for alternative in _split_alternatives(body)
        for expanded in _expand_braces(head + alternative + tail)
    ]


def glob_matcher(pattern: str) -> Callable[[str], bool]:
    """Compile a shell glob into a case-sensitive name predicate.

    Supports ``*``, ``?``, ``[...]`` and ``{a,b}`` alternatives.
    """
    regex = "|".join(fnmatch.translate(p) for p in _expand_braces(pattern))
    compiled = re.compile(regex)
    return lambda name: compiled.match(name) is not None


class DirectoryStream:
    """Lazy listing of a directory's entries.

    The provider's directory handle is acquired on construction and released
    by :meth:`close`, which runs when the ``with`` block exits, when the
    entries are exhausted, or when iteration is abandoned. A stream can only
    be iterated once.

    Example:
        >>> with list_dir(directory, "*.py") as entries:
        ...     names = [entry.name for entry in entries]
    """

    def __init__(self, directory: FsPath, glob: str | None = None) -> None:
        self.directory = directory
        self.glob = glob
        self._matches = glob_matcher(glob) if glob else None
        self._stack = ExitStack()
        self._names = self._stack.enter_context(directory.fs.scandir(directory.pure))
        self._closed = False
        self._iterated = False

    def __enter__(self) -> DirectoryStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the directory handle. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._stack.close()

    def __iter__(self) -> Iterator[FsPath]:
        if self._closed:
            raise ValueError(f"directory stream is closed: {self.directory}")
        if self._iterated:
            raise RuntimeError(f"directory stream already iterated: {self.directory}")
        self._iterated = True
        return self._entries()

    def _entries(self) -> Iterator[FsPath]:
        try:
            for name in self._names:
                if self._matches is None or self._matches(name):
                    yield join(self.directory, name)
        finally:
            self.close()


def list_dir(path: FsPath, glob: str | None = None) -> DirectoryStream:
    """Open a lazy listing of a directory.

    Args:
        path: Directory to list.
        glob: Optional shell glob the entry names must match.

    Returns:
        A :class:`DirectoryStream`; use it in a ``with`` block.
    """
    return DirectoryStream(path, glob)


# -----------------------------------------------------------------------------
# Metadata
# -----------------------------------------------------------------------------

_PERMISSION_CHARS = "rwxrwxrwx"


def permissions_to_string(mode: int) -> str:
    """Render permission bits as ``rwxr-x---``."""
    return "".join(
        char if mode & (1 << (8 - index)) else "-"
        for index, char in enumerate(_PERMISSION_CHARS)
    )


def permissions_from_string(perms: str) -> int:
    """Parse a ``rwxr-x---`` string into permission bits.

    Raises:
        ValueError: If the string is not nine ``r``/``w``/``x``/``-`` characters
            in the canonical order.
    """
    if len(perms) != 9:
        raise ValueError(f"invalid permission string: {perms!r}")
    mode = 0
    for index, (char, expected) in enumerate(zip(perms, _PERMISSION_CHARS)):
        if char == expected:
            mode |= 1 << (8 - index)
        elif char != "-":
            raise ValueError(f"invalid permission string: {perms!r}")
    return mode


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _datetime(ns: int) -> datetime:
    return _EPOCH + timedelta(microseconds=ns // 1000)


def _nanoseconds(value: datetime | int | float) -> int:
    """Datetimes convert exactly; bare numbers are epoch milliseconds."""
    if isinstance(value, datetime):
        return (value.astimezone(timezone.utc) - _EPOCH) // timedelta(microseconds=1) * 1000
    return int(value * 1_000_000)


_BASIC_ATTRIBUTES: dict[str, Callable[[FileStat], Any]] = {
    "size": lambda st: st.size,
    "lastModifiedTime": lambda st: _datetime(st.mtime_ns),
    "lastAccessTime": lambda st: _datetime(st.atime_ns),
    "creationTime": lambda st: _datetime(st.ctime_ns),
    "isRegularFile": lambda st: st.is_file,
    "isDirectory": lambda st: st.is_dir,
    "isSymbolicLink": lambda st: st.is_symlink,
    "isOther": lambda st: not (st.is_file or st.is_dir or st.is_symlink),
    "fileKey": lambda st: st.file_key,
}

_POSIX_ATTRIBUTES: dict[str, Callable[[FileStat], Any]] = {
    **_BASIC_ATTRIBUTES,
    "permissions": lambda st: permissions_to_string(st.mode),
    "owner": lambda st: st.owner,
    "group": lambda st: st.group,
}

_VIEWS = {
    "basic": _BASIC_ATTRIBUTES,
    "posix": _POSIX_ATTRIBUTES,
    "owner": {"owner": _POSIX_ATTRIBUTES["owner"]},
}


def _split_view(name: str) -> tuple[str, str]:
    view, _, attribute_name = name.rpartition(":")
    view = view or "basic"
    if view not in _VIEWS:
        raise UnknownAttributeError(name=name)
    return view, attribute_name


def attribute(path: FsPath, name: str, follow_symlinks: bool = True) -> Any:
    """Read one attribute by ``[view:]name``, e.g. ``posix:permissions``.

    Raises:
        UnknownAttributeError: If the view or the name is not supported.
    """
    view, attribute_name = _split_view(name)
    getter = _VIEWS[view].get(attribute_name)
    if getter is None:
        raise UnknownAttributeError(name=name)
    return getter(path.fs.stat(path.pure, follow_symlinks))


def read_attributes(path: FsPath, names: str, follow_symlinks: bool = True) -> dict[str, Any]:
    """Read several attributes of one view at once.

    Args:
        path: Path to inspect.
        names: ``[view:]a,b,c`` or ``[view:]*`` for every attribute.
        follow_symlinks: Inspect the link target instead of the link.
    """
    view, attribute_list = _split_view(names)
    getters = _VIEWS[view]
    if attribute_list == "*":
        wanted = list(getters)
    else:
        wanted = [n.strip() for n in attribute_list.split(",")]
    st = path.fs.stat(path.pure, follow_symlinks)
    result = {}
    for attribute_name in wanted:
        getter = getters.get(attribute_name)
        if getter is None:
            raise UnknownAttributeError(name=f"{view}:{attribute_name}")
        result[attribute_name] = getter(st)
    return result


def set_attribute(path: FsPath, name: str, value: Any, follow_symlinks: bool = True) -> FsPath:
    """Set a writable attribute: times or POSIX permissions.

    Times take a ``datetime`` or epoch milliseconds; permissions take a
    ``rwxr-x---`` string or an integer mode. With ``follow_symlinks`` off a
    symbolic link is updated itself.
    """
    _, attribute_name = _split_view(name)
    if attribute_name == "lastModifiedTime":
        path.fs.set_times(path.pure, mtime_ns=_nanoseconds(value), follow_symlinks=follow_symlinks)
    elif attribute_name == "lastAccessTime":
        path.fs.set_times(path.pure, atime_ns=_nanoseconds(value), follow_symlinks=follow_symlinks)
    elif attribute_name == "permissions":
        mode = permissions_from_string(value) if isinstance(value, str) else int(value)
        path.fs.chmod(path.pure, mode, follow_symlinks)
    else:
        raise UnknownAttributeError(name=name)
    return path


def size(path: FsPath) -> int:
    return path.fs.stat(path.pure).size


def last_modified(path: FsPath, follow_symlinks: bool = True) -> int:
    """Get the last modified time in millis from the epoch."""
    return path.fs.stat(path.pure, follow_symlinks).mtime_ns // 1_000_000


def set_last_modified(path: FsPath, millis: int) -> FsPath:
    return set_attribute(path, "lastModifiedTime", millis)


def owner(path: FsPath, follow_symlinks: bool = True) -> str:
    return path.fs.stat(path.pure, follow_symlinks).owner


def posix_permissions(path: FsPath, follow_symlinks: bool = True) -> str:
    return permissions_to_string(path.fs.stat(path.pure, follow_symlinks).mode)


def set_posix_permissions(path: FsPath, perms: str) -> FsPath:
    return set_attribute(path, "posix:permissions", perms)


def probe_content_type(path: FsPath) -> str | None:
    """Guess the MIME type of a file from its name."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type


