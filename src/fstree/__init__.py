"""Filesystem path helpers and declarative tree fixtures."""

__version__ = "0.1.0"

from fstree.config import BuildSettings, MismatchPolicy
from fstree.errors import (
    FsTreeError,
    IllegalNodeTypeError,
    InvalidPathError,
    MalformedNodeError,
    MissingLinkTargetError,
    NotASymLinkError,
    TargetMissingError,
    TypeMismatchError,
    UnknownAttributeError,
)
from fstree.filesystem import RealFileSystem
from fstree.memory import MemoryFileSystem, create_fs
from fstree.paths import FsPath, default_fs, join
from fstree.protocols import FileSystemProvider
from fstree.tree import TreeBuilder, build_tree
from fstree.types import CreateResult, OpenOption

__all__ = [
    "__version__",
    "BuildSettings",
    "CreateResult",
    "FileSystemProvider",
    "FsPath",
    "FsTreeError",
    "IllegalNodeTypeError",
    "InvalidPathError",
    "MalformedNodeError",
    "MemoryFileSystem",
    "MismatchPolicy",
    "MissingLinkTargetError",
    "NotASymLinkError",
    "OpenOption",
    "RealFileSystem",
    "TargetMissingError",
    "TreeBuilder",
    "TypeMismatchError",
    "UnknownAttributeError",
    "build_tree",
    "create_fs",
    "default_fs",
    "join",
]
