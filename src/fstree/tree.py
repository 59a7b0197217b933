"""Declarative filesystem tree builder.

:func:`build_tree` materializes a tree literal (see :mod:`fstree.nodes`)
under a root directory of a provider. Nodes are created depth first, in
declared order, each before its children. Nothing is reordered: a hard
link must be declared after its target. The first error aborts the build
and the entries created so far stay in place.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from fstree import files
from fstree.config import BuildSettings, MismatchPolicy
from fstree.errors import TypeMismatchError
from fstree.nodes import DirectoryNode, FileNode, HardLinkNode, Node, parse_tree
from fstree.paths import FsPath, join
from fstree.protocols import FileSystemProvider
from fstree.types import CreateResult

logger = logging.getLogger(__name__)


class TreeBuilder:
    """Creates typed tree nodes on a filesystem provider.

    Use :func:`build_tree` for literals; the builder itself works on parsed
    nodes.
    """

    def __init__(self, fs: FileSystemProvider, settings: BuildSettings) -> None:
        """Initialize the builder.

        Args:
            fs: Provider the tree is created on.
            settings: Build options.
        """
        self.fs = fs
        self.settings = settings

    @classmethod
    def create(cls, fs: FileSystemProvider, settings: BuildSettings | None = None) -> TreeBuilder:
        """Factory method using default settings when none are given."""
        return cls(fs=fs, settings=settings or BuildSettings())

    def materialize(self, parent: FsPath, nodes: Sequence[Node]) -> None:
        """Create ``nodes`` inside ``parent``, in order.

        Raises:
            TypeMismatchError: If a node collides with an entry of another
                kind and the mismatch policy is ``fail``.
            TargetMissingError: If a hard link target does not exist yet.
            OSError: Whatever the provider raises, unchanged.
        """
        for node in nodes:
            path = join(parent, node.name)
            try:
                usable = self._create(path, node)
            except Exception:
                logger.debug("Failed to create %s node at %s", node.kind.value, path)
                raise
            if usable and isinstance(node, DirectoryNode) and node.children:
                self.materialize(path, node.children)

    def _create(self, path: FsPath, node: Node) -> bool:
        """Create one node, without its children.

        Returns:
            False if an existing entry of another kind was kept in place.
        """
        if isinstance(node, DirectoryNode):
            return self._create_directory(path)
        if isinstance(node, FileNode):
            return self._create_file(path, node)
        if isinstance(node, HardLinkNode):
            files.create_hard_link(path, join(self.fs, node.link_to))
            logger.debug("Created hard link %s -> %s", path, node.link_to)
        else:
            files.create_symlink(path, join(self.fs, node.link_to))
            logger.debug("Created symlink %s -> %s", path, node.link_to)
        return True

    def _create_directory(self, path: FsPath) -> bool:
        if files.create_dir(path) is CreateResult.EXISTS:
            return self._check_existing(path, files.is_dir(path), "directory")
        logger.debug("Created directory %s", path)
        return True

    def _create_file(self, path: FsPath, node: FileNode) -> bool:
        if files.create_file(path) is CreateResult.EXISTS:
            if not self._check_existing(path, files.is_file(path), "file"):
                return False
        else:
            logger.debug("Created file %s", path)
        if node.content:
            files.write_lines(
                path,
                node.content,
                encoding=self.settings.encoding,
                newline=self.settings.newline,
            )
        return True

    def _check_existing(self, path: FsPath, matches: bool, expected: str) -> bool:
        """Apply the mismatch policy to an entry that was already there.

        Returns:
            True if the node can proceed with the existing entry.
        """
        if matches:
            return True
        if self.settings.on_type_mismatch is MismatchPolicy.FAIL:
            raise TypeMismatchError(path=str(path), expected=expected)
        logger.debug("Keeping existing entry at %s, not a %s", path, expected)
        return False


def build_tree(
    fs: FileSystemProvider,
    root: str,
    tree: Sequence[Any],
    settings: BuildSettings | None = None,
) -> None:
    """Materialize a tree literal under ``root``.

    The whole literal is parsed first, so malformed nodes fail before any
    entry is created.

    Args:
        fs: Provider to create the entries on.
        root: Existing directory the top-level nodes are created in.
        tree: Sequence of node literals.
        settings: Build options; defaults to :class:`BuildSettings` defaults.

    Raises:
        MalformedNodeError: If the literal is invalid (including
            ``IllegalNodeTypeError`` and ``MissingLinkTargetError``).
        TargetMissingError: If a hard link is declared before its target.
    """
    root_path = join(fs, root)
    nodes = parse_tree(tree, base=root_path)
    TreeBuilder.create(fs, settings).materialize(root_path, nodes)
