"""pytest fixtures for tree-shaped test data.

Enable in a ``conftest.py`` with::

    pytest_plugins = ["fstree.pytest_plugin"]

Then mark a test with a tree literal and request ``fs_tree``::

    @pytest.mark.fs_tree([["docs", ["index.md", "# Title"]]])
    def test_index(fs_tree):
        assert files.is_file(join(fs_tree, "/docs/index.md"))
"""

from __future__ import annotations

from operator import methodcaller

import pytest

from fstree.config import BuildSettings
from fstree.memory import MemoryFileSystem
from fstree.tree import build_tree


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "fs_tree(tree, root='/', **settings): tree literal materialized by the fs_tree fixture",
    )


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Create an empty in-memory filesystem."""
    return MemoryFileSystem()


@pytest.fixture
def fs_tree(memory_fs: MemoryFileSystem, request: pytest.FixtureRequest) -> MemoryFileSystem:
    """Build the tree from the test's ``fs_tree`` marker into ``memory_fs``."""
    __tracebackhide__ = methodcaller("errisinstance", TypeError)
    marker = request.node.get_closest_marker("fs_tree")
    if marker is None:
        raise TypeError("fs_tree fixture requires a @pytest.mark.fs_tree(tree) marker")
    tree, *rest = marker.args or ([],)
    kwargs = dict(marker.kwargs)
    root = kwargs.pop("root", rest[0] if rest else "/")
    settings = BuildSettings(**kwargs) if kwargs else None
    build_tree(memory_fs, root, tree, settings)
    return memory_fs
