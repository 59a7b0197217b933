"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from fstree.filesystem import RealFileSystem
from fstree.paths import FsPath, join

pytest_plugins = ["fstree.pytest_plugin", "pytester"]


@pytest.fixture
def real_fs() -> RealFileSystem:
    """Create the host filesystem provider."""
    return RealFileSystem()


@pytest.fixture
def real_root(real_fs: RealFileSystem, tmp_path: Path) -> FsPath:
    """Return the temporary directory as a path on the host provider."""
    return join(real_fs, str(tmp_path))


# ============================================================================
# Sample Tree Fixtures
# ============================================================================


@pytest.fixture
def nested_tree() -> list:
    """Tree literal exercising every node kind, rooted at ``/``."""
    return [
        [
            "my",
            [
                "path",
                ["to", ["file"], ["has-content", "line 1", "line 2"]],
                ["empty-dir", {"type": "dir"}],
            ],
            ["link", {"type": "sym-link", "link-to": "/my/path/to"}],
        ],
        ["hard-link", {"type": "link", "link-to": "/my/path/to/file"}],
    ]
