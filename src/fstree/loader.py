"""Tree literals stored in YAML fixture files.

A document is either a bare list of node literals::

    - [docs, [index.md, "# Title"]]
    - name: latest
      type: sym-link
      link-to: docs

or a mapping that also carries build settings::

    settings:
      on_type_mismatch: ignore
    tree:
      - [docs]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fstree.config import BuildSettings
from fstree.errors import MalformedNodeError
from fstree.protocols import FileSystemProvider
from fstree.tree import build_tree

logger = logging.getLogger(__name__)


class TreeDocument(BaseModel):
    """A tree literal together with the settings to build it with."""

    model_config = ConfigDict(extra="forbid")

    settings: BuildSettings = Field(default_factory=BuildSettings)
    tree: list[Any] = Field(default_factory=list)


def load_tree(text: str) -> TreeDocument:
    """Parse a YAML document into a :class:`TreeDocument`.

    Raises:
        MalformedNodeError: If the YAML is invalid or has the wrong shape.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedNodeError(f"invalid YAML: {e}") from e
    if data is None:
        return TreeDocument()
    if isinstance(data, list):
        return TreeDocument(tree=data)
    if not isinstance(data, dict):
        raise MalformedNodeError(f"tree document must be a list or mapping, got {type(data).__name__}")
    try:
        return TreeDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedNodeError(f"invalid tree document: {e}") from e


def load_tree_file(path: Path) -> TreeDocument:
    """Load a tree document from a YAML file on the host filesystem.

    Raises:
        FileNotFoundError: If file doesn't exist.
        MalformedNodeError: If the document is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Tree file not found: {path}")
    logger.debug("Loading tree from %s", path)
    return load_tree(path.read_text(encoding="utf-8"))


def build_tree_file(fs: FileSystemProvider, root: str, path: Path) -> TreeDocument:
    """Load a YAML tree file and materialize it under ``root``.

    Returns:
        The loaded document.
    """
    document = load_tree_file(path)
    build_tree(fs, root, document.tree, document.settings)
    return document
