"""Tree literal parsing.

A tree literal is a sequence of node literals, each in one of two forms.

Positional form::

    ["name", {"type": ..., "link-to": ...}, *rest]

The attribute mapping is optional; a mapping with a ``name`` key in that
position is a child node in mapping form instead. ``rest`` holds either
child node literals (the node is a directory) or strings (content lines of
a file).

Mapping form::

    {"name": ..., "type": ..., "children": [...], "content": [...], "link-to": ...}

Without an explicit ``type`` a node with children is a directory and any
other node is a file. :func:`parse_tree` turns a literal into frozen node
models before anything touches a filesystem, so shape errors never leave a
half-built tree behind.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from fstree.errors import IllegalNodeTypeError, MalformedNodeError, MissingLinkTargetError
from fstree.paths import FsPath, join

__all__ = [
    "DirectoryNode",
    "FileNode",
    "HardLinkNode",
    "Node",
    "NodeKind",
    "SymLinkNode",
    "parse_node",
    "parse_tree",
]


class NodeKind(str, Enum):
    """Kinds of entries a tree literal can describe."""

    FILE = "file"
    DIRECTORY = "dir"
    HARD_LINK = "link"
    SYM_LINK = "sym-link"


# Spellings accepted for the "type" attribute
NODE_TYPE_ALIASES: dict[str, NodeKind] = {
    "file": NodeKind.FILE,
    "dir": NodeKind.DIRECTORY,
    "directory": NodeKind.DIRECTORY,
    "link": NodeKind.HARD_LINK,
    "hard-link": NodeKind.HARD_LINK,
    "sym-link": NodeKind.SYM_LINK,
    "symlink": NodeKind.SYM_LINK,
}

ATTRIBUTE_KEYS = frozenset({"type", "link-to", "link_to"})
MAPPING_KEYS = ATTRIBUTE_KEYS | {"name", "children", "content"}


class _BaseNode(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)


class FileNode(_BaseNode):
    """A regular file, optionally with content lines."""

    kind: Literal[NodeKind.FILE] = NodeKind.FILE
    content: tuple[str, ...] | None = None


class DirectoryNode(_BaseNode):
    """A directory and the nodes created inside it."""

    kind: Literal[NodeKind.DIRECTORY] = NodeKind.DIRECTORY
    children: tuple[Node, ...] = ()


class HardLinkNode(_BaseNode):
    """A hard link to an entry that must already exist."""

    kind: Literal[NodeKind.HARD_LINK] = NodeKind.HARD_LINK
    link_to: str = Field(alias="link-to", min_length=1)


class SymLinkNode(_BaseNode):
    """A symbolic link; its target may not exist."""

    kind: Literal[NodeKind.SYM_LINK] = NodeKind.SYM_LINK
    link_to: str = Field(alias="link-to", min_length=1)


Node = Annotated[
    Union[FileNode, DirectoryNode, HardLinkNode, SymLinkNode],
    Field(discriminator="kind"),
]

DirectoryNode.model_rebuild()


def _node_kind(name: str, value: object, where: str) -> NodeKind:
    if isinstance(value, NodeKind):
        return value
    if isinstance(value, str) and value in NODE_TYPE_ALIASES:
        return NODE_TYPE_ALIASES[value]
    raise IllegalNodeTypeError(node=name, value=value, path=where or None)


def _is_literal(value: object) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def _location(base: FsPath | None, names: tuple[str, ...]) -> str:
    if base is None:
        return "/".join(names)
    return str(join(base, *names))


def _check_name(value: object, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedNodeError(f"node name must be a non-empty string, got {value!r}", path=where or None)
    if value in (".", "..") or "/" in value or "\\" in value:
        raise MalformedNodeError(f"node name must be a single path segment: {value!r}", path=where or None)
    return value


def _split_positional(literal: Sequence[Any], where: str) -> tuple[str, Mapping[str, Any], list[Any]]:
    if not literal:
        raise MalformedNodeError("empty node literal", path=where or None)
    name = _check_name(literal[0], where)
    rest = list(literal[1:])
    attrs: Mapping[str, Any] = {}
    if rest and isinstance(rest[0], Mapping) and "name" not in rest[0]:
        attrs = rest.pop(0)
    return name, attrs, rest


def _split_mapping(literal: Mapping[str, Any], where: str) -> tuple[str, Mapping[str, Any], list[Any]]:
    unknown = set(literal) - MAPPING_KEYS
    if unknown:
        raise MalformedNodeError(f"unknown keys {sorted(unknown)}", path=where or None)
    name = _check_name(literal.get("name"), where)
    children = literal.get("children") or []
    content = literal.get("content")
    if children and content:
        raise MalformedNodeError("node has both children and content", path=where or None)
    if isinstance(content, str):
        content = [content]
    for key, value in (("children", children), ("content", content)):
        if value is not None and not isinstance(value, (list, tuple)):
            raise MalformedNodeError(f"{key} must be a list, got {value!r}", path=where or None)
    if not all(_is_literal(child) for child in children):
        raise MalformedNodeError("children must be node literals", path=where or None)
    if content and not all(isinstance(line, str) for line in content):
        raise MalformedNodeError("content must be strings", path=where or None)
    attrs = {key: literal[key] for key in ATTRIBUTE_KEYS if key in literal}
    return name, attrs, list(children or content or [])


def parse_node(
    literal: Sequence[Any] | Mapping[str, Any],
    base: FsPath | None = None,
    parents: tuple[str, ...] = (),
) -> Node:
    """Parse one node literal, recursively.

    Args:
        literal: Node literal in positional or mapping form.
        base: Root the tree will be built under; only used to report the
            full path of a failing node.
        parents: Names of the enclosing directory nodes.

    Returns:
        The typed node.

    Raises:
        MalformedNodeError: If the literal does not have a valid shape.
        IllegalNodeTypeError: If the ``type`` attribute is not recognized.
        MissingLinkTargetError: If a link node has no ``link-to``.
    """
    where = _location(base, parents)
    if isinstance(literal, Mapping):
        name, attrs, body = _split_mapping(literal, where)
    elif isinstance(literal, (list, tuple)):
        name, attrs, body = _split_positional(literal, where)
    else:
        raise MalformedNodeError(f"node literal must be a list or mapping, got {literal!r}", path=where or None)

    names = (*parents, name)
    where = _location(base, names)
    unknown = set(attrs) - ATTRIBUTE_KEYS
    if unknown:
        raise MalformedNodeError(f"unknown attributes {sorted(unknown)}", path=where)

    child_literals = [item for item in body if _is_literal(item)]
    lines = [item for item in body if isinstance(item, str)]
    if len(child_literals) + len(lines) != len(body):
        raise MalformedNodeError("node body holds values that are neither nodes nor strings", path=where)
    if child_literals and lines:
        raise MalformedNodeError("node mixes children and content lines", path=where)

    if "type" in attrs:
        kind = _node_kind(name, attrs["type"], where)
    elif child_literals:
        kind = NodeKind.DIRECTORY
    else:
        kind = NodeKind.FILE

    link_to = attrs.get("link-to", attrs.get("link_to"))
    if kind in (NodeKind.HARD_LINK, NodeKind.SYM_LINK):
        if body:
            raise MalformedNodeError("link nodes cannot have children or content", path=where)
        if not link_to:
            raise MissingLinkTargetError(path=where)
        if not isinstance(link_to, str):
            raise MalformedNodeError(f"link-to must be a string, got {link_to!r}", path=where)
        if kind is NodeKind.HARD_LINK:
            return HardLinkNode(name=name, link_to=link_to)
        return SymLinkNode(name=name, link_to=link_to)

    if link_to is not None:
        raise MalformedNodeError("link-to is only valid on link nodes", path=where)
    if kind is NodeKind.DIRECTORY:
        if lines:
            raise MalformedNodeError("directories cannot have content", path=where)
        children = tuple(parse_node(child, base, names) for child in child_literals)
        return DirectoryNode(name=name, children=children)
    if child_literals:
        raise MalformedNodeError("files cannot have children", path=where)
    return FileNode(name=name, content=tuple(lines) if lines else None)


def parse_tree(tree: Sequence[Any], base: FsPath | None = None) -> list[Node]:
    """Parse a sequence of node literals into typed nodes, in order.

    Raises:
        MalformedNodeError: If the tree is not a sequence or a node is invalid.
    """
    if isinstance(tree, (str, bytes, Mapping)) or not isinstance(tree, Sequence):
        raise MalformedNodeError(f"tree must be a sequence of node literals, got {tree!r}")
    return [parse_node(literal, base) for literal in tree]
