"""Settings for tree materialization."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from fstree.files import DEFAULT_ENCODING


class MismatchPolicy(str, Enum):
    """What to do when a node collides with an entry of another kind."""

    FAIL = "fail"
    IGNORE = "ignore"


class BuildSettings(BaseModel):
    """Options for :func:`fstree.tree.build_tree`.

    Attributes:
        on_type_mismatch: Policy when a file node lands on an existing
            directory, or a directory node on an existing non-directory.
        encoding: Encoding used for file content lines.
        newline: Terminator written after every content line.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    on_type_mismatch: MismatchPolicy = Field(default=MismatchPolicy.FAIL, alias="onTypeMismatch")
    encoding: str = DEFAULT_ENCODING
    newline: str = "\n"
