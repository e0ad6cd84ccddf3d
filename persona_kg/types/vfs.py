"""
Virtual Filesystem Types

The VFS is a tree of folders and files held entirely in memory. A snapshot
is a root VFSFolder; every node is frozen, so a snapshot can be shared freely
and a mutation always yields a new root.

Models:
    - VFSFile: Leaf holding text content
    - VFSFolder: Named children (name -> node)
    - VFSNode: Discriminated union of the two
    - DirEntry: One row of a directory listing
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class VFSFile(BaseModel):
    """A file holding text content."""

    type: Literal["file"] = "file"
    content: str = ""

    model_config = ConfigDict(frozen=True)


class VFSFolder(BaseModel):
    """
    A folder mapping child names to nodes.

    Names are unique within a folder because they are dict keys. The root of
    a snapshot is an implicit, unnamed folder.
    """

    type: Literal["folder"] = "folder"
    children: dict[str, VFSNode] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


VFSNode = Annotated[Union[VFSFile, VFSFolder], Field(discriminator="type")]

VFSFolder.model_rebuild()


class EntryType(str, Enum):
    """Type of a directory listing entry."""

    FILE = "file"
    FOLDER = "folder"


class DirEntry(BaseModel):
    """A single entry in a directory listing."""

    name: str
    entry_type: EntryType
    path: str

    @property
    def display_name(self) -> str:
        """Name as `ls` prints it (folders carry a trailing slash)."""
        return f"{self.name}/" if self.entry_type == EntryType.FOLDER else self.name
