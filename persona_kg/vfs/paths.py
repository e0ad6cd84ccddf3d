"""
Path Resolver

Pure functions that turn a slash-separated path into segments and walk a
VFS snapshot. Nothing here raises: an absent or unreachable path is None.
"""

from __future__ import annotations

from persona_kg.types.vfs import VFSFile, VFSFolder, VFSNode


def resolve_path(path: str) -> list[str]:
    """
    Split a path into segment names.

    Empty segments and "." are discarded, so "/a//./b/" -> ["a", "b"].
    ".." is kept as an ordinary name; the VFS has no parent traversal.
    """
    return [segment for segment in (path or "").split("/") if segment and segment != "."]


def normalize_path(path: str) -> str:
    """Canonical absolute form of a path ("/" for the root)."""
    return "/" + "/".join(resolve_path(path))


def split_parent(path: str) -> tuple[list[str], str | None]:
    """(parent segments, leaf name). The leaf is None for the root."""
    segments = resolve_path(path)
    if not segments:
        return [], None
    return segments[:-1], segments[-1]


def lookup(root: VFSFolder, path: str) -> VFSNode | None:
    """
    Walk path from root.

    Returns None if any intermediate segment is missing or is a file.
    """
    node: VFSFile | VFSFolder = root
    for segment in resolve_path(path):
        if not isinstance(node, VFSFolder):
            return None
        child = node.children.get(segment)
        if child is None:
            return None
        node = child
    return node
