"""
VFS Store

Copy-on-write operations over a VFS snapshot. The input root is never
modified; each mutation rebuilds only the folders on the path it touches
and shares every other subtree with the original snapshot.

Every successful mutating call appends exactly one VFS audit event
(MKDIR, WRITE_FILE, DELETE).

Example:
    >>> root = ensure_directory(VFSFolder(), "/research/notes")
    >>> root = write_file(root, "/research/notes/a.txt", "hi")
    >>> read_file(root, "/research/notes/a.txt")
    'hi'
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import cast

from persona_kg.audit import AuditLog, resolve_audit
from persona_kg.errors import InvalidPathError, NotFoundError, PathNotADirectoryError
from persona_kg.types.results import AuditDomain
from persona_kg.types.vfs import DirEntry, EntryType, VFSFile, VFSFolder
from persona_kg.vfs.paths import lookup, normalize_path, resolve_path, split_parent

logger = logging.getLogger(__name__)


def _rebuild(
    folder: VFSFolder,
    segments: list[str],
    update: Callable[[VFSFolder], VFSFolder],
    walked: list[str],
) -> VFSFolder:
    """
    Return a copy of folder with update applied at segments.

    Missing folders along the way are created. Siblings are shared.
    """
    if not segments:
        return update(folder)

    head, rest = segments[0], segments[1:]
    child = folder.children.get(head)
    here = walked + [head]
    if child is None:
        child = VFSFolder()
    elif not isinstance(child, VFSFolder):
        raise PathNotADirectoryError(f"{normalize_path('/'.join(here))} is a file, not a directory.")

    new_child = _rebuild(child, rest, update, here)
    return VFSFolder(children={**folder.children, head: new_child})


def _ensure(root: VFSFolder, segments: list[str]) -> VFSFolder:
    return _rebuild(root, segments, lambda folder: folder, [])


def ensure_directory(root: VFSFolder, path: str, *, audit: AuditLog | None = None) -> VFSFolder:
    """
    Create every missing folder along path.

    An existing folder returns root unchanged and writes no audit event.

    Raises:
        PathNotADirectoryError: An existing segment is a file
    """
    segments = resolve_path(path)
    if isinstance(lookup(root, path), VFSFolder):
        return root
    new_root = _ensure(root, segments)
    normalized = normalize_path(path)
    resolve_audit(audit).log_event(AuditDomain.VFS, "MKDIR", {"path": normalized})
    logger.debug(f"mkdir {normalized}")
    return new_root


def write_file(
    root: VFSFolder,
    path: str,
    content: str,
    *,
    audit: AuditLog | None = None,
) -> VFSFolder:
    """
    Create or overwrite the file at path, creating parent folders as needed.

    Raises:
        InvalidPathError: The path has no filename component
        PathNotADirectoryError: A parent segment is a file
    """
    parents, leaf = split_parent(path)
    if leaf is None:
        raise InvalidPathError(f'Invalid file path: "{path}"')

    def put(folder: VFSFolder) -> VFSFolder:
        existing = folder.children.get(leaf)
        if isinstance(existing, VFSFolder):
            raise InvalidPathError(f"{normalize_path(path)} is a directory.")
        return VFSFolder(children={**folder.children, leaf: VFSFile(content=content)})

    new_root = _rebuild(root, parents, put, [])
    normalized = normalize_path(path)
    resolve_audit(audit).log_event(
        AuditDomain.VFS, "WRITE_FILE", {"path": normalized, "size": len(content)}
    )
    logger.debug(f"write {normalized} ({len(content)} chars)")
    return new_root


def delete_path(root: VFSFolder, path: str, *, audit: AuditLog | None = None) -> VFSFolder:
    """
    Remove the file or folder (with its subtree) at path.

    Raises:
        InvalidPathError: path is the root
        NotFoundError: Nothing exists at path
    """
    parents, leaf = split_parent(path)
    if leaf is None:
        raise InvalidPathError("Cannot delete the root directory.")
    if lookup(root, path) is None:
        raise NotFoundError(f"No such file or directory: {normalize_path(path)}")

    def drop(folder: VFSFolder) -> VFSFolder:
        return VFSFolder(
            children={name: child for name, child in folder.children.items() if name != leaf}
        )

    new_root = _rebuild(root, parents, drop, [])
    normalized = normalize_path(path)
    resolve_audit(audit).log_event(AuditDomain.VFS, "DELETE", {"path": normalized})
    logger.debug(f"rm {normalized}")
    return new_root


def list_directory(root: VFSFolder, path: str = "/") -> list[DirEntry]:
    """
    List a folder, folders first then files, each alphabetically.

    Raises:
        NotFoundError: path is missing or is a file
    """
    node = lookup(root, path)
    if not isinstance(node, VFSFolder):
        raise NotFoundError(f"Directory not found: {normalize_path(path)}")

    base = normalize_path(path).rstrip("/")
    entries = [
        DirEntry(
            name=name,
            entry_type=EntryType.FOLDER if isinstance(child, VFSFolder) else EntryType.FILE,
            path=f"{base}/{name}",
        )
        for name, child in node.children.items()
    ]
    entries.sort(key=lambda e: (e.entry_type != EntryType.FOLDER, e.name))
    return entries


def read_file(root: VFSFolder, path: str) -> str:
    """
    Return the content of the file at path.

    Raises:
        NotFoundError: path is missing or is a folder
    """
    node = lookup(root, path)
    if not isinstance(node, VFSFile):
        raise NotFoundError(f"File not found: {normalize_path(path)}")
    return node.content


def render_tree(root: VFSFolder, indent: str = "  ") -> str:
    """Indented listing of the whole tree, for state summaries."""
    lines: list[str] = ["/"]

    def walk(node: VFSFolder, depth: int) -> None:
        folders = sorted(n for n, c in node.children.items() if isinstance(c, VFSFolder))
        files = sorted(n for n, c in node.children.items() if isinstance(c, VFSFile))
        for name in folders:
            lines.append(f"{indent * depth}{name}/")
            walk(cast(VFSFolder, node.children[name]), depth + 1)
        for name in files:
            lines.append(f"{indent * depth}{name}")

    walk(root, 1)
    return "\n".join(lines)
