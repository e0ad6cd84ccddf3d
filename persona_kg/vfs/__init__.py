"""
Virtual Filesystem

In-memory folder/file tree with copy-on-write mutation.

Path resolution:
    - resolve_path, normalize_path, split_parent, lookup

Store operations:
    - ensure_directory, write_file, delete_path (audited)
    - list_directory, read_file, render_tree (read-only)
"""

from persona_kg.vfs.paths import lookup, normalize_path, resolve_path, split_parent
from persona_kg.vfs.store import (
    delete_path,
    ensure_directory,
    list_directory,
    read_file,
    render_tree,
    write_file,
)

__all__ = [
    "resolve_path",
    "normalize_path",
    "split_parent",
    "lookup",
    "ensure_directory",
    "write_file",
    "delete_path",
    "list_directory",
    "read_file",
    "render_tree",
]
