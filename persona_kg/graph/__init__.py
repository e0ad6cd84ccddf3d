"""
Knowledge Graph Store

Copy-on-write mutation of KnowledgeGraph snapshots.
"""

from persona_kg.graph.ids import next_stamp, node_id_for, slugify
from persona_kg.graph.store import (
    DEFAULT_LINK_STRENGTH,
    DERIVED_STRENGTH,
    HIERARCHICAL_STRENGTH,
    RelinkOutcome,
    add_file_reference,
    append_insight,
    create_link,
    merge_nodes,
    merge_parent,
    relink,
    remove_node,
    update_node,
    upsert_node,
)

__all__ = [
    "upsert_node",
    "update_node",
    "create_link",
    "merge_nodes",
    "merge_parent",
    "relink",
    "RelinkOutcome",
    "append_insight",
    "add_file_reference",
    "remove_node",
    "next_stamp",
    "node_id_for",
    "slugify",
    "HIERARCHICAL_STRENGTH",
    "DEFAULT_LINK_STRENGTH",
    "DERIVED_STRENGTH",
]
