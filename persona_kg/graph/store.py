"""
Knowledge Graph Store

Copy-on-write operations over a KnowledgeGraph snapshot. Each function
builds new node/link tuples directly (unchanged nodes and links are shared,
they are frozen) and returns a new snapshot. The input snapshot is never
modified, so a caller that fails after a store call can simply discard the
result.

Every successful mutating call appends exactly one GRAPH audit event.

Strengths:
    HIERARCHICAL_STRENGTH (0.9)  parent -> new child
    DEFAULT_LINK_STRENGTH (0.7)  agent-created cross links
    DERIVED_STRENGTH (0.8)       merged nodes and quantum insights
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from persona_kg.audit import AuditLog, resolve_audit
from persona_kg.errors import (
    EndpointNotFoundError,
    MissingParentError,
    NodeNotFoundError,
    ToolArgumentError,
)
from persona_kg.graph.ids import file_node_id_for, node_id_for, prefixed_id
from persona_kg.types.graph import (
    GraphLink,
    GraphNode,
    KnowledgeGraph,
    LinkType,
    NodeSource,
    NodeType,
    utc_now,
)
from persona_kg.types.results import AuditDomain
from persona_kg.vfs.paths import split_parent

logger = logging.getLogger(__name__)

HIERARCHICAL_STRENGTH = 0.9
DEFAULT_LINK_STRENGTH = 0.7
DERIVED_STRENGTH = 0.8


@dataclass(frozen=True)
class RelinkOutcome:
    """Result of relink: the new graph and whether anything changed."""

    graph: KnowledgeGraph
    applied: bool
    message: str


def _audit(audit: AuditLog | None, action: str, details: dict[str, Any]) -> None:
    resolve_audit(audit).log_event(AuditDomain.GRAPH, action, details)


def _retarget_parent(
    links: tuple[GraphLink, ...], node_id: str, new_parent_id: str
) -> tuple[tuple[GraphLink, ...], bool]:
    """Point the first inbound hierarchical link of node_id at new_parent_id."""
    new_links = list(links)
    for i, link in enumerate(new_links):
        if link.target == node_id and link.type == LinkType.HIERARCHICAL:
            new_links[i] = link.model_copy(update={"source": new_parent_id})
            return tuple(new_links), True
    return links, False


def _with_changes(
    node: GraphNode,
    name: str | None,
    content: str | None,
    node_type: NodeType | None,
) -> GraphNode:
    changes: dict[str, Any] = {"updated_at": utc_now()}
    if name is not None:
        changes["name"] = name
    if content is not None:
        changes["content"] = content
    if node_type is not None:
        changes["type"] = node_type
    return node.model_copy(update=changes)


def update_node(
    graph: KnowledgeGraph,
    node_id: str,
    *,
    name: str | None = None,
    content: str | None = None,
    node_type: NodeType | None = None,
    audit: AuditLog | None = None,
) -> KnowledgeGraph:
    """
    Update the mutable fields of an existing node.

    Fields left as None keep their current value; updated_at is refreshed.

    Raises:
        NodeNotFoundError: node_id does not exist
    """
    node = graph.get_node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)

    updated = _with_changes(node, name, content, node_type)
    nodes = tuple(updated if n.id == node_id else n for n in graph.nodes)
    _audit(audit, "UPDATE_NODE", {"node_id": node_id})
    return graph.model_copy(update={"nodes": nodes})


def upsert_node(
    graph: KnowledgeGraph,
    *,
    node_id: str | None = None,
    name: str | None = None,
    content: str | None = None,
    node_type: NodeType | None = None,
    parent_id: str | None = None,
    audit: AuditLog | None = None,
) -> tuple[KnowledgeGraph, GraphNode]:
    """
    Update a node by id, or create one under a parent.

    Update (node_id given): refreshes name/content/type and, if parent_id is
    an existing node, moves the node's hierarchical inbound link under
    parent_id. A node with no hierarchical parent, or an unknown parent_id,
    leaves the links unchanged.

    Create (no node_id): requires name and an existing parent_id; mints a
    fresh id and links parent -> node hierarchically.

    Returns:
        (new graph, the updated or created node)

    Raises:
        NodeNotFoundError: Update of an unknown id
        MissingParentError: Create without an existing parent
    """
    if node_id:
        node = graph.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)

        updated = _with_changes(node, name, content, node_type)
        nodes = tuple(updated if n.id == node_id else n for n in graph.nodes)
        links = graph.links
        reparented = False
        if parent_id and graph.has_node(parent_id):
            links, reparented = _retarget_parent(links, node_id, parent_id)

        _audit(audit, "UPDATE_NODE", {
            "node_id": node_id,
            "parent_id": parent_id if reparented else None,
        })
        return graph.model_copy(update={"nodes": nodes, "links": links}), updated

    if not parent_id or not graph.has_node(parent_id):
        raise MissingParentError("Valid parent_node_id is required to create a new node.")
    if not name:
        raise ToolArgumentError("name is required to create a new node.")

    now = utc_now()
    node = GraphNode(
        id=node_id_for(name),
        name=name,
        type=node_type or NodeType.KNOWLEDGE_CONCEPT,
        content=content or "",
        source=NodeSource.AGENT_ACTION,
        created_at=now,
        updated_at=now,
    )
    link = GraphLink(
        source=parent_id,
        target=node.id,
        type=LinkType.HIERARCHICAL,
        strength=HIERARCHICAL_STRENGTH,
    )
    _audit(audit, "CREATE_NODE", {"node_id": node.id, "parent_id": parent_id})
    logger.debug(f"Created node {node.id} under {parent_id}")
    return (
        graph.model_copy(update={"nodes": graph.nodes + (node,), "links": graph.links + (link,)}),
        node,
    )


def create_link(
    graph: KnowledgeGraph,
    source_id: str,
    target_id: str,
    link_type: LinkType,
    *,
    label: str | None = None,
    audit: AuditLog | None = None,
) -> tuple[KnowledgeGraph, GraphLink]:
    """
    Append a directed link. Parallel links are never deduplicated.

    Raises:
        EndpointNotFoundError: Either endpoint does not exist
    """
    if not graph.has_node(source_id) or not graph.has_node(target_id):
        raise EndpointNotFoundError(source_id, target_id)

    link = GraphLink(
        source=source_id,
        target=target_id,
        type=link_type,
        strength=DEFAULT_LINK_STRENGTH,
        label=label,
    )
    _audit(audit, "CREATE_LINK", {
        "source": source_id,
        "target": target_id,
        "type": link.type.value,
    })
    return graph.model_copy(update={"links": graph.links + (link,)}), link


def merge_parent(graph: KnowledgeGraph, merge_ids: list[str]) -> str:
    """
    Parent for a merged node.

    The first merge id (in the given order) whose hierarchical parent lies
    outside the merge set supplies the parent; otherwise the graph root.
    Targets that disagree on their parent are logged.

    Raises:
        MissingParentError: Falling back to a root id that is not in the graph
            or is itself being merged
    """
    merge_set = set(merge_ids)
    parents = [
        parent
        for parent in (graph.hierarchical_parent(node_id) for node_id in merge_ids)
        if parent is not None and parent not in merge_set
    ]
    if parents:
        if len(set(parents)) > 1:
            logger.warning(
                f"Merge targets {merge_ids} have different parents {sorted(set(parents))}; "
                f"using {parents[0]}"
            )
        return parents[0]

    if graph.root_id in merge_set:
        raise MissingParentError(
            f'Merged nodes have no parent outside the merge and root node "{graph.root_id}" is being merged.'
        )
    if not graph.has_node(graph.root_id):
        raise MissingParentError(
            f'Merged nodes have no parent and root node "{graph.root_id}" is not in the graph.'
        )
    return graph.root_id


def merge_nodes(
    graph: KnowledgeGraph,
    node_ids: list[str],
    name: str,
    content: str,
    *,
    audit: AuditLog | None = None,
) -> tuple[KnowledgeGraph, GraphNode]:
    """
    Replace two or more nodes with one abstract-concept node.

    The new node is linked under merge_parent(); the merged nodes and every
    link touching them are removed. All checks run before anything is
    built, so a failure leaves no partial result.

    Raises:
        ToolArgumentError: Fewer than two distinct ids
        NodeNotFoundError: An id does not exist
        MissingParentError: No parent can be determined
    """
    merge_ids = list(dict.fromkeys(node_ids))
    if len(merge_ids) < 2:
        raise ToolArgumentError("At least two distinct node ids are required to merge.")
    for node_id in merge_ids:
        if not graph.has_node(node_id):
            raise NodeNotFoundError(node_id)

    parent_id = merge_parent(graph, merge_ids)
    merge_set = set(merge_ids)

    now = utc_now()
    merged = GraphNode(
        id=prefixed_id("merged"),
        name=name,
        type=NodeType.ABSTRACT_CONCEPT,
        content=content,
        source=NodeSource.SYSTEM_REFINEMENT,
        created_at=now,
        updated_at=now,
    )
    nodes = tuple(n for n in graph.nodes if n.id not in merge_set) + (merged,)
    links = tuple(
        link for link in graph.links
        if link.source not in merge_set and link.target not in merge_set
    ) + (
        GraphLink(
            source=parent_id,
            target=merged.id,
            type=LinkType.HIERARCHICAL,
            strength=DERIVED_STRENGTH,
        ),
    )

    _audit(audit, "MERGE_NODES", {
        "merged_ids": merge_ids,
        "new_node_id": merged.id,
        "parent_id": parent_id,
    })
    logger.debug(f"Merged {merge_ids} into {merged.id} under {parent_id}")
    return graph.model_copy(update={"nodes": nodes, "links": links}), merged


def relink(
    graph: KnowledgeGraph,
    node_id: str,
    new_parent_id: str,
    *,
    audit: AuditLog | None = None,
) -> RelinkOutcome:
    """
    Move a node's hierarchical inbound link under new_parent_id.

    Not fatal when nothing can be done: a node without a hierarchical parent
    or an unknown new parent yields applied=False and the same snapshot.
    """
    if not graph.has_node(new_parent_id):
        return RelinkOutcome(graph, False, f'Parent "{new_parent_id}" not found; {node_id} left in place.')

    links, applied = _retarget_parent(graph.links, node_id, new_parent_id)
    if not applied:
        return RelinkOutcome(graph, False, f"{node_id} has no hierarchical parent to relink.")

    _audit(audit, "RELINK_NODE", {"node_id": node_id, "new_parent_id": new_parent_id})
    return RelinkOutcome(
        graph.model_copy(update={"links": links}),
        True,
        f"Relinked {node_id} under {new_parent_id}",
    )


def append_insight(
    graph: KnowledgeGraph,
    inquiry: str,
    insight: str,
    *,
    audit: AuditLog | None = None,
) -> tuple[KnowledgeGraph, GraphNode]:
    """
    Add a quantum-insight node under the graph root.

    Raises:
        MissingParentError: The root node is not in the graph
    """
    if not graph.has_node(graph.root_id):
        raise MissingParentError(f'Root node "{graph.root_id}" is not in the graph.')

    now = utc_now()
    node = GraphNode(
        id=prefixed_id("insight"),
        name=f"Quantum Insight: {inquiry}",
        type=NodeType.QUANTUM_INSIGHT,
        content=insight,
        source=NodeSource.TRANSCENDENCE,
        created_at=now,
        updated_at=now,
    )
    link = GraphLink(
        source=graph.root_id,
        target=node.id,
        type=LinkType.HIERARCHICAL,
        strength=DERIVED_STRENGTH,
    )
    _audit(audit, "ADD_QUANTUM_INSIGHT", {"node_id": node.id, "parent_id": graph.root_id})
    return (
        graph.model_copy(update={"nodes": graph.nodes + (node,), "links": graph.links + (link,)}),
        node,
    )


def add_file_reference(
    graph: KnowledgeGraph,
    parent_id: str,
    path: str,
    *,
    audit: AuditLog | None = None,
) -> tuple[KnowledgeGraph, GraphNode]:
    """
    Add a file-reference node for a VFS path under parent_id.

    Raises:
        MissingParentError: parent_id does not exist
    """
    if not graph.has_node(parent_id):
        raise MissingParentError(f'Parent node "{parent_id}" not found.')

    _, leaf = split_parent(path)
    filename = leaf or path
    now = utc_now()
    node = GraphNode(
        id=file_node_id_for(filename),
        name=filename,
        type=NodeType.FILE_REFERENCE,
        content=f"Reference to file at path: {path}",
        source=NodeSource.AGENT_ACTION,
        created_at=now,
        updated_at=now,
        linked_file=path,
    )
    link = GraphLink(
        source=parent_id,
        target=node.id,
        type=LinkType.HIERARCHICAL,
        strength=HIERARCHICAL_STRENGTH,
    )
    _audit(audit, "CREATE_FILE_REFERENCE_NODE", {
        "node_id": node.id,
        "parent_id": parent_id,
        "path": path,
    })
    return (
        graph.model_copy(update={"nodes": graph.nodes + (node,), "links": graph.links + (link,)}),
        node,
    )


def remove_node(
    graph: KnowledgeGraph,
    node_id: str,
    *,
    audit: AuditLog | None = None,
) -> KnowledgeGraph:
    """
    Remove a node and every link touching it.

    Raises:
        NodeNotFoundError: node_id does not exist
    """
    if not graph.has_node(node_id):
        raise NodeNotFoundError(node_id)

    nodes = tuple(n for n in graph.nodes if n.id != node_id)
    links = tuple(link for link in graph.links if not link.touches(node_id))
    _audit(audit, "DELETE_NODE", {
        "node_id": node_id,
        "removed_links": len(graph.links) - len(links),
    })
    return graph.model_copy(update={"nodes": nodes, "links": links})
