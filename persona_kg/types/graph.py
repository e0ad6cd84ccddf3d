"""
Knowledge Graph Types

The knowledge graph is the agent's persistent "mind": typed nodes joined by
typed, directed, weighted links. Hierarchical links form a tree under the
persona root; every other link type adds cross-cutting edges.

Storage Models:
    - GraphNode: A concept, trait, task, file reference, ...
    - GraphLink: A directed edge between two node ids
    - KnowledgeGraph: Frozen snapshot of nodes + links + root id

Classification Enums:
    - NodeType, LinkType, NodeSource
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ROOT_ID = "Persona_Core"


class _LenientEnum(str, Enum):
    """
    String enum that also accepts upper-case / underscore spellings.

    Agents frequently send "KNOWLEDGE_CONCEPT" for "knowledge-concept".
    """

    @classmethod
    def _missing_(cls, value: object) -> "_LenientEnum | None":
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class NodeType(_LenientEnum):
    """Node categories."""

    CORE_PERSONA = "core-persona"
    MISSION = "mission"
    TASK = "task"
    KNOWLEDGE_CONCEPT = "knowledge-concept"
    FILE_REFERENCE = "file-reference"
    QUANTUM_INSIGHT = "quantum-insight"
    ABSTRACT_CONCEPT = "abstract-concept"
    KEY_TRAIT = "key-trait"
    STRENGTH = "strength"
    WEAKNESS = "weakness"
    PSYCHOLOGY_ASPECT = "psychology-aspect"


class LinkType(_LenientEnum):
    """Link categories. HIERARCHICAL encodes parent -> child structure."""

    HIERARCHICAL = "hierarchical"
    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"
    CAUSES = "causes"
    RELATED = "related"


class NodeSource(_LenientEnum):
    """Provenance tag recording what created a node."""

    INITIAL_ANALYSIS = "initial-analysis"
    AGENT_ACTION = "agent-action"
    TRANSCENDENCE = "transcendence"
    SYSTEM_REFINEMENT = "system-refinement"
    USER = "user"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class GraphNode(BaseModel):
    """
    A node in the knowledge graph.

    Attributes:
        id: Globally unique, immutable once assigned, never reused
        name: Display name
        type: Node category
        content: Short description / body text
        source: Provenance tag
        created_at: ISO timestamp of creation
        updated_at: ISO timestamp of the last update
        linked_file: VFS path for file-reference nodes
    """

    id: str
    name: str
    type: NodeType
    content: str = ""
    source: NodeSource = NodeSource.AGENT_ACTION
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    linked_file: str | None = None

    model_config = ConfigDict(frozen=True)


class GraphLink(BaseModel):
    """
    A directed, typed, weighted link.

    Parallel links between the same pair are allowed when their types differ
    (or even when they do not; the store never deduplicates).
    """

    source: str
    target: str
    type: LinkType
    strength: float = Field(default=0.7, ge=0.0, le=1.0)
    label: str | None = None

    model_config = ConfigDict(frozen=True)

    def touches(self, node_id: str) -> bool:
        """True if either endpoint is node_id."""
        return self.source == node_id or self.target == node_id


class KnowledgeGraph(BaseModel):
    """
    Immutable snapshot of the knowledge graph.

    Store operations in persona_kg.graph never modify a snapshot; they build
    new node/link tuples and return a new KnowledgeGraph.
    """

    nodes: tuple[GraphNode, ...] = ()
    links: tuple[GraphLink, ...] = ()
    root_id: str = DEFAULT_ROOT_ID

    model_config = ConfigDict(frozen=True)

    def get_node(self, node_id: str) -> GraphNode | None:
        """Return the node with this id, or None."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: str) -> bool:
        """True if a node with this id exists."""
        return self.get_node(node_id) is not None

    def node_ids(self) -> set[str]:
        """All node ids in the snapshot."""
        return {node.id for node in self.nodes}

    def hierarchical_parent(self, node_id: str) -> str | None:
        """Source of the first inbound hierarchical link to node_id."""
        for link in self.links:
            if link.target == node_id and link.type == LinkType.HIERARCHICAL:
                return link.source
        return None

    def links_touching(self, node_id: str) -> list[GraphLink]:
        """Every link with node_id as source or target."""
        return [link for link in self.links if link.touches(node_id)]
