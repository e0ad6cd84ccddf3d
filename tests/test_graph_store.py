"""Tests for the copy-on-write knowledge graph store."""

import logging

import pytest

from persona_kg.errors import (
    EndpointNotFoundError,
    MissingParentError,
    NodeNotFoundError,
    ToolArgumentError,
)
from persona_kg.graph import (
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
from persona_kg.graph.ids import file_node_id_for, next_stamp, node_id_for, slugify
from persona_kg.graph.store import DERIVED_STRENGTH, HIERARCHICAL_STRENGTH
from persona_kg.types.graph import KnowledgeGraph, LinkType, NodeSource, NodeType
from persona_kg.types.results import AuditDomain

from conftest import hierarchical, make_node


class TestIds:
    """Id minting."""

    def test_stamps_strictly_increase(self):
        stamps = [next_stamp() for _ in range(50)]
        assert stamps == sorted(set(stamps))

    def test_node_ids_are_distinct_within_a_millisecond(self):
        ids = {node_id_for("Same Name") for _ in range(20)}
        assert len(ids) == 20

    def test_slug(self):
        assert slugify("Hello, World!") == "Hello__World_"
        assert len(slugify("x" * 40)) == 20
        assert node_id_for("New Idea").startswith("New_Idea_")

    def test_file_node_id(self):
        assert file_node_id_for("notes.md").startswith("file_notes_md_")


class TestUpsertNode:
    """Create and update paths."""

    def test_create_under_parent(self, graph, audit):
        new_graph, node = upsert_node(
            graph, name="New Idea", content="c", parent_id="traits", audit=audit
        )

        assert node.id.startswith("New_Idea_")
        assert node.type == NodeType.KNOWLEDGE_CONCEPT
        assert node.source == NodeSource.AGENT_ACTION
        assert new_graph.hierarchical_parent(node.id) == "traits"
        link = new_graph.links[-1]
        assert link.type == LinkType.HIERARCHICAL
        assert link.strength == HIERARCHICAL_STRENGTH
        assert len(new_graph.nodes) == len(graph.nodes) + 1
        assert not graph.has_node(node.id)

    def test_create_without_parent_fails(self, graph, audit):
        with pytest.raises(MissingParentError, match="Valid parent_node_id is required"):
            upsert_node(graph, name="X", audit=audit)
        with pytest.raises(MissingParentError):
            upsert_node(graph, name="X", parent_id="ghost", audit=audit)
        assert audit.events() == []

    def test_create_without_name_fails(self, graph, audit):
        with pytest.raises(ToolArgumentError):
            upsert_node(graph, parent_id="traits", audit=audit)

    def test_update_keeps_unset_fields(self, graph, audit):
        new_graph, node = upsert_node(graph, node_id="curiosity", content="Very curious", audit=audit)

        assert node.name == "Curiosity"
        assert node.content == "Very curious"
        assert node.type == NodeType.KEY_TRAIT
        assert new_graph.get_node("curiosity").content == "Very curious"
        assert graph.get_node("curiosity").content == "About Curiosity"

    def test_update_with_parent_moves_node(self, graph, audit):
        new_graph, _ = upsert_node(graph, node_id="patience", parent_id="stoicism", audit=audit)
        assert new_graph.hierarchical_parent("patience") == "stoicism"
        assert graph.hierarchical_parent("patience") == "traits"

    def test_update_with_unknown_parent_keeps_links(self, graph, audit):
        new_graph, _ = upsert_node(graph, node_id="patience", parent_id="ghost", audit=audit)
        assert new_graph.links == graph.links
        assert new_graph.hierarchical_parent("patience") == "traits"
        assert audit.events()[0].details["parent_id"] is None

    def test_update_unknown_node_fails(self, graph, audit):
        with pytest.raises(NodeNotFoundError, match='Node with ID "ghost" not found.'):
            upsert_node(graph, node_id="ghost", name="x", audit=audit)

    def test_update_node_helper(self, graph, audit):
        new_graph = update_node(graph, "stoicism", node_type=NodeType.STRENGTH, audit=audit)
        assert new_graph.get_node("stoicism").type == NodeType.STRENGTH
        assert [e.action for e in audit.events()] == ["UPDATE_NODE"]

    def test_each_mutation_emits_one_event(self, graph, audit):
        upsert_node(graph, name="A", parent_id="Persona_Core", audit=audit)
        upsert_node(graph, node_id="traits", name="Traits!", audit=audit)
        events = audit.events(AuditDomain.GRAPH)
        assert [e.action for e in events] == ["CREATE_NODE", "UPDATE_NODE"]


class TestCreateLink:
    """Links between existing nodes."""

    def test_create_link(self, graph, audit):
        new_graph, link = create_link(graph, "patience", "stoicism", LinkType.SUPPORTS, audit=audit)
        assert link in new_graph.links
        assert link.strength == 0.7
        assert len(graph.links) == 5

    def test_parallel_links_are_kept(self, graph, audit):
        g1, _ = create_link(graph, "curiosity", "stoicism", LinkType.SUPPORTS, audit=audit)
        supports = [link for link in g1.links if link.type == LinkType.SUPPORTS]
        assert len(supports) == 2

    def test_missing_endpoint_fails(self, graph, audit):
        with pytest.raises(EndpointNotFoundError):
            create_link(graph, "curiosity", "ghost", LinkType.RELATED, audit=audit)
        assert audit.events() == []


class TestMergeNodes:
    """Merge replaces nodes with one abstract concept."""

    def test_merge_siblings(self, graph, audit):
        new_graph, merged = merge_nodes(
            graph, ["curiosity", "patience"], "Temperament", "Both traits", audit=audit
        )

        ids = new_graph.node_ids()
        assert "curiosity" not in ids and "patience" not in ids
        assert merged.id.startswith("merged_")
        assert merged.type == NodeType.ABSTRACT_CONCEPT
        assert merged.source == NodeSource.SYSTEM_REFINEMENT
        assert new_graph.hierarchical_parent(merged.id) == "traits"
        assert not any(link.touches("curiosity") or link.touches("patience") for link in new_graph.links)
        assert new_graph.links[-1].strength == DERIVED_STRENGTH
        assert [e.action for e in audit.events()] == ["MERGE_NODES"]

    def test_parent_outside_merge_set_wins(self, graph):
        # traits is the parent of curiosity, but traits itself is merged
        assert merge_parent(graph, ["traits", "curiosity"]) == "Persona_Core"

    def test_first_parent_wins_on_disagreement(self, graph, caplog):
        with caplog.at_level(logging.WARNING, logger="persona_kg.graph.store"):
            assert merge_parent(graph, ["stoicism", "curiosity"]) == "Persona_Core"
            assert merge_parent(graph, ["curiosity", "stoicism"]) == "traits"
        assert "different parents" in caplog.text

    def test_root_fallback(self, audit):
        graph = KnowledgeGraph(
            nodes=(make_node("Persona_Core"), make_node("a"), make_node("b")),
            root_id="Persona_Core",
        )
        new_graph, merged = merge_nodes(graph, ["a", "b"], "AB", "", audit=audit)
        assert new_graph.hierarchical_parent(merged.id) == "Persona_Core"

    def test_no_parent_and_no_root_fails(self, audit):
        graph = KnowledgeGraph(nodes=(make_node("a"), make_node("b")), root_id="Persona_Core")
        with pytest.raises(MissingParentError):
            merge_nodes(graph, ["a", "b"], "AB", "", audit=audit)
        assert audit.events() == []

    def test_merging_the_root_without_outside_parent_fails(self, graph, audit):
        with pytest.raises(MissingParentError, match="is being merged"):
            merge_nodes(graph, ["Persona_Core", "traits"], "m", "c", audit=audit)
        assert audit.events() == []

    def test_merging_the_root_with_outside_parent_leaves_no_dangling_links(self, graph, audit):
        new_graph, merged = merge_nodes(graph, ["Persona_Core", "curiosity"], "m", "c", audit=audit)

        ids = new_graph.node_ids()
        assert "Persona_Core" not in ids
        assert new_graph.hierarchical_parent(merged.id) == "traits"
        assert all(link.source in ids and link.target in ids for link in new_graph.links)

    def test_needs_two_distinct_ids(self, graph, audit):
        with pytest.raises(ToolArgumentError):
            merge_nodes(graph, ["curiosity", "curiosity"], "x", "y", audit=audit)

    def test_unknown_id_fails_without_partial_result(self, graph, audit):
        with pytest.raises(NodeNotFoundError):
            merge_nodes(graph, ["curiosity", "ghost"], "x", "y", audit=audit)
        assert audit.events() == []


class TestRelink:
    """relink moves hierarchical parents or reports a no-op."""

    def test_relink(self, graph, audit):
        outcome = relink(graph, "stoicism", "traits", audit=audit)
        assert outcome.applied
        assert outcome.graph.hierarchical_parent("stoicism") == "traits"
        assert [e.action for e in audit.events()] == ["RELINK_NODE"]

    def test_unknown_parent_is_a_noop(self, graph, audit):
        outcome = relink(graph, "stoicism", "ghost", audit=audit)
        assert not outcome.applied
        assert outcome.graph is graph
        assert audit.events() == []

    def test_node_without_parent_is_a_noop(self, graph, audit):
        outcome = relink(graph, "Persona_Core", "traits", audit=audit)
        assert not outcome.applied
        assert "no hierarchical parent" in outcome.message


class TestDerivedNodes:
    """Insights and file references."""

    def test_append_insight_under_root(self, graph, audit):
        new_graph, node = append_insight(graph, "What is time?", "Time is change.", audit=audit)
        assert node.name == "Quantum Insight: What is time?"
        assert node.type == NodeType.QUANTUM_INSIGHT
        assert node.source == NodeSource.TRANSCENDENCE
        assert node.id.startswith("insight_")
        assert new_graph.hierarchical_parent(node.id) == "Persona_Core"
        assert [e.action for e in audit.events()] == ["ADD_QUANTUM_INSIGHT"]

    def test_append_insight_without_root_fails(self, audit):
        with pytest.raises(MissingParentError):
            append_insight(KnowledgeGraph(root_id="Persona_Core"), "q", "a", audit=audit)

    def test_add_file_reference(self, graph, audit):
        new_graph, node = add_file_reference(graph, "traits", "/notes/plan.md", audit=audit)
        assert node.type == NodeType.FILE_REFERENCE
        assert node.name == "plan.md"
        assert node.linked_file == "/notes/plan.md"
        assert node.content == "Reference to file at path: /notes/plan.md"
        assert new_graph.hierarchical_parent(node.id) == "traits"

    def test_add_file_reference_unknown_parent(self, graph, audit):
        with pytest.raises(MissingParentError):
            add_file_reference(graph, "ghost", "/a.txt", audit=audit)


class TestRemoveNode:
    """remove_node drops the node and every touching link."""

    def test_remove(self, graph, audit):
        new_graph = remove_node(graph, "stoicism", audit=audit)
        assert not new_graph.has_node("stoicism")
        assert not any(link.touches("stoicism") for link in new_graph.links)
        assert audit.events()[0].details["removed_links"] == 2

    def test_remove_unknown(self, graph, audit):
        with pytest.raises(NodeNotFoundError):
            remove_node(graph, "ghost", audit=audit)


class TestSnapshotInvariants:
    """Every link endpoint stays in the node set."""

    def test_endpoints_after_mixed_operations(self, graph, audit):
        g, node = upsert_node(graph, name="Focus", parent_id="traits", audit=audit)
        g, _ = create_link(g, node.id, "stoicism", LinkType.CAUSES, audit=audit)
        g, _ = merge_nodes(g, [node.id, "patience"], "Discipline", "", audit=audit)
        g = remove_node(g, "stoicism", audit=audit)

        ids = g.node_ids()
        assert all(link.source in ids and link.target in ids for link in g.links)

    def test_hierarchical_helper(self):
        graph = KnowledgeGraph(
            nodes=(make_node("r"), make_node("c")),
            links=(hierarchical("r", "c"),),
            root_id="r",
        )
        assert graph.hierarchical_parent("c") == "r"
        assert graph.hierarchical_parent("r") is None

    @pytest.mark.parametrize(
        "operation",
        [
            lambda g, a: upsert_node(g, name="New", parent_id="traits", audit=a),
            lambda g, a: upsert_node(g, node_id="patience", content="x", parent_id="stoicism", audit=a),
            lambda g, a: create_link(g, "patience", "stoicism", LinkType.CAUSES, audit=a),
            lambda g, a: merge_nodes(g, ["curiosity", "patience"], "m", "c", audit=a),
            lambda g, a: relink(g, "stoicism", "traits", audit=a),
            lambda g, a: append_insight(g, "q", "a", audit=a),
            lambda g, a: add_file_reference(g, "traits", "/a.txt", audit=a),
            lambda g, a: remove_node(g, "traits", audit=a),
        ],
        ids=[
            "create", "update", "link", "merge", "relink", "insight", "file_reference", "remove",
        ],
    )
    def test_input_snapshot_is_unchanged(self, graph, audit, operation):
        before = graph.model_dump_json()
        operation(graph, audit)
        assert graph.model_dump_json() == before
        assert len(audit.events()) == 1
