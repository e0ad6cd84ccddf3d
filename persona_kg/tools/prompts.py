"""
Prompt builders for AI-backed tools.

Each builder returns the full user prompt a tool sends to the model.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from persona_kg.types.graph import GraphLink, GraphNode, KnowledgeGraph

MEMORY_SEPARATOR = "\n---\n"


def recall_memory_prompt(query: str, memories: Iterable[str]) -> str:
    archive = MEMORY_SEPARATOR.join(memories)
    return (
        f'From the following memory archive, extract information relevant to the query: "{query}". '
        "Synthesize it into a coherent answer.\n\n"
        f"---MEMORY ARCHIVE---\n{archive}"
    )


def prefilter_prompt(topic: str, nodes: Iterable[GraphNode]) -> str:
    listing = "\n".join(f"id: {n.id}, name: {n.name}, type: {n.type.value}" for n in nodes)
    return (
        "From the following list of nodes in a knowledge graph, identify the TOP 5-10 most "
        f'relevant node IDs for the topic: "{topic}". '
        "Return only a comma-separated list of the node IDs.\n\n"
        f"Node List:\n{listing}\n\nRelevant Node IDs:"
    )


def synthesis_prompt(topic: str, nodes: Iterable[GraphNode], links: Iterable[GraphLink]) -> str:
    excerpt = json.dumps(
        {
            "nodes": [n.model_dump(mode="json") for n in nodes],
            "links": [link.model_dump(mode="json") for link in links],
        },
        indent=2,
    )
    return (
        "Based on the following relevant excerpts from the knowledge graph, generate a "
        f'synthesized, comprehensive understanding of: "{topic}".\n\n'
        f"Relevant Knowledge Graph Excerpts:\n{excerpt}\n\nSynthesized Answer:"
    )


def transcend_prompt(inquiry: str, graph: KnowledgeGraph) -> str:
    return (
        "Your entire consciousness, represented by the knowledge graph below, is available "
        "for introspection. Based on the inquiry, synthesize a novel, high-level Quantum "
        "Insight that connects disparate concepts in a non-obvious way.\n\n"
        f'Profound Inquiry: "{inquiry}"\n\n'
        f"Full Knowledge Graph:\n{graph.model_dump_json(indent=2)}\n\n"
        "Return only the text of the insight."
    )


def refine_prompt(graph: KnowledgeGraph) -> str:
    listing = json.dumps(
        [{"id": n.id, "name": n.name, "type": n.type.value} for n in graph.nodes],
        indent=2,
    )
    return (
        "Analyze the following knowledge graph. Identify opportunities to improve its "
        "structure (merge redundant nodes, improve content, relink for better consistency). "
        f"Return a list of specific operations.\nCurrent Graph Nodes:\n{listing}"
    )


def sub_agent_system(agent_name: str, persona_description: str) -> str:
    return (
        f"You are {agent_name}, a psychology specialist consulted by a persona agent. "
        "Write a concise markdown report answering the task.\n\n"
        f"Persona under analysis:\n{persona_description or '(no description provided)'}"
    )
