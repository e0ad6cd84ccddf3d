"""Shared fixtures: a scripted provider, a fresh audit log, and small snapshots."""

from __future__ import annotations

from typing import Any

import pytest

from persona_kg.audit import AuditLog
from persona_kg.providers.base import LLMProvider
from persona_kg.types.completion import CompletionRequest, CompletionResponse
from persona_kg.types.graph import (
    GraphLink,
    GraphNode,
    KnowledgeGraph,
    LinkType,
    NodeSource,
    NodeType,
)
from persona_kg.types.vfs import VFSFile, VFSFolder


class FakeLLMProvider(LLMProvider):
    """
    Provider that replays scripted responses in order.

    Items may be a CompletionResponse, a plain string (text response), an
    exception (raised), or an async callable taking the request. When the
    script runs out, an empty response is returned.
    """

    def __init__(self, script: list[Any] | None = None, model: str = "fake-model") -> None:
        self.script: list[Any] = list(script or [])
        self.requests: list[CompletionRequest] = []
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if not self.script:
            return CompletionResponse()
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return await item(request)
        if isinstance(item, str):
            return CompletionResponse(text=item)
        return item


def make_node(node_id: str, name: str | None = None, node_type: NodeType = NodeType.KNOWLEDGE_CONCEPT) -> GraphNode:
    return GraphNode(
        id=node_id,
        name=name or node_id,
        type=node_type,
        content=f"About {name or node_id}",
        source=NodeSource.INITIAL_ANALYSIS,
    )


def hierarchical(source: str, target: str) -> GraphLink:
    return GraphLink(source=source, target=target, type=LinkType.HIERARCHICAL, strength=0.9)


@pytest.fixture
def audit() -> AuditLog:
    return AuditLog()


@pytest.fixture
def root_graph() -> KnowledgeGraph:
    """Root only."""
    return KnowledgeGraph(
        nodes=(make_node("Persona_Core", "Persona Core", NodeType.CORE_PERSONA),),
        root_id="Persona_Core",
    )


@pytest.fixture
def graph() -> KnowledgeGraph:
    """
    Persona_Core
    ├── traits
    │   ├── curiosity
    │   └── patience
    └── stoicism
    plus curiosity -supports-> stoicism
    """
    return KnowledgeGraph(
        nodes=(
            make_node("Persona_Core", "Persona Core", NodeType.CORE_PERSONA),
            make_node("traits", "Traits", NodeType.PSYCHOLOGY_ASPECT),
            make_node("curiosity", "Curiosity", NodeType.KEY_TRAIT),
            make_node("patience", "Patience", NodeType.KEY_TRAIT),
            make_node("stoicism", "Stoicism"),
        ),
        links=(
            hierarchical("Persona_Core", "traits"),
            hierarchical("traits", "curiosity"),
            hierarchical("traits", "patience"),
            hierarchical("Persona_Core", "stoicism"),
            GraphLink(source="curiosity", target="stoicism", type=LinkType.SUPPORTS, strength=0.7),
        ),
        root_id="Persona_Core",
    )


@pytest.fixture
def vfs() -> VFSFolder:
    """/notes/todo.txt, /scripts/ok.py, /scripts/broken.py"""
    return VFSFolder(children={
        "notes": VFSFolder(children={"todo.txt": VFSFile(content="read more")}),
        "scripts": VFSFolder(children={
            "ok.py": VFSFile(content="def f(x):\n    return (x + 1)\n"),
            "broken.py": VFSFile(content="def f(x:\n    return x\n"),
        }),
    })
