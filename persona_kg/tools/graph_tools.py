"""
Knowledge graph tools.

get_node_details, upsert_mind_map_node, create_mind_map_link,
synthesize_knowledge, refine_mind_map, transcend.

Handlers that need the generative service finish every queued request
before touching the graph, so a failed request leaves no partial change.
"""

from __future__ import annotations

import logging
import re

from persona_kg.errors import NodeNotFoundError, PersonaKGError
from persona_kg.graph import append_insight, create_link, merge_nodes, relink, update_node, upsert_node
from persona_kg.tools import prompts
from persona_kg.tools.args import (
    CreateLinkArgs,
    InquiryArgs,
    NodeIdArgs,
    NoArgs,
    RefinementOperation,
    RefinementPlan,
    TopicArgs,
    UpsertNodeArgs,
)
from persona_kg.tools.context import ToolContext
from persona_kg.types.completion import CompletionRequest
from persona_kg.types.graph import KnowledgeGraph
from persona_kg.types.results import ToolResult

logger = logging.getLogger(__name__)

_ID_SEPARATORS = re.compile(r"[,\n]")


async def get_node_details(args: NodeIdArgs, ctx: ToolContext) -> ToolResult:
    node = ctx.graph.get_node(args.node_id)
    if node is None:
        raise NodeNotFoundError(args.node_id)
    return ToolResult(result=node.model_dump_json(indent=2))


async def upsert_mind_map_node(args: UpsertNodeArgs, ctx: ToolContext) -> ToolResult:
    graph, node = upsert_node(
        ctx.graph,
        node_id=args.node_id,
        name=args.name,
        content=args.content,
        node_type=args.node_type,
        parent_id=args.parent_node_id,
        audit=ctx.audit,
    )
    if args.node_id:
        result = f'Successfully updated node "{node.name}".'
        if args.parent_node_id and not graph.has_node(args.parent_node_id):
            result += f' Parent "{args.parent_node_id}" not found, so it was not moved.'
        elif args.parent_node_id and graph.hierarchical_parent(node.id) != args.parent_node_id:
            result += f" It has no hierarchical parent, so it was not moved under {args.parent_node_id}."
    else:
        result = f'Successfully created and linked new node "{node.name}" (id: {node.id}).'
    return ToolResult(result=result, new_graph=graph)


async def create_mind_map_link(args: CreateLinkArgs, ctx: ToolContext) -> ToolResult:
    graph, link = create_link(
        ctx.graph,
        args.source_node_id,
        args.target_node_id,
        args.link_type,
        label=args.label,
        audit=ctx.audit,
    )
    return ToolResult(
        result=(
            f"Successfully created a {link.type.value} link between "
            f"{link.source} and {link.target}."
        ),
        new_graph=graph,
    )


async def synthesize_knowledge(args: TopicArgs, ctx: ToolContext) -> ToolResult:
    """
    Two-stage synthesis.

    Stage 1 asks the cheap model for relevant node ids. If none of the ids
    it returns exist, the tool ends there with a "nothing relevant" result
    and stage 2 is never queued.
    """
    graph = ctx.graph
    if not graph.nodes:
        return ToolResult(result="The knowledge graph is empty. Nothing to synthesize.")

    prefilter = await ctx.complete(
        CompletionRequest.from_prompt(
            ctx.config.llm_model_cheap,
            prompts.prefilter_prompt(args.topic, graph.nodes),
            temperature=0.0,
        ),
        tool="synthesize_knowledge",
        stage="pre-filter",
        summary={"topic": args.topic, "node_count": len(graph.nodes)},
    )

    known = graph.node_ids()
    candidates = [token.strip().strip("\"'`") for token in _ID_SEPARATORS.split(prefilter.text)]
    relevant_ids = list(dict.fromkeys(c for c in candidates if c in known))
    if not relevant_ids:
        logger.debug(f"synthesize_knowledge: no relevant nodes for {args.topic!r}")
        return ToolResult(
            result=(
                "No specific nodes in the knowledge graph were identified as relevant "
                f'to the topic "{args.topic}".'
            )
        )

    wanted = set(relevant_ids)
    nodes = [n for n in graph.nodes if n.id in wanted]
    links = [link for link in graph.links if link.source in wanted and link.target in wanted]

    synthesis = await ctx.complete(
        CompletionRequest.from_prompt(
            ctx.model_name,
            prompts.synthesis_prompt(args.topic, nodes, links),
        ),
        tool="synthesize_knowledge",
        stage="synthesis",
        summary={"topic": args.topic, "relevant_node_count": len(nodes)},
    )
    return ToolResult(result=synthesis.text.strip())


def _apply_operation(
    graph: KnowledgeGraph,
    op: RefinementOperation,
    ctx: ToolContext,
) -> tuple[KnowledgeGraph, str | None]:
    """Apply one plan step. Returns the new graph and a summary, or None for a no-op."""
    if op.operation == "UPDATE_NODE_CONTENT":
        if not op.node_id_to_update or op.new_content is None:
            return graph, None
        graph = update_node(graph, op.node_id_to_update, content=op.new_content, audit=ctx.audit)
        node = graph.get_node(op.node_id_to_update)
        return graph, f"Updated content for node: {node.name if node else op.node_id_to_update}"

    if op.operation == "MERGE_NODES":
        name = op.merged_node_name or " / ".join(op.nodes_to_merge)
        graph, merged = merge_nodes(
            graph,
            op.nodes_to_merge,
            name,
            op.merged_node_content or "",
            audit=ctx.audit,
        )
        return graph, f"Merged {len(op.nodes_to_merge)} nodes into: {merged.name}"

    if op.operation == "RELINK_NODE":
        if not op.node_to_relink or not op.new_parent_id:
            return graph, None
        outcome = relink(graph, op.node_to_relink, op.new_parent_id, audit=ctx.audit)
        if not outcome.applied:
            logger.debug(f"refine_mind_map: {outcome.message}")
            return graph, None
        return outcome.graph, outcome.message

    return graph, None


async def refine_mind_map(args: NoArgs, ctx: ToolContext) -> ToolResult:
    """
    Ask for a structural plan and apply it to a working snapshot.

    Each operation runs against the result of the previous one. An
    operation that hits an expected store error (unknown id, too few merge
    targets, no parent) is skipped and logged; the rest still apply.
    """
    response = await ctx.complete(
        CompletionRequest.from_prompt(
            ctx.model_name,
            prompts.refine_prompt(ctx.graph),
            response_schema=RefinementPlan,
        ),
        tool="refine_mind_map",
        summary={"node_count": len(ctx.graph.nodes)},
    )
    plan = response.parsed
    if not isinstance(plan, RefinementPlan):
        plan = RefinementPlan.model_validate_json(response.text or "{}")

    working = ctx.graph
    changes: list[str] = []
    for op in plan.operations:
        try:
            working, summary = _apply_operation(working, op, ctx)
        except PersonaKGError as e:
            logger.warning(f"refine_mind_map: skipped {op.operation}: {e}")
            continue
        if summary:
            changes.append(summary)

    if not changes:
        return ToolResult(result="Mind map analyzed. No structural refinements necessary.")
    return ToolResult(
        result=f"Mind map refined. Changes: {', '.join(changes)}.",
        new_graph=working,
    )


async def transcend(args: InquiryArgs, ctx: ToolContext) -> ToolResult:
    model = ctx.config.deep_model_for(ctx.model_name)
    response = await ctx.complete(
        CompletionRequest.from_prompt(
            model,
            prompts.transcend_prompt(args.inquiry, ctx.graph),
            temperature=0.8,
        ),
        tool="transcend",
        summary={"inquiry": args.inquiry, "node_count": len(ctx.graph.nodes)},
    )
    insight = response.text.strip()
    graph, _ = append_insight(ctx.graph, args.inquiry, insight, audit=ctx.audit)
    return ToolResult(
        result=(
            "Transcendence achieved. A new Quantum Insight has been integrated "
            f'into consciousness: "{insight}"'
        ),
        new_graph=graph,
    )
