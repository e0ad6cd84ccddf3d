"""Tests for the ToolDispatcher and the tool handlers it runs."""

import json
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from persona_kg.config import AgentConfig
from persona_kg.errors import UnknownToolError
from persona_kg.queue import RequestQueue
from persona_kg.tools import ToolDispatcher, tool_declarations
from persona_kg.tools.args import RefinementOperation, RefinementPlan
from persona_kg.tools.dispatcher import truncate
from persona_kg.tools.registry import TOOLS, get_tool
from persona_kg.types.chat import ChatImage, ChatMessage
from persona_kg.types.completion import CompletionResponse, InlineData
from persona_kg.types.graph import LinkType, NodeType
from persona_kg.types.results import AuditDomain, MissionTaskStatus, RequestStatus, ToolCall, ToolCallState
from persona_kg.vfs import lookup, read_file

from conftest import FakeLLMProvider


@pytest.fixture
def config():
    return AgentConfig(llm_provider="google", llm_model="agent-model", llm_model_deep="deep-model")


def make_dispatcher(config, audit, script=None, **kwargs):
    provider = FakeLLMProvider(script)
    queue = RequestQueue(provider)
    dispatcher = ToolDispatcher(queue=queue, config=config, audit=audit, **kwargs)
    return dispatcher, provider, queue


def agent_events(audit):
    return audit.events(AuditDomain.AGENT_ACTION)


class TestRegistry:
    """The closed tool set."""

    def test_fifteen_tools(self):
        assert len(TOOLS) == 15
        assert get_tool("transcend").uses_queue
        assert not get_tool("run_terminal_command").uses_queue

    def test_unknown_name(self):
        with pytest.raises(UnknownToolError):
            get_tool("fly")

    def test_declarations_are_flat(self):
        declarations = tool_declarations()
        assert [d["name"] for d in declarations] == list(TOOLS)
        text = json.dumps(declarations)
        assert "$ref" not in text
        assert "$defs" not in text
        assert "anyOf" not in text

        upsert = next(d for d in declarations if d["name"] == "upsert_mind_map_node")
        node_type = upsert["parameters"]["properties"]["node_type"]
        assert "knowledge-concept" in node_type["enum"]
        assert node_type["description"] == "Node category"

        link = next(d for d in declarations if d["name"] == "create_mind_map_link")
        assert set(link["parameters"]["required"]) == {"source_node_id", "target_node_id", "link_type"}


class TestDispatchContract:
    """Unknown tools, failures, and audit accounting."""

    @pytest.mark.asyncio
    async def test_unknown_tool_is_a_message(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool({"name": "fly", "args": {}}, graph=graph, vfs=vfs)

        assert result.result == "Unknown tool: fly"
        assert result.state == ToolCallState.SUCCEEDED
        assert result.new_graph is None and result.new_vfs is None
        assert len(agent_events(audit)) == 1

    @pytest.mark.asyncio
    async def test_null_args_are_treated_as_empty(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "save_chat_history", "args": None}, graph=graph, vfs=vfs
        )

        assert result.state == ToolCallState.SUCCEEDED
        assert result.result == "Chat history is empty. Nothing to save."
        assert len(agent_events(audit)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            {"name": "save_chat_history", "args": "oops"},
            {"args": {}},
            {"name": 42},
        ],
    )
    async def test_malformed_call_becomes_failed_result(self, config, audit, graph, vfs, call):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(call, graph=graph, vfs=vfs)

        assert result.failed
        assert "Invalid tool call" in result.result
        assert result.new_graph is None and result.new_vfs is None
        events = agent_events(audit)
        assert len(events) == 1
        assert events[0].details["outcome"] == "failed"

    @pytest.mark.asyncio
    async def test_handler_error_becomes_failed_result(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            ToolCall(name="create_mind_map_link", args={
                "source_node_id": "missing",
                "target_node_id": "Persona_Core",
                "link_type": "related",
            }),
            graph=graph,
            vfs=vfs,
        )

        assert result.failed
        assert result.result.startswith('Tool "create_mind_map_link" failed to execute. Error: ')
        assert result.new_graph is None
        assert result.terminal_output[0].type == "error"
        assert audit.events(AuditDomain.GRAPH) == []

        (event,) = agent_events(audit)
        assert event.action == "create_mind_map_link"
        assert event.details["outcome"] == "failed"
        assert event.details["result"].startswith("FAILED: ")

    @pytest.mark.asyncio
    async def test_invalid_args_fail(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "Invalid arguments for get_node_details: node_id" in result.result

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, config, audit, graph, vfs):
        broken = AsyncMock(side_effect=KeyError("boom"))
        tools = {**TOOLS, "commit_changes": replace(TOOLS["commit_changes"], handler=broken)}
        dispatcher = ToolDispatcher(config=config, audit=audit, tools=tools)

        result = await dispatcher.execute_tool(
            {"name": "commit_changes", "args": {"commit_message": "wip"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "boom" in result.result
        assert len(agent_events(audit)) == 1

    @pytest.mark.asyncio
    async def test_success_audit_truncates_result(self, audit, graph, vfs):
        config = AgentConfig(llm_provider="google", audit_result_max_chars=10)
        dispatcher, _, _ = make_dispatcher(config, audit)
        await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {"node_id": "curiosity"}}, graph=graph, vfs=vfs
        )
        (event,) = agent_events(audit)
        assert event.details["outcome"] == "succeeded"
        assert event.details["result"].endswith("more chars]")
        assert event.details["args"] == {"node_id": "curiosity"}

    def test_truncate(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdefgh", 3) == "abc... [5 more chars]"


class TestGraphTools:
    """Graph tools commit nothing themselves; they return new snapshots."""

    @pytest.mark.asyncio
    async def test_get_node_details(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {"node_id": "stoicism"}}, graph=graph, vfs=vfs
        )
        assert json.loads(result.result)["name"] == "Stoicism"

    @pytest.mark.asyncio
    async def test_get_missing_node_fails(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {"node_id": "ghost"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert 'Node with ID "ghost" not found.' in result.result

    @pytest.mark.asyncio
    async def test_upsert_create_twice_same_name(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        args = {"name": "X", "parent_node_id": "Persona_Core", "node_type": "KNOWLEDGE_CONCEPT"}

        first = await dispatcher.execute_tool(
            {"name": "upsert_mind_map_node", "args": args}, graph=graph, vfs=vfs
        )
        second = await dispatcher.execute_tool(
            {"name": "upsert_mind_map_node", "args": args}, graph=first.new_graph, vfs=vfs
        )

        created = [n for n in second.new_graph.nodes if n.name == "X"]
        assert len(created) == 2
        assert created[0].id != created[1].id
        for node in created:
            assert second.new_graph.hierarchical_parent(node.id) == "Persona_Core"
        assert first.result.startswith('Successfully created and linked new node "X"')

    @pytest.mark.asyncio
    async def test_upsert_create_without_parent_fails(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "upsert_mind_map_node", "args": {"name": "Orphan"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "Valid parent_node_id is required to create a new node." in result.result

    @pytest.mark.asyncio
    async def test_upsert_update(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "upsert_mind_map_node", "args": {"node_id": "stoicism", "content": "Calm"}},
            graph=graph,
            vfs=vfs,
        )
        assert result.result == 'Successfully updated node "Stoicism".'
        assert result.new_graph.get_node("stoicism").content == "Calm"

    @pytest.mark.asyncio
    async def test_upsert_update_with_unknown_parent_is_not_moved(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "upsert_mind_map_node", "args": {"node_id": "patience", "parent_node_id": "ghost"}},
            graph=graph,
            vfs=vfs,
        )
        assert result.result == 'Successfully updated node "Patience". Parent "ghost" not found, so it was not moved.'
        assert result.new_graph.hierarchical_parent("patience") == "traits"

    @pytest.mark.asyncio
    async def test_create_link_missing_endpoint_leaves_graph(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        before = graph.model_dump_json()
        result = await dispatcher.execute_tool(
            {"name": "create_mind_map_link", "args": {
                "source_node_id": "missing", "target_node_id": "Persona_Core", "link_type": "related",
            }},
            graph=graph,
            vfs=vfs,
        )
        assert result.failed
        assert "Both source and target nodes must exist" in result.result
        assert graph.model_dump_json() == before

    @pytest.mark.asyncio
    async def test_create_link(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "create_mind_map_link", "args": {
                "source_node_id": "patience", "target_node_id": "stoicism", "link_type": "CAUSES",
            }},
            graph=graph,
            vfs=vfs,
        )
        assert result.new_graph.links[-1].type == LinkType.CAUSES


class TestSynthesizeKnowledge:
    """Two-stage synthesis through the queue."""

    @pytest.mark.asyncio
    async def test_two_stages(self, config, audit, graph, vfs):
        dispatcher, provider, queue = make_dispatcher(
            config, audit, ["curiosity, 'stoicism'\nghost", "Curiosity feeds calm."]
        )
        result = await dispatcher.execute_tool(
            {"name": "synthesize_knowledge", "args": {"topic": "calm"}}, graph=graph, vfs=vfs
        )

        assert result.result == "Curiosity feeds calm."
        prefilter, synthesis = provider.requests
        assert prefilter.model == config.llm_model_cheap
        assert prefilter.config.temperature == 0.0
        assert synthesis.model == "agent-model"
        assert '"id": "curiosity"' in synthesis.prompt_text()
        assert '"id": "patience"' not in synthesis.prompt_text()
        assert [r.agent_label for r in queue.records()] == [
            "Persona Agent (Tool: synthesize_knowledge/pre-filter)",
            "Persona Agent (Tool: synthesize_knowledge/synthesis)",
        ]

    @pytest.mark.asyncio
    async def test_no_relevant_ids_stops_after_prefilter(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit, ["nothing, here"])
        result = await dispatcher.execute_tool(
            {"name": "synthesize_knowledge", "args": {"topic": "quantum"}}, graph=graph, vfs=vfs
        )
        assert len(provider.requests) == 1
        assert result.result == (
            'No specific nodes in the knowledge graph were identified as relevant to the topic "quantum".'
        )
        assert not result.failed

    @pytest.mark.asyncio
    async def test_upstream_failure(self, config, audit, graph, vfs):
        dispatcher, _, queue = make_dispatcher(config, audit, [RuntimeError("overloaded")])
        result = await dispatcher.execute_tool(
            {"name": "synthesize_knowledge", "args": {"topic": "calm"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "overloaded" in result.result
        assert queue.records()[0].status == RequestStatus.FAILED


class TestRefineMindMap:
    """Structured refinement plans."""

    @pytest.mark.asyncio
    async def test_applies_operations_in_order(self, config, audit, graph, vfs):
        plan = RefinementPlan(operations=[
            RefinementOperation(operation="UPDATE_NODE_CONTENT", node_id_to_update="stoicism", new_content="Calm"),
            RefinementOperation(
                operation="MERGE_NODES",
                nodes_to_merge=["curiosity", "patience"],
                merged_node_name="Temperament",
                merged_node_content="merged",
            ),
            RefinementOperation(operation="RELINK_NODE", node_to_relink="stoicism", new_parent_id="traits"),
        ])
        dispatcher, provider, _ = make_dispatcher(config, audit, [CompletionResponse(parsed=plan)])

        result = await dispatcher.execute_tool(
            {"name": "refine_mind_map", "args": {}}, graph=graph, vfs=vfs
        )

        assert provider.requests[0].config.response_schema is RefinementPlan
        assert result.result == (
            "Mind map refined. Changes: Updated content for node: Stoicism, "
            "Merged 2 nodes into: Temperament, Relinked stoicism under traits."
        )
        new_graph = result.new_graph
        assert new_graph.get_node("stoicism").content == "Calm"
        assert new_graph.hierarchical_parent("stoicism") == "traits"
        merged = [n for n in new_graph.nodes if n.type == NodeType.ABSTRACT_CONCEPT]
        assert len(merged) == 1

    @pytest.mark.asyncio
    async def test_bad_operations_are_skipped(self, config, audit, graph, vfs):
        plan = {"operations": [
            {"operation": "MERGE_NODES", "nodes_to_merge": ["ghost", "curiosity"]},
            {"operation": "RELINK_NODE", "node_to_relink": "stoicism", "new_parent_id": "nowhere"},
            {"operation": "UPDATE_NODE_CONTENT", "node_id_to_update": "patience", "new_content": "Waits"},
        ]}
        dispatcher, _, _ = make_dispatcher(config, audit, [json.dumps(plan)])

        result = await dispatcher.execute_tool(
            {"name": "refine_mind_map", "args": {}}, graph=graph, vfs=vfs
        )
        assert result.result == "Mind map refined. Changes: Updated content for node: Patience."
        assert result.new_graph.has_node("curiosity")

    @pytest.mark.asyncio
    async def test_empty_plan(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit, ['{"operations": []}'])
        result = await dispatcher.execute_tool(
            {"name": "refine_mind_map", "args": {}}, graph=graph, vfs=vfs
        )
        assert result.result == "Mind map analyzed. No structural refinements necessary."
        assert result.new_graph is None


class TestTranscend:
    """Insights are appended under the root."""

    @pytest.mark.asyncio
    async def test_default_model_escalates_to_deep_model(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit, ["  All is one.  "])
        result = await dispatcher.execute_tool(
            {"name": "transcend", "args": {"inquiry": "Why?"}}, graph=graph, vfs=vfs
        )

        request = provider.requests[0]
        assert request.model == "deep-model"
        assert request.config.temperature == 0.8
        assert result.result.endswith('"All is one."')
        insight = result.new_graph.nodes[-1]
        assert insight.name == "Quantum Insight: Why?"
        assert insight.content == "All is one."

    @pytest.mark.asyncio
    async def test_other_model_is_kept(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit, ["x"])
        await dispatcher.execute_tool(
            {"name": "transcend", "args": {"inquiry": "Why?"}},
            graph=graph,
            vfs=vfs,
            model_name="custom-model",
        )
        assert provider.requests[0].model == "custom-model"

    @pytest.mark.asyncio
    async def test_failure_leaves_graph_alone(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit, [RuntimeError("down")])
        result = await dispatcher.execute_tool(
            {"name": "transcend", "args": {"inquiry": "Why?"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert result.new_graph is None
        assert audit.events(AuditDomain.GRAPH) == []


class TestGenerativeTools:
    """Web search, memory, images, sub-agents."""

    @pytest.mark.asyncio
    async def test_search_the_web(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit, ["Results here"])
        result = await dispatcher.execute_tool(
            {"name": "search_the_web", "args": {"query": "stoic authors"}}, graph=graph, vfs=vfs
        )
        assert provider.requests[0].config.web_search
        assert result.result == 'Web search results for "stoic authors":\n\nResults here'

    @pytest.mark.asyncio
    async def test_recall_memory_empty_archive(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "recall_memory", "args": {"query": "q"}}, graph=graph, vfs=vfs
        )
        assert result.result == "Memory archive is empty."
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_recall_memory(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit, ["You like tea."])
        result = await dispatcher.execute_tool(
            {"name": "recall_memory", "args": {"query": "drinks"}},
            graph=graph,
            vfs=vfs,
            memory=["likes tea", "dislikes coffee"],
        )
        assert result.result == "You like tea."
        assert "likes tea\n---\ndislikes coffee" in provider.requests[0].prompt_text()

    @pytest.mark.asyncio
    async def test_generate_image(self, config, audit, graph, vfs):
        response = CompletionResponse(images=[InlineData(mime_type="image/png", data="iVBOR")])
        dispatcher, provider, _ = make_dispatcher(config, audit, [response])
        result = await dispatcher.execute_tool(
            {"name": "generate_image", "args": {"prompt": "a cat"}}, graph=graph, vfs=vfs
        )
        assert provider.requests[0].model == config.image_model
        assert provider.requests[0].config.response_modalities == ["IMAGE"]
        assert result.generated_image.data == "iVBOR"
        assert result.generated_image.type == "generated"

    @pytest.mark.asyncio
    async def test_generate_image_without_image_fails(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit, ["sorry, text only"])
        result = await dispatcher.execute_tool(
            {"name": "generate_image", "args": {"prompt": "a cat"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "No image data was returned." in result.result

    @pytest.mark.asyncio
    async def test_edit_image_uses_latest_chat_image(self, config, audit, graph, vfs):
        history = [
            ChatMessage(sender="user", text="old", image=ChatImage(url="data:image/png;base64,OLD")),
            ChatMessage(sender="persona", text="nice"),
            ChatMessage(sender="user", text="new", image=ChatImage(url="data:image/jpeg;base64,NEW")),
        ]
        response = CompletionResponse(images=[InlineData(data="EDITED")])
        dispatcher, provider, _ = make_dispatcher(config, audit, [response])

        result = await dispatcher.execute_tool(
            {"name": "edit_image", "args": {"prompt": "make it blue"}},
            graph=graph,
            vfs=vfs,
            chat_history=history,
        )

        image_part, text_part = provider.requests[0].contents[0].parts
        assert image_part.inline_data.data == "NEW"
        assert image_part.inline_data.mime_type == "image/jpeg"
        assert text_part.text == "make it blue"
        assert result.generated_image.type == "edited"

    @pytest.mark.asyncio
    async def test_edit_image_without_image(self, config, audit, graph, vfs):
        dispatcher, provider, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "edit_image", "args": {"prompt": "blue"}}, graph=graph, vfs=vfs
        )
        assert result.result == "Error: No image found in the recent conversation to edit."
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_delegate_with_custom_sub_agent(self, config, audit, graph, vfs):
        sub_agent = AsyncMock(return_value="# Report\nAll good.")
        dispatcher, _, _ = make_dispatcher(config, audit, sub_agent=sub_agent)

        result = await dispatcher.execute_tool(
            {"name": "delegate_to_psychology_sub_agent", "args": {
                "agent_name": "jung", "task_prompt": "Analyze dreams",
            }},
            graph=graph,
            vfs=vfs,
            persona_description="A calm persona",
        )

        sub_agent.assert_awaited_once_with("agent-model", "jung", "Analyze dreams", "A calm persona")
        path = result.file_path_handled
        assert path.startswith("/reports/psychology/jung_")
        assert path.endswith(".md")
        assert read_file(result.new_vfs, path) == "# Report\nAll good."
        assert path in result.result
        assert result.terminal_output[0].text == f"Sub-agent report saved to {path}"

    @pytest.mark.asyncio
    async def test_delegate_default_sub_agent_uses_queue(self, config, audit, graph, vfs):
        dispatcher, provider, queue = make_dispatcher(config, audit, ["report"])
        result = await dispatcher.execute_tool(
            {"name": "delegate_to_psychology_sub_agent", "args": {
                "agent_name": "adler", "task_prompt": "Assess",
            }},
            graph=graph,
            vfs=vfs,
        )
        assert read_file(result.new_vfs, result.file_path_handled) == "report"
        assert queue.records()[0].agent_label == "Sub-Agent: adler"
        assert "adler" in provider.requests[0].config.system_instruction

    @pytest.mark.asyncio
    async def test_without_queue_generative_tools_fail(self, config, audit, graph, vfs):
        dispatcher = ToolDispatcher(config=config, audit=audit)
        result = await dispatcher.execute_tool(
            {"name": "search_the_web", "args": {"query": "x"}}, graph=graph, vfs=vfs
        )
        assert result.failed
        assert "Generative service is not configured." in result.result


class TestWorkspaceTools:
    """Side-channel tools."""

    @pytest.mark.asyncio
    async def test_commit_changes(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "commit_changes", "args": {"commit_message": "Add notes"}}, graph=graph, vfs=vfs
        )
        assert result.commit_message == "Add notes"
        assert result.new_vfs is None

    @pytest.mark.asyncio
    async def test_update_task_status(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "update_task_status", "args": {"task_id": "t1", "status": "IN_PROGRESS"}},
            graph=graph,
            vfs=vfs,
        )
        assert result.task_status_update.status == MissionTaskStatus.IN_PROGRESS
        assert result.result == "Task t1 status will be updated to in-progress."

    @pytest.mark.asyncio
    async def test_update_task_status_rejects_unknown_status(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "update_task_status", "args": {"task_id": "t1", "status": "abandoned"}},
            graph=graph,
            vfs=vfs,
        )
        assert result.failed

    @pytest.mark.asyncio
    async def test_save_chat_history(self, config, audit, graph, vfs):
        history = [
            ChatMessage(sender="user", text="Hi"),
            ChatMessage(sender="persona", type="thought", text="greet back"),
        ]
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "save_chat_history", "args": {}}, graph=graph, vfs=vfs, chat_history=history
        )

        path = result.file_path_handled
        assert path.startswith("/logs/chat/chat_log_")
        content = read_file(result.new_vfs, path)
        assert content.startswith("# Chat Log - ")
        assert "**[USER]**\n\nHi" in content
        assert "**[AGENT THOUGHT]**\n\n```\ngreet back\n```" in content
        assert lookup(vfs, "/logs") is None

    @pytest.mark.asyncio
    async def test_save_empty_chat_history(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "save_chat_history", "args": {}}, graph=graph, vfs=vfs
        )
        assert result.result == "Chat history is empty. Nothing to save."
        assert result.new_vfs is None


class TestCostDebug:
    """Per-call cost reports."""

    @pytest.mark.asyncio
    async def test_report_attached_when_enabled(self, audit, graph, vfs):
        config = AgentConfig(llm_provider="google", cost_debug=True)
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {"node_id": "stoicism"}}, graph=graph, vfs=vfs
        )
        assert result.cost_report is not None
        assert result.cost_report.enabled
        assert result.cost_report.breakdown.total_calls == 0

    @pytest.mark.asyncio
    async def test_no_report_by_default(self, config, audit, graph, vfs):
        dispatcher, _, _ = make_dispatcher(config, audit)
        result = await dispatcher.execute_tool(
            {"name": "get_node_details", "args": {"node_id": "stoicism"}}, graph=graph, vfs=vfs
        )
        assert result.cost_report is None
