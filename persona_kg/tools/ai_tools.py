"""
Generative tools.

search_the_web, recall_memory, generate_image, edit_image and
delegate_to_psychology_sub_agent. All of them reach the generative service
through the request queue (the sub-agent through its invoker).
"""

from __future__ import annotations

import logging

from persona_kg.errors import UpstreamFailure
from persona_kg.tools import prompts
from persona_kg.tools.args import DelegateArgs, ImagePromptArgs, QueryArgs
from persona_kg.tools.context import QueuedSubAgent, ToolContext, agent_label, file_timestamp
from persona_kg.types.completion import (
    CompletionRequest,
    CompletionResponse,
    Content,
    ContentPart,
    GenerationConfig,
    InlineData,
)
from persona_kg.types.results import GeneratedImage, TerminalLine, ToolResult
from persona_kg.vfs import write_file

logger = logging.getLogger(__name__)

REPORTS_DIR = "/reports/psychology"


async def search_the_web(args: QueryArgs, ctx: ToolContext) -> ToolResult:
    response = await ctx.complete(
        CompletionRequest.from_prompt(ctx.model_name, args.query, web_search=True),
        tool="search_the_web",
        summary={"query": args.query},
    )
    return ToolResult(result=f'Web search results for "{args.query}":\n\n{response.text.strip()}')


async def recall_memory(args: QueryArgs, ctx: ToolContext) -> ToolResult:
    if not ctx.memory:
        return ToolResult(result="Memory archive is empty.")

    prompt = prompts.recall_memory_prompt(args.query, ctx.memory)
    response = await ctx.complete(
        CompletionRequest.from_prompt(ctx.model_name, prompt),
        tool="recall_memory",
        summary={"query": args.query, "memory_entries": len(ctx.memory)},
    )
    return ToolResult(result=response.text.strip())


def _first_image(response: CompletionResponse, tool: str) -> InlineData:
    if not response.images:
        raise UpstreamFailure(agent_label(tool), "No image data was returned.")
    return response.images[0]


async def generate_image(args: ImagePromptArgs, ctx: ToolContext) -> ToolResult:
    response = await ctx.complete(
        CompletionRequest.from_prompt(
            ctx.config.image_model,
            args.prompt,
            response_modalities=["IMAGE"],
        ),
        tool="generate_image",
        summary={"prompt": args.prompt},
    )
    image = _first_image(response, "generate_image")
    return ToolResult(
        result=f'Image generated successfully based on prompt: "{args.prompt}".',
        generated_image=GeneratedImage(data=image.data, mime_type=image.mime_type, type="generated"),
    )


async def edit_image(args: ImagePromptArgs, ctx: ToolContext) -> ToolResult:
    """Edit the most recent image in the chat transcript."""
    message = ctx.latest_chat_image()
    if message is None or message.image is None:
        return ToolResult(result="Error: No image found in the recent conversation to edit.")

    mime_type, data = message.image.split_data_url()
    request = CompletionRequest(
        model=ctx.config.image_model,
        contents=[
            Content(parts=[
                ContentPart(inline_data=InlineData(mime_type=mime_type, data=data)),
                ContentPart(text=args.prompt),
            ])
        ],
        config=GenerationConfig(response_modalities=["IMAGE"]),
    )
    response = await ctx.complete(
        request,
        tool="edit_image",
        summary={"prompt": args.prompt, "source_mime_type": mime_type},
    )
    image = _first_image(response, "edit_image")
    return ToolResult(
        result=f'Image edited successfully based on prompt: "{args.prompt}".',
        generated_image=GeneratedImage(data=image.data, mime_type=image.mime_type, type="edited"),
    )


async def delegate_to_psychology_sub_agent(args: DelegateArgs, ctx: ToolContext) -> ToolResult:
    """Run a sub-agent and save its report under /reports/psychology."""
    invoker = ctx.sub_agent or QueuedSubAgent(ctx.require_queue())
    report = await invoker(ctx.model_name, args.agent_name, args.task_prompt, ctx.persona_description)

    path = f"{REPORTS_DIR}/{args.agent_name}_{file_timestamp()}.md"
    vfs = write_file(ctx.vfs, path, report, audit=ctx.audit)
    logger.debug(f"Sub-agent {args.agent_name} report saved to {path}")
    return ToolResult(
        result=(
            f"Analysis from {args.agent_name} complete. Report has been saved to the virtual "
            f"file system at: {path}. You should now read and analyze this file using 'cat'."
        ),
        new_vfs=vfs,
        terminal_output=[TerminalLine(type="output", text=f"Sub-agent report saved to {path}")],
        file_path_handled=path,
    )
