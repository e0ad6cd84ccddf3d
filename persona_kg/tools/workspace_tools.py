"""
Workspace tools.

commit_changes and update_task_status only return side-channel requests for
the orchestration layer; save_chat_history archives the transcript into the
VFS.
"""

from __future__ import annotations

from datetime import datetime

from persona_kg.tools.args import CommitArgs, NoArgs, TaskStatusArgs
from persona_kg.tools.context import ToolContext, file_timestamp
from persona_kg.types.chat import ChatMessage
from persona_kg.types.results import TaskStatusUpdate, ToolResult
from persona_kg.vfs import write_file

CHAT_LOG_DIR = "/logs/chat"


async def commit_changes(args: CommitArgs, ctx: ToolContext) -> ToolResult:
    return ToolResult(
        result=(
            f'Changes are staged for commit with message: "{args.commit_message}". '
            "The system will handle the commit process."
        ),
        commit_message=args.commit_message,
    )


async def update_task_status(args: TaskStatusArgs, ctx: ToolContext) -> ToolResult:
    return ToolResult(
        result=f"Task {args.task_id} status will be updated to {args.status.value}.",
        task_status_update=TaskStatusUpdate(task_id=args.task_id, status=args.status),
    )


def format_chat_message(message: ChatMessage) -> str:
    if message.type == "thought":
        return f"**[AGENT THOUGHT]**\n\n```\n{message.text}\n```\n\n"

    block = f"**[{message.sender.upper()}]**\n\n"
    if message.text:
        block += f"{message.text}\n\n"
    if message.image is not None:
        block += f"*Image attached ({message.image.source})*\n\n"
    return block


def format_chat_log(history: tuple[ChatMessage, ...], now: datetime | None = None) -> str:
    """Markdown transcript: header, then messages separated by rules."""
    now = now or datetime.now()
    header = f"# Chat Log - {now.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
    return header + "---\n\n".join(format_chat_message(m) for m in history)


async def save_chat_history(args: NoArgs, ctx: ToolContext) -> ToolResult:
    if not ctx.chat_history:
        return ToolResult(result="Chat history is empty. Nothing to save.")

    path = f"{CHAT_LOG_DIR}/chat_log_{file_timestamp()}.md"
    vfs = write_file(ctx.vfs, path, format_chat_log(ctx.chat_history), audit=ctx.audit)
    return ToolResult(
        result=f"Chat history successfully saved to virtual file system at: {path}",
        new_vfs=vfs,
        file_path_handled=path,
    )
