"""
Terminal Command Tool

A constrained shell over the VFS snapshot of the current call. The command
line is split like a shell would (quotes group words); tokens starting with
"-" are flags, everything else is a positional argument.

Verbs:
    ls [path]                              list a folder
    cat <path>                             print a file
    write <path> <content...> [--parent=<node_id>]
                                           write a file; with --parent, also add
                                           a file-reference node under that node
    mkdir <path>                           create folders
    touch <path>                           create an empty file if absent
    rm <path>                              delete a file or folder
    python <path>                          static syntax check (never executed)
"""

from __future__ import annotations

import ast
import logging
import shlex
from dataclasses import dataclass, field

from persona_kg.errors import (
    InvalidPathError,
    NotFoundError,
    SyntaxCheckError,
    ToolArgumentError,
    UnknownCommandError,
    UsageError,
)
from persona_kg.graph import add_file_reference
from persona_kg.tools.args import TerminalCommandArgs
from persona_kg.tools.context import ToolContext
from persona_kg.types.graph import KnowledgeGraph
from persona_kg.types.results import TerminalLine, ToolResult
from persona_kg.types.vfs import VFSFile, VFSFolder
from persona_kg.vfs import (
    delete_path,
    ensure_directory,
    list_directory,
    lookup,
    normalize_path,
    read_file,
    write_file,
)

logger = logging.getLogger(__name__)

PARENT_FLAG = "--parent="

USAGE = {
    "cat": "cat <path>",
    "write": "write <path> <content> [--parent=<node_id>]",
    "mkdir": "mkdir <path>",
    "touch": "touch <path>",
    "rm": "rm <path>",
    "python": "python <path_to_script>",
}


@dataclass
class TerminalCommand:
    """A parsed command line."""

    verb: str
    args: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    parent_id: str | None = None


@dataclass
class TerminalOutcome:
    """What a verb produced. Snapshots are None when unchanged."""

    output: str
    vfs: VFSFolder | None = None
    graph: KnowledgeGraph | None = None
    path: str | None = None


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        return token[1:-1]
    return token


def parse_terminal_command(line: str) -> TerminalCommand:
    """
    Split a command line into verb, positional args, and flags.

    A quoted token is always positional, even if its text starts with "-".

    Raises:
        UsageError: Empty command line
        ToolArgumentError: Unbalanced quotes
    """
    lexer = shlex.shlex(line, posix=False)
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        tokens = list(lexer)
    except ValueError as e:
        raise ToolArgumentError(f"Could not parse command: {e}") from e
    if not tokens:
        raise UsageError("<command> [args...]")

    command = TerminalCommand(verb=_unquote(tokens[0]))
    for token in tokens[1:]:
        if token.startswith("-"):
            if token.startswith(PARENT_FLAG):
                command.parent_id = _unquote(token[len(PARENT_FLAG):]) or None
            else:
                command.flags.append(token)
        else:
            command.args.append(_unquote(token))
    return command


def check_syntax(path: str, source: str) -> None:
    """
    Static sanity check of a script. Nothing is executed.

    Python sources (*.py) are parsed with ast; anything else gets a bracket
    and quote balance check.

    Raises:
        SyntaxCheckError: The check failed
    """
    if path.endswith(".py"):
        try:
            ast.parse(source, filename=path)
        except SyntaxError as e:
            raise SyntaxCheckError(f"Syntax Error in {path}: {e.msg} (line {e.lineno})") from e
        return

    pairs = (("(", ")", "parentheses"), ("{", "}", "curly braces"), ("[", "]", "square brackets"))
    for opening, closing, label in pairs:
        if source.count(opening) != source.count(closing):
            raise SyntaxCheckError(f"Syntax Error in {path}: Unbalanced {label}.")
    if source.count("'") % 2:
        raise SyntaxCheckError(f"Syntax Error in {path}: Unmatched single quotes.")
    if source.count('"') % 2:
        raise SyntaxCheckError(f"Syntax Error in {path}: Unmatched double quotes.")


def _require(command: TerminalCommand, count: int) -> None:
    if len(command.args) < count:
        raise UsageError(USAGE[command.verb])


def _ls(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    path = command.args[0] if command.args else "/"
    try:
        entries = list_directory(ctx.vfs, path)
    except NotFoundError as e:
        raise NotFoundError(f"ls: cannot access '{path}': Not a directory") from e
    return TerminalOutcome("\n".join(entry.display_name for entry in entries))


def _cat(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 1)
    path = command.args[0]
    try:
        return TerminalOutcome(read_file(ctx.vfs, path))
    except NotFoundError as e:
        raise NotFoundError(f"cat: {path}: No such file or not a file") from e


def _write(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 2)
    path = command.args[0]
    content = " ".join(command.args[1:])
    vfs = write_file(ctx.vfs, path, content, audit=ctx.audit)

    graph = None
    note = ""
    if command.parent_id:
        if ctx.graph.has_node(command.parent_id):
            graph, _ = add_file_reference(ctx.graph, command.parent_id, path, audit=ctx.audit)
            note = " and created a reference in the mind map"
        else:
            note = f' (parent node "{command.parent_id}" not found; no mind map reference created)'

    return TerminalOutcome(
        f"Wrote {len(content)} chars to {path}{note}.\n\n--- FILE CONTENT ---\n{content}",
        vfs=vfs,
        graph=graph,
        path=path,
    )


def _mkdir(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 1)
    vfs = ensure_directory(ctx.vfs, command.args[0], audit=ctx.audit)
    return TerminalOutcome(f"Created directory {normalize_path(command.args[0])}", vfs=vfs)


def _touch(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 1)
    path = command.args[0]
    existing = lookup(ctx.vfs, path)
    if isinstance(existing, VFSFile):
        return TerminalOutcome("", path=path)
    if isinstance(existing, VFSFolder):
        raise InvalidPathError(f"touch: {path}: Is a directory")
    vfs = write_file(ctx.vfs, path, "", audit=ctx.audit)
    return TerminalOutcome("", vfs=vfs, path=path)


def _rm(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 1)
    vfs = delete_path(ctx.vfs, command.args[0], audit=ctx.audit)
    return TerminalOutcome(f"Removed {normalize_path(command.args[0])}", vfs=vfs)


def _python(command: TerminalCommand, ctx: ToolContext) -> TerminalOutcome:
    _require(command, 1)
    path = command.args[0]
    node = lookup(ctx.vfs, path)
    if not isinstance(node, VFSFile):
        raise NotFoundError(f"python: can't open file '{path}': No such file or not a file.")
    check_syntax(path, node.content)
    return TerminalOutcome(
        f"Syntax check for {path} passed. Code appears valid. "
        "This is a simulation, not a real execution."
    )


VERBS = {
    "ls": _ls,
    "cat": _cat,
    "write": _write,
    "mkdir": _mkdir,
    "touch": _touch,
    "rm": _rm,
    "python": _python,
}


def run_command(line: str, ctx: ToolContext) -> TerminalOutcome:
    """
    Parse and run one command line against the context's snapshots.

    Raises:
        UnknownCommandError: Verb not supported
        UsageError: Missing required arguments
        NotFoundError, InvalidPathError, PathNotADirectoryError,
        SyntaxCheckError: Store or check failures
    """
    command = parse_terminal_command(line)
    verb = VERBS.get(command.verb)
    if verb is None:
        raise UnknownCommandError(command.verb)
    logger.debug(f"terminal: {command.verb} {command.args} flags={command.flags}")
    return verb(command, ctx)


async def run_terminal_command(args: TerminalCommandArgs, ctx: ToolContext) -> ToolResult:
    outcome = run_command(args.command, ctx)
    return ToolResult(
        result=outcome.output,
        new_vfs=outcome.vfs,
        new_graph=outcome.graph,
        terminal_output=[
            TerminalLine(type="input", text=f"$ {args.command}"),
            TerminalLine(type="output", text=outcome.output),
        ],
        file_path_handled=outcome.path,
    )
