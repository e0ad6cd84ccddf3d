"""
Error Taxonomy

Every failure the stores, the request queue, and the tool layer can report.
Handlers raise these; the ToolDispatcher is the only place they are caught
wholesale and turned into a failed tool result.

Hierarchy:
    PersonaKGError
    ├── NotFoundError              path or node id absent
    │   ├── NodeNotFoundError
    │   └── EndpointNotFoundError  link endpoint missing
    ├── InvalidPathError           path has no usable component
    ├── PathNotADirectoryError     a path segment is a file
    ├── MissingParentError         create without a valid parent
    ├── UsageError                 terminal verb missing arguments
    ├── SyntaxCheckError           python verb found a syntax problem
    ├── UnknownCommandError        terminal verb not recognized
    ├── UnknownToolError           tool name not registered
    ├── ToolArgumentError          tool args failed validation
    ├── UpstreamFailure            queued generative call failed
    └── UninitializedServiceError  generative client not configured
"""

from __future__ import annotations


class PersonaKGError(Exception):
    """Base class for all persona_kg errors."""


class NotFoundError(PersonaKGError):
    """A VFS path or graph node id does not exist."""


class NodeNotFoundError(NotFoundError):
    """A graph node id does not exist."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f'Node with ID "{node_id}" not found.')
        self.node_id = node_id


class EndpointNotFoundError(NotFoundError):
    """One or both endpoints of a new link do not exist."""

    def __init__(self, source_id: str, target_id: str) -> None:
        super().__init__(
            f'Both source and target nodes must exist to create a link '
            f'(source="{source_id}", target="{target_id}").'
        )
        self.source_id = source_id
        self.target_id = target_id


class InvalidPathError(PersonaKGError):
    """A path cannot name the requested kind of entry."""


class PathNotADirectoryError(PersonaKGError):
    """A path segment that must be a folder resolves to a file."""


class MissingParentError(PersonaKGError):
    """A node cannot be created because its parent is absent or unknown."""


class UsageError(PersonaKGError):
    """A terminal command was given the wrong arguments."""

    def __init__(self, usage: str) -> None:
        super().__init__(f"Usage: {usage}")
        self.usage = usage


class UnknownCommandError(PersonaKGError):
    """A terminal verb is not supported."""

    def __init__(self, verb: str) -> None:
        super().__init__(f"Unknown command: {verb}")
        self.verb = verb


class UnknownToolError(PersonaKGError):
    """A tool name matches no registered handler."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolArgumentError(PersonaKGError):
    """Tool arguments are missing or malformed."""


class UpstreamFailure(PersonaKGError):
    """A request admitted through the RequestQueue reached a failed state."""

    def __init__(self, agent_label: str, message: str) -> None:
        super().__init__(f"{agent_label}: {message}")
        self.agent_label = agent_label


class UninitializedServiceError(PersonaKGError):
    """The generative-service client was never configured."""


class SyntaxCheckError(PersonaKGError):
    """The terminal syntax check rejected a file."""
