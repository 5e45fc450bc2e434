"""Tool contract shared by every MCP tool.

A tool is any object exposing the attributes of :class:`McpTool`. The
protocol handler only ever talks to tools through this contract and never
inspects what a concrete tool does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Protocol, runtime_checkable


class ResponseType(StrEnum):
    """How a tool's result string is wrapped in the ``tools/call`` response."""

    TEXT = "text"  # plain text content
    JSON = "json"  # parsed and embedded as structuredContent
    MARKDOWN = "markdown"  # embedded resource with text/markdown MIME type


@runtime_checkable
class McpTool(Protocol):
    """Capability set of an invokable tool.

    ``execute`` receives string-keyed, string-valued parameters. Compound
    arguments (arrays, objects) arrive JSON-encoded and must be decoded by
    the tool. Tools are expected to catch their own faults and render them
    into the returned string.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> str: ...

    @property
    def response_type(self) -> ResponseType: ...

    def result_file_name(self, params: dict[str, str]) -> str: ...

    def execute(self, params: dict[str, str]) -> str: ...


class BaseTool(ABC):
    """Convenience base with the defaults most tools share.

    Subclasses set ``name``, ``description`` and ``input_schema`` as class
    attributes and implement :meth:`execute`.
    """

    name: str = ""
    description: str = ""
    input_schema: str = '{"type": "object", "properties": {}}'
    response_type: ResponseType = ResponseType.TEXT

    def result_file_name(self, params: dict[str, str]) -> str:
        return f"{self.name}.md"

    @abstractmethod
    def execute(self, params: dict[str, str]) -> str:
        """Run the tool and return its result string."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def escape_markdown(text: str | None) -> str:
    """Make text safe for a single Markdown table cell."""
    if text is None:
        return ""
    return text.replace("|", "\\|").replace("\n", " ").replace("\r", "")
