"""MCP tools package.

- base: Tool contract (McpTool protocol, ResponseType, BaseTool)
- registry: Name to tool mapping
- schema: Input schema builder
- builtin: Tools registered on every server start
"""

from .base import BaseTool, McpTool, ResponseType, escape_markdown
from .registry import ToolRegistry
from .schema import JsonSchemaBuilder

__all__ = [
    "BaseTool",
    "McpTool",
    "ResponseType",
    "escape_markdown",
    "ToolRegistry",
    "JsonSchemaBuilder",
]
