"""Built-in tools registered on every server start.

These report on the server itself; IDE-specific tools are registered by
the host through :meth:`edt_mcp.server.McpServer.register_tool`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from ..mcp.constants import PROTOCOL_VERSION
from .base import BaseTool, ResponseType, escape_markdown
from .schema import JsonSchemaBuilder

if TYPE_CHECKING:
    from ..context import ServerContext


class GetEdtVersionTool(BaseTool):
    """Report the host IDE version string."""

    name = "get_edt_version"
    description = "Returns the version of the running EDT instance"
    input_schema = JsonSchemaBuilder.object().build()

    def __init__(self, context: ServerContext) -> None:
        self._context = context

    def execute(self, params: dict[str, str]) -> str:
        return self._context.settings.edt_version


class GetServerStatusTool(BaseTool):
    """Server counters as structured JSON."""

    name = "get_server_status"
    description = "Returns MCP server status: request count, registered tools and protocol version"
    input_schema = JsonSchemaBuilder.object().build()
    response_type = ResponseType.JSON

    def __init__(self, context: ServerContext) -> None:
        self._context = context

    def execute(self, params: dict[str, str]) -> str:
        ctx = self._context
        return json.dumps(
            {
                "name": ctx.settings.server_name,
                "version": ctx.settings.server_version,
                "protocol_version": PROTOCOL_VERSION,
                "request_count": ctx.request_counter.value,
                "tool_count": ctx.registry.tool_count,
            }
        )


class ListToolsTool(BaseTool):
    """Markdown catalog of the registered tools."""

    name = "list_tools"
    description = "Lists registered MCP tools with their descriptions as a Markdown table"
    input_schema = (
        JsonSchemaBuilder.object()
        .string_property("filter", "Only include tools whose name contains this text")
        .integer_property("limit", "Maximum number of tools to list")
        .build()
    )
    response_type = ResponseType.MARKDOWN

    def __init__(self, context: ServerContext) -> None:
        self._context = context

    def result_file_name(self, params: dict[str, str]) -> str:
        return "tools.md"

    def execute(self, params: dict[str, str]) -> str:
        name_filter = params.get("filter", "").strip().lower()
        limit = self._context.settings.clamp_limit(params.get("limit"))

        tools = [
            tool
            for tool in self._context.registry.get_all_tools()
            if not name_filter or name_filter in tool.name.lower()
        ]

        lines = ["## MCP Tools", "", f"**Total:** {len(tools)} tools", ""]
        if not tools:
            lines.append("*No tools found.*")
            return "\n".join(lines) + "\n"

        lines.append("| Name | Response | Description |")
        lines.append("|------|----------|-------------|")
        for tool in tools[:limit]:
            lines.append(
                f"| {escape_markdown(tool.name)} | {tool.response_type} "
                f"| {escape_markdown(tool.description)} |"
            )
        if len(tools) > limit:
            lines.append("")
            lines.append(f"*...and {len(tools) - limit} more*")
        return "\n".join(lines) + "\n"


def builtin_tools(context: ServerContext) -> list[BaseTool]:
    """Instances of every built-in tool bound to ``context``."""
    return [
        GetEdtVersionTool(context),
        GetServerStatusTool(context),
        ListToolsTool(context),
    ]
