"""Tool registry - name to tool mapping used by the protocol handler."""

import logging
import threading

from .base import McpTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Mapping of tool name to tool instance.

    Writes (register/clear) happen only while the server is (re)starting and
    replace the whole mapping under a lock. Readers take the current mapping
    reference without locking, so a lookup always sees a complete snapshot.
    """

    def __init__(self) -> None:
        self._tools: dict[str, McpTool] = {}
        self._write_lock = threading.Lock()

    def register(self, tool: McpTool) -> None:
        """Register a tool, replacing any tool with the same name."""
        with self._write_lock:
            tools = dict(self._tools)
            if tool.name in tools:
                logger.debug(f"Replacing registered tool: {tool.name}")
            tools[tool.name] = tool
            self._tools = tools

    def clear(self) -> None:
        with self._write_lock:
            self._tools = {}

    def get_tool(self, name: str | None) -> McpTool | None:
        """Look up a tool by name; ``None`` when no such tool is registered."""
        if name is None:
            return None
        return self._tools.get(name)

    def get_all_tools(self) -> list[McpTool]:
        """All registered tools in registration order."""
        return list(self._tools.values())

    @property
    def tool_count(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
