"""EDT MCP Server - MCP Streamable HTTP endpoint for IDE tools."""

__version__ = "1.0.0"
