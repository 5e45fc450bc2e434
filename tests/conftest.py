"""Shared fixtures: sample tools, an isolated server context and HTTP client."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from edt_mcp.config import Settings
from edt_mcp.context import ServerContext
from edt_mcp.mcp.protocol import ProtocolHandler
from edt_mcp.server import build_context, create_app
from edt_mcp.tools import BaseTool, JsonSchemaBuilder, ResponseType


class EchoTool(BaseTool):
    """Returns the parameters it received, JSON-encoded with sorted keys."""

    name = "echo"
    description = "Echo the received parameters"
    input_schema = (
        JsonSchemaBuilder.object()
        .string_property("message", "Text to echo", required=True)
        .array_property("objects", "Object FQNs")
        .build()
    )

    def execute(self, params: dict[str, str]) -> str:
        return json.dumps(params, sort_keys=True)


class JsonReportTool(BaseTool):
    name = "json_report"
    description = "Structured report"
    response_type = ResponseType.JSON

    def execute(self, params: dict[str, str]) -> str:
        return '{"errors": 2, "projects": ["Main", "Ext"], "clean": false}'


class BrokenJsonTool(BaseTool):
    name = "broken_json"
    description = "Declares JSON but returns garbage"
    response_type = ResponseType.JSON

    def execute(self, params: dict[str, str]) -> str:
        return "{not json"


class MarkdownReportTool(BaseTool):
    name = "markdown_report"
    description = "Markdown report"
    response_type = ResponseType.MARKDOWN

    def result_file_name(self, params: dict[str, str]) -> str:
        return f"report-{params.get('projectName', 'all')}.md"

    def execute(self, params: dict[str, str]) -> str:
        return f"## Report\n\nProject: {params.get('projectName', 'all')}\n"


class FailingTool(BaseTool):
    """Breaks the tool contract by raising."""

    name = "failing"
    description = "Always raises"

    def execute(self, params: dict[str, str]) -> str:
        raise RuntimeError("workspace is not available")


def sample_tools() -> list[BaseTool]:
    return [EchoTool(), JsonReportTool(), BrokenJsonTool(), MarkdownReportTool(), FailingTool()]


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        edt_version="2024.2.5",
        server_name="edt-mcp-test",
        server_version="9.9.9",
        server_author="Tests",
        worker_threads=4,
        default_limit=10,
        max_limit=50,
    )


@pytest.fixture
def context(app_settings: Settings) -> ServerContext:
    return build_context(app_settings, extra_tools=sample_tools())


@pytest.fixture
def handler(context: ServerContext) -> ProtocolHandler:
    return ProtocolHandler(context)


@pytest.fixture
def client(context: ServerContext):
    with TestClient(create_app(context)) as test_client:
        yield test_client
