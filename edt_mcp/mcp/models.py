"""MCP models - JSON-RPC 2.0 messages and MCP result payloads.

Implements the message shapes used by the Model Context Protocol for
the initialize handshake, tool discovery (``tools/list``) and tool
execution (``tools/call``).
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

from .constants import (
    DEFAULT_REQUEST_ID,
    EMBEDDED_URI_SCHEME,
    JSONRPC_VERSION,
    MARKDOWN_MIME_TYPE,
)

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request or notification.

    ``jsonrpc`` is left optional here so that a wrong or missing version
    can be reported as an error with the request's own ``id``.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str | None = None
    method: str | None = None
    id: int | float | str | None = None
    params: dict[str, Any] | None = None

    @property
    def tool_name(self) -> str | None:
        name = (self.params or {}).get("name")
        return name if isinstance(name, str) else None

    @property
    def arguments(self) -> dict[str, Any]:
        arguments = (self.params or {}).get("arguments")
        return arguments if isinstance(arguments, dict) else {}


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message.

    Exactly one of ``result`` and ``error`` is set; build instances with
    :meth:`success` or :meth:`failure`.
    """

    jsonrpc: str = JSONRPC_VERSION
    id: int | float | str | None = DEFAULT_REQUEST_ID
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, id: Any, result: dict[str, Any]) -> JsonRpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: Any, code: int, message: str) -> JsonRpcResponse:
        """Error response; ``id`` is best-effort (``None`` when unknown)."""
        return cls(id=id, error=JsonRpcError(code=code, message=message))

    def to_wire(self) -> dict[str, Any]:
        """Envelope dict carrying only the member that is set."""
        return self.model_dump(exclude={"result"} if self.error is not None else {"error"})


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class ServerInfo(BaseModel):
    """Server identity advertised during ``initialize``."""

    name: str
    version: str
    author: str


class InitializeResult(BaseModel):
    """Result of the ``initialize`` handshake."""

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: dict[str, Any] = Field(
        default_factory=lambda: {"tools": {"listChanged": False}}
    )
    server_info: ServerInfo = Field(alias="serverInfo")


class ToolInfo(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: Any = Field(default_factory=dict, alias="inputSchema")


class ToolsListResult(BaseModel):
    """Result of ``tools/list``."""

    tools: list[ToolInfo] = Field(default_factory=list)


class TextContent(BaseModel):
    """Plain text content item."""

    type: Literal["text"] = "text"
    text: str


class EmbeddedResource(BaseModel):
    """Inline resource addressed by URI."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str = Field(alias="mimeType")
    text: str


class ResourceContent(BaseModel):
    """Embedded resource content item."""

    type: Literal["resource"] = "resource"
    resource: EmbeddedResource


class ToolCallResult(BaseModel):
    """Result of ``tools/call``.

    Build instances with :meth:`text`, :meth:`structured` or
    :meth:`markdown_resource`; the variant follows the tool's declared
    response type.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent | ResourceContent] = Field(default_factory=list)
    structured_content: Any = Field(default=None, alias="structuredContent")

    @model_serializer(mode="wrap")
    def _omit_unstructured(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if "structured_content" not in self.model_fields_set:
            data.pop("structuredContent", None)
            data.pop("structured_content", None)
        return data

    @classmethod
    def text(cls, text: str) -> ToolCallResult:
        return cls(content=[TextContent(text=text)])

    @classmethod
    def structured(cls, value: Any) -> ToolCallResult:
        """Structured JSON result; the text item mirrors the value for older clients."""
        return cls(
            content=[TextContent(text=json.dumps(value, ensure_ascii=False, allow_nan=False))],
            structured_content=value,
        )

    @classmethod
    def markdown_resource(cls, file_name: str, text: str) -> ToolCallResult:
        resource = EmbeddedResource(
            uri=f"{EMBEDDED_URI_SCHEME}{file_name}",
            mime_type=MARKDOWN_MIME_TYPE,
            text=text,
        )
        return cls(content=[ResourceContent(resource=resource)])


def dump_result(result: BaseModel) -> dict[str, Any]:
    """Serialize an MCP result model using its wire (camelCase) field names."""
    return result.model_dump(by_alias=True)
