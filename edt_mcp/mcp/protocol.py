"""MCP JSON-RPC protocol handler.

Turns a raw request body into a serialized JSON-RPC response:

    parse -> validate version -> dispatch by method -> tool execute -> envelope

Dispatch steps return explicit :class:`RpcSuccess` / :class:`RpcFailure`
values. Anything unexpected is still caught at the top of
:meth:`ProtocolHandler.process_request` and reported as an internal error,
so the transport only ever receives a body to send or the "no body"
marker of a notification.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..context import ServerContext
from ..tools.base import McpTool, ResponseType
from .constants import (
    DEFAULT_REQUEST_ID,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    METHOD_INITIALIZE,
    METHOD_INITIALIZED,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
    PROTOCOL_VERSION,
)
from .models import (
    InitializeResult,
    JsonRpcRequest,
    JsonRpcResponse,
    ServerInfo,
    ToolCallResult,
    ToolInfo,
    ToolsListResult,
    dump_result,
)

logger = logging.getLogger(__name__)

# Best-effort id recovery from bodies that are not valid JSON
_ID_PATTERN = re.compile(r'"id"\s*:\s*(-?\d+(?:\.\d+)?|"(?:[^"\\]|\\.)*")')


@dataclass(frozen=True)
class RpcSuccess:
    result: dict[str, Any]


@dataclass(frozen=True)
class RpcFailure:
    code: int
    message: str


@dataclass(frozen=True)
class NoResponse:
    """Dispatch outcome for notifications: nothing is sent back."""


RpcOutcome = RpcSuccess | RpcFailure | NoResponse


@dataclass(frozen=True)
class ProtocolResponse:
    """What the transport sends back for one request.

    ``body`` is ``None`` for notifications. ``initialize`` marks responses
    to the session-establishing ``initialize`` call.
    """

    body: str | None
    initialize: bool = False


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON value: {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def strict_loads(text: str) -> Any:
    """Parse JSON, rejecting NaN, Infinity and out-of-range numbers."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def recover_request_id(raw: str) -> int | float | str:
    """Pull an ``id`` member out of a body that failed to parse."""
    match = _ID_PATTERN.search(raw)
    if not match:
        return DEFAULT_REQUEST_ID
    token = match.group(1)
    try:
        return json.loads(token)
    except ValueError:
        return DEFAULT_REQUEST_ID


def to_tool_params(arguments: dict[str, Any]) -> dict[str, str]:
    """Convert JSON ``arguments`` to the string parameter map tools accept.

    Null values are dropped. Arrays and objects are re-serialized as JSON
    text so tools can decode them losslessly.
    """
    params: dict[str, str] = {}
    for key, value in arguments.items():
        if value is None:
            continue
        if isinstance(value, (list, dict)):
            params[key] = json.dumps(value, ensure_ascii=False)
        elif isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = str(value)
    return params


class ProtocolHandler:
    """Stateless MCP method dispatcher bound to a server context."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def process_request(self, body: str | bytes) -> ProtocolResponse:
        """Process one JSON-RPC request body.

        Args:
            body: Raw HTTP request body

        Returns:
            ProtocolResponse with the serialized envelope, or ``body=None``
            for the ``notifications/initialized`` notification
        """
        request_id: Any = DEFAULT_REQUEST_ID
        is_initialize = False

        try:
            raw = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
            request, request_id = self._parse(raw)

            if request is None or request.jsonrpc != JSONRPC_VERSION:
                outcome: RpcOutcome = RpcFailure(
                    INVALID_REQUEST, "Invalid JSON-RPC version, expected 2.0"
                )
            else:
                is_initialize = request.method == METHOD_INITIALIZE
                outcome = self._dispatch(request)
        except Exception as e:
            logger.error(f"Error processing MCP request: {e}", exc_info=True)
            outcome = RpcFailure(INTERNAL_ERROR, str(e))

        if isinstance(outcome, NoResponse):
            return ProtocolResponse(body=None)
        if isinstance(outcome, RpcSuccess):
            response = JsonRpcResponse.success(request_id, outcome.result)
        else:
            response = JsonRpcResponse.failure(request_id, outcome.code, outcome.message)

        try:
            body_text = json.dumps(response.to_wire(), ensure_ascii=False, allow_nan=False)
        except ValueError as e:
            logger.error(f"MCP response is not serializable as JSON: {e}")
            outcome = RpcFailure(INTERNAL_ERROR, str(e))
            body_text = json.dumps(
                JsonRpcResponse.failure(request_id, outcome.code, outcome.message).to_wire(),
                ensure_ascii=False,
            )
        return ProtocolResponse(
            body=body_text,
            initialize=is_initialize and isinstance(outcome, RpcSuccess),
        )

    def _parse(self, raw: str) -> tuple[JsonRpcRequest | None, Any]:
        """Parse the body; returns (request or None, best-effort id)."""
        try:
            data = strict_loads(raw)
        except ValueError:
            logger.warning("Failed to parse JSON-RPC request body")
            return None, recover_request_id(raw)

        if not isinstance(data, dict):
            return None, DEFAULT_REQUEST_ID

        request_id = data.get("id")
        if request_id is None or isinstance(request_id, (bool, list, dict)):
            request_id = DEFAULT_REQUEST_ID

        try:
            return JsonRpcRequest.model_validate(data), request_id
        except ValidationError:
            logger.warning("JSON-RPC request does not match the envelope shape")
            return None, request_id

    def _dispatch(self, request: JsonRpcRequest) -> RpcOutcome:
        method = request.method
        logger.debug(f"Dispatching MCP method: {method}")

        if method == METHOD_INITIALIZE:
            return self._initialize()
        if method == METHOD_INITIALIZED:
            return NoResponse()
        if method == METHOD_TOOLS_LIST:
            return self._tools_list()
        if method == METHOD_TOOLS_CALL:
            return self._tools_call(request)
        return RpcFailure(METHOD_NOT_FOUND, "Method not found")

    def _initialize(self) -> RpcOutcome:
        cfg = self.context.settings
        result = InitializeResult(
            protocol_version=PROTOCOL_VERSION,
            server_info=ServerInfo(
                name=cfg.server_name,
                version=cfg.server_version,
                author=cfg.server_author,
            ),
        )
        return RpcSuccess(dump_result(result))

    def _tools_list(self) -> RpcOutcome:
        result = ToolsListResult()
        for tool in self.context.registry.get_all_tools():
            result.tools.append(
                ToolInfo(
                    name=tool.name,
                    description=tool.description,
                    input_schema=strict_loads(tool.input_schema),
                )
            )
        return RpcSuccess(dump_result(result))

    def _tools_call(self, request: JsonRpcRequest) -> RpcOutcome:
        tool_name = request.tool_name
        tool = self.context.registry.get_tool(tool_name)
        if tool is None:
            return RpcFailure(METHOD_NOT_FOUND, f"Tool not found: {tool_name}")

        logger.info(f"Processing tools/call: {tool.name}")
        params = to_tool_params(request.arguments)
        output = tool.execute(params)
        return self._wrap_tool_result(tool, params, output)

    def _wrap_tool_result(self, tool: McpTool, params: dict[str, str], output: str) -> RpcOutcome:
        """Shape the tool's result string according to its response type."""
        response_type = tool.response_type

        if response_type == ResponseType.JSON:
            try:
                value = strict_loads(output)
            except (TypeError, ValueError) as e:
                logger.error(f"Tool {tool.name} returned invalid JSON: {e}")
                return RpcFailure(INTERNAL_ERROR, f"Invalid JSON result from tool {tool.name}: {e}")
            return RpcSuccess(dump_result(ToolCallResult.structured(value)))

        if response_type == ResponseType.MARKDOWN:
            file_name = tool.result_file_name(params)
            return RpcSuccess(dump_result(ToolCallResult.markdown_resource(file_name, output)))

        return RpcSuccess(dump_result(ToolCallResult.text(output)))
