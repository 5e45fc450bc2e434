"""MCP (Model Context Protocol) protocol module.

This module contains the protocol side of the MCP Streamable HTTP server:
- JSON-RPC 2.0 envelopes and error codes
- Message models for initialize, tools/list and tools/call
- The protocol handler that dispatches requests to registered tools
"""

from .constants import (
    HEADER_SESSION_ID,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    SSE_MEDIA_TYPE,
)
from .models import JsonRpcRequest, JsonRpcResponse
from .protocol import ProtocolHandler, ProtocolResponse

__all__ = [
    # Protocol constants
    "HEADER_SESSION_ID",
    "JSONRPC_VERSION",
    "PROTOCOL_VERSION",
    "SSE_MEDIA_TYPE",
    # JSON-RPC envelopes and error codes
    "JsonRpcRequest",
    "JsonRpcResponse",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INTERNAL_ERROR",
    # Protocol handler
    "ProtocolHandler",
    "ProtocolResponse",
]
