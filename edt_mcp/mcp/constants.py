"""MCP protocol constants."""

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2025-11-25"

# JSON-RPC methods
METHOD_INITIALIZE = "initialize"
METHOD_INITIALIZED = "notifications/initialized"
METHOD_TOOLS_LIST = "tools/list"
METHOD_TOOLS_CALL = "tools/call"

# HTTP headers and media types
HEADER_SESSION_ID = "Mcp-Session-Id"
SSE_MEDIA_TYPE = "text/event-stream"
JSON_MEDIA_TYPE = "application/json"
MARKDOWN_MIME_TYPE = "text/markdown"

EMBEDDED_URI_SCHEME = "embedded://"

# Request id used when none can be recovered from the request
DEFAULT_REQUEST_ID = 1

# JSON-RPC error codes (https://www.jsonrpc.org/specification#error_object)
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603
