"""Origin validation middleware.

Rejects browser requests to the MCP endpoint from non-local origins
(DNS rebinding protection) using pure ASGI, before any request counting
or protocol handling happens.
"""

import json
import logging
from urllib.parse import urlsplit

from ..mcp.constants import INVALID_REQUEST, JSONRPC_VERSION
from ..mcp.models import JsonRpcError

logger = logging.getLogger(__name__)

# Rejected before parsing, so there is no request id to echo
INVALID_ORIGIN_BODY = json.dumps(
    {
        "jsonrpc": JSONRPC_VERSION,
        "error": JsonRpcError(code=INVALID_REQUEST, message="Invalid Origin").model_dump(),
    }
).encode()


def is_valid_origin(origin: str, allowed_origins: list[str]) -> bool:
    """Check an Origin header value against the allowed origins.

    An allowed entry with a host (``http://localhost``) matches that exact
    scheme and hostname on any port. An entry without one (``file://``,
    ``vscode-webview://``) matches every origin of that scheme.
    """
    try:
        parts = urlsplit(origin)
        hostname = parts.hostname
    except ValueError:
        return False
    if not parts.scheme:
        return False
    for allowed in allowed_origins:
        expected = urlsplit(allowed)
        if expected.scheme != parts.scheme:
            continue
        if not expected.hostname or expected.hostname == hostname:
            return True
    return False


class OriginValidationMiddleware:
    """
    Validate the Origin header on MCP endpoint requests.

    Requests without an Origin header (non-browser clients) pass through.
    Any other non-empty Origin must match one of the allowed local
    origins, otherwise the request is answered with HTTP 403 and a
    JSON-RPC shaped error body. The health endpoint is not checked.
    """

    def __init__(self, app, allowed_origins: list[str], path: str = "/mcp"):
        self.app = app
        self.allowed_origins = list(allowed_origins)
        self.path = path

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path != self.path and not path.startswith(self.path + "/"):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        origin = headers.get(b"origin", b"").decode("latin-1").strip()
        if origin and not is_valid_origin(origin, self.allowed_origins):
            logger.info(f"Invalid Origin header rejected: {origin}")
            await send(
                {
                    "type": "http.response.start",
                    "status": 403,
                    "headers": [
                        (b"content-type", b"application/json"),
                        (b"content-length", str(len(INVALID_ORIGIN_BODY)).encode()),
                    ],
                }
            )
            await send(
                {
                    "type": "http.response.body",
                    "body": INVALID_ORIGIN_BODY,
                }
            )
            return

        await self.app(scope, receive, send)
