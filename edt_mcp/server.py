"""FastAPI MCP Server for EDT.

Implements the MCP Streamable HTTP transport on ``/mcp`` plus a ``/health``
endpoint, and the :class:`McpServer` lifecycle object that runs the app on
a background uvicorn listener.
"""

import logging
import threading
import time
from collections.abc import Iterable
from contextlib import asynccontextmanager
from uuid import uuid4

import anyio.to_thread
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from . import __version__
from .config import Settings, settings
from .context import AtomicCounter, ServerContext
from .mcp import (
    HEADER_SESSION_ID,
    INTERNAL_ERROR,
    JsonRpcResponse,
    PROTOCOL_VERSION,
    SSE_MEDIA_TYPE,
    ProtocolHandler,
)
from .middleware import OriginValidationMiddleware
from .tools import McpTool, ToolRegistry
from .tools.builtin import builtin_tools

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT_SECONDS = 10.0
SHUTDOWN_TIMEOUT_SECONDS = 5.0


class ServerStartError(RuntimeError):
    """The listener could not be started; the server stays stopped."""


def build_context(
    config: Settings | None = None,
    registry: ToolRegistry | None = None,
    request_counter: AtomicCounter | None = None,
    event_counter: AtomicCounter | None = None,
    extra_tools: Iterable[McpTool] = (),
) -> ServerContext:
    """Create a server context and (re)populate its tool registry.

    The registry is cleared first, then the built-in tools and any
    ``extra_tools`` are registered.
    """
    context = ServerContext(
        settings=config or settings,
        registry=registry if registry is not None else ToolRegistry(),
        request_counter=request_counter if request_counter is not None else AtomicCounter(),
        event_counter=event_counter if event_counter is not None else AtomicCounter(),
    )
    context.registry.clear()
    for tool in builtin_tools(context):
        context.registry.register(tool)
    for tool in extra_tools:
        context.registry.register(tool)
    logger.info(f"Registered {context.registry.tool_count} MCP tools")
    return context


def accepts_sse(request: Request) -> bool:
    return SSE_MEDIA_TYPE in request.headers.get("accept", "")


def create_app(context: ServerContext | None = None) -> FastAPI:
    """Build the FastAPI application serving one server context."""
    if context is None:
        context = build_context()
    cfg = context.settings
    handler = ProtocolHandler(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Size the worker pool that runs protocol handling and tools."""
        limiter = anyio.to_thread.current_default_thread_limiter()
        limiter.total_tokens = cfg.worker_threads
        logger.info(f"Starting EDT MCP Server v{__version__} ({cfg.worker_threads} workers)")
        yield
        logger.info("EDT MCP Server shutting down")

    app = FastAPI(
        title="EDT MCP Server",
        description="MCP Streamable HTTP endpoint exposing EDT tools",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # Origin check runs before any route, so rejected calls are never counted
    app.add_middleware(OriginValidationMiddleware, allowed_origins=cfg.allowed_origins)

    # ============ EXCEPTION HANDLERS ============

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Answer unexpected transport faults with a JSON-RPC internal error."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=JsonRpcResponse.failure(None, INTERNAL_ERROR, "Internal server error").to_wire(),
        )

    # ============ HEALTH ENDPOINT ============

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint (lightweight liveness check)."""
        return {"status": "ok", "edt_version": cfg.edt_version}

    # ============ MCP ENDPOINT ============

    @app.post("/mcp", tags=["MCP Transport"])
    async def mcp_post(request: Request) -> Response:
        """
        Handle one JSON-RPC call.

        Responds 202 with no body for notifications, otherwise with the
        JSON-RPC envelope either as ``application/json`` or, when the client
        accepts ``text/event-stream``, as a single SSE event.
        """
        count = context.request_counter.increment()
        client = request.client.host if request.client else "unknown"
        logger.info(f"MCP request #{count} received from {client}")

        body = await request.body()
        logger.debug(f"MCP request body: {body[:1000]!r}")

        # Tools are synchronous; run them on the bounded worker pool
        result = await run_in_threadpool(handler.process_request, body)

        if result.body is None:
            logger.info("MCP notification processed, returning 202")
            return Response(status_code=202)

        logger.debug(f"MCP response: {result.body[:200]}...")

        headers: dict[str, str] = {}
        if result.initialize:
            headers[HEADER_SESSION_ID] = str(uuid4())

        if accepts_sse(request):
            event_id = context.event_counter.increment()
            headers["Cache-Control"] = "no-cache"
            return Response(
                content=f"id: {event_id}\ndata: {result.body}\n\n",
                media_type=SSE_MEDIA_TYPE,
                headers=headers,
            )

        return Response(content=result.body, media_type="application/json", headers=headers)

    @app.get("/mcp", tags=["MCP Transport"])
    async def mcp_get(request: Request) -> Response:
        """Server info, or 405 for server-initiated SSE streams (not supported)."""
        if accepts_sse(request):
            logger.info("SSE GET request received - returning 405 (not supported)")
            return JSONResponse(
                status_code=405,
                content={"error": "Server-initiated SSE not supported"},
            )
        return JSONResponse(
            {
                "name": cfg.server_name,
                "version": cfg.server_version,
                "edt_version": cfg.edt_version,
                "protocol_version": PROTOCOL_VERSION,
                "status": "running",
            }
        )

    @app.delete("/mcp", tags=["MCP Transport"])
    async def mcp_delete() -> Response:
        """Session termination; accepted, sessions are not tracked."""
        return Response(status_code=200)

    @app.api_route("/mcp", methods=["PUT", "PATCH", "OPTIONS"], include_in_schema=False)
    async def mcp_method_not_allowed() -> Response:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})

    return app


class McpServer:
    """
    Runs the MCP app on a background uvicorn listener.

    ``start``, ``stop`` and ``restart`` share one lock, so only one listener
    exists at a time. The request and SSE event counters and the custom
    tools belong to the server and survive restarts, so event ids keep
    increasing across listeners. The server context is rebuilt on every start.
    """

    def __init__(self, config: Settings | None = None):
        self.settings = config or settings
        self._lock = threading.RLock()
        self._registry = ToolRegistry()
        self._request_counter = AtomicCounter()
        self._event_counter = AtomicCounter()
        self._custom_tools: dict[str, McpTool] = {}
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._context: ServerContext | None = None
        self._port = self.settings.port

    def start(self, port: int | None = None) -> None:
        """
        Start the listener, stopping a running one first.

        Args:
            port: Port to bind (0 picks a free port); defaults to settings.port

        Raises:
            ServerStartError: if the listener did not come up
        """
        with self._lock:
            if self.is_running:
                self.stop()

            port = self.settings.port if port is None else port
            context = build_context(
                self.settings,
                registry=self._registry,
                request_counter=self._request_counter,
                event_counter=self._event_counter,
                extra_tools=self._custom_tools.values(),
            )
            config = uvicorn.Config(
                create_app(context),
                host=self.settings.host,
                port=port,
                log_config=None,
                access_log=self.settings.debug,
            )
            server = uvicorn.Server(config)
            thread = threading.Thread(target=server.run, name=f"edt-mcp-server-{port}", daemon=True)
            thread.start()

            deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
            while not server.started:
                if not thread.is_alive():
                    raise ServerStartError(f"Failed to start MCP server on port {port}")
                if time.monotonic() > deadline:
                    server.should_exit = True
                    thread.join(SHUTDOWN_TIMEOUT_SECONDS)
                    raise ServerStartError(f"Timed out starting MCP server on port {port}")
                time.sleep(0.05)

            self._server = server
            self._thread = thread
            self._context = context
            self._port = self._bound_port(server, port)
            logger.info(f"MCP Server started on port {self._port}")

    def stop(self) -> None:
        """Stop the listener; no-op when not running."""
        with self._lock:
            if self._server is None:
                return
            self._server.should_exit = True
            if self._thread is not None:
                self._thread.join(SHUTDOWN_TIMEOUT_SECONDS)
                if self._thread.is_alive():
                    logger.warning("MCP Server thread did not exit in time")
            self._server = None
            self._thread = None
            self._context = None
            logger.info("MCP Server stopped")

    def restart(self, port: int | None = None) -> None:
        with self._lock:
            self.stop()
            self.start(port)

    def wait(self) -> None:
        """Block until the listener exits."""
        while self.is_running:
            thread = self._thread
            if thread is not None:
                thread.join(0.5)

    def register_tool(self, tool: McpTool) -> None:
        """Register a custom tool; it stays registered across restarts."""
        with self._lock:
            self._custom_tools[tool.name] = tool
            self._registry.register(tool)

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._thread is not None and self._thread.is_alive()

    @property
    def port(self) -> int:
        return self._port

    @property
    def request_count(self) -> int:
        return self._request_counter.value

    def increment_request_count(self) -> int:
        return self._request_counter.increment()

    def reset_request_count(self) -> None:
        self._request_counter.reset()

    @staticmethod
    def _bound_port(server: uvicorn.Server, requested: int) -> int:
        for listener in getattr(server, "servers", []):
            for sock in listener.sockets:
                return sock.getsockname()[1]
        return requested


# ============ MAIN ============


def main():
    """Run the MCP server until interrupted."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server = McpServer()
    try:
        server.start()
        server.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.stop()


if __name__ == "__main__":
    main()
