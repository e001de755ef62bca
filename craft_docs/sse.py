"""
HTTP transports for the MCP server.

Serves the MCP server over HTTP with Starlette:

- GET  /health     Liveness plus the open SSE connections
- GET  /sse        Opens an event stream (optionally guarded by ?api_key=)
- POST /messages/  Client-to-server JSON-RPC messages for SSE streams
- POST /mcp/       Streamable HTTP: one JSON-RPC request, one JSON response

Messages posted to /messages/ carry the MCP session id assigned when their
stream was opened, so each message reaches the connection it belongs to.
The streamable HTTP endpoint is stateless; every request is served by a
fresh session, which also suits short-lived hosts such as Lambda.
"""

import asyncio
import contextlib
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import uvicorn
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/messages/"
STREAMABLE_HTTP_PATH = "/mcp"

UNAUTHORIZED = "Unauthorized: Invalid API key"


@dataclass
class ConnectionContext:
    """
    Bookkeeping for one open SSE stream.

    Attributes:
        connection_id: Process-unique id ("conn-<n>")
        client: Remote address, when known
        connected_at: Unix timestamp of the connect
    """
    connection_id: str
    client: Optional[str] = None
    connected_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.connection_id,
            "client": self.client,
            "connectedAt": self.connected_at,
        }


class ConnectionRegistry:
    """
    Open SSE connections, keyed by connection id.

    Entries are inserted when a stream opens and removed when it closes or
    fails. A single lock guards the map.
    """

    def __init__(self):
        self._connections: Dict[str, ConnectionContext] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def open(self, client: Optional[str] = None) -> ConnectionContext:
        async with self._lock:
            context = ConnectionContext(connection_id=f"conn-{next(self._ids)}", client=client)
            self._connections[context.connection_id] = context
        return context

    async def close(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)

    def active(self) -> List[ConnectionContext]:
        """Open connections, oldest first."""
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)


def create_sse_app(
    server: Server,
    api_key: Optional[str] = None,
    registry: Optional[ConnectionRegistry] = None
) -> Starlette:
    """
    Build the Starlette app serving an MCP server over SSE and streamable HTTP.

    Args:
        server: Configured MCP server
        api_key: If set, /sse and /mcp/ require a matching ?api_key= query parameter
        registry: Connection registry, a fresh one by default

    Returns:
        ASGI application
    """
    registry = registry if registry is not None else ConnectionRegistry()
    transport = SseServerTransport(MESSAGES_PATH)
    session_manager = StreamableHTTPSessionManager(
        app=server,
        json_response=True,
        stateless=True,
    )

    def authorized(request: Request) -> bool:
        return not api_key or request.query_params.get("api_key") == api_key

    async def health(request: Request) -> Response:
        connections = registry.active()
        return JSONResponse({
            "status": "ok",
            "activeConnections": len(connections),
            "connections": [c.to_dict() for c in connections],
        })

    async def handle_sse(request: Request) -> Response:
        if not authorized(request):
            logger.warning("Rejected SSE connection: invalid API key")
            return PlainTextResponse(UNAUTHORIZED, status_code=401)

        client = f"{request.client.host}:{request.client.port}" if request.client else None
        connection = await registry.open(client)
        logger.info("Client connected: %s (%s)", connection.connection_id, client)

        try:
            async with transport.connect_sse(
                request.scope, request.receive, request._send
            ) as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options()
                )
        except Exception:
            logger.exception("SSE error for %s", connection.connection_id)
        finally:
            await registry.close(connection.connection_id)
            logger.info("Client disconnected: %s", connection.connection_id)

        return Response()

    async def handle_streamable_http(scope: Scope, receive: Receive, send: Send) -> None:
        if not authorized(Request(scope, receive)):
            logger.warning("Rejected streamable HTTP request: invalid API key")
            await PlainTextResponse(UNAUTHORIZED, status_code=401)(scope, receive, send)
            return
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        async with session_manager.run():
            yield

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/sse", handle_sse, methods=["GET"]),
            Mount(MESSAGES_PATH, app=transport.handle_post_message),
            Mount(STREAMABLE_HTTP_PATH, app=handle_streamable_http),
        ],
        middleware=[
            Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]),
        ],
        lifespan=lifespan,
    )
    app.state.connections = registry
    return app


async def serve_sse(
    server: Server,
    host: str = "0.0.0.0",
    port: int = 3000,
    api_key: Optional[str] = None
) -> None:
    """Run the HTTP app with uvicorn until shutdown."""
    app = create_sse_app(server, api_key=api_key)

    if api_key:
        logger.info("Authentication enabled")
    logger.info("MCP SSE server starting on %s:%d", host, port)
    logger.info("SSE endpoint: http://%s:%d/sse", host, port)
    logger.info("Messages endpoint: http://%s:%d%s", host, port, MESSAGES_PATH)
    logger.info("Streamable HTTP endpoint: http://%s:%d%s/", host, port, STREAMABLE_HTTP_PATH)
    logger.info("Health check: http://%s:%d/health", host, port)

    await uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="info")).serve()
