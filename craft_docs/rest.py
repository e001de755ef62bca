"""
REST facade for serverless (AWS Lambda) hosting.

Routes (API Gateway HTTP API v2 or REST v1 proxy events):
    GET    /health                          liveness and document count
    GET    /tools                           tool names, descriptions, schemas
    POST   /tools/call                      {"name", "arguments"} -> {"success", "result"}
    GET    /documents                       list_documents
    POST   /search                          search_all_notes   {"query", "caseSensitive"?}
    POST   /search/{doc}                    search_document    {"query", "caseSensitive"?}
    GET    /document/{doc}?maxDepth=        read_document
    GET    /document/{doc}/block/{id}       read_block
    OPTIONS *                               CORS preflight

Every route runs through tools.call_tool, so validation and results match
the MCP server exactly.
"""

import asyncio
import base64
import json
import logging
import re
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import unquote

import httpx

from .config import get_config
from .formatters import bound_result, error_payload
from .models import (
    MAX_RESPONSE_SIZE,
    Config,
    ConfigError,
    ToolInputError,
    UnknownToolError,
)
from .tools import call_tool, list_tool_definitions
from .truncation import serialize

logger = logging.getLogger(__name__)

SERVICE_NAME = "craft-docs"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_SEARCH_DOCUMENT = re.compile(r"^/search/(?P<doc>[^/]+)$")
_READ_BLOCK = re.compile(r"^/document/(?P<doc>[^/]+)/block/(?P<block>[^/]+)$")
_READ_DOCUMENT = re.compile(r"^/document/(?P<doc>[^/]+)$")


class _BadRequest(Exception):
    pass


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, "Content-Type": "application/json"},
        "body": serialize(body),
    }


def _parse_request(event: Dict[str, Any]) -> Tuple[str, str, Dict[str, str]]:
    """Extract method, normalized path and query parameters from an event."""
    method = (
        (event.get("requestContext") or {}).get("http", {}).get("method")
        or event.get("httpMethod")
        or "GET"
    ).upper()
    path = event.get("rawPath") or event.get("path") or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    query = event.get("queryStringParameters") or {}
    return method, path, query


def _json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise _BadRequest(f"Invalid JSON body: {e.msg}") from e
    if not isinstance(body, dict):
        raise _BadRequest("Request body must be a JSON object")
    return body


def _search_arguments(body: Dict[str, Any]) -> Dict[str, Any]:
    arguments = {"query": body.get("query")}
    if body.get("caseSensitive") is not None:
        arguments["caseSensitive"] = body["caseSensitive"]
    return {k: v for k, v in arguments.items() if v is not None}


def create_handler(
    config: Optional[Config] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    max_response_size: int = MAX_RESPONSE_SIZE
) -> Callable[[Dict[str, Any], Any], Dict[str, Any]]:
    """
    Build a Lambda handler.

    Args:
        config: Fixed configuration; by default loaded once via get_config()
        transport: Optional httpx transport for upstream calls
        max_response_size: Response budget in bytes

    Returns:
        handler(event, context) returning an API Gateway proxy response
    """

    def run_tool(cfg: Config, name: str, arguments: Dict[str, Any]) -> Any:
        result = asyncio.run(call_tool(cfg, name, arguments, transport=transport))
        return bound_result(result, max_response_size)

    def route(cfg: Config, method: str, path: str, query: Dict[str, str], event: Dict[str, Any]):
        if path == "/health":
            return _response(200, {
                "status": "ok",
                "service": SERVICE_NAME,
                "documentsConfigured": len(cfg.documents),
            })

        if path == "/tools" and method == "GET":
            return _response(200, {"tools": list_tool_definitions()})

        if path == "/tools/call" and method == "POST":
            body = _json_body(event)
            name = body.get("name")
            if not isinstance(name, str) or not name:
                raise _BadRequest("Tool name is required")
            result = run_tool(cfg, name, body.get("arguments") or {})
            return _response(200, {"success": True, "result": result})

        if path == "/documents" and method == "GET":
            return _response(200, run_tool(cfg, "list_documents", {}))

        if path == "/search" and method == "POST":
            arguments = _search_arguments(_json_body(event))
            return _response(200, run_tool(cfg, "search_all_notes", arguments))

        match = _SEARCH_DOCUMENT.match(path)
        if match and method == "POST":
            arguments = _search_arguments(_json_body(event))
            arguments["documentName"] = unquote(match.group("doc"))
            return _response(200, run_tool(cfg, "search_document", arguments))

        match = _READ_BLOCK.match(path)
        if match and method == "GET":
            arguments = {
                "documentName": unquote(match.group("doc")),
                "blockId": unquote(match.group("block")),
            }
            return _response(200, run_tool(cfg, "read_block", arguments))

        match = _READ_DOCUMENT.match(path)
        if match and method == "GET":
            arguments: Dict[str, Any] = {"documentName": unquote(match.group("doc"))}
            if query.get("maxDepth"):
                try:
                    arguments["maxDepth"] = int(query["maxDepth"])
                except ValueError as e:
                    raise _BadRequest("maxDepth must be an integer") from e
            return _response(200, run_tool(cfg, "read_document", arguments))

        return _response(404, {"error": "Not found", "path": path})

    def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        method, path, query = _parse_request(event)
        logger.info("Request: %s %s", method, path)

        if method == "OPTIONS":
            return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

        try:
            cfg = config if config is not None else get_config()
        except ConfigError as e:
            logger.error("Failed to load config: %s", e)
            return _response(500, {"error": "Configuration error", "message": str(e)})

        try:
            return route(cfg, method, path, query, event)
        except _BadRequest as e:
            return _response(400, {"error": str(e)})
        except (ToolInputError, UnknownToolError) as e:
            return _response(400, error_payload(e))
        except Exception as e:
            logger.exception("Handler error")
            return _response(500, {"error": "Internal server error", "message": str(e)})

    return handler


handler = create_handler()
