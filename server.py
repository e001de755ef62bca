#!/usr/bin/env python3
"""
Craft Docs MCP Server

An MCP server providing read-only access to one or more Craft documents.
Enables AI agents to list, search, and read Craft documents, with searches
fanned out across every configured document.

Usage:
    python server.py            # stdio transport
    python server.py --sse      # SSE transport on $PORT (default 3000)
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load .env before craft_docs reads its environment constants
load_dotenv()

import httpx  # noqa: E402
import mcp.types as types  # noqa: E402
from mcp.server import Server  # noqa: E402
from mcp.server.stdio import stdio_server  # noqa: E402

from craft_docs import Config, ConfigError, load_config  # noqa: E402
from craft_docs.formatters import format_result  # noqa: E402
from craft_docs.models import MAX_RESPONSE_SIZE  # noqa: E402
from craft_docs.sse import serve_sse  # noqa: E402
from craft_docs.tools import TOOLS, call_tool  # noqa: E402

# Configure logging (stderr; stdout carries the stdio protocol)
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("craft-docs")

SERVER_NAME = "craft-docs"


# ============================================================================
# MCP Server
# ============================================================================

def create_server(
    config: Config,
    max_response_size: int = MAX_RESPONSE_SIZE,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Server:
    """
    Create the MCP server and register the Craft tools.

    Args:
        config: Loaded document configuration
        max_response_size: Byte budget applied to every tool result
        transport: Optional httpx transport for upstream calls (tests)

    Returns:
        Configured MCP server
    """
    app = Server(SERVER_NAME)

    @app.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema(),
                annotations=types.ToolAnnotations(
                    readOnlyHint=True,
                    openWorldHint=True
                ),
            )
            for tool in TOOLS.values()
        ]

    # Arguments are validated by the pydantic input models, not the SDK's
    # jsonschema check, so errors name the offending field.
    @app.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: Optional[dict]) -> List[types.TextContent]:
        """
        Run a Craft tool.

        Invalid arguments and unknown tools raise ToolInputError /
        UnknownToolError, which the SDK returns to the client as a tool
        error whose text is the structured JSON error.
        """
        logger.info("Tool call: %s", name)
        result = await call_tool(config, name, arguments, transport=transport)
        return [types.TextContent(type="text", text=format_result(result, max_response_size))]

    return app


# ============================================================================
# Server Entry Point
# ============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Craft Docs MCP server")
    parser.add_argument(
        "-s", "--sse",
        action="store_true",
        help="Serve over SSE instead of stdio (overrides MCP_TRANSPORT)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port for the SSE transport (default: $PORT or 3000)"
    )
    return parser.parse_args(argv)


def select_transport(args: argparse.Namespace) -> str:
    """Command-line flag first, then MCP_TRANSPORT, then stdio."""
    if args.sse:
        return "sse"
    return os.getenv("MCP_TRANSPORT", "stdio").lower()


async def main(argv: Optional[List[str]] = None):
    """Load configuration and run the MCP server on the selected transport."""
    args = parse_args(argv)

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    logger.info("Loaded configuration with %d document(s)", len(config.documents))
    app = create_server(config)

    if select_transport(args) == "sse":
        await serve_sse(
            app,
            host=os.getenv("HOST", "0.0.0.0"),
            port=args.port,
            api_key=os.getenv("MCP_API_KEY") or None
        )
        return

    logger.info("Starting Craft Docs MCP Server in stdio mode")

    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
