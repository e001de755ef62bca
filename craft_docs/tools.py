"""
Tool definitions for the Craft document server.

Each tool pairs a pydantic input model with a handler that delegates to the
document operations in aggregator.py. Both the MCP server and the REST
facade dispatch through call_tool(), so argument validation and results are
identical on every transport.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .aggregator import (
    list_documents,
    read_block,
    read_document,
    search_all_notes,
    search_document,
)
from .models import Config, ToolInputError, UnknownToolError


# ============================================================================
# Input Models (Pydantic v2)
# ============================================================================

class _ToolInput(BaseModel):
    # Strict: "true" is not a boolean and "3" is not a depth
    model_config = ConfigDict(extra="forbid", strict=True, populate_by_name=True)


class ListDocumentsInput(_ToolInput):
    """list_documents takes no arguments."""


class SearchAllNotesInput(_ToolInput):
    """Input model for searching every configured document."""
    query: str = Field(..., description="Search query pattern")
    case_sensitive: Optional[bool] = Field(
        default=None,
        alias="caseSensitive",
        description="Whether search is case-sensitive (default: false)"
    )


class SearchDocumentInput(_ToolInput):
    """Input model for searching one document."""
    document_name: str = Field(
        ...,
        alias="documentName",
        description="Name of the document to search"
    )
    query: str = Field(..., description="Search query pattern")
    case_sensitive: Optional[bool] = Field(
        default=None,
        alias="caseSensitive",
        description="Whether search is case-sensitive (default: false)"
    )


class ReadDocumentInput(_ToolInput):
    """Input model for reading a whole document."""
    document_name: str = Field(
        ...,
        alias="documentName",
        description="Name of the document to read"
    )
    max_depth: Optional[int] = Field(
        default=None,
        alias="maxDepth",
        description="Maximum depth of block hierarchy to fetch (optional)"
    )


class ReadBlockInput(_ToolInput):
    """Input model for reading one block."""
    document_name: str = Field(
        ...,
        alias="documentName",
        description="Name of the document containing the block"
    )
    block_id: str = Field(..., alias="blockId", description="ID of the block to read")


# ============================================================================
# Tool Registry
# ============================================================================

Handler = Callable[[Config, Any, Optional[httpx.AsyncBaseTransport]], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_model: Type[_ToolInput]
    handler: Handler

    def input_schema(self) -> Dict[str, Any]:
        schema = self.input_model.model_json_schema(by_alias=True)
        schema.setdefault("properties", {})
        return schema

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


async def _list_documents(config, params: ListDocumentsInput, transport):
    return list_documents(config)


async def _search_all_notes(config, params: SearchAllNotesInput, transport):
    return await search_all_notes(config, params.query, params.case_sensitive, transport=transport)


async def _search_document(config, params: SearchDocumentInput, transport):
    return await search_document(
        config, params.document_name, params.query, params.case_sensitive, transport=transport
    )


async def _read_document(config, params: ReadDocumentInput, transport):
    return await read_document(config, params.document_name, params.max_depth, transport=transport)


async def _read_block(config, params: ReadBlockInput, transport):
    return await read_block(config, params.document_name, params.block_id, transport=transport)


TOOLS: Dict[str, ToolDefinition] = {
    tool.name: tool
    for tool in (
        ToolDefinition(
            name="list_documents",
            description="List all available Craft documents configured in the server",
            input_model=ListDocumentsInput,
            handler=_list_documents,
        ),
        ToolDefinition(
            name="search_all_notes",
            description=(
                "Search across all configured Craft documents. Returns aggregated "
                "results with document name context. Gracefully handles failures "
                "from individual documents."
            ),
            input_model=SearchAllNotesInput,
            handler=_search_all_notes,
        ),
        ToolDefinition(
            name="search_document",
            description=(
                "Search within a specific Craft document by name. "
                "Returns matching blocks with context."
            ),
            input_model=SearchDocumentInput,
            handler=_search_document,
        ),
        ToolDefinition(
            name="read_document",
            description=(
                "Read the entire structure of a Craft document, "
                "including all blocks and their hierarchy"
            ),
            input_model=ReadDocumentInput,
            handler=_read_document,
        ),
        ToolDefinition(
            name="read_block",
            description="Read a specific block from a Craft document by its ID",
            input_model=ReadBlockInput,
            handler=_read_block,
        ),
    )
}


def list_tool_definitions() -> List[Dict[str, Any]]:
    """Name, description and JSON input schema of every tool, in registry order."""
    return [tool.to_dict() for tool in TOOLS.values()]


def validate_arguments(tool: ToolDefinition, arguments: Optional[Dict[str, Any]]) -> _ToolInput:
    """
    Validate raw tool arguments against the tool's input model.

    Raises:
        ToolInputError: Naming every offending field
    """
    try:
        return tool.input_model.model_validate(arguments if arguments is not None else {})
    except ValidationError as e:
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "arguments",
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        raise ToolInputError(tool.name, details) from e


async def call_tool(
    config: Config,
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Validate arguments and run a tool.

    Args:
        config: Loaded configuration
        name: Tool name
        arguments: Raw caller-supplied arguments
        transport: Optional httpx transport for upstream calls

    Returns:
        The tool's JSON-serializable result (unbounded)

    Raises:
        UnknownToolError: If name is not a registered tool
        ToolInputError: If the arguments do not match the tool's shape
    """
    tool = TOOLS.get(name)
    if tool is None:
        raise UnknownToolError(name)

    params = validate_arguments(tool, arguments)
    return await tool.handler(config, params, transport)
