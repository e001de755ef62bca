"""
Craft Docs - read-only access to Craft documents for MCP clients.

Public API for listing, searching and reading one or more configured
Craft document APIs. Searches fan out across every document and tolerate
per-document failures; results can be bounded to a byte budget with
truncate_response().

Example:
    >>> config = load_config("config.json")
    >>> result = await search_all_notes(config, "meeting notes")
    >>> result["totalResults"], result.get("errors")
"""

from .aggregator import (
    list_documents,
    read_block,
    read_document,
    search_all_notes,
    search_document,
)
from .client import CraftClient, fetch_blocks, search_blocks
from .config import get_config, load_config, parse_config
from .models import (
    Config,
    ConfigError,
    DocumentConfig,
    ToolInputError,
    TruncationPolicy,
    UnknownToolError,
)
from .tools import call_tool, list_tool_definitions
from .truncation import calculate_response_size, truncate_response

__all__ = [
    'Config',
    'ConfigError',
    'CraftClient',
    'DocumentConfig',
    'ToolInputError',
    'TruncationPolicy',
    'UnknownToolError',
    'calculate_response_size',
    'call_tool',
    'fetch_blocks',
    'get_config',
    'list_documents',
    'list_tool_definitions',
    'load_config',
    'parse_config',
    'read_block',
    'read_document',
    'search_all_notes',
    'search_blocks',
    'search_document',
    'truncate_response',
]
