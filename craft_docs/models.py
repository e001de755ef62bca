"""
Internal types for the craft_docs package.

These types are used internally after validation has already occurred
at the tool boundary (tools.py). They are simple dataclasses without
validation logic; the JSON shape handed back to callers is produced by
their to_dict() methods.
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


# ============================================================================
# Configurable Constants
# ============================================================================

# Upstream request timeout in seconds
DEFAULT_TIMEOUT = float(os.getenv("CRAFT_API_TIMEOUT", "30"))

# Serialized response budget in bytes (1 MiB)
MAX_RESPONSE_SIZE = int(os.getenv("MAX_RESPONSE_SIZE", "1048576"))

# Truncation tuning
TRUNCATION_HEADROOM = float(os.getenv("TRUNCATION_HEADROOM", "0.9"))
TRUNCATION_NESTED_FRACTION = float(os.getenv("TRUNCATION_NESTED_FRACTION", "0.25"))
TRUNCATION_NESTED_THRESHOLD = int(os.getenv("TRUNCATION_NESTED_THRESHOLD", "10"))
TRUNCATION_STRING_LIMIT = int(os.getenv("TRUNCATION_STRING_LIMIT", "1000"))

TRUNCATION_MESSAGE = (
    "Response was truncated due to size limits. "
    "Use more specific queries or increase MAX_RESPONSE_SIZE."
)


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class DocumentConfig:
    """
    A single configured Craft document.

    Attributes:
        name: Caller-facing document key, unique within a Config
        api_endpoint: Base URL of the document's Craft API
    """
    name: str
    api_endpoint: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "apiEndpoint": self.api_endpoint}


@dataclass(frozen=True)
class Config:
    """Process-wide, read-only set of configured documents."""
    documents: Tuple[DocumentConfig, ...]

    @property
    def document_names(self) -> List[str]:
        return [doc.name for doc in self.documents]

    def find(self, name: str) -> Optional[DocumentConfig]:
        """Look up a document by exact name."""
        for doc in self.documents:
            if doc.name == name:
                return doc
        return None


# ============================================================================
# Upstream Request / Response Types
# ============================================================================

@dataclass
class BlockFetchParams:
    """Query parameters for GET {endpoint}/blocks."""
    id: Optional[str] = None
    max_depth: Optional[int] = None
    fetch_metadata: Optional[bool] = None

    def to_query(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "maxDepth": self.max_depth,
            "fetchMetadata": self.fetch_metadata,
        })


@dataclass
class SearchParams:
    """Query parameters for GET {endpoint}/blocks/search."""
    pattern: str
    case_sensitive: Optional[bool] = None
    before_block_count: Optional[int] = None
    after_block_count: Optional[int] = None

    def to_query(self) -> Dict[str, Any]:
        return _drop_none({
            "pattern": self.pattern,
            "caseSensitive": self.case_sensitive,
            "beforeBlockCount": self.before_block_count,
            "afterBlockCount": self.after_block_count,
        })


@dataclass
class SearchResult:
    """
    A single block match.

    Attributes:
        block: Matched block, opaque JSON from the upstream API
        document_name: Name of the document the block came from
        path: Optional ancestor identifiers of the block
    """
    block: Any
    document_name: Optional[str] = None
    path: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"block": self.block}
        if self.document_name is not None:
            data["documentName"] = self.document_name
        if self.path is not None:
            data["path"] = self.path
        return data


@dataclass
class BlocksResponse:
    """Outcome of a block fetch: data on success, error text otherwise."""
    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass
class SearchResponse:
    """Outcome of a block search: results on success, error text otherwise."""
    success: bool
    results: Optional[List[SearchResult]] = None
    error: Optional[str] = None


@dataclass
class AggregatedSearchResult:
    """
    Per-document entry of a multi-document search.

    Exactly one of results or error is populated.
    """
    document_name: str
    results: Optional[List[SearchResult]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"documentName": self.document_name, "error": self.error}
        return {
            "documentName": self.document_name,
            "results": [r.to_dict() for r in self.results or []],
        }


# ============================================================================
# Response Bounding Types
# ============================================================================

@dataclass(frozen=True)
class TruncationPolicy:
    """
    Tuning knobs for response truncation.

    Attributes:
        headroom: Fraction of the budget that accumulated content may use
        nested_budget_fraction: Budget fraction given to long nested arrays
        nested_array_threshold: Arrays longer than this are truncated in place
        string_limit: Strings longer than this many characters are cut
    """
    headroom: float = TRUNCATION_HEADROOM
    nested_budget_fraction: float = TRUNCATION_NESTED_FRACTION
    nested_array_threshold: int = TRUNCATION_NESTED_THRESHOLD
    string_limit: int = TRUNCATION_STRING_LIMIT


@dataclass
class ResponseMetadata:
    size: int
    truncated: bool
    original_size: Optional[int] = None


@dataclass
class BoundedResponse:
    data: Any
    metadata: ResponseMetadata


# ============================================================================
# Custom Exceptions
# ============================================================================

class ConfigError(Exception):
    """Raised when the document configuration is missing or malformed."""


class ToolInputError(Exception):
    """
    Raised when tool arguments fail validation.

    Attributes:
        tool: Name of the tool that was called
        details: List of {"field", "message"} dicts, one per violation
    """
    def __init__(self, tool: str, details: List[Dict[str, str]]):
        self.tool = tool
        self.details = details
        fields = ", ".join(d["field"] for d in details) or "arguments"
        super().__init__(f"Invalid arguments for {tool}: {fields}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": f"Invalid arguments for {self.tool}",
            "tool": self.tool,
            "details": self.details,
        }

    def __str__(self) -> str:
        # MCP surfaces str(exc) as the tool error text
        return json.dumps(self.to_dict())


class UnknownToolError(Exception):
    """Raised when a tool name is not one of the registered tools."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")

    def to_dict(self) -> Dict[str, Any]:
        return {"error": f"Unknown tool: {self.name}"}

    def __str__(self) -> str:
        return json.dumps(self.to_dict())


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}
