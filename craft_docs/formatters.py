"""
Response formatting for tool results.

Applies the response size budget and renders results and errors as JSON
for MCP clients and REST callers.
"""

import json
from typing import Any, Dict, Optional

from .models import (
    MAX_RESPONSE_SIZE,
    ToolInputError,
    TruncationPolicy,
    UnknownToolError,
)
from .truncation import truncate_response


def bound_result(
    result: Any,
    max_size: int = MAX_RESPONSE_SIZE,
    policy: Optional[TruncationPolicy] = None
) -> Any:
    """
    Fit a tool result into the response budget.

    Args:
        result: Tool result
        max_size: Budget in bytes
        policy: Optional truncation tuning

    Returns:
        The result itself, or its truncated envelope with "_metadata"
    """
    return truncate_response(result, max_size, policy).data


def format_result(
    result: Any,
    max_size: int = MAX_RESPONSE_SIZE,
    policy: Optional[TruncationPolicy] = None
) -> str:
    """Bound a tool result and render it as indented JSON text."""
    return json.dumps(bound_result(result, max_size, policy), indent=2, ensure_ascii=False)


def error_payload(error: Exception) -> Dict[str, Any]:
    """
    Build the caller-visible payload for a failed tool call.

    Validation and unknown-tool errors keep their structure; anything else
    is reduced to its message.
    """
    if isinstance(error, (ToolInputError, UnknownToolError)):
        return error.to_dict()
    return {"error": str(error) or type(error).__name__}


def format_error(error: Exception) -> str:
    """Render a failed tool call as JSON text."""
    return json.dumps(error_payload(error), indent=2, ensure_ascii=False)
