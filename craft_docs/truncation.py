"""
Response size management for tool results.

Measures the serialized size of a result and, when it exceeds the byte
budget, rewrites it to fit while keeping it valid structured JSON:

- Arrays keep a prefix of their elements plus one "_truncated" marker.
- Objects keep the fields that fit plus one "_remaining" marker field.
  Long array fields are truncated in place with a fraction of the budget,
  and long strings are cut.

Accumulation is first-fit in structural order, so the same input and
budget always produce the same cut points.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .models import (
    BoundedResponse,
    ResponseMetadata,
    TruncationPolicy,
    TRUNCATION_MESSAGE,
)

logger = logging.getLogger(__name__)

STRING_SUFFIX = "... (truncated)"
REMAINING_FIELDS = "... additional fields truncated"


def serialize(data: Any) -> str:
    """Compact JSON text used both for measuring and for REST bodies."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)


def calculate_response_size(data: Any) -> int:
    """
    Calculate the size of a JSON response in bytes.

    Args:
        data: Any JSON-serializable value

    Returns:
        UTF-8 byte length of its compact serialization
    """
    return len(serialize(data).encode("utf-8"))


def truncate_response(
    data: Any,
    max_size: int,
    policy: Optional[TruncationPolicy] = None
) -> BoundedResponse:
    """
    Truncate a response to fit within a size limit.

    Args:
        data: Value to bound
        max_size: Budget in bytes
        policy: Truncation tuning, defaults to TruncationPolicy()

    Returns:
        BoundedResponse whose data is either the untouched input or a
        truncated copy carrying a "_metadata" block
    """
    policy = policy or TruncationPolicy()
    original_size = calculate_response_size(data)

    if original_size <= max_size:
        return BoundedResponse(
            data=data,
            metadata=ResponseMetadata(size=original_size, truncated=False)
        )

    logger.warning(
        "Response truncated: %d bytes exceeds limit of %d bytes",
        original_size, max_size
    )

    truncated = _truncate_value(data, max_size, policy)
    if not isinstance(truncated, dict):
        truncated = {"data": truncated}
    truncated_size = calculate_response_size(truncated)

    envelope = dict(truncated)
    envelope["_metadata"] = {
        "truncated": True,
        "originalSize": original_size,
        "truncatedSize": truncated_size,
        "message": TRUNCATION_MESSAGE,
    }

    return BoundedResponse(
        data=envelope,
        metadata=ResponseMetadata(
            size=calculate_response_size(envelope),
            truncated=True,
            original_size=original_size
        )
    )


def _truncate_value(value: Any, target_size: float, policy: TruncationPolicy) -> Any:
    if isinstance(value, list):
        return _truncate_list(value, target_size, policy)
    if isinstance(value, dict):
        return _truncate_dict(value, target_size, policy)
    if isinstance(value, str):
        return _truncate_string(value, policy)
    return value


def _truncate_list(items: List[Any], target_size: float, policy: TruncationPolicy) -> List[Any]:
    limit = target_size * policy.headroom
    kept: List[Any] = []
    current = 2  # []

    for index, item in enumerate(items):
        item_size = calculate_response_size(item) + (1 if kept else 0)
        if current + item_size > limit:
            kept.append({"_truncated": f"... {len(items) - index} more items truncated"})
            break
        kept.append(item)
        current += item_size

    return kept


def _truncate_dict(obj: Dict[str, Any], target_size: float, policy: TruncationPolicy) -> Dict[str, Any]:
    limit = target_size * policy.headroom
    kept: Dict[str, Any] = {}
    current = 2  # {}

    for key, value in obj.items():
        if isinstance(value, list) and len(value) > policy.nested_array_threshold:
            value = _truncate_list(value, target_size * policy.nested_budget_fraction, policy)
        elif isinstance(value, str):
            value = _truncate_string(value, policy)

        # "key":value, measured without the enclosing braces
        pair_size = calculate_response_size({key: value}) - 2 + (1 if kept else 0)
        if current + pair_size > limit:
            kept["_remaining"] = REMAINING_FIELDS
            break
        kept[key] = value
        current += pair_size

    return kept


def _truncate_string(value: str, policy: TruncationPolicy) -> str:
    if len(value) <= policy.string_limit:
        return value
    return value[:policy.string_limit] + STRING_SUFFIX
