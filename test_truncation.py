#!/usr/bin/env python3
"""
Tests for response size management.

Run with: pytest test_truncation.py
"""

import copy

from craft_docs import TruncationPolicy, calculate_response_size, truncate_response
from craft_docs.formatters import bound_result, format_result

MIB = 1_048_576


def _blocks(count: int, content_size: int = 200) -> list:
    return [{"id": f"{i:06d}", "content": "y" * content_size} for i in range(count)]


def test_size_is_utf8_bytes_of_compact_json():
    assert calculate_response_size({"a": [1, 2]}) == len('{"a":[1,2]}')
    assert calculate_response_size("é") == 4  # quotes + two bytes


def test_under_budget_is_unchanged():
    data = {"documents": [{"name": "Notes"}], "count": 1}
    bounded = truncate_response(data, 1000)

    assert bounded.data is data
    assert bounded.metadata.truncated is False
    assert bounded.metadata.size == calculate_response_size(data)
    assert bounded.metadata.original_size is None


def test_exact_budget_is_not_truncated():
    data = {"text": "z" * 50}
    assert truncate_response(data, calculate_response_size(data)).metadata.truncated is False


def test_two_megabyte_payload_fits_one_mebibyte_budget():
    payload = {"data": "x" * (2_000_000 - len('{"data":""}'))}
    assert calculate_response_size(payload) == 2_000_000

    bounded = truncate_response(payload, MIB)

    assert calculate_response_size(bounded.data) <= MIB
    assert bounded.data["_metadata"]["truncated"] is True
    assert bounded.data["_metadata"]["originalSize"] == 2_000_000
    assert bounded.metadata.truncated is True
    assert bounded.metadata.original_size == 2_000_000
    assert bounded.data["data"].endswith("... (truncated)")


def test_long_result_list_keeps_prefix_and_one_marker():
    results = _blocks(10_000)
    payload = {"query": "y", "totalResults": len(results), "results": results}
    assert calculate_response_size(payload) > 2 * MIB

    bounded = truncate_response(payload, MIB)
    kept = bounded.data["results"]

    assert calculate_response_size(bounded.data) <= MIB
    assert bounded.data["query"] == "y"
    assert bounded.data["totalResults"] == 10_000
    assert kept[:-1] == results[:len(kept) - 1]
    assert list(kept[-1]) == ["_truncated"]
    dropped = int(kept[-1]["_truncated"].split()[1])
    assert len(kept) - 1 + dropped == len(results)
    assert sum("_truncated" in item for item in kept) == 1


def test_top_level_list_is_wrapped():
    items = _blocks(500)
    bounded = truncate_response(items, 10_000)

    assert set(bounded.data) == {"data", "_metadata"}
    assert bounded.data["data"][-1]["_truncated"].endswith("more items truncated")
    assert calculate_response_size(bounded.data) <= 10_000


def test_fields_past_budget_collapse_into_remaining():
    payload = {f"field{i}": "v" * 500 for i in range(20)}
    bounded = truncate_response(payload, 3_000)
    fields = [key for key in bounded.data if key != "_metadata"]

    assert fields[-1] == "_remaining"
    assert fields[:-1] == [f"field{i}" for i in range(len(fields) - 1)]
    assert bounded.data["_remaining"] == "... additional fields truncated"


def test_long_strings_are_cut():
    payload = {"content": "a" * 5_000, "id": "b1"}
    bounded = truncate_response(payload, 3_000)

    assert bounded.data["content"] == "a" * 1000 + "... (truncated)"
    assert bounded.data["id"] == "b1"


def test_truncation_is_deterministic():
    payload = {"results": _blocks(3_000), "note": "n" * 4_000}

    first = truncate_response(payload, 50_000).data
    second = truncate_response(copy.deepcopy(payload), 50_000).data

    assert first == second


def test_rebounding_truncated_output_is_stable():
    payload = {"results": _blocks(3_000)}
    budget = 50_000

    once = truncate_response(payload, budget)
    twice = truncate_response(once.data, budget)

    assert once.metadata.truncated is True
    assert twice.metadata.truncated is False
    assert twice.data == once.data


def test_policy_controls_cut_points():
    payload = {"results": _blocks(400, content_size=50)}
    assert calculate_response_size(payload) > 20_000

    default = truncate_response(payload, 20_000).data["results"]
    tight = truncate_response(
        payload, 20_000, TruncationPolicy(nested_budget_fraction=0.1)
    ).data["results"]
    no_nesting = truncate_response(
        payload, 20_000, TruncationPolicy(nested_array_threshold=1_000)
    ).data

    assert len(tight) < len(default)
    # Without in-place array truncation the oversized field cannot fit at all
    assert "results" not in no_nesting
    assert no_nesting["_remaining"] == "... additional fields truncated"


def test_bound_and_format_result():
    small = {"count": 1}
    assert bound_result(small, 100) is small
    assert format_result(small, 100) == '{\n  "count": 1\n}'

    big = {"results": _blocks(100)}
    assert bound_result(big, 2_000)["_metadata"]["truncated"] is True
