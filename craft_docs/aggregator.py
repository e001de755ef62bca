"""
Document operations over the configured Craft documents.

search_all_notes fans out one search per document and gathers every outcome,
so one failing document never affects the others. The single-document
operations look up the document by exact name and report unknown names as a
soft error listing the configured documents.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .client import CraftClient
from .models import (
    AggregatedSearchResult,
    BlockFetchParams,
    Config,
    DocumentConfig,
    SearchParams,
)

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


def list_documents(config: Config) -> Dict[str, Any]:
    """
    List all configured Craft documents.

    Args:
        config: Loaded configuration

    Returns:
        Dict with document name/endpoint pairs and their count
    """
    documents = [doc.to_dict() for doc in config.documents]
    return {"documents": documents, "count": len(documents)}


async def search_all_notes(
    config: Config,
    query: str,
    case_sensitive: Optional[bool] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Search every configured document concurrently.

    Args:
        config: Loaded configuration
        query: Search pattern
        case_sensitive: Whether the search is case-sensitive (default False)
        transport: Optional httpx transport passed to each client

    Returns:
        Dict with query, caseSensitive, totalResults, documentsSearched,
        one result entry per document in configuration order, and an
        errors list when any document failed
    """
    case_sensitive = bool(case_sensitive)

    # return_exceptions keeps one crashed task from cancelling its siblings
    outcomes = await asyncio.gather(
        *(
            _search_one(doc, query, case_sensitive, transport)
            for doc in config.documents
        ),
        return_exceptions=True
    )

    aggregated: List[AggregatedSearchResult] = []
    for doc, outcome in zip(config.documents, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("Search task for %s raised: %r", doc.name, outcome)
            outcome = AggregatedSearchResult(
                document_name=doc.name,
                error=str(outcome) or type(outcome).__name__
            )
        aggregated.append(outcome)

    total_results = sum(len(entry.results or []) for entry in aggregated)
    errors = [entry.to_dict() for entry in aggregated if entry.error is not None]

    logger.info(
        "search_all_notes %r: %d results from %d documents (%d failed)",
        query, total_results, len(aggregated), len(errors)
    )

    response: Dict[str, Any] = {
        "query": query,
        "caseSensitive": case_sensitive,
        "totalResults": total_results,
        "documentsSearched": len(config.documents),
        "results": [entry.to_dict() for entry in aggregated],
    }
    if errors:
        response["errors"] = errors
    return response


async def search_document(
    config: Config,
    document_name: str,
    query: str,
    case_sensitive: Optional[bool] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Search within one named document.

    Returns:
        Matches with their count, an upstream error, or a not-found error
        listing the available documents
    """
    doc = config.find(document_name)
    if doc is None:
        return _document_not_found(config, document_name)

    case_sensitive = bool(case_sensitive)
    entry = await _search_one(doc, query, case_sensitive, transport)

    if entry.error is not None:
        return entry.to_dict()

    results = [r.to_dict() for r in entry.results or []]
    return {
        "documentName": doc.name,
        "query": query,
        "caseSensitive": case_sensitive,
        "resultCount": len(results),
        "results": results,
    }


async def read_document(
    config: Config,
    document_name: str,
    max_depth: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Read the block tree of a document from its root.

    Args:
        config: Loaded configuration
        document_name: Name of the document to read
        max_depth: Optional depth limit, interpreted by the upstream API
        transport: Optional httpx transport

    Returns:
        Document data, an upstream error, or a not-found error
    """
    doc = config.find(document_name)
    if doc is None:
        return _document_not_found(config, document_name)

    client = CraftClient(doc.api_endpoint, transport=transport)
    result = await client.fetch_blocks(
        BlockFetchParams(max_depth=max_depth, fetch_metadata=True)
    )

    if result.success and result.data is not None:
        return {"documentName": doc.name, "maxDepth": max_depth, "data": result.data}
    return {"documentName": doc.name, "error": result.error or UNKNOWN_ERROR}


async def read_block(
    config: Config,
    document_name: str,
    block_id: str,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Read one block (with its children) by id.

    Returns:
        Block data, an upstream error, or a not-found error
    """
    doc = config.find(document_name)
    if doc is None:
        return _document_not_found(config, document_name)

    client = CraftClient(doc.api_endpoint, transport=transport)
    result = await client.fetch_blocks(
        BlockFetchParams(id=block_id, fetch_metadata=True)
    )

    if result.success and result.data is not None:
        return {"documentName": doc.name, "blockId": block_id, "data": result.data}
    return {
        "documentName": doc.name,
        "blockId": block_id,
        "error": result.error or UNKNOWN_ERROR,
    }


async def _search_one(
    doc: DocumentConfig,
    query: str,
    case_sensitive: bool,
    transport: Optional[httpx.AsyncBaseTransport]
) -> AggregatedSearchResult:
    client = CraftClient(doc.api_endpoint, transport=transport)
    result = await client.search_blocks(
        SearchParams(pattern=query, case_sensitive=case_sensitive)
    )

    if result.success and result.results is not None:
        for match in result.results:
            match.document_name = doc.name
        return AggregatedSearchResult(document_name=doc.name, results=result.results)

    return AggregatedSearchResult(
        document_name=doc.name,
        error=result.error or UNKNOWN_ERROR
    )


def _document_not_found(config: Config, document_name: str) -> Dict[str, Any]:
    logger.info("Unknown document requested: %r", document_name)
    return {
        "error": f'Document "{document_name}" not found',
        "availableDocuments": config.document_names,
    }
