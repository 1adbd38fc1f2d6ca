"""entscheidsuche.mcp.handlers

Operation handlers shared by the MCP server and the REST API.

Each handler validates/clamps its inputs, calls the upstream client,
normalizes the response and returns an `OperationResult`. Handlers never
raise: upstream failures come back as results with `is_error=True`.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Optional

from entscheidsuche.config.settings import settings
from entscheidsuche.core.errors import DocumentFetchFailed, EntscheidsucheError, NotFoundError
from entscheidsuche.models.schemas import SearchQuery
from entscheidsuche.pipeline.collectors.entscheidsuche_client import EntscheidsucheClient
from entscheidsuche.pipeline.normalizers import (
    build_document_urls,
    extract_pdf_text,
    extract_scraper_ids,
    normalize_metadata,
    normalize_scraper_status,
    scrape_courts_by_canton,
    truncate,
)
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


DOCUMENT_FORMATS = ("json", "text", "html", "pdf")


@dataclass
class OperationResult:
    text: str
    data: Optional[dict[str, Any]] = None
    is_error: bool = False
    not_found: bool = False


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _ok(payload: dict[str, Any], prefix: str = "") -> OperationResult:
    text = _dumps(payload)
    if prefix:
        text = f"{prefix}\n\n{text}"
    return OperationResult(text=text, data=payload)


def _error(message: str, *, not_found: bool = False) -> OperationResult:
    return OperationResult(text=message, is_error=True, not_found=not_found)


async def _fetch(signature: str, pending):
    """Await a document fetch; a 404 on the derived URL becomes NotFoundError"""
    try:
        return await pending
    except DocumentFetchFailed as e:
        if e.not_found:
            raise NotFoundError(signature) from e
        raise


# ----------------------------------------------------------------------
# tools
# ----------------------------------------------------------------------
async def search_decisions(
    client: EntscheidsucheClient,
    query: str,
    size: Any = None,
    offset: Any = None,
    sort: Optional[str] = None,
) -> OperationResult:
    search_query = SearchQuery.create(
        query,
        size,
        offset,
        sort,
        default_size=settings.default_page_size,
        max_size=settings.max_page_size,
    )
    if not search_query.query:
        return _error("Error performing search: query must not be empty")

    started = time.perf_counter()
    try:
        page = await client.search(search_query)
    except EntscheidsucheError as e:
        logger.error(f"Search failed for '{search_query.query}': {e}")
        return _error(f"Error performing search: {e}")
    elapsed_ms = (time.perf_counter() - started) * 1000.0

    payload = {
        **page.to_payload(),
        "query": search_query.query,
        "size": search_query.size,
        "from": search_query.offset,
        "searchTimeMs": elapsed_ms,
    }
    summary = (
        f'Found {page.total_results} total cases matching "{search_query.query}". '
        f"Showing {len(page.results)} results starting from position {search_query.offset}."
    )
    return _ok(payload, prefix=summary)


async def get_document(
    client: EntscheidsucheClient,
    signature: str,
    collection: Optional[str] = None,
    fmt: str = "json",
) -> OperationResult:
    """
    Document content in one of: json (raw metadata), text (normalized
    metadata), html (page source), pdf (extracted text).
    """
    signature = str(signature or "").strip()
    fmt = str(fmt or "json").strip().lower()
    if not signature:
        return _error("Error retrieving document: signature must not be empty")
    if fmt not in DOCUMENT_FORMATS:
        return _error(f"Error retrieving document: unsupported format '{fmt}'")

    collection = str(collection).strip() if collection else None

    try:
        actual_collection, location = await client.locate(signature, collection)

        if fmt in ("json", "text"):
            raw = await _fetch(signature, client.fetch_document_json(signature, actual_collection, location))
            if fmt == "json":
                return OperationResult(
                    text=f"Document metadata for {signature}:\n\n{_dumps(raw)}",
                    data=raw,
                )
            metadata = normalize_metadata(raw, client.docs_base_url)
            return _ok(metadata.to_payload())

        content = await _fetch(signature, client.fetch_document(signature, actual_collection, fmt, location))
    except EntscheidsucheError as e:
        logger.error(f"Document retrieval failed for {signature}: {e}")
        return _error(f"Error retrieving document: {e}", not_found=isinstance(e, NotFoundError))

    if fmt == "pdf":
        text = extract_pdf_text(content)
        if not text:
            return _error(f"Error retrieving document: no extractable text in PDF for {signature}")
    else:
        text = content.decode("utf-8", errors="replace")

    body = truncate(text, settings.max_content_chars)
    return OperationResult(text=f"Document content ({fmt}):\n\n{body}")


async def list_courts(client: EntscheidsucheClient, canton: Optional[str] = None) -> OperationResult:
    canton = str(canton).strip() if canton else None
    try:
        html = await client.fetch_status_page()
    except EntscheidsucheError as e:
        logger.error(f"Status page fetch failed: {e}")
        return _error(f"Error listing courts: {e}")

    courts = scrape_courts_by_canton(html, canton)
    logger.info(f"Listed courts for {len(courts)} canton(s)")
    return _ok(courts)


async def get_document_urls(
    client: EntscheidsucheClient,
    signature: str,
    collection: Optional[str] = None,
) -> OperationResult:
    signature = str(signature or "").strip()
    if not signature:
        return _error("Error getting document URLs: signature must not be empty")

    try:
        actual_collection, location = await client.locate(signature, collection or None)
        json_url = client.document_url(signature, actual_collection, "json", location)
        raw = await _fetch(signature, client.fetch_document_json(signature, actual_collection, location))
    except EntscheidsucheError as e:
        logger.error(f"Document URL lookup failed for {signature}: {e}")
        return _error(f"Error getting document URLs: {e}", not_found=isinstance(e, NotFoundError))

    urls = build_document_urls(signature, raw, client.docs_base_url, json_url=json_url)
    return _ok(urls.to_payload())


# ----------------------------------------------------------------------
# resources (always return a JSON document, errors included)
# ----------------------------------------------------------------------
async def read_scrapers(client: EntscheidsucheClient) -> str:
    try:
        html = await client.fetch_status_page()
    except EntscheidsucheError as e:
        logger.error(f"Status page fetch failed: {e}")
        return _dumps({"error": f"Error listing scrapers: {e}"})

    return _dumps(
        {
            "scrapers": extract_scraper_ids(html),
            "note": "For details about each scraper, query the scraper-details resource.",
            "statusPageUrl": client.status_url,
        }
    )


async def read_scraper_details(client: EntscheidsucheClient, scraper_id: str) -> str:
    scraper_id = str(scraper_id or "").strip()
    try:
        raw = await client.fetch_scraper_index(scraper_id)
    except EntscheidsucheError as e:
        logger.error(f"Scraper index fetch failed for {scraper_id}: {e}")
        return _dumps({"error": f"Error fetching scraper {scraper_id}: {e}"})

    status = normalize_scraper_status(scraper_id, raw, client.docs_base_url)
    return _dumps({**status.to_payload(), "details": raw or "No data available"})


async def read_document_metadata(client: EntscheidsucheClient, document_id: str) -> str:
    document_id = str(document_id or "").strip()
    try:
        collection, location = await client.locate(document_id)
        raw = await _fetch(document_id, client.fetch_document_json(document_id, collection, location))
    except EntscheidsucheError as e:
        logger.error(f"Document metadata fetch failed for {document_id}: {e}")
        return _dumps({"error": f"Error fetching document {document_id}: {e}"})

    return _dumps(normalize_metadata(raw, client.docs_base_url).to_payload())


async def read_court_status(client: EntscheidsucheClient) -> str:
    result = await list_courts(client)
    if result.is_error:
        return _dumps({"error": result.text})
    return result.text
