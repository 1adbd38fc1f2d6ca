"""
entscheidsuche.ch API client

Search (full-text `_search.php` or direct Elasticsearch), signature lookup
and raw document/metadata fetches. No local state besides the shared
transport.
"""
import json
from typing import Any, Optional
from urllib.parse import urlparse

from entscheidsuche.config.settings import settings
from entscheidsuche.core.errors import (
    DocumentFetchFailed,
    EntscheidsucheError,
    SearchFailed,
    UnparseableResponseError,
    UpstreamError,
)
from entscheidsuche.core.transport import RateLimitedTransport
from entscheidsuche.models.schemas import DocumentLocation, SearchQuery, SearchResultPage
from entscheidsuche.pipeline.normalizers import (
    DIALECT_ELASTIC,
    DIALECT_FULLTEXT,
    normalize_location,
    normalize_search_response,
)
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


SIGNATURE_SEPARATOR = "_"
SORT_DIRECTIONS = ("asc", "desc")


def derive_collection(signature: str) -> str:
    """
    Guess the owning collection from a signature.

    "CH_BGer_005_5F-23-2025_2025-07-01" -> "CH_BGer". Best-effort only: not
    every collection name is the first two segments of its signatures.
    """
    parts = str(signature).split(SIGNATURE_SEPARATOR)
    if len(parts) >= 2:
        return SIGNATURE_SEPARATOR.join(parts[:2])
    return str(signature)


def parse_sort(sort: Optional[str]) -> list[dict]:
    """
    "Datum:asc" -> [{"Datum": {"order": "asc"}}]; direction defaults to desc
    """
    if not sort or not str(sort).strip():
        return []

    field, _, direction = str(sort).strip().partition(":")
    field = field.strip()
    if not field:
        return []

    direction = direction.strip().lower()
    if direction not in SORT_DIRECTIONS:
        direction = "desc"
    return [{field: {"order": direction}}]


def _collection_from_content_url(content_url: str) -> Optional[str]:
    """Directory right below /docs/ in a content URL"""
    parts = [p for p in urlparse(content_url).path.split("/") if p]
    if "docs" in parts:
        idx = parts.index("docs")
        # need at least docs/<collection>/<file>
        if idx + 2 < len(parts):
            return parts[idx + 1]
    return None


def _json_body(response, url: str) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        logger.error(f"JSON parsing error for {url}: {e}")
        raise UnparseableResponseError(url, str(e)) from e


class EntscheidsucheClient:
    """Thin request builder over RateLimitedTransport"""

    def __init__(
        self,
        transport: RateLimitedTransport,
        *,
        base_url: str = settings.base_url,
        search_url: str = settings.search_url,
        elastic_url: str = settings.elastic_url,
        dialect: str = settings.search_dialect,
    ):
        if dialect not in (DIALECT_FULLTEXT, DIALECT_ELASTIC):
            raise ValueError(f"Unsupported search dialect: {dialect}")

        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.search_url = search_url
        self.elastic_url = elastic_url
        self.dialect = dialect

    @property
    def docs_base_url(self) -> str:
        return f"{self.base_url}/docs"

    @property
    def status_url(self) -> str:
        return f"{self.base_url}/status"

    @property
    def search_endpoint(self) -> str:
        return self.elastic_url if self.dialect == DIALECT_ELASTIC else self.search_url

    # ------------------------------------------------------------------
    # search
    # ------------------------------------------------------------------
    def build_search_body(self, query: SearchQuery) -> dict:
        if self.dialect == DIALECT_ELASTIC:
            body: dict[str, Any] = {
                "query": {"query_string": {"query": query.query}},
                "size": query.size,
                "from": query.offset,
            }
            sort = parse_sort(query.sort)
        else:
            body = {
                "query": {
                    "simple_query_string": {
                        "query": query.query,
                        "default_operator": "and",
                    }
                },
                "size": query.size,
                "from": query.offset,
            }
            sort = parse_sort(query.sort) or [{"date": {"order": "desc"}}]

        if sort:
            body["sort"] = sort
        return body

    async def search(self, query: SearchQuery) -> SearchResultPage:
        """
        Raises:
            SearchFailed: transport error or unparseable body
        """
        url = self.search_endpoint
        body = self.build_search_body(query)

        try:
            response = await self.transport.fetch(url, method="POST", json=body)
            data = _json_body(response, url)
        except (UpstreamError, UnparseableResponseError) as e:
            raise SearchFailed(f"Search failed: {e}") from e

        page = normalize_search_response(data, self.dialect, self.docs_base_url)
        logger.info(
            f"Search '{query.query}' size={query.size} from={query.offset}: "
            f"{len(page.results)}/{page.total_results} hits"
        )
        return page

    # ------------------------------------------------------------------
    # documents
    # ------------------------------------------------------------------
    async def resolve_document(self, signature: str) -> Optional[DocumentLocation]:
        """
        Exact-match lookup of a signature.

        Returns None when the search succeeds with zero hits.

        Raises:
            SearchFailed: upstream failure or unparseable body
        """
        body = {"query": {"term": {"_id": signature}}, "size": 1}

        try:
            response = await self.transport.fetch(self.search_url, method="POST", json=body)
            data = _json_body(response, self.search_url)
        except (UpstreamError, UnparseableResponseError) as e:
            raise SearchFailed(f"Document lookup failed for {signature}: {e}") from e

        hits = data.get("hits") if isinstance(data, dict) else None
        raw_hits = hits.get("hits") if isinstance(hits, dict) else None
        if not isinstance(raw_hits, list) or not raw_hits:
            logger.info(f"No document found for signature {signature}")
            return None

        return normalize_location(raw_hits[0])

    async def locate(
        self,
        signature: str,
        collection: Optional[str] = None,
    ) -> tuple[str, Optional[DocumentLocation]]:
        """
        Resolve the collection of a signature.

        Order: resolved location, explicit collection, derived collection.
        A failed lookup is logged and treated like "not found".
        """
        location: Optional[DocumentLocation] = None
        try:
            location = await self.resolve_document(signature)
        except EntscheidsucheError as e:
            logger.warning(f"Falling back to derived collection for {signature}: {e}")

        if location is not None and location.collection:
            return location.collection, location
        return collection or derive_collection(signature), location

    def document_url(
        self,
        signature: str,
        collection: str,
        fmt: str,
        location: Optional[DocumentLocation] = None,
    ) -> str:
        fmt = fmt.lower().lstrip(".")

        if "/" in signature:
            path = signature if signature.endswith(f".{fmt}") else f"{signature}.{fmt}"
            return f"{self.docs_base_url}/{path.lstrip('/')}"

        content_url = location.content_url if location is not None else None
        if content_url:
            if urlparse(content_url).path.lower().endswith(f".{fmt}"):
                return content_url
            collection = _collection_from_content_url(content_url) or collection

        return f"{self.docs_base_url}/{collection}/{signature}.{fmt}"

    async def fetch_document(
        self,
        signature: str,
        collection: str,
        fmt: str,
        location: Optional[DocumentLocation] = None,
    ) -> bytes:
        """
        Raises:
            DocumentFetchFailed: non-2xx status or unreachable URL
        """
        url = self.document_url(signature, collection, fmt, location)
        try:
            response = await self.transport.fetch(url)
        except UpstreamError as e:
            raise DocumentFetchFailed(url, str(e), getattr(e, "status_code", None)) from e
        return response.content

    async def fetch_document_json(
        self,
        signature: str,
        collection: str,
        location: Optional[DocumentLocation] = None,
    ) -> dict:
        """
        Raises:
            DocumentFetchFailed: non-2xx status or unreachable URL
            UnparseableResponseError: body is not a JSON object
        """
        url = self.document_url(signature, collection, "json", location)
        try:
            response = await self.transport.fetch(url)
        except UpstreamError as e:
            raise DocumentFetchFailed(url, str(e), getattr(e, "status_code", None)) from e

        data = _json_body(response, url)
        if not isinstance(data, dict):
            raise UnparseableResponseError(url, "expected a JSON object")
        return data

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------
    async def fetch_status_page(self) -> str:
        response = await self.transport.fetch(self.status_url)
        return response.text

    def scraper_index_url(self, scraper_id: str) -> str:
        return f"{self.docs_base_url}/Index/{scraper_id}/last"

    async def fetch_scraper_index(self, scraper_id: str) -> Optional[dict]:
        """Per-collection index JSON, None when the body is not a JSON object"""
        url = self.scraper_index_url(scraper_id)
        response = await self.transport.fetch(url)
        try:
            data = _json_body(response, url)
        except UnparseableResponseError:
            return None
        return data if isinstance(data, dict) else None


def create_client(transport: Optional[RateLimitedTransport] = None) -> EntscheidsucheClient:
    """Client wired to the configured endpoints"""
    transport = transport or RateLimitedTransport(
        delay_ms=settings.request_delay_ms,
        timeout=settings.http_timeout,
    )
    return EntscheidsucheClient(
        transport,
        base_url=settings.base_url,
        search_url=settings.search_url,
        elastic_url=settings.elastic_url,
        dialect=settings.search_dialect,
    )
