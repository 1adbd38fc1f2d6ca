"""Pydantic schemas shared by the MCP server and the REST API.

Every object here is built fresh from a single upstream response and dropped
once the response has been returned. Serialise with ``by_alias=True`` to get
the camelCase field names callers see.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN = "Unknown"

CourtsByCanton = dict[str, list[str]]

_INT_BOUND = 2**31 - 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
    except OverflowError:
        # +/- infinity: keep the sign so the caller's clamp pins it to a bound
        return _INT_BOUND if value > 0 else -_INT_BOUND


class SearchQuery(CamelModel):
    query: str
    size: int = 10
    offset: int = Field(default=0, alias="from")
    sort: Optional[str] = None

    @classmethod
    def create(
        cls,
        query: str,
        size: Any = None,
        offset: Any = None,
        sort: Optional[str] = None,
        *,
        default_size: int = 10,
        max_size: int = 50,
    ) -> "SearchQuery":
        """Build a query with size clamped to [1, max_size] and offset >= 0."""
        effective_size = min(max(_as_int(size, default_size), 1), max(1, max_size))
        effective_offset = max(_as_int(offset, 0), 0)
        sort_value = str(sort).strip() if sort else None
        return cls(
            query=str(query or "").strip(),
            size=effective_size,
            offset=effective_offset,
            sort=sort_value or None,
        )


class LocalizedText(CamelModel):
    de: Optional[str] = None
    fr: Optional[str] = None
    it: Optional[str] = None


class SearchHit(CamelModel):
    signature: str = UNKNOWN
    court: str = UNKNOWN
    date: str = UNKNOWN
    language: str = UNKNOWN
    case_number: str = ""
    title: LocalizedText = Field(default_factory=LocalizedText)
    abstract: LocalizedText = Field(default_factory=LocalizedText)
    document_url: Optional[str] = None
    pdf_url: Optional[str] = None
    html_url: Optional[str] = None
    has_html: bool = False
    has_pdf: bool = False
    scrape_date: Optional[str] = None


class SearchResultPage(CamelModel):
    total_results: int = 0
    results: list[SearchHit] = Field(default_factory=list)


class DocumentLocation(CamelModel):
    content_url: Optional[str] = None
    collection: Optional[str] = None


class DocumentMetadata(CamelModel):
    signature: str = UNKNOWN
    case_number: str = UNKNOWN
    date: str = UNKNOWN
    court: str = UNKNOWN
    language: str = UNKNOWN
    abstract: str = ""
    pdf_url: Optional[str] = None
    html_url: Optional[str] = None
    original_url: Optional[str] = None


class DocumentUrls(CamelModel):
    document_id: str
    pdf_url: Optional[str] = None
    html_url: Optional[str] = None
    original_url: Optional[str] = None
    json_url: Optional[str] = None


class ScraperStatus(CamelModel):
    scraper_id: str
    last_run_date: str = UNKNOWN
    document_count: int = 0
    job_type: str = UNKNOWN
    index_url: str
    documents_url: str
