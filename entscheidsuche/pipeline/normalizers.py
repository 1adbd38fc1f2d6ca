"""
Upstream response normalizers

Convert entscheidsuche.ch responses (search hits, document metadata, status HTML) into the shared schemas.
All functions are pure and total: malformed input degrades to sentinel values,
never to an exception.
"""
import re
from typing import Any, Optional

import fitz
from bs4 import BeautifulSoup

from entscheidsuche.models.schemas import (
    UNKNOWN,
    CourtsByCanton,
    DocumentLocation,
    DocumentMetadata,
    DocumentUrls,
    LocalizedText,
    ScraperStatus,
    SearchHit,
    SearchResultPage,
)
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


DIALECT_FULLTEXT = "fulltext"
DIALECT_ELASTIC = "elasticsearch"

# Abstract language priority
ABSTRACT_LANGUAGES = ("DE", "FR", "IT")

TRUNCATION_MARKER = "\n\n... (truncated)"

SCRAPER_INDEX_PATTERN = re.compile(r"/docs/Index/([A-Za-z0-9_]+)/last")


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    """Non-empty stripped string or None"""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _first(*values: Any) -> Optional[str]:
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def _lang(mapping: Any, code: str) -> Optional[str]:
    """Look up a language key in either case (DE/de)"""
    mapping = _as_dict(mapping)
    return _first(mapping.get(code.upper()), mapping.get(code.lower()))


def _localized(mapping: Any) -> LocalizedText:
    return LocalizedText(
        de=_lang(mapping, "de"),
        fr=_lang(mapping, "fr"),
        it=_lang(mapping, "it"),
    )


def _docs_url(docs_base_url: str, path: Any) -> Optional[str]:
    path = _text(path)
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{docs_base_url.rstrip('/')}/{path.lstrip('/')}"


def pick_abstract(abstract: Any) -> str:
    """First non-empty abstract in DE -> FR -> IT order, "" if none"""
    for code in ABSTRACT_LANGUAGES:
        text = _lang(abstract, code)
        if text:
            return text
    return ""


def normalize_fulltext_hit(hit: Any) -> SearchHit:
    """`_search.php` hit -> SearchHit"""
    hit = _as_dict(hit)
    source = _as_dict(hit.get("_source"))
    attachment = _as_dict(source.get("attachment"))

    hierarchy = source.get("hierarchy")
    hierarchy = hierarchy if isinstance(hierarchy, list) else []
    reference = source.get("reference")
    if isinstance(reference, list):
        case_number = _first(*reference) or ""
    else:
        case_number = _text(reference) or ""

    meta = source.get("meta")
    court = _first(
        hierarchy[1] if len(hierarchy) > 1 else None,
        source.get("canton"),
        _lang(meta, "de"),
        _lang(meta, "fr"),
        _lang(meta, "it"),
    ) or UNKNOWN

    content_url = _text(attachment.get("content_url"))
    content_type = (_text(attachment.get("content_type")) or "").lower()
    is_pdf = bool(content_url) and ("pdf" in content_type or content_url.lower().endswith(".pdf"))

    return SearchHit(
        signature=_first(hit.get("_id"), source.get("id")) or UNKNOWN,
        court=court,
        date=_text(source.get("date")) or UNKNOWN,
        language=_text(attachment.get("language")) or UNKNOWN,
        case_number=case_number,
        title=_localized(source.get("title")),
        abstract=_localized(source.get("abstract")),
        document_url=content_url,
        pdf_url=content_url if is_pdf else None,
        html_url=content_url if content_url and not is_pdf else None,
        has_html=bool(content_url) and not is_pdf,
        has_pdf=is_pdf,
        scrape_date=_text(source.get("scrapedate")),
    )


def normalize_elastic_hit(hit: Any, docs_base_url: str) -> SearchHit:
    """Direct Elasticsearch hit (German field names) -> SearchHit"""
    source = _as_dict(_as_dict(hit).get("_source"))

    court = _first(_lang(source.get("Meta"), "de"), _lang(source.get("Kopfzeile"), "de")) or UNKNOWN
    pdf_url = _docs_url(docs_base_url, source.get("PDFFile"))
    html_url = _docs_url(docs_base_url, source.get("HTMLFile"))

    return SearchHit(
        signature=_first(source.get("Signatur"), _as_dict(hit).get("_id")) or UNKNOWN,
        court=court,
        date=_text(source.get("Datum")) or UNKNOWN,
        language=_text(source.get("Sprache")) or UNKNOWN,
        case_number=_text(source.get("Num")) or "",
        title=_localized(source.get("Kopfzeile")),
        abstract=_localized(source.get("Abstract")),
        document_url=html_url or pdf_url,
        pdf_url=pdf_url,
        html_url=html_url,
        has_html=html_url is not None,
        has_pdf=pdf_url is not None,
        scrape_date=_text(source.get("Zeit")),
    )


def normalize_hit(hit: Any, dialect: str, docs_base_url: str) -> SearchHit:
    if dialect == DIALECT_ELASTIC:
        return normalize_elastic_hit(hit, docs_base_url)
    return normalize_fulltext_hit(hit)


def _total_hits(hits: dict, fallback: int) -> int:
    total = hits.get("total")
    if isinstance(total, dict):
        total = total.get("value")
    if isinstance(total, bool):
        return fallback
    try:
        return int(total)
    except (TypeError, ValueError):
        return fallback


def normalize_search_response(raw: Any, dialect: str, docs_base_url: str) -> SearchResultPage:
    """Elasticsearch-shaped response -> SearchResultPage (empty page if no hits)"""
    hits = _as_dict(_as_dict(raw).get("hits"))
    raw_hits = hits.get("hits")
    if not isinstance(raw_hits, list):
        raw_hits = []

    results = [normalize_hit(h, dialect, docs_base_url) for h in raw_hits if isinstance(h, dict)]
    return SearchResultPage(total_results=_total_hits(hits, len(results)), results=results)


def normalize_location(hit: Any) -> DocumentLocation:
    """`_id` lookup hit -> DocumentLocation (exact content URL and owning collection)"""
    source = _as_dict(_as_dict(hit).get("_source"))
    hierarchy = source.get("hierarchy")
    hierarchy = hierarchy if isinstance(hierarchy, list) else []

    return DocumentLocation(
        content_url=_text(_as_dict(source.get("attachment")).get("content_url")),
        collection=_first(hierarchy[1] if len(hierarchy) > 1 else None, source.get("canton")),
    )


def normalize_metadata(raw: Any, docs_base_url: str) -> DocumentMetadata:
    """Document JSON (`{docs}/{collection}/{signature}.json`) -> DocumentMetadata"""
    doc = _as_dict(raw)

    return DocumentMetadata(
        signature=_text(doc.get("Signatur")) or UNKNOWN,
        case_number=_text(doc.get("Num")) or UNKNOWN,
        date=_text(doc.get("Datum")) or UNKNOWN,
        court=_first(_lang(doc.get("Meta"), "de"), _lang(doc.get("Kopfzeile"), "de")) or UNKNOWN,
        language=_text(doc.get("Sprache")) or UNKNOWN,
        abstract=pick_abstract(doc.get("Abstract")),
        pdf_url=_docs_url(docs_base_url, doc.get("PDFFile")),
        html_url=_docs_url(docs_base_url, doc.get("HTMLFile")),
        original_url=_text(doc.get("OriginalURL")),
    )


def build_document_urls(
    document_id: str,
    raw: Any,
    docs_base_url: str,
    json_url: Optional[str] = None,
) -> DocumentUrls:
    doc = _as_dict(raw)
    return DocumentUrls(
        document_id=document_id,
        pdf_url=_docs_url(docs_base_url, doc.get("PDFFile")),
        html_url=_docs_url(docs_base_url, doc.get("HTMLFile")),
        original_url=_text(doc.get("OriginalURL")),
        json_url=json_url,
    )


def normalize_scraper_status(scraper_id: str, raw: Any, docs_base_url: str) -> ScraperStatus:
    """Per-collection index file (`{docs}/Index/{id}/last`) -> ScraperStatus"""
    index = _as_dict(raw)
    documents = index.get("Dokumente")
    base = docs_base_url.rstrip("/")

    return ScraperStatus(
        scraper_id=scraper_id,
        last_run_date=_text(index.get("Zeit")) or UNKNOWN,
        document_count=len(documents) if isinstance(documents, (list, dict)) else 0,
        job_type=_text(index.get("Jobtyp")) or UNKNOWN,
        index_url=f"{base}/Index/{scraper_id}/last",
        documents_url=f"{base}/{scraper_id}/",
    )


def extract_scraper_ids(status_html: Any) -> list[str]:
    """Scraper ids linked from the status page, in page order, without duplicates"""
    if not isinstance(status_html, str):
        return []
    return list(dict.fromkeys(SCRAPER_INDEX_PATTERN.findall(status_html)))


def _clean(text: str) -> str:
    return " ".join(text.split())


def _canton_sections(soup: BeautifulSoup) -> list[tuple[str, list[str]]]:
    sections: list[tuple[str, list[str]]] = []
    for heading in soup.find_all("h3"):
        link = heading.find("a")
        label = _clean((link or heading).get_text(" "))
        if not label:
            continue

        court_list = heading.find_next("ul")
        # A <ul> that belongs to a later heading is not this canton's list
        if court_list is None or court_list.find_previous("h3") is not heading:
            sections.append((label, []))
            continue

        courts = [_clean(li.get_text(" ")) for li in court_list.find_all("li")]
        sections.append((label, [c for c in courts if c]))
    return sections


def scrape_courts_by_canton(status_html: Any, canton: Optional[str] = None) -> CourtsByCanton:
    """
    Status page HTML -> {canton label: [court names]}

    With a canton filter, only the first matching section is returned, keyed
    by the filter (case-insensitive; a whole-word match such as the canton
    code wins over a substring match). A parse miss yields no courts rather
    than an error.
    """
    wanted = (canton or "").strip()
    if not isinstance(status_html, str) or not status_html.strip():
        return {wanted: []} if wanted else {}

    try:
        sections = _canton_sections(BeautifulSoup(status_html, "html.parser"))
    except Exception as e:
        logger.warning(f"Could not parse status page: {e}")
        sections = []

    if wanted:
        needle = wanted.lower()
        # whole-word match first ("CH" must not hit "ZH Zürich")
        for label, courts in sections:
            if needle == label.lower() or needle in label.lower().split():
                return {wanted: courts}
        for label, courts in sections:
            if needle in label.lower():
                return {wanted: courts}
        return {wanted: []}

    result: CourtsByCanton = {}
    for label, courts in sections:
        result.setdefault(label, []).extend(courts)
    return result


def extract_pdf_text(data: bytes) -> str:
    """Plain text of every page of a PDF; "" when the bytes are not a readable PDF"""
    if not data:
        return ""
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = [page.get_text("text") for page in doc]
    except Exception as e:
        logger.warning(f"PDF text extraction failed: {e}")
        return ""
    return "\n".join(p.strip() for p in pages if p and p.strip())


def truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER
