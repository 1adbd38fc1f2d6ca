import json

import httpx
import pytest

from conftest import DOCS_URL, SEARCH_URL, SIGNATURE, STATUS_HTML, STATUS_URL, fulltext_hit, search_response
from entscheidsuche.config.settings import settings
from entscheidsuche.mcp import handlers

JSON_URL = f"{DOCS_URL}/CH_BGer/{SIGNATURE}.json"


def _payload(text: str) -> dict:
    """JSON part of a result text that may start with a summary line"""
    return json.loads(text[text.index("{"):])


@pytest.mark.asyncio
async def test_search_end_to_end(client, upstream):
    hits = [
        fulltext_hit("CH_BGer_1"),
        fulltext_hit("CH_BGer_2", abstract=None, title=None, reference=[]),
        {"_id": "ZH_OG_3", "_source": {}},
    ]
    upstream.add("POST", SEARCH_URL, search_response(hits))

    result = await handlers.search_decisions(client, "copyright", size=10, offset=0)

    assert not result.is_error
    assert result.data["totalResults"] == 3
    assert len(result.data["results"]) == 3
    expected_fields = {
        "signature", "court", "date", "language", "caseNumber", "title", "abstract",
        "documentUrl", "pdfUrl", "htmlUrl", "hasHtml", "hasPdf", "scrapeDate",
    }
    for entry in result.data["results"]:
        assert set(entry) == expected_fields
    assert result.data["results"][2]["court"] == "Unknown"
    assert result.text.startswith('Found 3 total cases matching "copyright". Showing 3 results')
    assert _payload(result.text)["totalResults"] == 3


@pytest.mark.asyncio
async def test_search_clamps_size_and_offset(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    result = await handlers.search_decisions(client, "x", size=500, offset=-4)

    body = upstream.json_bodies(SEARCH_URL)[0]
    assert body["size"] == settings.max_page_size
    assert body["from"] == 0
    assert result.data["size"] == settings.max_page_size
    assert result.data["totalResults"] == 0


@pytest.mark.asyncio
async def test_search_clamps_infinite_size(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    result = await handlers.search_decisions(client, "x", size=float("inf"))

    assert not result.is_error
    assert upstream.json_bodies(SEARCH_URL)[0]["size"] == settings.max_page_size


@pytest.mark.asyncio
async def test_search_passes_sort(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    await handlers.search_decisions(client, "x", sort="date:asc")

    assert upstream.json_bodies(SEARCH_URL)[0]["sort"] == [{"date": {"order": "asc"}}]


@pytest.mark.asyncio
async def test_search_failure_becomes_error_result(client, upstream):
    upstream.add("POST", SEARCH_URL, httpx.Response(503))

    result = await handlers.search_decisions(client, "x")

    assert result.is_error
    assert result.text.startswith("Error performing search:")
    assert "503" in result.text


@pytest.mark.asyncio
async def test_search_rejects_blank_query(client, upstream):
    result = await handlers.search_decisions(client, "   ")

    assert result.is_error
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_document_urls_with_only_pdf(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))
    upstream.add("GET", JSON_URL, {"PDFFile": f"CH_BGer/{SIGNATURE}.pdf"})

    result = await handlers.get_document_urls(client, SIGNATURE)

    assert not result.is_error
    assert result.data == {
        "documentId": SIGNATURE,
        "pdfUrl": f"{DOCS_URL}/CH_BGer/{SIGNATURE}.pdf",
        "htmlUrl": None,
        "originalUrl": None,
        "jsonUrl": JSON_URL,
    }


@pytest.mark.asyncio
async def test_document_urls_missing_document(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    result = await handlers.get_document_urls(client, SIGNATURE)

    assert result.is_error
    assert result.not_found


@pytest.mark.asyncio
async def test_get_document_json_uses_resolved_collection(client, upstream):
    upstream.add(
        "POST",
        SEARCH_URL,
        search_response([fulltext_hit(hierarchy=["CH", "CH_BGE"], attachment={"content_url": None})]),
    )
    upstream.add("GET", f"{DOCS_URL}/CH_BGE/{SIGNATURE}.json", {"Signatur": SIGNATURE, "Num": "1"})

    result = await handlers.get_document(client, SIGNATURE, fmt="json")

    assert not result.is_error
    assert result.data == {"Signatur": SIGNATURE, "Num": "1"}
    assert result.text.startswith(f"Document metadata for {SIGNATURE}:")


@pytest.mark.asyncio
async def test_get_document_with_malformed_lookup_hit(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([fulltext_hit(attachment={"content_url": 123})]))
    upstream.add("GET", JSON_URL, {"Signatur": SIGNATURE})

    result = await handlers.get_document(client, SIGNATURE, fmt="json")

    assert not result.is_error
    assert result.data == {"Signatur": SIGNATURE}


@pytest.mark.asyncio
async def test_document_urls_of_empty_metadata_object(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))
    upstream.add("GET", JSON_URL, {})

    result = await handlers.get_document_urls(client, SIGNATURE)

    assert not result.is_error
    assert result.data["pdfUrl"] is None
    assert result.data["htmlUrl"] is None
    assert result.data["jsonUrl"] == JSON_URL


@pytest.mark.asyncio
async def test_missing_document_reports_not_found_message(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    result = await handlers.get_document_urls(client, SIGNATURE)

    assert result.text == f"Error getting document URLs: Document {SIGNATURE} not found."
    assert json.loads(await handlers.read_document_metadata(client, SIGNATURE)) == {
        "error": f"Error fetching document {SIGNATURE}: Document {SIGNATURE} not found."
    }


@pytest.mark.asyncio
async def test_get_document_text_returns_normalized_metadata(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))
    upstream.add("GET", JSON_URL, {"Signatur": SIGNATURE, "Abstract": {"IT": "Ciao"}})

    result = await handlers.get_document(client, SIGNATURE, fmt="text")

    assert result.data["signature"] == SIGNATURE
    assert result.data["abstract"] == "Ciao"
    assert result.data["court"] == "Unknown"


@pytest.mark.asyncio
async def test_get_document_html_fetches_exact_url_and_truncates(client, upstream, monkeypatch):
    monkeypatch.setattr(settings, "max_content_chars", 10)
    content_url = f"{DOCS_URL}/CH_BGer/{SIGNATURE}.html"
    upstream.add("POST", SEARCH_URL, search_response([fulltext_hit()]))
    upstream.add("GET", content_url, "<html>" + "x" * 50 + "</html>")

    result = await handlers.get_document(client, SIGNATURE, fmt="html")

    assert not result.is_error
    assert result.text == "Document content (html):\n\n<html>xxxx\n\n... (truncated)"
    assert str(upstream.requests[-1].url) == content_url


@pytest.mark.asyncio
async def test_get_document_missing_file_is_not_found_error(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    result = await handlers.get_document(client, SIGNATURE, fmt="pdf")

    assert result.is_error
    assert result.not_found
    assert result.text.startswith("Error retrieving document:")


@pytest.mark.asyncio
async def test_get_document_unreadable_pdf(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))
    upstream.add("GET", f"{DOCS_URL}/CH_BGer/{SIGNATURE}.pdf", b"not a pdf")

    result = await handlers.get_document(client, SIGNATURE, fmt="pdf")

    assert result.is_error
    assert not result.not_found


@pytest.mark.asyncio
async def test_get_document_rejects_unknown_format(client, upstream):
    result = await handlers.get_document(client, SIGNATURE, fmt="docx")

    assert result.is_error
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_list_courts(client, upstream):
    upstream.add("GET", STATUS_URL, STATUS_HTML)

    result = await handlers.list_courts(client, "BE")

    assert result.data == {"BE": ["Steuerrekurskommission"]}


@pytest.mark.asyncio
async def test_list_courts_upstream_failure(client, upstream):
    upstream.add("GET", STATUS_URL, httpx.Response(500))

    result = await handlers.list_courts(client)

    assert result.is_error
    assert result.text.startswith("Error listing courts:")


@pytest.mark.asyncio
async def test_read_scrapers(client, upstream):
    upstream.add("GET", STATUS_URL, STATUS_HTML)

    payload = json.loads(await handlers.read_scrapers(client))

    assert payload["scrapers"] == ["ZH_OG", "BE_Steuerrekurs", "CH_BGer"]
    assert payload["statusPageUrl"] == STATUS_URL


@pytest.mark.asyncio
async def test_read_scraper_details(client, upstream):
    upstream.add("GET", f"{DOCS_URL}/Index/CH_BGer/last", {"Zeit": "2025-07-01", "Dokumente": [1, 2, 3]})

    payload = json.loads(await handlers.read_scraper_details(client, "CH_BGer"))

    assert payload["documentCount"] == 3
    assert payload["lastRunDate"] == "2025-07-01"
    assert payload["jobType"] == "Unknown"


@pytest.mark.asyncio
async def test_read_document_metadata_error_is_json(client, upstream):
    upstream.add("POST", SEARCH_URL, search_response([]))

    payload = json.loads(await handlers.read_document_metadata(client, SIGNATURE))

    assert "error" in payload
    assert SIGNATURE in payload["error"]


@pytest.mark.asyncio
async def test_read_court_status(client, upstream):
    upstream.add("GET", STATUS_URL, STATUS_HTML)

    payload = json.loads(await handlers.read_court_status(client))

    assert payload["ZH Zürich"] == ["Obergericht", "Verwaltungsgericht"]
