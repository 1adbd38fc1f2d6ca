import json

import httpx
import pytest

from entscheidsuche.core.transport import RateLimitedTransport
from entscheidsuche.pipeline.collectors.entscheidsuche_client import EntscheidsucheClient

BASE_URL = "https://entscheidsuche.ch"
SEARCH_URL = f"{BASE_URL}/_search.php"
ELASTIC_URL = "https://es.example.test:9200/entscheidsuche/_search"
DOCS_URL = f"{BASE_URL}/docs"
STATUS_URL = f"{BASE_URL}/status"

SIGNATURE = "CH_BGer_005_5F-23-2025_2025-07-01"


class FakeClock:
    """Monotonic clock that only moves when someone sleeps"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeUpstream:
    """Routes (method, url) to canned responses and records every request"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.routes: dict[tuple[str, str], object] = {}
        self.requests: list[httpx.Request] = []
        self.request_times: list[float] = []

    def add(self, method: str, url: str, response) -> None:
        self.routes[(method.upper(), url)] = response

    def json_bodies(self, url: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if str(r.url) == url and r.content]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.request_times.append(self.clock())

        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, (bytes, str)):
            return httpx.Response(200, content=route)
        return httpx.Response(200, json=route)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream(clock):
    return FakeUpstream(clock)


@pytest.fixture
def transport(clock, upstream):
    return RateLimitedTransport(
        delay_ms=500,
        timeout=5.0,
        clock=clock,
        sleep=clock.sleep,
        http_transport=httpx.MockTransport(upstream.handler),
    )


@pytest.fixture
def make_client(transport):
    def _make(dialect: str = "fulltext") -> EntscheidsucheClient:
        return EntscheidsucheClient(
            transport,
            base_url=BASE_URL,
            search_url=SEARCH_URL,
            elastic_url=ELASTIC_URL,
            dialect=dialect,
        )

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def fulltext_hit(signature: str = SIGNATURE, **source_overrides) -> dict:
    source = {
        "date": "2025-07-01",
        "hierarchy": ["CH", "CH_BGer", "CH_BGer_005"],
        "canton": "CH",
        "title": {"de": "Urheberrecht", "fr": "Droit d'auteur", "it": None},
        "abstract": {"de": "Zusammenfassung", "fr": "", "it": ""},
        "reference": ["5F_23/2025"],
        "attachment": {
            "content_type": "text/html",
            "language": "de",
            "content_url": f"{DOCS_URL}/CH_BGer/{signature}.html",
        },
        "meta": {"de": "Bundesgericht"},
        "scrapedate": "2025-07-05",
        "id": signature,
    }
    source.update(source_overrides)
    return {"_index": "entscheidsuche-ch", "_id": signature, "_score": None, "_source": source}


def search_response(hits: list[dict], total=None) -> dict:
    return {"hits": {"total": {"value": len(hits) if total is None else total}, "hits": hits}}


STATUS_HTML = """
<html><body>
<h2>Status</h2>
<h3><img src="flag.png"><a href="/kanton/ZH">ZH Zürich</a></h3>
<ul>
  <li><a href="/docs/Index/ZH_OG/last">Obergericht</a></li>
  <li>Verwaltungsgericht</li>
</ul>
<h3><a href="/kanton/BE">BE Bern</a></h3>
<ul>
  <li><a href="/docs/Index/BE_Steuerrekurs/last">Steuerrekurskommission</a></li>
</ul>
<h3><a href="/kanton/GE">GE Genève</a></h3>
<p>keine Gerichte</p>
<h3><a href="/kanton/CH">CH Bund</a></h3>
<ul><li><a href="/docs/Index/CH_BGer/last">Bundesgericht</a></li><li><a href="/docs/Index/ZH_OG/last">dup</a></li></ul>
</body></html>
"""
