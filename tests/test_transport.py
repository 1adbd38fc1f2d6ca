import httpx
import pytest

from entscheidsuche.core.errors import UpstreamHttpError, UpstreamUnreachableError
from entscheidsuche.core.transport import RateLimitedTransport

URL = "https://entscheidsuche.ch/status"


@pytest.mark.asyncio
async def test_first_request_is_not_delayed(transport, upstream, clock):
    upstream.add("GET", URL, "<html></html>")

    response = await transport.fetch(URL)

    assert response.status_code == 200
    assert clock.sleeps == []
    assert transport.last_request_at == clock.now


@pytest.mark.asyncio
async def test_back_to_back_requests_are_spaced_by_min_delay(transport, upstream, clock):
    upstream.add("GET", URL, "ok")

    await transport.fetch(URL)
    await transport.fetch(URL)

    assert len(upstream.request_times) == 2
    assert upstream.request_times[1] - upstream.request_times[0] >= 0.5
    assert clock.sleeps == [pytest.approx(0.5)]


@pytest.mark.asyncio
async def test_delay_counts_time_already_elapsed(transport, upstream, clock):
    upstream.add("GET", URL, "ok")

    await transport.fetch(URL)
    clock.now += 0.2
    await transport.fetch(URL)

    assert clock.sleeps == [pytest.approx(0.3)]


@pytest.mark.asyncio
async def test_no_delay_when_interval_already_passed(transport, upstream, clock):
    upstream.add("GET", URL, "ok")

    await transport.fetch(URL)
    clock.now += 2.0
    await transport.fetch(URL)

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_post_sends_json_body(transport, upstream):
    upstream.add("POST", URL, {"ok": True})

    response = await transport.fetch(URL, method="POST", json={"query": "x"})

    assert response.json() == {"ok": True}
    assert upstream.json_bodies(URL) == [{"query": "x"}]
    assert upstream.requests[0].headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_non_2xx_raises_http_error_with_status_and_url(transport, upstream):
    upstream.add("GET", URL, httpx.Response(503, text="down"))

    with pytest.raises(UpstreamHttpError) as exc_info:
        await transport.fetch(URL)

    assert exc_info.value.status_code == 503
    assert exc_info.value.url == URL
    assert "503" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_failure_raises_unreachable(clock):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = RateLimitedTransport(
        delay_ms=500,
        clock=clock,
        sleep=clock.sleep,
        http_transport=httpx.MockTransport(refuse),
    )

    with pytest.raises(UpstreamUnreachableError) as exc_info:
        await transport.fetch(URL)

    assert exc_info.value.url == URL
    assert "connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_failed_request_still_updates_pacing_state(transport, upstream, clock):
    upstream.add("GET", URL, httpx.Response(500))

    with pytest.raises(UpstreamHttpError):
        await transport.fetch(URL)
    with pytest.raises(UpstreamHttpError):
        await transport.fetch(URL)

    # single attempt per call, no retries
    assert len(upstream.requests) == 2
    assert clock.sleeps == [pytest.approx(0.5)]
