"""Rate-limited HTTP transport

Every upstream request goes through this one transport.
The transport owns the process-wide "time of last request completion":
it is read before every request and updated after every request, so all
outbound calls share one minimum-interval gate.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable

import anyio
import httpx

from entscheidsuche.core.errors import UpstreamHttpError, UpstreamUnreachableError
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimitedTransport:
    """Single-attempt HTTP fetcher with a fixed minimum spacing between requests"""

    def __init__(
        self,
        delay_ms: int = 500,
        timeout: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.delay = max(0, delay_ms) / 1000.0
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._http_transport = http_transport
        self.last_request_at: float | None = None

    def _remaining_delay(self) -> float:
        if self.last_request_at is None:
            return 0.0
        elapsed = self._clock() - self.last_request_at
        return max(0.0, self.delay - elapsed)

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        json: Any = None,
    ) -> httpx.Response:
        """
        Issue one request after waiting out the pacing delay.

        Raises:
            UpstreamHttpError: non-2xx status
            UpstreamUnreachableError: network-level failure
        """
        wait = self._remaining_delay()
        if wait > 0:
            await self._sleep(wait)

        logger.debug(f"{method} {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._http_transport,
            ) as client:
                response = await client.request(method, url, json=json)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP {e.response.status_code} for {url}")
            raise UpstreamHttpError(e.response.status_code, url) from e
        except httpx.RequestError as e:
            logger.error(f"Request error for {url}: {e!r}")
            raise UpstreamUnreachableError(url, str(e) or type(e).__name__) from e
        finally:
            self.last_request_at = self._clock()
