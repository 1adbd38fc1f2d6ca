"""Error taxonomy

Handlers catch `EntscheidsucheError` and turn it into an error result.
"""

from __future__ import annotations


class EntscheidsucheError(Exception):
    """Base class for every error raised by this package"""


class UpstreamError(EntscheidsucheError):
    """Transport-level failure talking to the upstream service"""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class UpstreamUnreachableError(UpstreamError):
    """Network/connection failure (DNS, refused, timeout, ...)"""

    def __init__(self, url: str, reason: str = ""):
        message = f"Upstream unreachable: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, url)
        self.reason = reason


class UpstreamHttpError(UpstreamError):
    """Upstream answered with a non-2xx status"""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP error! Status: {status_code} for URL: {url}", url)
        self.status_code = status_code


class UnparseableResponseError(EntscheidsucheError):
    """Body is not valid JSON where JSON was expected"""

    def __init__(self, url: str, detail: str = ""):
        message = f"Unparseable response from {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.url = url


class NotFoundError(EntscheidsucheError):
    """Well-formed empty result. Not an upstream failure."""

    def __init__(self, identifier: str):
        super().__init__(f"Document {identifier} not found.")
        self.identifier = identifier


class SearchFailed(EntscheidsucheError):
    """Search request failed (transport error or unparseable body)"""


class DocumentFetchFailed(EntscheidsucheError):
    """A derived document URL yielded a non-2xx status or was unreachable"""

    def __init__(self, url: str, detail: str = "", status_code: int | None = None):
        message = f"Document fetch failed for {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404
