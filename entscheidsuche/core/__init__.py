"""Entscheidsuche 서비스 Core 패키지

업스트림 HTTP transport와 예외 계층을 포함합니다.
"""

from .errors import (
    DocumentFetchFailed,
    EntscheidsucheError,
    NotFoundError,
    SearchFailed,
    UnparseableResponseError,
    UpstreamError,
    UpstreamHttpError,
    UpstreamUnreachableError,
)
from .transport import RateLimitedTransport

__all__ = [
    # Transport
    "RateLimitedTransport",
    # Errors
    "EntscheidsucheError",
    "UpstreamError",
    "UpstreamUnreachableError",
    "UpstreamHttpError",
    "UnparseableResponseError",
    "NotFoundError",
    "SearchFailed",
    "DocumentFetchFailed",
]
