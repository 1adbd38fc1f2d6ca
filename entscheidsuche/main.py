"""entscheidsuche.main

FastAPI entrypoint for the Entscheidsuche service.

REST mirror of the MCP tools (same handlers, same upstream client):
  - GET  /api/v1/health
  - POST /api/v1/search
  - GET  /api/v1/documents/{signature}
  - GET  /api/v1/documents/{signature}/urls
  - GET  /api/v1/courts
  - GET  /api/v1/scrapers/{scraper_id}
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from entscheidsuche.config.settings import settings
from entscheidsuche.mcp import handlers
from entscheidsuche.mcp.handlers import OperationResult
from entscheidsuche.pipeline.collectors.entscheidsuche_client import create_client
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Search query")
    # Out-of-range values are clamped by the handler, not rejected here
    size: Optional[int] = Field(default=None, description="Number of results")
    offset: Optional[int] = Field(default=None, alias="from", description="Starting index")
    sort: Optional[str] = Field(default=None, description="field[:asc|desc]")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict[str, Any]] = None
    timestamp: str
    request_id: str


app = FastAPI(
    title="Entscheidsuche Service",
    version=settings.service_version,
)

app.state.client = create_client()


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(
    request: Request,
    *,
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    payload = ErrorResponse(
        error=error,
        message=message,
        details=details,
        timestamp=datetime.now(timezone.utc).isoformat(),
        request_id=getattr(request.state, "request_id", ""),
    ).model_dump()
    return JSONResponse(status_code=status_code, content=payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict) and "error" in exc.detail and "message" in exc.detail:
        return _error_response(
            request,
            status_code=exc.status_code,
            error=str(exc.detail.get("error")),
            message=str(exc.detail.get("message")),
            details=exc.detail.get("details"),
        )

    return _error_response(
        request,
        status_code=exc.status_code,
        error="HTTPException",
        message=str(exc.detail),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error_response(
        request,
        status_code=400,
        error="ValidationError",
        message="Request validation failed",
        details={"errors": json.loads(json.dumps(exc.errors(), default=str))},
    )


def _unwrap(result: OperationResult) -> OperationResult:
    """Raise the error envelope for failed operations"""
    if not result.is_error:
        return result

    if result.not_found:
        raise HTTPException(
            status_code=404,
            detail={"error": "NotFound", "message": result.text},
        )
    raise HTTPException(
        status_code=502,
        detail={"error": "UpstreamError", "message": result.text},
    )


def _client(request: Request):
    return request.app.state.client


@app.get("/api/v1/health")
async def health():
    return {
        "status": "healthy",
        "version": settings.service_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "upstream": settings.base_url,
        "search_dialect": settings.search_dialect,
    }


@app.post("/api/v1/search")
async def search(body: SearchRequest, request: Request):
    result = _unwrap(
        await handlers.search_decisions(
            _client(request),
            query=body.query,
            size=body.size,
            offset=body.offset,
            sort=body.sort,
        )
    )
    return result.data


@app.get("/api/v1/documents/{signature}")
async def get_document(
    signature: str,
    request: Request,
    collection: Optional[str] = None,
    format: Literal["json", "text", "html", "pdf"] = "json",
):
    result = _unwrap(
        await handlers.get_document(_client(request), signature, collection=collection, fmt=format)
    )
    if result.data is not None:
        return result.data
    return PlainTextResponse(result.text)


@app.get("/api/v1/documents/{signature}/urls")
async def get_document_urls(signature: str, request: Request, collection: Optional[str] = None):
    result = _unwrap(await handlers.get_document_urls(_client(request), signature, collection=collection))
    return result.data


@app.get("/api/v1/courts")
async def list_courts(request: Request, canton: Optional[str] = None):
    result = _unwrap(await handlers.list_courts(_client(request), canton=canton))
    return result.data


@app.get("/api/v1/scrapers/{scraper_id}")
async def scraper_details(scraper_id: str, request: Request):
    text = await handlers.read_scraper_details(_client(request), scraper_id)
    payload = json.loads(text)
    if "error" in payload:
        raise HTTPException(
            status_code=502,
            detail={"error": "UpstreamError", "message": payload["error"]},
        )
    return payload


def main() -> None:
    import uvicorn

    uvicorn.run(
        "entscheidsuche.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
