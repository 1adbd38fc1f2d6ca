"""entscheidsuche.mcp.server

MCP (Model Context Protocol) server for Swiss court decisions (entscheidsuche.ch).

Current implementation:
- stdio transport
- Tools:
  - search_decisions
  - get_document
  - list_courts
  - get_document_urls
- Resources:
  - entscheidsuche://scrapers
  - entscheidsuche://courts/status
  - entscheidsuche://scraper/{scraperId}
  - entscheidsuche://document/{documentId}
- Prompts: see `entscheidsuche.mcp.prompts.PROMPTS`

All upstream calls go through one module-level client, so they share a
single rate-limit gate.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote, urlparse

import anyio
import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from entscheidsuche.config.settings import settings
from entscheidsuche.mcp import handlers
from entscheidsuche.mcp.handlers import OperationResult
from entscheidsuche.mcp.prompts import PROMPTS, render_prompt
from entscheidsuche.pipeline.collectors.entscheidsuche_client import create_client
from entscheidsuche.utils.logger import get_logger

logger = get_logger(__name__)


SERVER_NAME = "entscheidsuche-mcp"
URI_SCHEME = "entscheidsuche"
JSON_MIME = "application/json"


server = Server(
    SERVER_NAME,
    version=settings.service_version,
    instructions=(
        "Swiss court decision search backed by entscheidsuche.ch. "
        "Use search_decisions to find decisions, then get_document or get_document_urls "
        "with a result's signature. list_courts shows the courts per canton."
    ),
)

client = create_client()


@server.list_tools()
async def list_tools(_: types.ListToolsRequest | None) -> types.ListToolsResult:
    return types.ListToolsResult(
        tools=[
            types.Tool(
                name="search_decisions",
                description=(
                    "Search Swiss court decisions on entscheidsuche.ch. "
                    "Results are newest first unless a sort is given."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Search query (e.g., 'copyright AND music')",
                        },
                        "size": {
                            "type": "integer",
                            "default": settings.default_page_size,
                            "description": f"Number of results (clamped to 1-{settings.max_page_size})",
                        },
                        "from": {
                            "type": "integer",
                            "default": 0,
                            "description": "Starting index for pagination (negative values count as 0)",
                        },
                        "sort": {
                            "type": "string",
                            "description": "Optional sort field and direction (e.g., 'date:desc')",
                        },
                    },
                    "required": ["query"],
                },
            ),
            types.Tool(
                name="get_document",
                description="Retrieve the content of a specific decision by signature.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "signature": {
                            "type": "string",
                            "description": "Document signature (e.g., CH_BGer_005_5F-23-2025_2025-07-01)",
                        },
                        "collection": {
                            "type": "string",
                            "description": "Court/spider name (e.g., CH_BGer). Derived from the signature when omitted.",
                        },
                        "format": {
                            "type": "string",
                            "enum": list(handlers.DOCUMENT_FORMATS),
                            "default": "json",
                        },
                    },
                    "required": ["signature"],
                },
            ),
            types.Tool(
                name="list_courts",
                description="List available courts by canton.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "canton": {
                            "type": "string",
                            "description": "Optional canton code or name (e.g., 'ZH', 'BE')",
                        },
                    },
                },
            ),
            types.Tool(
                name="get_document_urls",
                description="Get direct URLs for a decision's PDF, HTML and JSON versions.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "signature": {"type": "string", "description": "Document signature"},
                        "collection": {"type": "string", "description": "Optional court/spider name"},
                    },
                    "required": ["signature"],
                },
            ),
        ]
    )


def _to_tool_content(result: OperationResult):
    if result.is_error:
        # The protocol runtime reports raised errors as isError tool results.
        raise RuntimeError(result.text)

    content = [types.TextContent(type="text", text=result.text)]
    if result.data is None:
        return content
    return (content, result.data)


@server.call_tool()
async def call_tool(name: str, arguments: dict | None):
    args = arguments or {}

    if name == "search_decisions":
        result = await handlers.search_decisions(
            client,
            query=str(args.get("query") or ""),
            size=args.get("size"),
            offset=args.get("from"),
            sort=args.get("sort"),
        )
        return _to_tool_content(result)

    if name == "get_document":
        result = await handlers.get_document(
            client,
            signature=str(args.get("signature") or ""),
            collection=args.get("collection"),
            fmt=str(args.get("format") or "json"),
        )
        return _to_tool_content(result)

    if name == "list_courts":
        result = await handlers.list_courts(client, canton=args.get("canton"))
        return _to_tool_content(result)

    if name == "get_document_urls":
        result = await handlers.get_document_urls(
            client,
            signature=str(args.get("signature") or ""),
            collection=args.get("collection"),
        )
        return _to_tool_content(result)

    raise ValueError(f"Unknown tool: {name}")


@server.list_resources()
async def list_resources() -> list[types.Resource]:
    return [
        types.Resource(
            uri=f"{URI_SCHEME}://scrapers",
            name="scrapers-list",
            description="All scrapers (collections) listed on the status page",
            mimeType=JSON_MIME,
        ),
        types.Resource(
            uri=f"{URI_SCHEME}://courts/status",
            name="court-status",
            description="Courts grouped by canton",
            mimeType=JSON_MIME,
        ),
    ]


@server.list_resource_templates()
async def list_resource_templates() -> list[types.ResourceTemplate]:
    return [
        types.ResourceTemplate(
            uriTemplate=f"{URI_SCHEME}://scraper/{{scraperId}}",
            name="scraper-details",
            description="Last run, document count and job type of one scraper",
            mimeType=JSON_MIME,
        ),
        types.ResourceTemplate(
            uriTemplate=f"{URI_SCHEME}://document/{{documentId}}",
            name="document-metadata",
            description="Normalized metadata of one decision",
            mimeType=JSON_MIME,
        ),
    ]


async def read_resource_text(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme != URI_SCHEME:
        raise ValueError(f"Unknown resource: {uri}")

    kind = parsed.netloc.lower()
    key = unquote(parsed.path.strip("/"))

    if kind == "scrapers" and not key:
        return await handlers.read_scrapers(client)
    if kind == "courts" and key == "status":
        return await handlers.read_court_status(client)
    if kind == "scraper" and key:
        return await handlers.read_scraper_details(client, key)
    if kind == "document" and key:
        return await handlers.read_document_metadata(client, key)

    raise ValueError(f"Unknown resource: {uri}")


@server.read_resource()
async def read_resource(uri: Any) -> list[ReadResourceContents]:
    text = await read_resource_text(str(uri))
    return [ReadResourceContents(content=text, mime_type=JSON_MIME)]


@server.list_prompts()
async def list_prompts() -> list[types.Prompt]:
    return [
        types.Prompt(
            name=p.name,
            description=p.description,
            arguments=[
                types.PromptArgument(name=a.name, description=a.description, required=a.required)
                for a in p.arguments
            ],
        )
        for p in PROMPTS.values()
    ]


@server.get_prompt()
async def get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
    text = render_prompt(name, arguments)
    return types.GetPromptResult(
        description=PROMPTS[name].description,
        messages=[
            types.PromptMessage(
                role="user",
                content=types.TextContent(type="text", text=text),
            )
        ],
    )


async def _run() -> None:
    logger.info(f"{SERVER_NAME} {settings.service_version} starting (stdio)")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(
                notification_options=NotificationOptions(
                    prompts_changed=False,
                    resources_changed=False,
                    tools_changed=False,
                ),
                experimental_capabilities={},
            ),
        )


def main() -> None:
    anyio.run(_run)


if __name__ == "__main__":
    main()
