"""MCP server package for entscheidsuche-service.

The MCP server is meant for LLM agents to call tools like:
- search_decisions
- get_document
- list_courts
- get_document_urls

Transport:
- stdio (implemented)
"""
