"""Entscheidsuche service: Swiss court decisions (entscheidsuche.ch) over MCP and REST."""

__version__ = "1.0.0"
