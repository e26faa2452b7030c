"""Colater MCP - brand-scoped API keys and MCP tool serving for Colater brands."""

__version__ = "0.1.0"
