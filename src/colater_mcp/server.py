"""Colater MCP server.

Exposes the Colater brand tools to AI assistants over MCP stdio. Tool calls
are validated locally, then forwarded to the Colater API with the
configured brand-scoped key. Brand context and assets are cached on disk.

stdout carries the protocol; all logging goes to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Any

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from colater_mcp import __version__
from colater_mcp.client import ColaterClient
from colater_mcp.config import Settings, get_settings
from colater_mcp.dispatcher import ToolDispatcher
from colater_mcp.handlers import RemoteToolHandlers
from colater_mcp.logging_setup import configure_logging
from colater_mcp.services.cache import LocalCache
from colater_mcp.services.key_codec import extract_brand_id
from colater_mcp.tool_defs import get_tool_definitions

logger = structlog.get_logger()

# Global dispatcher instance (managed by lifespan)
_dispatcher: ToolDispatcher | None = None


def resolve_default_brand(settings: Settings) -> str | None:
    """Configured default brand, else the brand the API key belongs to."""
    if settings.client.default_brand_id:
        return settings.client.default_brand_id
    if settings.client.api_key:
        return extract_brand_id(settings.client.api_key)
    return None


def build_cache(settings: Settings) -> LocalCache | None:
    if not settings.cache.enabled:
        return None
    return LocalCache(settings.cache.directory)


def build_dispatcher(settings: Settings, client: Any, cache: LocalCache | None) -> ToolDispatcher:
    handlers = RemoteToolHandlers(client, cache, ttl_seconds=settings.cache.ttl)
    # The HTTP client enforces its own timeout; leave room for its retries
    timeout = settings.client.timeout * (settings.client.max_retries + 1) + 5
    return ToolDispatcher(
        handlers.as_mapping(),
        default_brand_id=resolve_default_brand(settings),
        timeout=timeout,
    )


@asynccontextmanager
async def lifespan(server: Server):
    """Manage the ColaterClient lifecycle."""
    global _dispatcher
    settings = get_settings()
    if not settings.client.api_key:
        raise ValueError(
            "COLATER_API_KEY environment variable is required. "
            "Set it in your MCP configuration."
        )

    async with ColaterClient(
        settings.client.endpoint_url,
        settings.client.api_key,
        timeout=settings.client.timeout,
        max_retries=settings.client.max_retries,
    ) as client:
        _dispatcher = build_dispatcher(settings, client, build_cache(settings))
        logger.info(
            "mcp.startup",
            version=__version__,
            endpoint=settings.client.endpoint_url,
            default_brand_id=resolve_default_brand(settings),
            cache=settings.cache.enabled,
        )
        try:
            yield
        finally:
            _dispatcher = None
            logger.info("mcp.shutdown")


# Create MCP server
server = Server("colater-mcp")


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return get_tool_definitions()


# Arguments are validated by the dispatcher so failures come back as
# validation_failed envelopes.
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
    """Handle tool calls."""
    if _dispatcher is None:
        return CallToolResult(
            content=[TextContent(type="text", text="Error: Colater client not initialized")],
            isError=True,
        )
    envelope = await _dispatcher.dispatch(name, arguments)
    return CallToolResult.model_validate(envelope)


async def run_server():
    """Run the MCP server."""
    async with lifespan(server):
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )


def run_http(settings: Settings) -> None:
    """Serve the HTTP API."""
    import uvicorn

    from colater_mcp.main import create_app

    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)


def clear_cache(settings: Settings) -> int:
    """Delete every cached tool result. Returns the number removed."""
    return LocalCache(settings.cache.directory).clear_all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="colater-mcp",
        description="Colater brand tools for AI assistants",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("serve", help="Run the MCP stdio server (default)")
    subparsers.add_parser("http", help="Run the HTTP API server")
    subparsers.add_parser("version", help="Print the version")
    subparsers.add_parser("cache-clear", help="Delete all cached tool results")
    return parser


def main(argv: list[str] | None = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    command = args.command or "serve"

    if command == "version":
        print(__version__)
        return

    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.json_logs)

    if command == "cache-clear":
        removed = clear_cache(settings)
        print(f"Removed {removed} cached entries from {settings.cache.directory}", file=sys.stderr)
        return
    if command == "http":
        run_http(settings)
        return

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
