"""Tool handlers.

Two implementations of the same four tools:

- BrandToolHandlers run next to the database (HTTP server).
- RemoteToolHandlers forward to the HTTP server through ColaterClient and
  cache read-only results locally (stdio server).
"""

from __future__ import annotations

from typing import Any

import structlog

from colater_mcp.dispatcher import ToolContext, ToolHandler
from colater_mcp.errors import CredentialMissingError, UpstreamUnavailableError
from colater_mcp.services.assets import build_brand_assets
from colater_mcp.services.brand_context import MAX_LOGO_VARIATIONS, assemble_brand_context
from colater_mcp.services.brands import BrandRepository
from colater_mcp.services.cache import LocalCache, cache_key
from colater_mcp.services.voice import VoiceValidator
from colater_mcp.tool_defs import (
    AssetsGetInput,
    BrandContextInput,
    ListBrandsInput,
    VoiceValidateInput,
)

logger = structlog.get_logger()


def _owner_id(ctx: ToolContext) -> str:
    if ctx.identity is None:
        raise CredentialMissingError()
    return ctx.identity.user_id


class BrandToolHandlers:
    """Tool handlers backed by BrandRepository."""

    def __init__(self, brands: BrandRepository, voice: VoiceValidator | None = None) -> None:
        self._brands = brands
        self._voice = voice

    def as_mapping(self) -> dict[str, ToolHandler]:
        return {
            "get_brand_context": self.get_brand_context,
            "validate_brand_voice": self.validate_brand_voice,
            "get_brand_assets": self.get_brand_assets,
            "list_brands": self.list_brands,
        }

    async def get_brand_context(self, ctx: ToolContext, params: BrandContextInput) -> dict[str, Any]:
        brand = await self._brands.get_brand(_owner_id(ctx), ctx.brand_id)
        wanted = set(params.sections) if params.sections is not None else None

        logos = []
        if wanted is None or "visual" in wanted:
            logos = await self._brands.recent_logos(brand.id, limit=MAX_LOGO_VARIATIONS)
        taglines = await self._brands.liked_taglines(brand.id)

        context = assemble_brand_context(
            brand,
            logos,
            taglines,
            sections=params.sections,
            include_assets=params.include_assets,
        )
        return context.to_payload()

    async def validate_brand_voice(
        self, ctx: ToolContext, params: VoiceValidateInput
    ) -> dict[str, Any]:
        brand = await self._brands.get_brand(_owner_id(ctx), ctx.brand_id)
        if self._voice is None:
            raise UpstreamUnavailableError("Voice validation is not configured")
        result = await self._voice.validate(
            brand,
            params.text,
            context=params.context,
            strictness=params.strictness,
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    async def get_brand_assets(self, ctx: ToolContext, params: AssetsGetInput) -> dict[str, Any]:
        brand = await self._brands.get_brand(_owner_id(ctx), ctx.brand_id)
        logos = []
        if {"logo", "colors"} & set(params.asset_types):
            logos = await self._brands.recent_logos(brand.id, limit=MAX_LOGO_VARIATIONS)
        formats = params.format.model_dump(exclude_none=True) if params.format else {}
        return build_brand_assets(brand, logos, params.asset_types, formats)

    async def list_brands(self, ctx: ToolContext, params: ListBrandsInput) -> dict[str, Any]:
        result = await self._brands.list_brands(
            _owner_id(ctx),
            limit=params.limit,
            offset=params.offset,
            sort_by=params.sort_by,
            search=params.filter.search if params.filter else None,
            has_logo=params.filter.has_logo if params.filter else None,
        )
        return result.model_dump(by_alias=True)


class RemoteToolHandlers:
    """Tool handlers that call the Colater API.

    Brand context and assets are cached; voice validation and brand
    listing always go upstream.
    """

    _CACHED_TOOLS = frozenset({"get_brand_context", "get_brand_assets"})

    def __init__(
        self,
        client,
        cache: LocalCache | None = None,
        *,
        ttl_seconds: float = 300,
    ) -> None:
        self._client = client
        self._cache = cache
        self._ttl = ttl_seconds
        self._log = logger.bind(component="remote_tools")

    def as_mapping(self) -> dict[str, ToolHandler]:
        return {
            "get_brand_context": self._call,
            "validate_brand_voice": self._call,
            "get_brand_assets": self._call,
            "list_brands": self._call,
        }

    async def _call(self, ctx: ToolContext, params) -> Any:
        arguments = params.model_dump(by_alias=True, exclude_none=True)
        if ctx.brand_id is not None:
            arguments["brandId"] = ctx.brand_id

        async def produce() -> Any:
            return await self._client.call_tool(ctx.tool, arguments)

        if self._cache is None or ctx.tool not in self._CACHED_TOOLS:
            return await produce()
        return await self._cache.with_cache(cache_key(ctx.tool, arguments), produce, self._ttl)
