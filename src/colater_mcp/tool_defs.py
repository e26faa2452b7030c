"""MCP tool schema definitions.

Each tool's input is a pydantic model. The JSON schema advertised through
``tools/list`` and the validation done before dispatch both come from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Section = Literal["identity", "voice", "visual", "positioning"]
AssetType = Literal["logo", "colors", "fonts", "mockups"]
Capability = Literal["read", "validate", "generate", "modify"]


class ToolInput(BaseModel):
    """Base for tool inputs: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BrandContextInput(ToolInput):
    brand_id: str | None = Field(
        default=None,
        min_length=1,
        description="Brand ID to retrieve context for. Optional, uses default brand if not provided.",
    )
    sections: list[Section] | None = Field(
        default=None,
        description="Optional filter for specific sections. If not provided, returns all sections.",
    )
    include_assets: bool = Field(
        default=True,
        description="Include logo URLs and other visual assets. Default: true",
    )


class VoiceValidateInput(ToolInput):
    brand_id: str | None = Field(
        default=None,
        min_length=1,
        description="Brand ID to validate against. Optional, uses default brand if not provided.",
    )
    text: str = Field(max_length=5000, description="Text to validate (max 5000 characters)")
    context: str | None = Field(
        default=None,
        description='Context of the text (e.g., "email", "social_post", "blog"). '
        "Helps improve validation accuracy.",
    )
    strictness: float = Field(
        default=0.7,
        ge=0,
        le=1,
        description="Validation strictness from 0 (lenient) to 1 (very strict). Default: 0.7",
    )


class AssetFormat(ToolInput):
    logo: Literal["url", "svg", "png", "data_uri"] | None = Field(
        default=None, description="Format for logo assets"
    )
    colors: Literal["hex", "rgb", "hsl", "tailwind", "css", "figma"] | None = Field(
        default=None, description="Format for color palette"
    )
    fonts: Literal["names", "google_fonts_url", "css_imports"] | None = Field(
        default=None, description="Format for font information"
    )


class AssetsGetInput(ToolInput):
    brand_id: str | None = Field(
        default=None,
        min_length=1,
        description="Brand ID to retrieve assets for. Optional, uses default brand if not provided.",
    )
    asset_types: list[AssetType] = Field(min_length=1, description="Types of assets to retrieve")
    format: AssetFormat | None = Field(
        default=None, description="Specify output formats for each asset type"
    )


class ListBrandsFilter(ToolInput):
    search: str | None = Field(default=None, description="Search brands by name")
    has_logo: bool | None = Field(default=None, description="Filter to only brands with logos")


class ListBrandsInput(ToolInput):
    limit: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Maximum number of results to return (1-100). Default: 50",
    )
    offset: int = Field(
        default=0, ge=0, description="Number of results to skip for pagination. Default: 0"
    )
    sort_by: Literal["name", "created", "updated"] = Field(
        default="updated", description="Sort order for results. Default: updated"
    )
    filter: ListBrandsFilter | None = Field(
        default=None, description="Optional filters to narrow results"
    )


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool.

    ``brand_scoped`` tools act on one brand and go through brand
    resolution; the rest act on everything the caller owns.
    """

    name: str
    description: str
    input_model: type[ToolInput]
    permission: Capability
    brand_scoped: bool = True

    def to_tool(self) -> Tool:
        schema = self.input_model.model_json_schema(by_alias=True)
        return Tool(name=self.name, description=self.description, inputSchema=schema)


TOOL_SPECS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name="get_brand_context",
            description=(
                "Retrieve complete brand context including identity, voice, and visual "
                "guidelines. Use this to understand brand positioning, tone, colors, fonts, "
                "and design system."
            ),
            input_model=BrandContextInput,
            permission="read",
        ),
        ToolSpec(
            name="validate_brand_voice",
            description=(
                "Validate if text matches the brand voice and get suggestions for "
                "improvement. Returns a score, analysis, specific issues, and optionally an "
                "AI-generated rewrite."
            ),
            input_model=VoiceValidateInput,
            permission="validate",
        ),
        ToolSpec(
            name="get_brand_assets",
            description=(
                "Retrieve brand assets including logos, color palettes, and fonts in various "
                "formats. Perfect for integrating brand identity into designs, code, or "
                "documentation."
            ),
            input_model=AssetsGetInput,
            permission="read",
        ),
        ToolSpec(
            name="list_brands",
            description=(
                "List all brands accessible to the authenticated user. Useful for discovering "
                "available brands, searching by name, or getting an overview of your brand "
                "portfolio."
            ),
            input_model=ListBrandsInput,
            permission="read",
            brand_scoped=False,
        ),
    )
}


def get_tool_definitions() -> list[Tool]:
    """Return all MCP tool definitions with their JSON schemas."""
    return [spec.to_tool() for spec in TOOL_SPECS.values()]
