"""Unit tests for tool definitions."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from colater_mcp.tool_defs import (
    TOOL_SPECS,
    AssetsGetInput,
    ListBrandsInput,
    VoiceValidateInput,
    get_tool_definitions,
)


class TestDefinitions:
    def test_four_tools(self):
        names = [tool.name for tool in get_tool_definitions()]
        assert names == [
            "get_brand_context",
            "validate_brand_voice",
            "get_brand_assets",
            "list_brands",
        ]

    def test_schemas_use_camel_case(self):
        tools = {tool.name: tool for tool in get_tool_definitions()}

        context_props = tools["get_brand_context"].inputSchema["properties"]
        assert set(context_props) == {"brandId", "sections", "includeAssets"}

        assets_schema = tools["get_brand_assets"].inputSchema
        assert "assetTypes" in assets_schema["required"]

        voice_schema = tools["validate_brand_voice"].inputSchema
        assert voice_schema["required"] == ["text"]
        assert voice_schema["properties"]["text"]["maxLength"] == 5000

    def test_permissions(self):
        assert TOOL_SPECS["validate_brand_voice"].permission == "validate"
        assert {
            spec.permission for name, spec in TOOL_SPECS.items() if name != "validate_brand_voice"
        } == {"read"}

    def test_list_brands_not_brand_scoped(self):
        assert TOOL_SPECS["list_brands"].brand_scoped is False
        assert all(
            spec.brand_scoped for name, spec in TOOL_SPECS.items() if name != "list_brands"
        )


class TestInputs:
    def test_list_brands_defaults(self):
        params = ListBrandsInput.model_validate({})
        assert (params.limit, params.offset, params.sort_by) == (50, 0, "updated")

    @pytest.mark.parametrize("limit", [0, 101])
    def test_list_brands_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            ListBrandsInput.model_validate({"limit": limit})

    def test_list_brands_filter(self):
        params = ListBrandsInput.model_validate(
            {"sortBy": "name", "filter": {"search": "ac", "hasLogo": True}}
        )
        assert params.sort_by == "name"
        assert params.filter.has_logo is True

    def test_voice_defaults(self):
        params = VoiceValidateInput.model_validate({"text": "hello"})
        assert params.strictness == 0.7
        assert params.brand_id is None

    @pytest.mark.parametrize(
        "arguments",
        [
            {},
            {"text": "x" * 5001},
            {"text": "ok", "strictness": 1.5},
            {"text": "ok", "brandId": ""},
        ],
    )
    def test_voice_rejects(self, arguments):
        with pytest.raises(ValidationError):
            VoiceValidateInput.model_validate(arguments)

    def test_assets_require_a_type(self):
        with pytest.raises(ValidationError):
            AssetsGetInput.model_validate({"assetTypes": []})

    def test_assets_reject_unknown_type(self):
        with pytest.raises(ValidationError):
            AssetsGetInput.model_validate({"assetTypes": ["banners"]})

    def test_assets_format(self):
        params = AssetsGetInput.model_validate(
            {"assetTypes": ["colors"], "format": {"colors": "css"}}
        )
        assert params.format.colors == "css"
