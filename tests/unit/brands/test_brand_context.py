"""Unit tests for brand context assembly."""

from __future__ import annotations

from datetime import datetime

from colater_mcp.models.brand import Brand
from colater_mcp.services.brand_context import assemble_brand_context, split_cues
from tests.fakes import make_brand, make_logo, make_tagline


def _logos(count: int):
    return [
        make_logo(f"logo-{i}", palette=["#112233", "#445566"] if i == 0 else ["#ffffff"])
        for i in range(count)
    ]


class TestSplitCues:
    def test_trims_and_drops_empty(self):
        assert split_cues(" bold, friendly, , clear ,") == ["bold", "friendly", "clear"]

    def test_empty(self):
        assert split_cues("") == []
        assert split_cues(None) == []


class TestEmptyInputs:
    def test_bare_brand_is_well_formed(self):
        brand = Brand(id="brand-1", owner_id="user-1")

        payload = assemble_brand_context(brand, [], []).to_payload()

        assert payload["brand"]["id"] == "brand-1"
        assert payload["brand"]["tagline"] == ""
        assert payload["voice"]["tone"] == []
        assert payload["voice"]["preferWords"] == []
        assert payload["voice"]["avoidWords"] == []
        assert payload["voice"]["examples"] == {"formal": "", "casual": ""}
        assert payload["identity"]["positioning"]["keyAttributes"] == []
        assert payload["visual"]["colors"]["palette"] == [
            {"hex": "#000000", "name": "Black", "usage": "Default color"}
        ]
        assert payload["visual"]["logos"]["variations"] == []
        assert payload["visual"]["typography"]["primary"]["name"] == "Inter"


class TestSections:
    def test_all_sections_by_default(self):
        payload = assemble_brand_context(make_brand()).to_payload()
        assert set(payload) == {"brand", "identity", "voice", "visual"}

    def test_only_requested_sections(self):
        payload = assemble_brand_context(make_brand(), sections=["voice"]).to_payload()
        assert set(payload) == {"brand", "voice"}

    def test_positioning_selects_identity(self):
        payload = assemble_brand_context(make_brand(), sections=["positioning"]).to_payload()
        assert set(payload) == {"brand", "identity"}

    def test_empty_section_list(self):
        payload = assemble_brand_context(make_brand(), sections=[]).to_payload()
        assert set(payload) == {"brand"}


class TestContent:
    def test_brand_summary(self):
        brand = make_brand(created_at=datetime(2025, 6, 1, 8, 30))
        payload = assemble_brand_context(brand).to_payload()

        assert payload["brand"]["name"] == "Acme"
        assert payload["brand"]["tagline"] == "Build boldly"
        assert payload["brand"]["elevatorPitch"] == "Tools for builders"
        assert payload["brand"]["targetAudience"] == "Small teams"
        assert payload["brand"]["createdAt"] == "2025-06-01T08:30:00.000Z"

    def test_tagline_falls_back_to_first_liked(self):
        brand = make_brand(primary_tagline="")
        taglines = [make_tagline("t1", "Liked one")]

        payload = assemble_brand_context(brand, [], taglines).to_payload()
        assert payload["brand"]["tagline"] == "Liked one"

    def test_identity(self):
        payload = assemble_brand_context(make_brand()).to_payload()
        positioning = payload["identity"]["positioning"]

        assert positioning["challenge"] == "Tools for builders"
        assert positioning["solution"] == "Building blocks"
        assert positioning["keyAttributes"] == ["bold", "friendly", "clear"]

    def test_solution_falls_back_to_name(self):
        payload = assemble_brand_context(make_brand(latest_concept="")).to_payload()
        assert payload["identity"]["positioning"]["solution"] == "Acme"

    def test_voice(self):
        taglines = [make_tagline("t1", "First liked"), make_tagline("t2", "Second liked")]
        payload = assemble_brand_context(make_brand(), [], taglines).to_payload()
        voice = payload["voice"]

        assert voice["tone"] == ["bold", "friendly", "clear"]
        assert voice["preferWords"] == ["bold", "friendly", "clear"]
        assert voice["avoidWords"] == ["stuffy", "jargon"]
        assert voice["examples"] == {"formal": "Build boldly", "casual": "Second liked"}

    def test_casual_example_falls_back_to_primary(self):
        taglines = [make_tagline("t1", "Only liked")]
        payload = assemble_brand_context(make_brand(), [], taglines).to_payload()
        assert payload["voice"]["examples"]["casual"] == "Build boldly"

    def test_logo_variations_capped_newest_first(self):
        payload = assemble_brand_context(make_brand(), _logos(7)).to_payload()
        variations = payload["visual"]["logos"]["variations"]

        assert [v["id"] for v in variations] == [f"logo-{i}" for i in range(5)]
        assert [v["type"] for v in variations] == ["primary", "bw", "bw", "bw", "bw"]
        assert payload["visual"]["logos"]["primary"] == "https://cdn.example.com/acme.png"

    def test_palette_from_newest_logo(self):
        payload = assemble_brand_context(make_brand(), _logos(2)).to_payload()

        assert payload["visual"]["colors"]["palette"] == [
            {"hex": "#112233", "name": "Color 1", "usage": "Primary brand color"},
            {"hex": "#445566", "name": "Color 2", "usage": "Accent color"},
        ]

    def test_exclude_assets_drops_logo_urls(self):
        payload = assemble_brand_context(make_brand(), _logos(2), include_assets=False).to_payload()

        assert payload["visual"]["logos"] == {
            "primary": "",
            "icon": "",
            "wordmark": "",
            "variations": [],
        }
        assert len(payload["visual"]["colors"]["palette"]) == 2

    def test_typography(self):
        payload = assemble_brand_context(make_brand()).to_payload()
        typography = payload["visual"]["typography"]

        assert typography["primary"] == {
            "name": "Open Sans",
            "weights": [400, 600, 700],
            "usage": "All text and UI elements",
        }
        assert typography["pairings"] == ["Open Sans", "Georgia"]
