"""Brand context assembly.

Pure transformation of a brand record, its recent logos and its liked
taglines into the context document handed to AI assistants. No I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from colater_mcp.models.brand import Brand, LogoGeneration, TaglineGeneration
from colater_mcp.utils.datetime import isoformat_utc

MAX_LOGO_VARIATIONS = 5
DEFAULT_FONT = "Inter"
DEFAULT_PHILOSOPHY = "Modern and minimalist"
FONT_WEIGHTS = [400, 600, 700]


class _ContextModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BrandSummary(_ContextModel):
    id: str
    name: str = ""
    tagline: str = ""
    elevator_pitch: str = ""
    target_audience: str = ""
    created_at: str | None = None
    last_updated: str | None = None


class Positioning(_ContextModel):
    challenge: str = ""
    solution: str = ""
    key_attributes: list[str] = Field(default_factory=list)


class IdentitySection(_ContextModel):
    positioning: Positioning


class VoiceExamples(_ContextModel):
    formal: str = ""
    casual: str = ""


class VoiceSection(_ContextModel):
    tone: list[str] = Field(default_factory=list)
    prefer_words: list[str] = Field(default_factory=list)
    avoid_words: list[str] = Field(default_factory=list)
    examples: VoiceExamples = Field(default_factory=VoiceExamples)


class LogoVariation(_ContextModel):
    id: str
    url: str = ""
    type: str


class LogoSet(_ContextModel):
    primary: str = ""
    icon: str = ""
    wordmark: str = ""
    variations: list[LogoVariation] = Field(default_factory=list)


class Swatch(_ContextModel):
    hex: str
    name: str
    usage: str


class ColorSection(_ContextModel):
    palette: list[Swatch]
    philosophy: str = DEFAULT_PHILOSOPHY


class Typeface(_ContextModel):
    name: str
    weights: list[int]
    usage: str


class Typography(_ContextModel):
    primary: Typeface
    pairings: list[str]


class VisualSection(_ContextModel):
    logos: LogoSet
    colors: ColorSection
    typography: Typography


class BrandContext(_ContextModel):
    brand: BrandSummary
    identity: IdentitySection | None = None
    voice: VoiceSection | None = None
    visual: VisualSection | None = None

    def to_payload(self) -> dict:
        """Serialize with camelCase keys, omitting sections not requested."""
        return self.model_dump(by_alias=True, exclude_none=True)


DEFAULT_PALETTE = [Swatch(hex="#000000", name="Black", usage="Default color")]


def split_cues(value: str | None) -> list[str]:
    """Parse a comma-separated cue field. Blank entries are dropped."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def first_palette(logos: Sequence[LogoGeneration]) -> list[str]:
    """Hex colours of the newest logo's first colour version, possibly empty."""
    if not logos:
        return []
    versions = logos[0].color_versions or []
    if not versions or not isinstance(versions[0], dict):
        return []
    return [c for c in versions[0].get("palette") or [] if c]


def palette_from_logos(logos: Sequence[LogoGeneration]) -> list[Swatch]:
    """Labelled palette, or the default black swatch."""
    colors = first_palette(logos)
    if colors:
        return [
            Swatch(
                hex=hex_value,
                name=f"Color {index + 1}",
                usage="Primary brand color" if index == 0 else "Accent color",
            )
            for index, hex_value in enumerate(colors)
        ]
    return [swatch.model_copy() for swatch in DEFAULT_PALETTE]


def _wants(sections: set[str] | None, *names: str) -> bool:
    return sections is None or any(name in sections for name in names)


def assemble_brand_context(
    brand: Brand,
    recent_logos: Sequence[LogoGeneration] = (),
    liked_taglines: Sequence[TaglineGeneration] = (),
    sections: Iterable[str] | None = None,
    include_assets: bool = True,
) -> BrandContext:
    """Build the brand context document.

    Args:
        brand: Brand record
        recent_logos: Logo generations, newest first
        liked_taglines: Liked tagline generations, newest first
        sections: Subset of identity/voice/visual/positioning; None for all.
            ``positioning`` is served by the identity section.
        include_assets: When False, logo URLs are left out of the visual section

    Returns:
        BrandContext with only the requested sections populated
    """
    wanted = set(sections) if sections is not None else None
    logos = list(recent_logos)[:MAX_LOGO_VARIATIONS]
    taglines = [t.tagline for t in liked_taglines if t.tagline]

    context = BrandContext(
        brand=BrandSummary(
            id=brand.id,
            name=brand.latest_name or "",
            tagline=brand.primary_tagline or (taglines[0] if taglines else ""),
            elevator_pitch=brand.latest_elevator_pitch or "",
            target_audience=brand.latest_audience or "",
            created_at=isoformat_utc(brand.created_at),
            last_updated=isoformat_utc(brand.updated_at),
        )
    )

    if _wants(wanted, "identity", "positioning"):
        context.identity = IdentitySection(
            positioning=Positioning(
                challenge=brand.latest_elevator_pitch or "",
                solution=brand.latest_concept or brand.latest_name or "",
                key_attributes=split_cues(brand.latest_desirable_cues),
            )
        )

    if _wants(wanted, "voice"):
        desirable = split_cues(brand.latest_desirable_cues)
        primary_tagline = brand.primary_tagline or ""
        context.voice = VoiceSection(
            tone=desirable,
            prefer_words=list(desirable),
            avoid_words=split_cues(brand.latest_undesirable_cues),
            examples=VoiceExamples(
                formal=primary_tagline,
                casual=taglines[1] if len(taglines) > 1 else primary_tagline,
            ),
        )

    if _wants(wanted, "visual"):
        font = brand.font or DEFAULT_FONT
        if include_assets:
            primary_url = brand.logo_url or (logos[0].logo_url if logos else "")
            logo_set = LogoSet(
                primary=primary_url,
                icon=primary_url,
                wordmark=primary_url,
                variations=[
                    LogoVariation(
                        id=logo.id,
                        url=logo.logo_url or "",
                        type="primary" if index == 0 else "bw",
                    )
                    for index, logo in enumerate(logos)
                ],
            )
        else:
            logo_set = LogoSet()
        context.visual = VisualSection(
            logos=logo_set,
            colors=ColorSection(
                palette=palette_from_logos(logos),
                philosophy=brand.latest_desirable_cues or DEFAULT_PHILOSOPHY,
            ),
            typography=Typography(
                primary=Typeface(
                    name=font,
                    weights=list(FONT_WEIGHTS),
                    usage="All text and UI elements",
                ),
                pairings=[font, "Georgia"],
            ),
        )

    return context
