"""Brand voice validation.

Scores a piece of text against a brand's voice cues with a generative
model. The model is reached through the small VoiceModel protocol so the
validator can run against a fake in tests.
"""

from __future__ import annotations

from typing import Literal, Protocol

import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from colater_mcp.config import VoiceConfig
from colater_mcp.errors import (
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)
from colater_mcp.models.brand import Brand

logger = structlog.get_logger()


class _VoiceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VoiceAnalysis(_VoiceModel):
    tone_match: float
    vocabulary_match: float
    structure_match: float


class VoiceIssue(_VoiceModel):
    type: Literal["avoid_word", "off_tone", "jargon", "complexity"]
    text: str
    reason: str
    suggestion: str
    severity: Literal["low", "medium", "high"]


class VoiceHighlights(_VoiceModel):
    good: list[str] = Field(default_factory=list)
    bad: list[str] = Field(default_factory=list)


class VoiceValidationResult(_VoiceModel):
    """Structured verdict returned by the model."""

    score: float
    on_brand: bool
    analysis: VoiceAnalysis
    issues: list[VoiceIssue] = Field(default_factory=list)
    rewrite: str | None = None
    highlights: VoiceHighlights = Field(default_factory=VoiceHighlights)


class VoiceModel(Protocol):
    """Generates JSON text matching a pydantic schema."""

    async def generate(self, prompt: str, schema: type[BaseModel]) -> str: ...


class GeminiVoiceModel:
    """VoiceModel backed by Gemini structured output."""

    def __init__(self, config: VoiceConfig, client: genai.Client | None = None) -> None:
        self._model = config.model
        self._client = client or genai.Client(api_key=config.api_key)
        self._log = logger.bind(component="voice_model", model=config.model)

    async def generate(self, prompt: str, schema: type[BaseModel]) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
            )
        except genai_errors.APIError as e:
            self._log.warning("voice_model.error", code=e.code, error=str(e))
            if e.code == 429:
                raise UpstreamRateLimitedError("Voice model rate limit exceeded") from e
            raise UpstreamUnavailableError("Voice model unavailable") from e

        if not response.text:
            raise UpstreamUnavailableError("Voice model returned no content")
        return response.text


def build_voice_prompt(brand: Brand, text: str, context: str | None, strictness: float) -> str:
    return f"""You are a brand voice expert. Analyze the following text against the brand voice guidelines.

Brand: {brand.latest_name}
Brand Pitch: {brand.latest_elevator_pitch}
Target Audience: {brand.latest_audience}
Desirable Cues: {brand.latest_desirable_cues}
Undesirable Cues: {brand.latest_undesirable_cues}

Context: {context or "general"}
Strictness: {strictness}

Text to Analyze:
\"\"\"
{text}
\"\"\"

Analyze this text and provide:
1. Overall score (0-1) for how well it matches the brand voice
2. Whether it's "on brand" (true/false)
3. Detailed analysis of tone, vocabulary, and structure match
4. Specific issues with problematic text, reasons, and suggestions
5. Highlights of good and bad phrases
6. An optional rewrite that better matches the brand voice

Be specific and actionable in your feedback."""


class VoiceValidator:
    """Checks text against a brand's voice."""

    def __init__(self, model: VoiceModel) -> None:
        self._model = model
        self._log = logger.bind(component="voice")

    async def validate(
        self,
        brand: Brand,
        text: str,
        context: str | None = None,
        strictness: float = 0.7,
    ) -> VoiceValidationResult:
        """Score text against the brand voice.

        Raises:
            UpstreamRateLimitedError: Model rate limit hit
            UpstreamUnavailableError: Model unreachable or returned junk
        """
        prompt = build_voice_prompt(brand, text, context, strictness)
        raw = await self._model.generate(prompt, VoiceValidationResult)
        try:
            result = VoiceValidationResult.model_validate_json(raw)
        except ValidationError as e:
            self._log.warning("voice.invalid_output", brand_id=brand.id, errors=e.error_count())
            raise UpstreamUnavailableError("Voice model returned an invalid response") from e

        self._log.info("voice.validated", brand_id=brand.id, score=result.score, on_brand=result.on_brand)
        return result
