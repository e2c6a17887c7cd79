"""
Style analysis collaborator: reference image in, StyleSpec out.

The vision model is an untrusted source. Its reply always goes through
`parse_style_response`, so a malformed answer degrades to the default
style with low confidence instead of failing. Transport and API errors
still propagate.
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from typing import Protocol

from subburn.config.settings import Settings
from subburn.domain.style import DEFAULT_STYLE
from subburn.exceptions import ConfigurationError, InputError
from subburn.prompts.style import DEFAULT_STYLE_INSTRUCTIONS, STYLE_ANALYSIS_PROMPT
from subburn.services.style import StyleParseResult, parse_style_response
from subburn.utils.logging import get_logger

log = get_logger(__name__)

IMAGE_FORMATS = {"png": "png", "jpg": "jpeg", "jpeg": "jpeg", "webp": "webp", "gif": "gif"}


class VisionClient(Protocol):
    def describe(
        self,
        *,
        system: str,
        prompt: str,
        image_url: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


class OpenAIVisionClient:
    def __init__(self, api_key: str):
        from openai import OpenAI  # local import (optional dependency)

        self._client = OpenAI(api_key=api_key)

    def describe(
        self,
        *,
        system: str,
        prompt: str,
        image_url: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        response = self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                },
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""


class StubVisionClient:
    """Answers with the default style in a fenced block."""

    def describe(self, *, system: str, prompt: str, image_url: str, model: str, temperature: float, max_tokens: int) -> str:
        log.info("[STUB] Returning default style instead of analysing the image")
        return "```json\n" + json.dumps(DEFAULT_STYLE.to_dict(), indent=2) + "\n```"


def image_data_url(image_bytes: bytes, image_format: str) -> str:
    fmt = IMAGE_FORMATS.get((image_format or "").lower().lstrip("."))
    if fmt is None:
        raise InputError(
            f"Unsupported image format '{image_format}'. Use one of: {', '.join(sorted(IMAGE_FORMATS))}."
        )
    if not image_bytes:
        raise InputError("Reference image is empty.")
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:image/{fmt};base64,{encoded}"


@dataclass
class StyleAnalysisService:
    client: VisionClient
    settings: Settings

    def analyze(self, image_bytes: bytes, image_format: str, *, prompt: str | None = None) -> StyleParseResult:
        url = image_data_url(image_bytes, image_format)
        log.info("Analysing subtitle style with model=%s (%d bytes)", self.settings.style_model, len(image_bytes))
        reply = self.client.describe(
            system=STYLE_ANALYSIS_PROMPT.system,
            prompt=STYLE_ANALYSIS_PROMPT.render(instructions=prompt or DEFAULT_STYLE_INSTRUCTIONS),
            image_url=url,
            model=self.settings.style_model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        result = parse_style_response(reply)
        log.info("Style analysis ok=%s confidence=%.2f issues=%d", result.ok, result.confidence, len(result.issues))
        return result


def create_style_analysis_service(settings: Settings) -> StyleAnalysisService:
    if os.getenv("SUBBURN_STUB_LLM", "0") == "1":
        log.warning("[STUB] Using StubVisionClient for style analysis.")
        return StyleAnalysisService(client=StubVisionClient(), settings=settings)
    if not settings.openai_api_key:
        raise ConfigurationError("Missing OpenAI API key. Set SUBBURN_OPENAI_API_KEY.")
    return StyleAnalysisService(client=OpenAIVisionClient(api_key=settings.openai_api_key), settings=settings)
