"""
Translation collaborator for subburn.

Turns a timeline into the same timeline in another language by sending one
line per segment to a Large Language Model (LLM) and mapping the reply back
line by line.

Design principles:
- Vendor isolation: OpenAI (or any LLM provider) is hidden behind a protocol.
- Timings are never touched; only segment text changes.
- A reply with the wrong number of lines is an error, not something to
  realign heuristically.
- Empty segments are never sent; they stay empty in every language.

This module intentionally does NOT:
- Transcribe audio
- Render video
- Persist translations
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Protocol, Sequence

from subburn.config.settings import Settings
from subburn.domain.timeline import SubtitleSegment
from subburn.exceptions import ConfigurationError, SubburnError, TranslationMismatchError
from subburn.prompts.translation import TRANSLATION_PROMPT, extra_rules, formatting_rule, timing_rule
from subburn.utils.logging import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------
# LLM Client Protocol (keeps OpenAI isolated & mockable)
# ---------------------------------------------------------------------
class LLMClient(Protocol):
    def generate(
        self,
        *,
        system: str,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


# ---------------------------------------------------------------------
# OpenAI Client (concrete implementation)
# ---------------------------------------------------------------------
class OpenAIClient:
    def __init__(self, api_key: str):
        from openai import OpenAI  # local import (optional dependency)

        self._client = OpenAI(api_key=api_key)

    def generate(
        self,
        *,
        system: str,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        response = self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        return (response.choices[0].message.content or "").strip()


class StubClient:
    """Echoes the prompt back unchanged. For pipeline testing without an API key."""

    def generate(self, *, system: str, prompt: str, model: str, temperature: float, max_tokens: int) -> str:
        log.info("[STUB] Echoing %d line(s) instead of translating", len(prompt.splitlines()))
        return prompt


# ---------------------------------------------------------------------
# Pure mapping
# ---------------------------------------------------------------------
def segment_lines(timeline: Sequence[SubtitleSegment]) -> list[str]:
    # one physical line per non-empty segment, or the line count cannot be checked
    return [line for line in (" ".join(segment.text.split()) for segment in timeline) if line]


def reply_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def apply_translation(timeline: Sequence[SubtitleSegment], lines: Sequence[str]) -> tuple[SubtitleSegment, ...]:
    """Map reply lines back onto the segments that were sent (blank segments are skipped)."""
    translatable = [i for i, segment in enumerate(timeline) if segment.text.strip()]
    if len(lines) != len(translatable):
        raise TranslationMismatchError(expected=len(translatable), got=len(lines))
    by_index = dict(zip(translatable, lines))
    return tuple(
        replace(segment, text=by_index[i]) if i in by_index else segment for i, segment in enumerate(timeline)
    )


# ---------------------------------------------------------------------
# Translation Service
# ---------------------------------------------------------------------
@dataclass
class TranslationService:
    """
    Responsible ONLY for translating segment text.
    No file system logic.
    No rendering knowledge.
    """

    llm: LLMClient
    settings: Settings

    def translate(
        self,
        timeline: Sequence[SubtitleSegment],
        target_language: str,
        *,
        source_language: str = "auto",
        instructions: str | None = None,
        preserve_formatting: bool = True,
        maintain_timing: bool = True,
    ) -> tuple[SubtitleSegment, ...]:
        lines = segment_lines(timeline)
        if not lines:
            return tuple(timeline)
        source = "the detected source language" if source_language == "auto" else source_language
        log.info(
            "Translating %d segment(s) %s -> %s with model=%s",
            len(lines),
            source_language,
            target_language,
            self.settings.model,
        )

        text = self.llm.generate(
            system=TRANSLATION_PROMPT.render_system(
                source_language=source,
                target_language=target_language,
                formatting_rule=formatting_rule(preserve_formatting),
                timing_rule=timing_rule(maintain_timing),
                extra_rules=extra_rules(instructions),
            ),
            prompt=TRANSLATION_PROMPT.render(lines="\n".join(lines)),
            model=self.settings.model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        if not text.strip():
            raise SubburnError("LLM returned an empty translation")

        try:
            return apply_translation(timeline, reply_lines(text))
        except TranslationMismatchError as exc:
            if not self.settings.translation_fallback:
                raise
            log.warning("%s Keeping original text for %s.", exc.message, target_language)
            return tuple(timeline)

    def translate_many(
        self,
        timeline: Sequence[SubtitleSegment],
        target_languages: Sequence[str],
        *,
        source_language: str = "auto",
        instructions: str | None = None,
        preserve_formatting: bool = True,
        maintain_timing: bool = True,
    ) -> dict[str, tuple[SubtitleSegment, ...]]:
        """One model call per language; duplicates and blanks are dropped, order is kept."""
        results: dict[str, tuple[SubtitleSegment, ...]] = {}
        for language in target_languages:
            language = language.strip()
            if not language or language in results:
                continue
            results[language] = self.translate(
                timeline,
                language,
                source_language=source_language,
                instructions=instructions,
                preserve_formatting=preserve_formatting,
                maintain_timing=maintain_timing,
            )
        return results


# ---------------------------------------------------------------------
# Factory helper
# ---------------------------------------------------------------------
def create_llm_client(settings: Settings) -> LLMClient:
    # Allow stub mode if SUBBURN_STUB_LLM=1 is set in env
    if os.getenv("SUBBURN_STUB_LLM", "0") == "1":
        log.warning("[STUB] Using StubClient for LLM calls.")
        return StubClient()

    if not settings.openai_api_key:
        raise ConfigurationError(
            "Missing OpenAI API key. Set SUBBURN_OPENAI_API_KEY."
        )
    return OpenAIClient(api_key=settings.openai_api_key)


def create_translation_service(settings: Settings) -> TranslationService:
    return TranslationService(llm=create_llm_client(settings), settings=settings)
