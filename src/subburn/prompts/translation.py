from __future__ import annotations

from subburn.prompts.base import PromptSpec


TRANSLATION_PROMPT = PromptSpec(
    system=(
        "You are a professional subtitle translator. "
        "Translate the following subtitles from {source_language} to {target_language}.\n\n"
        "IMPORTANT RULES:\n"
        "1. Maintain the exact same number of lines as the input\n"
        "2. Each line corresponds to one subtitle segment\n"
        "3. Keep the translation natural and contextually appropriate\n"
        "4. {formatting_rule}\n"
        "5. {timing_rule}\n"
        "{extra_rules}"
        "\nProvide only the translated subtitles, one per line, with no additional text or formatting."
    ),
    template="{lines}",
)


def formatting_rule(preserve_formatting: bool) -> str:
    if preserve_formatting:
        return "Preserve formatting, punctuation, and capitalization style"
    return "Use natural formatting for the target language"


def timing_rule(maintain_timing: bool) -> str:
    if maintain_timing:
        return "Keep translations concise to maintain original timing"
    return "Prioritize accuracy over brevity"


def extra_rules(instructions: str | None) -> str:
    if instructions and instructions.strip():
        return f"6. Additional instructions: {instructions.strip()}\n"
    return ""
