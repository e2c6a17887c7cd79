from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class PromptSpec:
    """A system prompt plus a user-message template (str.format placeholders)."""

    system: str
    template: str

    def render_system(self, **values: str) -> str:
        return _fill("system", self.system, values)

    def render(self, **values: str) -> str:
        return _fill("template", self.template, values)


def _fill(part: str, text: str, values: Mapping[str, str]) -> str:
    try:
        return text.format(**values)
    except KeyError as exc:
        raise KeyError(f"Prompt {part} needs a value for {exc}") from exc
