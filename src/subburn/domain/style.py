from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from subburn.utils.text import transform_text


class Position(str, Enum):
    BOTTOM = "bottom"
    TOP = "top"
    CENTER = "center"


class TextTransform(str, Enum):
    NONE = "none"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    CAPITALIZE = "capitalize"


@dataclass(frozen=True)
class StyleSpec:
    """Resolved, validated presentation parameters for subtitle rendering."""

    font_family: str = "Inter"
    font_size: int = 24
    font_weight: str = "600"
    text_color: str = "#FFFFFF"
    stroke_color: str = "#000000"
    stroke_width: int = 2
    background_color: str = "#000000"
    background_opacity: int = 80
    has_background: bool = True
    text_shadow: bool = True
    position: Position = Position.BOTTOM
    position_offset: int = 50
    max_width_ratio: float = 0.8
    line_height: int = 120
    text_transform: TextTransform = TextTransform.NONE
    animations: bool = False
    border_radius: int = 8
    confidence: float = 1.0

    @property
    def is_bold(self) -> bool:
        try:
            return int(self.font_weight) >= 600
        except ValueError:
            return False

    @property
    def line_height_factor(self) -> float:
        return self.line_height / 100.0

    def apply_transform(self, text: str) -> str:
        return transform_text(text, self.text_transform.value)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            data[SNAKE_TO_CAMEL[f.name]] = value
        return data


SNAKE_TO_CAMEL: dict[str, str] = {
    "font_family": "fontFamily",
    "font_size": "fontSize",
    "font_weight": "fontWeight",
    "text_color": "textColor",
    "stroke_color": "strokeColor",
    "stroke_width": "strokeWidth",
    "background_color": "backgroundColor",
    "background_opacity": "backgroundOpacity",
    "has_background": "hasBackground",
    "text_shadow": "textShadow",
    "position": "position",
    "position_offset": "positionOffset",
    "max_width_ratio": "maxWidthRatio",
    "line_height": "lineHeight",
    "text_transform": "textTransform",
    "animations": "animations",
    "border_radius": "borderRadius",
    "confidence": "confidence",
}

DEFAULT_STYLE = StyleSpec()
