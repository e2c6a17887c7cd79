"""
Style resolution for subtitle rendering.

A StyleSpec reaches the renderers from one of two provenances:

- trusted form data, merged over a base style by `resolve_style`;
- untrusted model replies, located inside free text and validated field by
  field by `parse_style_response`.

Responsibilities:
- Clamp every numeric field to its documented range
- Revert unknown enum values and wrong types to defaults
- Score untrusted replies with a coverage-weighted confidence
- Derive canvas drawing parameters from a resolved style

This module intentionally does NOT:
- Call any model (see services.style_analysis)
- Produce overlay filter strings (see utils.ffmpeg)

Bad style data never raises here; it degrades to defaults with a warning.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Mapping

from subburn.domain.style import DEFAULT_STYLE, SNAKE_TO_CAMEL, Position, StyleSpec, TextTransform
from subburn.utils.colors import hex_to_rgba, parse_hex_color
from subburn.utils.logging import get_logger

log = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.1
REPORTED_CONFIDENCE_DEFAULT = 0.8
PADDING_X = 24
SHADOW_OFFSET = 2


@dataclass(frozen=True)
class ParseIssue:
    field: str
    message: str


@dataclass(frozen=True)
class StyleParseResult:
    style: StyleSpec
    issues: tuple[ParseIssue, ...] = ()
    ok: bool = True

    @property
    def confidence(self) -> float:
        return self.style.confidence


# ---------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------
_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(px|%)?\s*$", re.IGNORECASE)
_FONT_FAMILY_RE = re.compile(r"^[A-Za-z0-9 _-]{1,64}$")

_WEIGHT_NAMES = {
    "thin": 100,
    "extralight": 200,
    "light": 300,
    "normal": 400,
    "regular": 400,
    "medium": 500,
    "semibold": 600,
    "bold": 700,
    "extrabold": 800,
    "black": 900,
}

_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0", "none", ""}


class _Invalid(Exception):
    """Internal signal: the value cannot be used for this field."""


def _number(value: Any) -> float:
    if isinstance(value, bool):
        raise _Invalid(f"expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise _Invalid(f"expected a finite number, got {value!r}")
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_RE.match(value)
        if match:
            return float(match.group(1))
    raise _Invalid(f"expected a number, got {value!r}")


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _int_range(lo: int, hi: int) -> Callable[[Any], int]:
    def coerce(value: Any) -> int:
        return int(round(_clamp(_number(value), lo, hi)))

    return coerce


def _font_family(value: Any) -> str:
    if not isinstance(value, str):
        raise _Invalid(f"expected a font name, got {value!r}")
    # CSS font stacks: keep the first family
    name = value.split(",")[0].strip().strip("'\"").strip()
    if not _FONT_FAMILY_RE.match(name):
        raise _Invalid(f"unsupported font name {value!r}")
    return name


def _font_weight(value: Any) -> str:
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "").replace(" ", "")
        if key in _WEIGHT_NAMES:
            return str(_WEIGHT_NAMES[key])
    weight = _number(value)
    return str(int(_clamp(round(weight / 100.0) * 100, 100, 900)))


def _color(value: Any) -> str:
    normalized = parse_hex_color(value)
    if normalized is None:
        raise _Invalid(f"expected a #RGB or #RRGGBB color, got {value!r}")
    return normalized


def _opacity_percent(value: Any) -> int:
    number = _number(value)
    if isinstance(value, float) and 0 < number <= 1:
        # fractional opacity, e.g. 0.8 or 1.0; int 1 stays a percent
        number *= 100
    return int(round(_clamp(number, 0, 100)))


def _boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise _Invalid(f"expected a boolean, got {value!r}")


def _animation(value: Any) -> bool:
    if isinstance(value, str) and value.strip().lower() not in _TRUE_WORDS | _FALSE_WORDS:
        # named effects (fade, pop, slide) mean "animated"
        return True
    return _boolean(value)


def _position(value: Any) -> Position:
    if isinstance(value, str):
        word = value.strip().lower()
        if word == "middle":
            return Position.CENTER
        for item in Position:
            if item.value == word:
                return item
    raise _Invalid(f"expected bottom/top/center, got {value!r}")


def _text_transform(value: Any) -> TextTransform:
    if isinstance(value, str):
        word = value.strip().lower()
        for item in TextTransform:
            if item.value == word:
                return item
    raise _Invalid(f"expected none/uppercase/lowercase/capitalize, got {value!r}")


def _width_ratio(value: Any) -> float:
    number = _number(value)
    if number > 1 or (isinstance(value, str) and value.strip().endswith("%")):
        number /= 100.0
    return round(_clamp(number, 0.3, 1.0), 4)


def _line_height(value: Any) -> int:
    number = _number(value)
    if 0 < number <= 3:
        # unitless CSS factor, e.g. 1.2
        number *= 100
    return int(round(_clamp(number, 80, 200)))


def _confidence(value: Any) -> float:
    return round(_clamp(_number(value), 0.0, 1.0), 4)


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "font_family": _font_family,
    "font_size": _int_range(12, 72),
    "font_weight": _font_weight,
    "text_color": _color,
    "stroke_color": _color,
    "stroke_width": _int_range(0, 10),
    "background_color": _color,
    "background_opacity": _opacity_percent,
    "has_background": _boolean,
    "text_shadow": _boolean,
    "position": _position,
    "position_offset": _int_range(0, 200),
    "max_width_ratio": _width_ratio,
    "line_height": _line_height,
    "text_transform": _text_transform,
    "animations": _animation,
    "border_radius": _int_range(0, 20),
    "confidence": _confidence,
}

_KEY_ALIASES: dict[str, str] = {name: name for name in _COERCERS}
_KEY_ALIASES.update({camel: snake for snake, camel in SNAKE_TO_CAMEL.items()})
_KEY_ALIASES.update(
    {
        "maxWidth": "max_width_ratio",
        "maxWidthPercent": "max_width_ratio",
        "max_width": "max_width_ratio",
        "max_width_percent": "max_width_ratio",
        "animation": "animations",
    }
)

# Keys models commonly add that carry nothing we render.
_IGNORED_KEYS = {"fontVariant", "font_variant", "activeWordHighlight", "activeWordColor"}

STYLE_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(StyleSpec) if f.name != "confidence")


def _normalize(raw: Mapping[str, Any]) -> tuple[dict[str, Any], list[ParseIssue]]:
    values: dict[str, Any] = {}
    issues: list[ParseIssue] = []
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key) if isinstance(key, str) else None
        if name is None:
            if key not in _IGNORED_KEYS:
                log.debug("Ignoring unknown style key %r", key)
            continue
        if value is None:
            continue
        try:
            values[name] = _COERCERS[name](value)
        except _Invalid as exc:
            issues.append(ParseIssue(field=name, message=str(exc)))
    return values, issues


def _log_issues(source: str, issues: list[ParseIssue]) -> None:
    for issue in issues:
        log.warning("Style %s: %s reverted to default (%s)", source, issue.field, issue.message)


# ---------------------------------------------------------------------
# Trusted provenance
# ---------------------------------------------------------------------
def resolve_style(raw: Mapping[str, Any] | StyleSpec | None, *, base: StyleSpec = DEFAULT_STYLE) -> StyleSpec:
    """
    Merge `raw` over `base` and clamp every field.

    Accepts camelCase or snake_case keys. Values of the wrong type keep the
    base value; out-of-range numbers are clamped.
    """
    if raw is None:
        raw = {}
    elif isinstance(raw, StyleSpec):
        raw = raw.to_dict()
    elif not isinstance(raw, Mapping):
        log.warning("Style input of type %s ignored; using base style", type(raw).__name__)
        raw = {}

    merged, _ = _normalize(base.to_dict())
    values, issues = _normalize(raw)
    _log_issues("field", issues)
    merged.update(values)
    return StyleSpec(**merged)


# ---------------------------------------------------------------------
# Untrusted provenance (model replies)
# ---------------------------------------------------------------------
_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)


def _balanced_object(text: str) -> str | None:
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            ch = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find("{", start + 1)
    return None


def extract_json_candidate(text: str) -> str | None:
    """Return the first fenced block, else the first balanced {...} object."""
    fenced = _FENCE_RE.search(text)
    if fenced:
        body = fenced.group(1).strip()
        if body.startswith("{"):
            return body
        return _balanced_object(body) or body
    return _balanced_object(text)


def _fallback(reason: str) -> StyleParseResult:
    log.warning("Style analysis unusable (%s); falling back to default style", reason)
    return StyleParseResult(
        style=replace(DEFAULT_STYLE, confidence=FALLBACK_CONFIDENCE),
        issues=(ParseIssue(field="$", message=reason),),
        ok=False,
    )


def parse_style_response(text: Any) -> StyleParseResult:
    """
    Parse a model reply into a StyleSpec. Never raises.

    Confidence is the model's own figure (0.8 when absent) scaled by the
    share of style fields that arrived valid, so sparse replies score low.
    """
    if not isinstance(text, str) or not text.strip():
        return _fallback("empty response")

    candidate = extract_json_candidate(text)
    if candidate is None:
        return _fallback("no JSON object found")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return _fallback(f"invalid JSON: {exc.msg}")
    if not isinstance(data, dict):
        return _fallback(f"expected a JSON object, got {type(data).__name__}")

    values, issues = _normalize(data)
    _log_issues("analysis", issues)

    reported = values.pop("confidence", REPORTED_CONFIDENCE_DEFAULT)
    coverage = sum(1 for name in STYLE_FIELDS if name in values) / len(STYLE_FIELDS)
    confidence = round(reported * coverage, 4)
    log.debug("Style analysis coverage=%.2f reported=%.2f", coverage, reported)

    style = replace(DEFAULT_STYLE, **values, confidence=confidence)
    return StyleParseResult(style=style, issues=tuple(issues), ok=True)


def style_from_analysis(text: Any) -> StyleSpec:
    return parse_style_response(text).style


# ---------------------------------------------------------------------
# Canvas representation
# ---------------------------------------------------------------------
RGBA = tuple[int, int, int, int]


@dataclass(frozen=True)
class CanvasStyle:
    font_family: str
    font_size: int
    bold: bool
    font: str
    fill: RGBA
    stroke: RGBA
    stroke_width: int
    box: RGBA | None
    box_radius: int
    padding_x: int
    padding_y: int
    line_height: float
    max_box_width: float
    max_text_width: float
    margin: int
    position: Position
    shadow: RGBA | None
    shadow_offset: int


def to_canvas_style(style: StyleSpec, frame_width: int) -> CanvasStyle:
    box = None
    if style.has_background:
        box = hex_to_rgba(style.background_color, style.background_opacity / 100.0)
    shadow = (0, 0, 0, 160) if style.text_shadow else None
    max_box_width = frame_width * style.max_width_ratio
    return CanvasStyle(
        font_family=style.font_family,
        font_size=style.font_size,
        bold=style.is_bold,
        font=f"{style.font_weight} {style.font_size}px {style.font_family}",
        fill=hex_to_rgba(style.text_color),
        stroke=hex_to_rgba(style.stroke_color),
        stroke_width=style.stroke_width,
        box=box,
        box_radius=style.border_radius,
        padding_x=PADDING_X,
        padding_y=max(4, round(style.font_size * 0.3)),
        line_height=style.line_height_factor,
        max_box_width=max_box_width,
        max_text_width=max(1.0, max_box_width - 2 * PADDING_X),
        margin=style.position_offset,
        position=style.position,
        shadow=shadow,
        shadow_offset=SHADOW_OFFSET,
    )
