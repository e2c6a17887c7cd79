from __future__ import annotations

import re

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex_color(value: object) -> str | None:
    """Normalise "#RGB" / "#RRGGBB" to upper-case "#RRGGBB"; None if invalid."""
    if not isinstance(value, str):
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    normalized = parse_hex_color(value)
    if normalized is None:
        raise ValueError(f"Invalid hex color: {value!r}")
    return (
        int(normalized[1:3], 16),
        int(normalized[3:5], 16),
        int(normalized[5:7], 16),
    )


def _clamp_opacity(opacity: float) -> float:
    return max(0.0, min(1.0, float(opacity)))


def hex_to_rgba(value: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    r, g, b = hex_to_rgb(value)
    return r, g, b, int(_clamp_opacity(opacity) * 255 + 0.5)


def to_ass_color(value: str, opacity: float = 1.0) -> str:
    """
    Translate "#RRGGBB" + opacity (0-1) to the overlay's "&HAABBGGRR".

    ASS alpha is inverted (00 opaque, FF transparent) and channels are
    stored blue-green-red.
    """
    r, g, b = hex_to_rgb(value)
    alpha = int((1.0 - _clamp_opacity(opacity)) * 255 + 0.5)
    return f"&H{alpha:02X}{b:02X}{g:02X}{r:02X}"
