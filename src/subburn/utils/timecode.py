"""
Timestamp codecs for subtitle files and the overlay language.

Milliseconds are rounded half-up on the shortest decimal representation of
the float, so 0.9995 becomes 00:00:01,000 and 0.9994 becomes 00:00:00,999.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal

from subburn.exceptions import InputError

_TIMESTAMP_RE = re.compile(r"^\s*(\d+):(\d{1,2}):(\d{1,2})(?:[.,](\d{1,3}))?\s*$")


def to_milliseconds(seconds: float) -> int:
    if seconds is None or not math.isfinite(seconds) or seconds <= 0:
        return 0
    value = Decimal(repr(float(seconds))) * 1000
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _split(total_ms: int) -> tuple[int, int, int, int]:
    ms = total_ms % 1000
    total_s = total_ms // 1000
    s = total_s % 60
    total_m = total_s // 60
    m = total_m % 60
    h = total_m // 60
    return h, m, s, ms


def cue_bounds(start: float, end: float) -> tuple[float, float]:
    """Snap a cue to whole milliseconds, never shorter than 1 ms."""
    start_ms = to_milliseconds(start)
    end_ms = max(to_milliseconds(end), start_ms + 1)
    return start_ms / 1000, end_ms / 1000


def format_srt_time(seconds: float) -> str:
    """seconds -> "HH:MM:SS,mmm" (interchange file)."""
    h, m, s, ms = _split(to_milliseconds(seconds))
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def format_overlay_time(seconds: float) -> str:
    """seconds -> "HH:MM:SS.mmm" (overlay language, WebVTT)."""
    h, m, s, ms = _split(to_milliseconds(seconds))
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def format_ass_time(seconds: float) -> str:
    # ASS events carry centiseconds: "H:MM:SS.cc"
    total_cs = (to_milliseconds(seconds) + 5) // 10
    cs = total_cs % 100
    total_s = total_cs // 100
    s = total_s % 60
    total_m = total_s // 60
    m = total_m % 60
    h = total_m // 60
    return f"{h}:{m:02d}:{s:02d}.{cs:02d}"


def parse_timestamp(value: str) -> float:
    match = _TIMESTAMP_RE.match(value or "")
    if not match:
        raise InputError(f"Invalid timestamp: {value!r}")
    h, m, s, frac = match.groups()
    if int(m) > 59 or int(s) > 59:
        raise InputError(f"Invalid timestamp: {value!r}")
    ms = int(frac.ljust(3, "0")) if frac else 0
    return int(h) * 3600 + int(m) * 60 + int(s) + ms / 1000.0
