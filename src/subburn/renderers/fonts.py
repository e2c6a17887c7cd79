from __future__ import annotations

import shutil
import subprocess
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from subburn.utils.logging import get_logger

log = get_logger(__name__)

_FALLBACKS = {
    False: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/liberation-sans-fonts/LiberationSans-Regular.ttf",
    ),
    True: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/liberation-sans-fonts/LiberationSans-Bold.ttf",
    ),
}


def _fc_match(pattern: str) -> str | None:
    if shutil.which("fc-match") is None:
        return None
    try:
        proc = subprocess.run(["fc-match", "-f", "%{file}", pattern], capture_output=True, text=True)
    except OSError:
        return None
    path = proc.stdout.strip()
    if proc.returncode == 0 and path and Path(path).exists():
        return path
    return None


@lru_cache(maxsize=64)
def resolve_font_path(family: str, bold: bool = False) -> str | None:
    path = _fc_match(f"{family}:{'bold' if bold else 'regular'}")
    if path:
        return path
    for candidate in _FALLBACKS[bold]:
        if Path(candidate).exists():
            return candidate
    log.warning("No TrueType font found for %r; using Pillow's built-in font", family)
    return None


def load_font(family: str, size: int, *, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    path = resolve_font_path(family, bold)
    if path is not None:
        try:
            return ImageFont.truetype(path, size)
        except OSError as exc:
            log.warning("Failed to load font %s (%s); using Pillow's built-in font", path, exc)
    return ImageFont.load_default(size=size)


def text_width(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> float:
    left, _, right, _ = font.getbbox(text)
    return float(right - left)
