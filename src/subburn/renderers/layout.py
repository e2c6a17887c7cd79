"""
Pure text layout for the compositing renderer.

Nothing here touches pixels: text width comes from an injected `measure`
callable, so the same code runs against a Pillow font or a fixed-width
stub in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from subburn.domain.style import Position
from subburn.services.style import CanvasStyle

Measure = Callable[[str], float]


def _break_word(word: str, measure: Measure, max_width: float) -> list[str]:
    pieces: list[str] = []
    current = ""
    for ch in word:
        candidate = current + ch
        if current and measure(candidate) > max_width:
            pieces.append(current)
            current = ch
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_text(text: str, measure: Measure, max_width: float) -> list[str]:
    """
    Greedy word wrap: append a word, measure, start a new line on overflow.

    A word that alone exceeds `max_width` is broken by characters. A single
    character wider than the budget is still emitted on its own line.
    """
    lines: list[str] = []
    for paragraph in text.split("\n"):
        line = ""
        for word in paragraph.split():
            candidate = f"{line} {word}" if line else word
            if measure(candidate) <= max_width:
                line = candidate
                continue
            if line:
                lines.append(line)
                line = ""
            if measure(word) <= max_width:
                line = word
                continue
            pieces = _break_word(word, measure, max_width)
            lines.extend(pieces[:-1])
            line = pieces[-1]
        if line:
            lines.append(line)
    return lines


@dataclass(frozen=True)
class TextLine:
    text: str
    width: float
    x: float
    y: float  # vertical centre of the line slot


@dataclass(frozen=True)
class TextBlock:
    lines: tuple[TextLine, ...]
    top: float
    height: float
    box: tuple[float, float, float, float]  # x0, y0, x1, y1

    @property
    def bottom(self) -> float:
        return self.top + self.height


def layout_block(
    lines: Sequence[str],
    widths: Sequence[float],
    canvas: CanvasStyle,
    frame_width: int,
    frame_height: int,
) -> TextBlock:
    line_px = canvas.font_size * canvas.line_height
    height = len(lines) * line_px

    if canvas.position == Position.TOP:
        top = float(canvas.margin)
    elif canvas.position == Position.CENTER:
        top = (frame_height - height) / 2.0
    else:
        top = frame_height - canvas.margin - height
    # keep the block on screen whatever the offset
    top = max(0.0, min(top, frame_height - height))

    centre_x = frame_width / 2.0
    placed = tuple(
        TextLine(text=text, width=width, x=centre_x, y=top + (i + 0.5) * line_px)
        for i, (text, width) in enumerate(zip(lines, widths))
    )

    widest = max(widths, default=0.0)
    box_width = min(canvas.max_box_width, widest + 2 * canvas.padding_x)
    box = (
        centre_x - box_width / 2.0,
        top - canvas.padding_y,
        centre_x + box_width / 2.0,
        top + height + canvas.padding_y,
    )
    return TextBlock(lines=placed, top=top, height=height, box=box)
