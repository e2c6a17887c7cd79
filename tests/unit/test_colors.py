from __future__ import annotations

import pytest

from subburn.utils.colors import hex_to_rgba, parse_hex_color, to_ass_color


def test_ass_colour_is_inverted_alpha_bgr() -> None:
    assert to_ass_color("#FFFFFF", 1.0) == "&H00FFFFFF"
    assert to_ass_color("#000000", 0.0) == "&HFF000000"
    assert to_ass_color("#112233") == "&H00332211"
    assert to_ass_color("#FF0000", 0.5) == "&H800000FF"


def test_ass_colour_clamps_opacity() -> None:
    assert to_ass_color("#FFFFFF", 3.0) == "&H00FFFFFF"
    assert to_ass_color("#FFFFFF", -1.0) == "&HFFFFFFFF"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("#abc", "#AABBCC"),
        ("abcdef", "#ABCDEF"),
        (" #00ff00 ", "#00FF00"),
        ("red", None),
        ("#12345", None),
        (None, None),
        (0xFFFFFF, None),
    ],
)
def test_parse_hex_color(value, expected) -> None:  # noqa: ANN001
    assert parse_hex_color(value) == expected


def test_hex_to_rgba() -> None:
    assert hex_to_rgba("#000000", 0.8) == (0, 0, 0, 204)
    assert hex_to_rgba("#FF8000") == (255, 128, 0, 255)
    with pytest.raises(ValueError):
        hex_to_rgba("nope")
