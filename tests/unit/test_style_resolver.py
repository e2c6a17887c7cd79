from __future__ import annotations

import pytest

from subburn.domain.style import DEFAULT_STYLE, Position, StyleSpec, TextTransform
from subburn.services.style import resolve_style, to_canvas_style


def test_empty_input_gives_default() -> None:
    assert resolve_style(None) == DEFAULT_STYLE
    assert resolve_style({}) == DEFAULT_STYLE


def test_camel_case_merge_and_clamping() -> None:
    style = resolve_style(
        {
            "fontSize": 100,
            "textColor": "#abc",
            "position": "middle",
            "maxWidth": 80,
            "strokeWidth": -3,
            "positionOffset": 500,
            "borderRadius": 99,
        }
    )
    assert style.font_size == 72
    assert style.text_color == "#AABBCC"
    assert style.position == Position.CENTER
    assert style.max_width_ratio == 0.8
    assert style.stroke_width == 0
    assert style.position_offset == 200
    assert style.border_radius == 20


def test_snake_case_keys() -> None:
    style = resolve_style({"stroke_width": 20, "font_size": "30px", "max_width_ratio": 0.1})
    assert style.stroke_width == 10
    assert style.font_size == 30
    assert style.max_width_ratio == 0.3


def test_wrong_types_revert_to_base(caplog) -> None:
    style = resolve_style(
        {
            "fontSize": "huge",
            "position": "left",
            "textTransform": "shout",
            "hasBackground": "maybe",
            "textColor": "white",
            "fontFamily": "Evil;Font",
        }
    )
    assert style == DEFAULT_STYLE
    assert "fontSize" not in caplog.text
    assert "font_size reverted to default" in caplog.text


def test_base_style_is_kept_for_invalid_fields() -> None:
    base = StyleSpec(font_size=40, text_transform=TextTransform.UPPERCASE)
    style = resolve_style({"fontSize": "x", "textColor": "#FF0000"}, base=base)
    assert style.font_size == 40
    assert style.text_transform == TextTransform.UPPERCASE
    assert style.text_color == "#FF0000"


def test_stylespec_input_is_clamped() -> None:
    assert resolve_style(StyleSpec(font_size=100, line_height=500)).font_size == 72
    assert resolve_style(StyleSpec(font_size=100, line_height=500)).line_height == 200


def test_non_mapping_input_uses_base(caplog) -> None:
    assert resolve_style(["fontSize", 30]) == DEFAULT_STYLE
    assert "ignored" in caplog.text


@pytest.mark.parametrize(
    ("value", "expected"),
    [("bold", "700"), ("Semi-Bold", "600"), ("normal", "400"), (640, "600"), ("1000", "900"), (50, "100")],
)
def test_font_weight(value, expected: str) -> None:  # noqa: ANN001
    assert resolve_style({"fontWeight": value}).font_weight == expected


@pytest.mark.parametrize(
    ("raw", "field", "expected"),
    [
        ({"fontFamily": "Roboto, sans-serif"}, "font_family", "Roboto"),
        ({"fontFamily": "'Open Sans'"}, "font_family", "Open Sans"),
        ({"textShadow": "false"}, "text_shadow", False),
        ({"textShadow": 0}, "text_shadow", False),
        ({"hasBackground": "yes"}, "has_background", True),
        ({"backgroundOpacity": 0.5}, "background_opacity", 50),
        ({"backgroundOpacity": 0.99}, "background_opacity", 99),
        ({"backgroundOpacity": 1.0}, "background_opacity", 100),
        ({"backgroundOpacity": 1}, "background_opacity", 1),
        ({"backgroundOpacity": 150}, "background_opacity", 100),
        ({"backgroundOpacity": "40%"}, "background_opacity", 40),
        ({"lineHeight": 1.5}, "line_height", 150),
        ({"lineHeight": 10}, "line_height", 80),
        ({"maxWidthPercent": "90%"}, "max_width_ratio", 0.9),
        ({"animation": "fade"}, "animations", True),
        ({"animations": False}, "animations", False),
        ({"textTransform": "UPPERCASE"}, "text_transform", TextTransform.UPPERCASE),
        ({"position": "TOP"}, "position", Position.TOP),
    ],
)
def test_field_coercion(raw: dict, field: str, expected) -> None:  # noqa: ANN001
    assert getattr(resolve_style(raw), field) == expected


def test_unknown_and_ignored_keys_are_dropped() -> None:
    style = resolve_style({"fontVariant": "small-caps", "activeWordColor": "#FF0", "glow": True})
    assert style == DEFAULT_STYLE


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"fontSize": 500, "lineHeight": 1.1, "maxWidth": 70},
        {"fontWeight": "bold", "backgroundOpacity": 0.25, "position": "middle"},
        {"textColor": "#fff", "strokeWidth": "3px", "fontFamily": "Arial, Helvetica"},
    ],
)
def test_resolve_is_idempotent(raw: dict) -> None:
    once = resolve_style(raw)
    assert resolve_style(once) == once
    assert resolve_style(once.to_dict()) == once


def test_canvas_style_from_default() -> None:
    canvas = to_canvas_style(DEFAULT_STYLE, 1280)
    assert canvas.font == "600 24px Inter"
    assert canvas.bold is True
    assert canvas.fill == (255, 255, 255, 255)
    assert canvas.box == (0, 0, 0, 204)
    assert canvas.shadow == (0, 0, 0, 160)
    assert canvas.padding_y == 7
    assert canvas.max_box_width == pytest.approx(1024.0)
    assert canvas.max_text_width == pytest.approx(976.0)


def test_canvas_style_without_background_or_shadow() -> None:
    canvas = to_canvas_style(resolve_style({"hasBackground": False, "textShadow": False, "fontSize": 12}), 640)
    assert canvas.box is None
    assert canvas.shadow is None
    assert canvas.padding_y == 4
