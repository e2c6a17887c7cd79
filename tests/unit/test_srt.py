from __future__ import annotations

import json
from pathlib import Path

import pytest

from subburn.domain.timeline import SubtitleSegment
from subburn.exceptions import InputError
from subburn.services.srt import encode_srt, encode_vtt, parse_srt, read_timeline, write_timeline


def test_encode_sorts_and_numbers_from_one() -> None:
    timeline = [SubtitleSegment(2.0, 3.0, "b"), SubtitleSegment(0.0, 1.5, "a")]
    assert encode_srt(timeline) == (
        "1\n00:00:00,000 --> 00:00:01,500\na\n\n"
        "2\n00:00:02,000 --> 00:00:03,000\nb\n"
    )


def test_encode_is_deterministic() -> None:
    timeline = [SubtitleSegment(0.1234, 1.0, "x"), SubtitleSegment(0.1234, 2.0, "y")]
    assert encode_srt(timeline) == encode_srt(list(timeline))
    assert encode_srt(timeline).index("x") < encode_srt(timeline).index("y")


def test_encode_empty_timeline() -> None:
    assert encode_srt([]) == ""


def test_parse_handles_bom_crlf_and_multiline() -> None:
    text = (
        "\ufeff1\r\n00:00:00,000 --> 00:00:01,000\r\nHello\r\nWorld\r\n\r\n"
        "2\r\n00:00:01.500 --> 00:00:02,000\r\nBye\r\n"
    )
    timeline = parse_srt(text)
    assert timeline == (
        SubtitleSegment(0.0, 1.0, "Hello\nWorld"),
        SubtitleSegment(1.5, 2.0, "Bye"),
    )


def test_parse_tolerates_missing_index_and_cue_settings() -> None:
    text = "00:00:00,000 --> 00:00:01,000 align:start\nHi\n\n\n\n"
    assert parse_srt(text) == (SubtitleSegment(0.0, 1.0, "Hi"),)


def test_parse_round_trip_within_a_millisecond() -> None:
    timeline = [SubtitleSegment(0.1234, 1.9876, "one"), SubtitleSegment(2.5, 4.0, "two\nlines")]
    parsed = parse_srt(encode_srt(timeline))
    assert [s.text for s in parsed] == ["one", "two\nlines"]
    for original, decoded in zip(timeline, parsed):
        assert abs(original.start - decoded.start) <= 0.0005
        assert abs(original.end - decoded.end) <= 0.0005


def test_blank_lines_inside_text_do_not_split_the_cue() -> None:
    timeline = [SubtitleSegment(0.0, 1.0, "para one\n\n  \npara two"), SubtitleSegment(1.0, 2.0, "b")]

    encoded = encode_srt(timeline)

    assert "para one\npara two\n" in encoded
    assert [s.text for s in parse_srt(encoded)] == ["para one\npara two", "b"]


def test_sub_millisecond_segment_exports_as_one_millisecond_cue() -> None:
    encoded = encode_srt([SubtitleSegment(1.0001, 1.0004, "blink")])

    assert "00:00:01,000 --> 00:00:01,001" in encoded
    (segment,) = parse_srt(encoded)
    assert segment.start == 1.0
    assert segment.end == pytest.approx(1.001)


def test_empty_text_segment_round_trips() -> None:
    timeline = [SubtitleSegment(0.0, 1.0, "a"), SubtitleSegment(1.0, 2.0, ""), SubtitleSegment(2.0, 3.0, "c")]
    assert [s.text for s in parse_srt(encode_srt(timeline))] == ["a", "", "c"]


def test_parse_strict_rejects_malformed_block() -> None:
    text = "1\n00:00:00,000 --> 00:00:01,000\nok\n\n2\nnot a timing\nbad\n"
    with pytest.raises(InputError, match="Malformed subtitle block 2"):
        parse_srt(text)


def test_parse_lenient_skips_malformed_blocks(caplog) -> None:
    text = (
        "1\n00:00:00,000 --> 00:00:01,000\nok\n\n"
        "2\n00:00:05,000 --> 00:00:04,000\nreversed\n\n"
        "3\n00:00:06,000 --> 00:00:07,000\nalso ok\n"
    )
    timeline = parse_srt(text, strict=False)
    assert [s.text for s in timeline] == ["ok", "also ok"]
    assert "Skipping malformed subtitle block 2" in caplog.text


def test_encode_vtt() -> None:
    assert encode_vtt([SubtitleSegment(0.0, 1.25, "hi")]) == "WEBVTT\n\n00:00:00.000 --> 00:00:01.250\nhi\n"


def test_read_timeline_json_shapes(tmp_path: Path) -> None:
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(
        json.dumps({"subtitles": [{"start_time": 0, "end_time": 1, "content": "x", "confidence": 0.9}]}),
        encoding="utf-8",
    )
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps([{"start": 1, "end": 2, "text": "y"}]), encoding="utf-8")

    assert read_timeline(wrapped) == (SubtitleSegment(0.0, 1.0, "x"),)
    assert read_timeline(plain) == (SubtitleSegment(1.0, 2.0, "y"),)


def test_read_timeline_errors(tmp_path: Path) -> None:
    with pytest.raises(InputError, match="not found"):
        read_timeline(tmp_path / "missing.srt")

    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(InputError, match="Invalid timeline JSON"):
        read_timeline(bad)

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42", encoding="utf-8")
    with pytest.raises(InputError, match="list of records"):
        read_timeline(scalar)


def test_write_timeline_by_suffix(tmp_path: Path) -> None:
    timeline = (SubtitleSegment(1.0, 2.0, "b"), SubtitleSegment(0.0, 1.0, "a"))

    srt = write_timeline(tmp_path / "out.srt", timeline)
    vtt = write_timeline(tmp_path / "out.vtt", timeline)
    data = write_timeline(tmp_path / "out.json", timeline)

    assert srt.read_text(encoding="utf-8") == encode_srt(timeline)
    assert vtt.read_text(encoding="utf-8").startswith("WEBVTT")
    assert [r["text"] for r in json.loads(data.read_text(encoding="utf-8"))] == ["a", "b"]
    assert read_timeline(data) == (timeline[1], timeline[0])
