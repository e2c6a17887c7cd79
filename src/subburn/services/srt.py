"""
Subtitle interchange codec (SRT) plus WebVTT export.

Encoding is byte-for-byte deterministic: segments are stably sorted by
start, indices are 1-based, timestamps are zero-padded. Blank lines inside
a segment are dropped and cues are at least 1 ms long, so every export
parses back in strict mode.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from subburn.domain.timeline import (
    SubtitleSegment,
    sort_timeline,
    timeline_from_records,
    timeline_to_records,
    validate_timeline,
)
from subburn.exceptions import InputError
from subburn.utils.logging import get_logger
from subburn.utils.timecode import cue_bounds, format_overlay_time, format_srt_time, parse_timestamp

log = get_logger(__name__)


def cue_text(text: str) -> str:
    # a blank line would end the cue early
    return "\n".join(line for line in text.splitlines() if line.strip())


def encode_srt(timeline: Iterable[SubtitleSegment]) -> str:
    blocks = []
    for index, segment in enumerate(sort_timeline(timeline), start=1):
        start, end = cue_bounds(segment.start, segment.end)
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(start)} --> {format_srt_time(end)}\n"
            f"{cue_text(segment.text)}\n"
        )
    return "\n".join(blocks)


def encode_vtt(timeline: Iterable[SubtitleSegment]) -> str:
    lines = ["WEBVTT", ""]
    for segment in sort_timeline(timeline):
        start, end = cue_bounds(segment.start, segment.end)
        lines.append(f"{format_overlay_time(start)} --> {format_overlay_time(end)}")
        lines.append(cue_text(segment.text))
        lines.append("")
    return "\n".join(lines)


def _parse_block(lines: list[str]) -> SubtitleSegment:
    timing_idx = next((i for i, line in enumerate(lines[:2]) if "-->" in line), None)
    if timing_idx is None:
        raise InputError("missing '-->' timing line")
    parts = [p.strip() for p in lines[timing_idx].split("-->")]
    if len(parts) != 2:
        raise InputError(f"malformed timing line {lines[timing_idx]!r}")
    # Cue settings may trail the end timestamp (e.g. "align:start").
    start = parse_timestamp(parts[0])
    end = parse_timestamp(parts[1].split()[0] if parts[1] else "")
    text = "\n".join(lines[timing_idx + 1 :])
    return SubtitleSegment(start=start, end=end, text=text)


def parse_srt(text: str, *, strict: bool = True) -> tuple[SubtitleSegment, ...]:
    content = text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    segments: list[SubtitleSegment] = []
    for number, block in enumerate(content.split("\n\n"), start=1):
        lines = [line.rstrip() for line in block.split("\n")]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        if not lines:
            continue
        try:
            segment = _parse_block(lines)
            validate_timeline([segment])
        except InputError as exc:
            if strict:
                raise InputError(f"Malformed subtitle block {number}: {exc.message}") from exc
            log.warning("Skipping malformed subtitle block %d: %s", number, exc.message)
            continue
        segments.append(segment)
    return tuple(segments)


def read_timeline(path: str | Path, *, strict: bool = True) -> tuple[SubtitleSegment, ...]:
    p = Path(path)
    if not p.exists():
        raise InputError(f"Subtitle file not found: {p}")
    raw = p.read_text(encoding="utf-8", errors="replace")
    if p.suffix.lower() == ".json":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InputError(f"Invalid timeline JSON in {p}: {exc}") from exc
        if isinstance(data, dict):
            data = data.get("subtitles", data.get("segments"))
        if not isinstance(data, list):
            raise InputError(f"Timeline JSON in {p} must be a list of records.")
        return timeline_from_records(data)
    return parse_srt(raw, strict=strict)


def write_timeline(path: str | Path, timeline: Iterable[SubtitleSegment]) -> Path:
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".vtt":
        content = encode_vtt(timeline)
    elif suffix == ".json":
        content = json.dumps(timeline_to_records(sort_timeline(timeline)), indent=2) + "\n"
    else:
        content = encode_srt(timeline)
    p.write_text(content, encoding="utf-8")
    return p
