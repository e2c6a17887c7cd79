from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from subburn.exceptions import InputError


@dataclass(frozen=True)
class SubtitleSegment:
    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, t: float) -> bool:
        return self.start <= t <= self.end


Timeline = Sequence[SubtitleSegment]


def active_at(timeline: Iterable[SubtitleSegment], t: float) -> Optional[SubtitleSegment]:
    """
    Return the segment shown at time `t`, if any.

    Overlapping segments resolve to the first match in iteration order;
    callers that need a deterministic choice should sort first.
    """
    for segment in timeline:
        if segment.contains(t):
            return segment
    return None


def sort_timeline(timeline: Iterable[SubtitleSegment]) -> tuple[SubtitleSegment, ...]:
    return tuple(sorted(timeline, key=lambda s: s.start))


def _check_segment(index: int, segment: SubtitleSegment) -> None:
    for name in ("start", "end"):
        value = getattr(segment, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InputError(f"Segment {index}: {name} must be a finite number, got {value!r}.")
    if segment.start < 0:
        raise InputError(f"Segment {index}: start must be >= 0, got {segment.start}.")
    if segment.end <= segment.start:
        raise InputError(
            f"Segment {index}: end ({segment.end}) must be greater than start ({segment.start})."
        )
    if not isinstance(segment.text, str):
        raise InputError(f"Segment {index}: text must be a string.")


def validate_timeline(timeline: Iterable[SubtitleSegment]) -> tuple[SubtitleSegment, ...]:
    segments = tuple(timeline)
    for index, segment in enumerate(segments, start=1):
        if not isinstance(segment, SubtitleSegment):
            raise InputError(f"Segment {index}: expected SubtitleSegment, got {type(segment).__name__}.")
        _check_segment(index, segment)
    return segments


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _as_seconds(index: int, name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InputError(f"Record {index}: {name} must be a number, got {value!r}.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InputError(f"Record {index}: {name} must be a number, got {value!r}.") from None


def timeline_from_records(records: Iterable[Mapping[str, Any]]) -> tuple[SubtitleSegment, ...]:
    """
    Build a timeline from `{start, end, text}` records.

    Storage-shaped rows (`start_time`, `end_time`, `content`) are accepted as
    well; transcription extras such as `confidence` and `words` are ignored.
    """
    segments: list[SubtitleSegment] = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, Mapping):
            raise InputError(f"Record {index}: expected an object, got {type(record).__name__}.")
        start = _pick(record, "start", "start_time")
        end = _pick(record, "end", "end_time")
        text = _pick(record, "text", "content")
        if start is None or end is None:
            raise InputError(f"Record {index}: missing start/end.")
        segments.append(
            SubtitleSegment(
                start=_as_seconds(index, "start", start),
                end=_as_seconds(index, "end", end),
                text="" if text is None else str(text),
            )
        )
    return validate_timeline(segments)


def timeline_to_records(timeline: Iterable[SubtitleSegment]) -> list[dict[str, Any]]:
    return [{"start": s.start, "end": s.end, "text": s.text} for s in timeline]
