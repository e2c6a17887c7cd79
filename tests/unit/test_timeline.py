from __future__ import annotations

import pytest

from subburn.domain.timeline import (
    SubtitleSegment,
    active_at,
    sort_timeline,
    timeline_from_records,
    timeline_to_records,
    validate_timeline,
)
from subburn.exceptions import InputError


def test_active_at_picks_unique_segment() -> None:
    timeline = [SubtitleSegment(0.0, 2.0, "one"), SubtitleSegment(3.0, 4.0, "two")]

    assert active_at(timeline, 1.0).text == "one"
    assert active_at(timeline, 3.5).text == "two"
    assert active_at(timeline, 2.5) is None
    assert active_at(timeline, 10.0) is None


def test_active_at_bounds_are_inclusive() -> None:
    timeline = [SubtitleSegment(1.0, 2.0, "x")]
    assert active_at(timeline, 1.0) is not None
    assert active_at(timeline, 2.0) is not None
    assert active_at(timeline, 0.999) is None


def test_active_at_works_on_unsorted_input() -> None:
    timeline = [SubtitleSegment(5.0, 6.0, "late"), SubtitleSegment(0.0, 1.0, "early")]
    assert active_at(timeline, 0.5).text == "early"


def test_overlap_resolves_to_first_in_iteration_order() -> None:
    a = SubtitleSegment(0.0, 3.0, "a")
    b = SubtitleSegment(1.0, 2.0, "b")

    assert active_at([a, b], 1.5) is a
    assert active_at([b, a], 1.5) is b
    assert active_at(sort_timeline([b, a]), 1.5) is a


def test_sort_is_stable() -> None:
    first = SubtitleSegment(1.0, 2.0, "first")
    second = SubtitleSegment(1.0, 3.0, "second")
    earlier = SubtitleSegment(0.0, 1.0, "earlier")
    assert [s.text for s in sort_timeline([first, second, earlier])] == ["earlier", "first", "second"]


@pytest.mark.parametrize(
    "segment",
    [
        SubtitleSegment(-1.0, 1.0, "negative"),
        SubtitleSegment(2.0, 2.0, "empty span"),
        SubtitleSegment(3.0, 1.0, "reversed"),
        SubtitleSegment(float("nan"), 1.0, "nan"),
        SubtitleSegment(0.0, float("inf"), "inf"),
    ],
)
def test_validate_rejects_bad_segments(segment: SubtitleSegment) -> None:
    with pytest.raises(InputError):
        validate_timeline([segment])


def test_records_accept_storage_aliases() -> None:
    timeline = timeline_from_records(
        [
            {"start_time": 0, "end_time": "1.5", "content": "hi", "confidence": 0.9},
            {"start": 2, "end": 3, "text": None, "words": []},
        ]
    )
    assert timeline == (SubtitleSegment(0.0, 1.5, "hi"), SubtitleSegment(2.0, 3.0, ""))
    assert timeline_to_records(timeline)[0] == {"start": 0.0, "end": 1.5, "text": "hi"}


@pytest.mark.parametrize(
    "record",
    [
        {"end": 1, "text": "no start"},
        {"start": "soon", "end": 1, "text": "x"},
        {"start": True, "end": 1, "text": "x"},
        "not a record",
    ],
)
def test_records_reject_bad_rows(record) -> None:  # noqa: ANN001
    with pytest.raises(InputError):
        timeline_from_records([record])
