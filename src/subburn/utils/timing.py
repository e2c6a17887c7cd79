from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class StepTiming:
    name: str
    started_at: datetime
    finished_at: datetime
    ok: bool = True

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "started_at": iso(self.started_at),
            "finished_at": iso(self.finished_at),
            "duration_s": self.duration_s,
            "ok": self.ok,
        }


class StepTimer:
    """Records wall-clock timings of named pipeline steps, failed ones included."""

    def __init__(self, *, clock: Clock = utc_now) -> None:
        self._clock = clock
        self.steps: List[StepTiming] = []

    @property
    def clock(self) -> Clock:
        return self._clock

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        started_at = self._clock()
        ok = False
        try:
            yield
            ok = True
        finally:
            self.steps.append(
                StepTiming(
                    name=name,
                    started_at=started_at,
                    finished_at=self._clock(),
                    ok=ok,
                )
            )
