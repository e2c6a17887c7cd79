from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from subburn.domain.style import StyleSpec
from subburn.domain.timeline import SubtitleSegment
from subburn.exceptions import SubburnError


@dataclass(frozen=True)
class RenderRequest:
    video_bytes: bytes
    timeline: tuple[SubtitleSegment, ...]
    style: Optional[StyleSpec] = None
    output_format: str | None = None
    filename: str = "input.mp4"

    @property
    def input_suffix(self) -> str:
        name = self.filename or ""
        if "." in name:
            suffix = "." + name.rsplit(".", 1)[1].lower()
            if suffix.isascii() and suffix[1:].isalnum():
                return suffix
        return ".mp4"


@dataclass(frozen=True)
class RenderResult:
    video_bytes: bytes
    logs: list[str]
    output_format: str = "mp4"
    duration_seconds: float | None = None
    width: int | None = None
    height: int | None = None


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.PENDING: {JobState.RUNNING, JobState.FAILED},
    JobState.RUNNING: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}


@dataclass
class RenderJob:
    """Per-render state: pending -> running -> completed | failed."""

    request: RenderRequest
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: JobState = JobState.PENDING
    result: RenderResult | None = None
    error: str | None = None

    def _move(self, target: JobState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SubburnError(
                f"Illegal render job transition {self.state.value} -> {target.value}."
            )
        self.state = target

    def start(self) -> None:
        self._move(JobState.RUNNING)

    def complete(self, result: RenderResult) -> None:
        self._move(JobState.COMPLETED)
        self.result = result

    def fail(self, error: BaseException | str) -> None:
        self._move(JobState.FAILED)
        self.error = str(error)

    @property
    def finished(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)
