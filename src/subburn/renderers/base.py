from __future__ import annotations

import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Protocol

from subburn.domain.render import RenderRequest, RenderResult
from subburn.domain.workspace import Workspace
from subburn.exceptions import (
    LOG_TAIL_LINES,
    ConfigurationError,
    InputError,
    OutputValidationError,
    SubburnError,
)
from subburn.utils import ffmpeg
from subburn.utils.checks import require_binary
from subburn.utils.logging import get_logger

if TYPE_CHECKING:
    from subburn.config.settings import Settings

log = get_logger(__name__)


class Renderer(Protocol):
    name: str
    output_format: str

    def render(self, request: RenderRequest, *, workspace: Workspace | None = None) -> RenderResult: ...


@dataclass(frozen=True)
class EngineRun:
    returncode: int
    log_lines: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class FFmpegEngine:
    """
    Lazily loaded, reference-counted handle on the ffmpeg runtime.

    The first `acquire()` resolves the binary; the last `release()` drops
    the loaded state. Each renderer holds a session for the duration of
    one render.
    """

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary
        self._lock = threading.Lock()
        self._refcount = 0
        self._path: str | None = None
        self._version: str | None = None

    @property
    def loaded(self) -> bool:
        return self._path is not None

    @property
    def refcount(self) -> int:
        return self._refcount

    @property
    def version(self) -> str | None:
        return self._version

    def _load(self) -> None:
        self._path = require_binary(self.binary)
        proc = ffmpeg.run_ffmpeg([self.binary, "-version"])
        lines = ffmpeg.split_log(proc.stdout, proc.stderr)
        self._version = lines[0] if lines else None
        log.info("ffmpeg runtime loaded: %s", self._version or self._path)

    def acquire(self) -> "FFmpegEngine":
        with self._lock:
            if self._refcount == 0 and not self.loaded:
                self._load()
            self._refcount += 1
        return self

    def release(self) -> None:
        with self._lock:
            if self._refcount == 0:
                raise SubburnError("FFmpegEngine released more times than acquired.")
            self._refcount -= 1
            if self._refcount == 0:
                self._path = None
                log.debug("ffmpeg runtime released")

    @contextmanager
    def session(self) -> Iterator["FFmpegEngine"]:
        self.acquire()
        try:
            yield self
        finally:
            self.release()

    def _command(self, cmd: list[str]) -> list[str]:
        if cmd and cmd[0] == "ffmpeg":
            return [self.binary, *cmd[1:]]
        return list(cmd)

    def run(self, cmd: list[str], *, cwd: Path | None = None) -> EngineRun:
        proc = ffmpeg.run_ffmpeg(self._command(cmd), cwd=cwd)
        return EngineRun(returncode=proc.returncode, log_lines=ffmpeg.split_log(proc.stdout, proc.stderr))

    def popen(self, cmd: list[str], *, cwd: Path | None = None, stdin: int | None = None, stdout: int | None = None) -> subprocess.Popen:
        return subprocess.Popen(
            self._command(cmd),
            cwd=str(cwd) if cwd is not None else None,
            stdin=stdin,
            stdout=stdout,
            stderr=subprocess.PIPE,
        )

    def probe(self, path: Path) -> tuple[ffmpeg.MediaInfo, list[str]]:
        result = self.run(ffmpeg.build_probe_cmd(path))
        return ffmpeg.parse_probe_log(result.log_lines), result.log_lines

    def encoders(self) -> set[str]:
        return ffmpeg.parse_encoders(self.run(ffmpeg.build_encoders_cmd()).log_lines)

    def filters(self) -> set[str]:
        return ffmpeg.parse_filters(self.run(ffmpeg.build_filters_cmd()).log_lines)


RENDERER_KINDS = ("filtergraph", "composite")


def create_renderer(kind: str, *, settings: "Settings", engine: FFmpegEngine | None = None) -> Renderer:
    engine = engine or FFmpegEngine(settings.ffmpeg_binary)
    key = (kind or "").strip().lower()
    if key == "filtergraph":
        from subburn.renderers.filtergraph import FilterGraphRenderer

        return FilterGraphRenderer(settings=settings, engine=engine)
    if key == "composite":
        from subburn.renderers.composite import CompositeRenderer

        return CompositeRenderer(settings=settings, engine=engine)
    raise ConfigurationError(
        f"Unknown renderer '{kind}'. Choose one of: {', '.join(RENDERER_KINDS)}."
    )


# ---------------------------------------------------------------------
# Shared render steps
# ---------------------------------------------------------------------
def probe_input(engine: FFmpegEngine, path: Path) -> ffmpeg.MediaInfo:
    """Reject undecodable or zero-length sources before any encoding starts."""
    info, lines = engine.probe(path)
    if not info.has_video or not info.width or not info.height:
        tail = "; ".join(lines[-3:])
        raise InputError(f"No decodable video stream in {path.name}. {tail}".strip())
    if not info.duration_seconds:
        raise InputError(f"Source video {path.name} reports zero or unknown duration.")
    log.info(
        "Source %s: %dx%d, %.3fs, fps=%s",
        path.name,
        info.width,
        info.height,
        info.duration_seconds,
        info.fps,
    )
    return info


def validate_output(engine: FFmpegEngine, path: Path, logs: list[str], *, tail: int = LOG_TAIL_LINES) -> ffmpeg.MediaInfo:
    """Re-probe the encoded file; a missing or zero-duration output is a failure."""
    if not path.exists() or path.stat().st_size == 0:
        raise OutputValidationError(f"Renderer produced no output at {path.name}.", logs=logs[-tail:])
    info, lines = engine.probe(path)
    logs.extend(lines)
    if not info.duration_seconds:
        raise OutputValidationError(
            f"Rendered output {path.name} has zero or unparseable duration.",
            logs=logs[-tail:],
        )
    log.info("Output %s validated: %.3fs", path.name, info.duration_seconds)
    return info
