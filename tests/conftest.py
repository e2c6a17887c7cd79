from __future__ import annotations

import inspect
import io
from contextlib import contextmanager
from pathlib import Path
from typing import Callable

import pytest
import typer.testing

from subburn.renderers.base import EngineRun
from subburn.utils import ffmpeg


def _patch_clirunner() -> None:
    if "mix_stderr" in inspect.signature(typer.testing.CliRunner).parameters:
        return

    class PatchedCliRunner(typer.testing.CliRunner):
        def __init__(self, *args, **kwargs):  # noqa: ANN002, ANN003
            kwargs.pop("mix_stderr", None)
            super().__init__(*args, **kwargs)

    typer.testing.CliRunner = PatchedCliRunner


_patch_clirunner()


PROBE_720P = [
    "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':",
    "  Duration: 00:00:05.00, start: 0.000000, bitrate: 12 kb/s",
    "  Stream #0:0[0x1](und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(progressive), "
    "1280x720 [SAR 1:1 DAR 16:9], 8 kb/s, 30 fps, 30 tbr, 15360 tbn (default)",
    "  Stream #0:1[0x2](und): Audio: aac (LC) (mp4a / 0x6134706D), 44100 Hz, mono, fltp, 2 kb/s (default)",
    "At least one output file must be specified",
]


class _Sink:
    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise BrokenPipeError("stdin closed")
        self.chunks.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.closed = True


class FakeProc:
    def __init__(
        self,
        *,
        stdout: bytes | io.RawIOBase | None = None,
        exit_code: int = 0,
        stderr: bytes = b"",
        writes_output: bytes | None = None,
    ) -> None:
        self.stdin = _Sink()
        self.stdout = io.BytesIO(stdout) if isinstance(stdout, bytes) else stdout
        self.stderr = io.BytesIO(stderr)
        self.returncode: int | None = None
        self.cmd: list[str] = []
        self._exit_code = exit_code
        self._writes_output = writes_output

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        if self.returncode is None:
            self.returncode = -15

    def kill(self) -> None:
        if self.returncode is None:
            self.returncode = -9

    def wait(self) -> int:
        if self.returncode is None:
            self.returncode = self._exit_code
            if self._writes_output is not None and self.cmd:
                Path(self.cmd[-1]).write_bytes(self._writes_output)
        return self.returncode


class FakeEngine:
    """Stands in for FFmpegEngine: scripted probes, runs and processes."""

    def __init__(
        self,
        *,
        input_probe: list[str] | None = None,
        output_probe: list[str] | None = None,
        run_returncode: int = 0,
        run_logs: list[str] | None = None,
        output_bytes: bytes = b"rendered-video",
        encoder_names: set[str] | None = None,
        procs: list[FakeProc] | None = None,
    ) -> None:
        self.input_probe = PROBE_720P if input_probe is None else input_probe
        self.output_probe = PROBE_720P if output_probe is None else output_probe
        self.run_returncode = run_returncode
        self.run_logs = ["frame=  150 fps=0.0 q=-1.0 Lsize=  12kB time=00:00:05.00"] if run_logs is None else run_logs
        self.output_bytes = output_bytes
        self.encoder_names = {"libx264", "libvpx-vp9"} if encoder_names is None else encoder_names
        self.procs = list(procs or [])
        self.runs: list[tuple[list[str], Path | None]] = []
        self.popen_calls: list[list[str]] = []
        self.probed: list[Path] = []
        self.sessions = 0
        self.active = 0

    @contextmanager
    def session(self):
        self.sessions += 1
        self.active += 1
        try:
            yield self
        finally:
            self.active -= 1

    def run(self, cmd: list[str], *, cwd: Path | None = None) -> EngineRun:
        self.runs.append((cmd, cwd))
        if cwd is not None and self.output_bytes:
            (Path(cwd) / cmd[-1]).write_bytes(self.output_bytes)
        return EngineRun(returncode=self.run_returncode, log_lines=list(self.run_logs))

    def probe(self, path: Path) -> tuple[ffmpeg.MediaInfo, list[str]]:
        self.probed.append(path)
        lines = self.output_probe if path.name.startswith("output") else self.input_probe
        return ffmpeg.parse_probe_log(lines), list(lines)

    def encoders(self) -> set[str]:
        return set(self.encoder_names)

    def popen(self, cmd: list[str], *, cwd: Path | None = None, stdin=None, stdout=None) -> FakeProc:  # noqa: ANN001
        self.popen_calls.append(cmd)
        proc = self.procs.pop(0)
        proc.cmd = cmd
        return proc


@pytest.fixture
def probe_720p() -> list[str]:
    return list(PROBE_720P)


@pytest.fixture
def make_engine() -> Callable[..., FakeEngine]:
    return FakeEngine


@pytest.fixture
def make_proc() -> Callable[..., FakeProc]:
    return FakeProc
