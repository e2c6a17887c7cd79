from __future__ import annotations

from pathlib import Path

import pytest

from subburn.config.settings import Settings
from subburn.domain.render import RenderRequest
from subburn.domain.style import DEFAULT_STYLE
from subburn.domain.timeline import SubtitleSegment
from subburn.domain.workspace import Workspace
from subburn.exceptions import InputError, OutputValidationError, RenderEngineError
from subburn.renderers.filtergraph import FilterGraphRenderer

TIMELINE = (SubtitleSegment(0.0, 2.0, "Hello"),)


def _setup(tmp_path: Path, engine, **overrides):  # noqa: ANN001, ANN003
    settings = Settings(workdir=str(tmp_path / ".subburn"), **overrides)
    ws = Workspace.create(settings.workdir, run_id="r1")
    return FilterGraphRenderer(settings=settings, engine=engine), ws


def _vf(engine) -> str:  # noqa: ANN001
    cmd, _ = engine.runs[-1]
    return cmd[cmd.index("-vf") + 1]


def test_render_with_style_uses_ass(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine()
    renderer, ws = _setup(tmp_path, engine)

    result = renderer.render(
        RenderRequest(video_bytes=b"source", timeline=TIMELINE, style=DEFAULT_STYLE, filename="clip.MOV"),
        workspace=ws,
    )

    assert result.video_bytes == b"rendered-video"
    assert result.output_format == "mp4"
    assert result.duration_seconds == 5.0
    assert (result.width, result.height) == (1280, 720)
    assert (ws.root / "input.mov").read_bytes() == b"source"
    assert ws.subtitles_srt.read_text(encoding="utf-8").startswith("1\n00:00:00,000 --> 00:00:02,000\nHello")
    assert "Dialogue: 0,0:00:00.00,0:00:02.00" in ws.subtitles_ass.read_text(encoding="utf-8")

    cmd, cwd = engine.runs[-1]
    assert cwd == ws.root
    assert cmd[cmd.index("-i") + 1] == "input.mov"
    assert cmd[-1] == "output.mp4"
    assert _vf(engine) == "ass=captions.ass"
    assert engine.sessions == 1
    assert engine.active == 0


def test_render_without_style_forces_default(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine()
    renderer, ws = _setup(tmp_path, engine, preset="veryfast", crf=28)

    renderer.render(RenderRequest(video_bytes=b"source", timeline=TIMELINE), workspace=ws)

    vf = _vf(engine)
    assert vf.startswith("subtitles=captions.srt:force_style='")
    assert "Alignment=2" in vf
    cmd, _ = engine.runs[-1]
    assert cmd[cmd.index("-preset") + 1] == "veryfast"
    assert cmd[cmd.index("-crf") + 1] == "28"


def test_zero_duration_output_fails_with_log_tail(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine(
        run_logs=[f"frame={i}" for i in range(60)],
        output_probe=["Input #0, mov,mp4, from 'output.mp4':", "  Duration: 00:00:00.00, start: 0.000000"],
    )
    renderer, ws = _setup(tmp_path, engine, log_tail_lines=10)

    with pytest.raises(OutputValidationError) as excinfo:
        renderer.render(RenderRequest(video_bytes=b"source", timeline=TIMELINE), workspace=ws)

    err = excinfo.value
    assert err.exit_code == 5
    assert len(err.logs) == 10
    assert err.logs[-1] == "  Duration: 00:00:00.00, start: 0.000000"
    assert "--- ffmpeg log (tail) ---" in err.detail()
    assert engine.active == 0


def test_missing_output_fails(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine(output_bytes=b"")
    renderer, ws = _setup(tmp_path, engine)

    with pytest.raises(OutputValidationError, match="no output"):
        renderer.render(RenderRequest(video_bytes=b"source", timeline=TIMELINE), workspace=ws)


def test_nonzero_exit_is_an_engine_error(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine(run_returncode=1, run_logs=["[AVFilterGraph] Error parsing filter"])
    renderer, ws = _setup(tmp_path, engine)

    with pytest.raises(RenderEngineError) as excinfo:
        renderer.render(RenderRequest(video_bytes=b"source", timeline=TIMELINE), workspace=ws)

    assert not isinstance(excinfo.value, OutputValidationError)
    assert "status 1" in excinfo.value.message
    assert excinfo.value.logs == ["[AVFilterGraph] Error parsing filter"]


def test_undecodable_input_fails_before_encoding(tmp_path: Path, make_engine) -> None:  # noqa: ANN001
    engine = make_engine(input_probe=["input.mp4: Invalid data found when processing input"])
    renderer, ws = _setup(tmp_path, engine)

    with pytest.raises(InputError, match="No decodable video stream"):
        renderer.render(RenderRequest(video_bytes=b"garbage", timeline=TIMELINE), workspace=ws)
    assert engine.runs == []


def test_zero_duration_input_fails(tmp_path: Path, make_engine, probe_720p) -> None:  # noqa: ANN001
    lines = [line.replace("00:00:05.00", "00:00:00.00") for line in probe_720p]
    engine = make_engine(input_probe=lines)
    renderer, ws = _setup(tmp_path, engine)

    with pytest.raises(InputError, match="zero or unknown duration"):
        renderer.render(RenderRequest(video_bytes=b"source", timeline=TIMELINE), workspace=ws)
