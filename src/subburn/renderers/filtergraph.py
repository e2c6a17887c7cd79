"""
Single-pass filter-graph overlay renderer.

Writes the timeline as captions.srt (and captions.ass when a style is
given), burns it in with one ffmpeg call, then re-probes the result.

Blocking within the call; timeouts belong to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from subburn.domain.render import RenderRequest, RenderResult
from subburn.domain.style import DEFAULT_STYLE
from subburn.domain.workspace import Workspace
from subburn.exceptions import RenderEngineError
from subburn.renderers.base import FFmpegEngine, probe_input, validate_output
from subburn.services.srt import encode_srt
from subburn.utils import ffmpeg
from subburn.utils.logging import get_logger

if TYPE_CHECKING:
    from subburn.config.settings import Settings

log = get_logger(__name__)


class FilterGraphRenderer:
    name = "filtergraph"
    output_format = "mp4"

    def __init__(self, *, settings: "Settings", engine: FFmpegEngine) -> None:
        self.settings = settings
        self.engine = engine

    def render(self, request: RenderRequest, *, workspace: Workspace | None = None) -> RenderResult:
        ws = workspace or Workspace.create(self.settings.workdir)
        tail = self.settings.log_tail_lines
        with self.engine.session() as engine:
            input_path = ws.input_video(request.input_suffix)
            input_path.write_bytes(request.video_bytes)

            info = probe_input(engine, input_path)

            srt_path = ws.subtitles_srt
            srt_path.write_text(encode_srt(request.timeline), encoding="utf-8")
            if request.style is not None:
                subs_path = ffmpeg.write_ass(
                    request.timeline,
                    request.style,
                    ws.subtitles_ass,
                    width=info.width,
                    height=info.height,
                )
                vf = ffmpeg.build_subtitles_filter(subs_path.name)
            else:
                params = ffmpeg.overlay_style_params(DEFAULT_STYLE, info.width, info.height)
                vf = ffmpeg.build_subtitles_filter(srt_path.name, params=params)
            log.debug("Overlay filter: %s", vf)

            output_path = ws.output_video(self.output_format)
            cmd = ffmpeg.build_burn_cmd(
                input_path.name,
                vf,
                output_path.name,
                preset=self.settings.preset,
                crf=self.settings.crf,
            )
            log.info("Burning %d subtitle(s) into %s", len(request.timeline), input_path.name)
            result = engine.run(cmd, cwd=ws.root)
            logs = list(result.log_lines)
            if not result.ok:
                raise RenderEngineError(
                    f"ffmpeg exited with status {result.returncode} while burning subtitles.",
                    logs=logs[-tail:],
                )

            out_info = validate_output(engine, output_path, logs, tail=tail)

        return RenderResult(
            video_bytes=output_path.read_bytes(),
            logs=logs,
            output_format=self.output_format,
            duration_seconds=out_info.duration_seconds,
            width=out_info.width or info.width,
            height=out_info.height or info.height,
        )
