"""
Frame-synchronous compositing renderer.

One ffmpeg process decodes the source to raw RGB frames, Pillow draws the
active subtitle onto each frame, and a second ffmpeg process encodes the
frames to WebM. Frame `i` is shown at `i / fps` on the source clock.

Responsibilities:
- Fail fast on an undecodable source or a missing capture encoder
- Start the encoder before the decoder, stop on decoder end-of-stream
- Draw background box, shadow, stroke and fill per frame
- Support cancellation from another thread

With `composite_realtime` enabled the loop is paced to the wall clock, so
an N-second video takes at least N seconds to render.
"""

from __future__ import annotations

import subprocess
import threading
import time
from typing import TYPE_CHECKING, Callable

from PIL import Image, ImageDraw

from subburn.domain.render import RenderRequest, RenderResult
from subburn.domain.style import DEFAULT_STYLE, StyleSpec
from subburn.domain.timeline import SubtitleSegment, active_at
from subburn.domain.workspace import Workspace
from subburn.exceptions import RenderCancelledError, RenderEngineError, RenderingNotSupportedError
from subburn.renderers.base import FFmpegEngine, probe_input, validate_output
from subburn.renderers.fonts import load_font, text_width
from subburn.renderers.layout import TextBlock, layout_block, wrap_text
from subburn.services.style import CanvasStyle, to_canvas_style
from subburn.utils import ffmpeg
from subburn.utils.logging import get_logger

if TYPE_CHECKING:
    from subburn.config.settings import Settings

log = get_logger(__name__)


class SubtitlePainter:
    """Lays out and draws one style onto frames of a fixed size."""

    def __init__(self, style: StyleSpec, width: int, height: int) -> None:
        self.style = style
        self.width = width
        self.height = height
        self.canvas: CanvasStyle = to_canvas_style(style, width)
        self.font = load_font(self.canvas.font_family, self.canvas.font_size, bold=self.canvas.bold)
        self._blocks: dict[SubtitleSegment, TextBlock] = {}

    def measure(self, text: str) -> float:
        return text_width(self.font, text)

    def layout(self, segment: SubtitleSegment) -> TextBlock:
        block = self._blocks.get(segment)
        if block is None:
            text = self.style.apply_transform(segment.text.strip())
            lines = wrap_text(text, self.measure, self.canvas.max_text_width)
            widths = [self.measure(line) for line in lines]
            block = layout_block(lines, widths, self.canvas, self.width, self.height)
            self._blocks[segment] = block
        return block

    def paint(self, frame: Image.Image, segment: SubtitleSegment) -> Image.Image:
        block = self.layout(segment)
        if not block.lines:
            return frame
        canvas = self.canvas
        overlay = Image.new("RGBA", frame.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        if canvas.box is not None:
            draw.rounded_rectangle(block.box, radius=canvas.box_radius, fill=canvas.box)

        for line in block.lines:
            if canvas.shadow is not None:
                offset = canvas.shadow_offset
                draw.text(
                    (line.x + offset, line.y + offset),
                    line.text,
                    font=self.font,
                    fill=canvas.shadow,
                    anchor="mm",
                    stroke_width=canvas.stroke_width,
                    stroke_fill=canvas.shadow,
                )
            # outline first, fill second
            if canvas.stroke_width > 0:
                draw.text(
                    (line.x, line.y),
                    line.text,
                    font=self.font,
                    fill=canvas.stroke,
                    anchor="mm",
                    stroke_width=canvas.stroke_width,
                    stroke_fill=canvas.stroke,
                )
            draw.text((line.x, line.y), line.text, font=self.font, fill=canvas.fill, anchor="mm")

        return Image.alpha_composite(frame.convert("RGBA"), overlay).convert("RGB")


def _stop(proc: subprocess.Popen | None) -> None:
    if proc is not None and proc.poll() is None:
        proc.kill()
        proc.wait()


class _LogDrain:
    """Collects a child's stderr on a daemon thread so a full pipe never blocks it."""

    def __init__(self, proc: subprocess.Popen) -> None:
        self.lines: list[str] = []
        self._thread = threading.Thread(target=self._read, args=(proc.stderr,), daemon=True)
        self._thread.start()

    def _read(self, stream) -> None:  # noqa: ANN001
        if stream is None:
            return
        for raw in iter(stream.readline, b""):
            self.lines.extend(ffmpeg.split_log(raw.decode("utf-8", errors="replace")))

    def collect(self) -> list[str]:
        self._thread.join()
        return list(self.lines)


def _finish(proc: subprocess.Popen) -> None:
    """Close stdin (end of frames) and wait for the process to exit."""
    if proc.stdin is not None and not proc.stdin.closed:
        try:
            proc.stdin.close()
        except BrokenPipeError:
            log.debug("Encoder input was already closed")
    proc.wait()


class CompositeRenderer:
    name = "composite"
    output_format = "webm"

    def __init__(
        self,
        *,
        settings: "Settings",
        engine: FFmpegEngine,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self._clock = clock
        self._sleep = sleep
        self._cancelled = threading.Event()
        self._procs: list[subprocess.Popen] = []

    def cancel(self) -> None:
        """Stop capture; the running (or next) render raises RenderCancelledError."""
        self._cancelled.set()
        for proc in list(self._procs):
            if proc.poll() is None:
                proc.terminate()

    def _check_encoder(self, engine: FFmpegEngine) -> None:
        codec = self.settings.composite_codec
        if codec not in engine.encoders():
            raise RenderingNotSupportedError(
                f"Frame capture needs the '{codec}' encoder, which this ffmpeg build lacks."
            )

    def render(self, request: RenderRequest, *, workspace: Workspace | None = None) -> RenderResult:
        # a cancel() issued before this call still applies to it
        try:
            return self._render(request, workspace or Workspace.create(self.settings.workdir))
        finally:
            self._cancelled.clear()

    def _render(self, request: RenderRequest, ws: Workspace) -> RenderResult:
        tail = self.settings.log_tail_lines
        with self.engine.session() as engine:
            input_path = ws.input_video(request.input_suffix)
            input_path.write_bytes(request.video_bytes)

            info = probe_input(engine, input_path)
            self._check_encoder(engine)

            width, height = int(info.width), int(info.height)
            fps = info.fps or self.settings.composite_fps
            painter = SubtitlePainter(request.style or DEFAULT_STYLE, width, height)
            output_path = ws.output_video(self.output_format)

            audio = input_path if self.settings.composite_include_audio and info.has_audio else None
            encode_cmd = ffmpeg.build_encode_cmd(
                output_path,
                width=width,
                height=height,
                fps=fps,
                codec=self.settings.composite_codec,
                audio_source=audio,
            )
            decode_cmd = ffmpeg.build_decode_cmd(input_path, fps=fps)

            logs: list[str] = []
            encoder = decoder = None
            try:
                encoder = engine.popen(encode_cmd, stdin=subprocess.PIPE)
                self._procs.append(encoder)
                encoder_log = _LogDrain(encoder)
                decoder = engine.popen(decode_cmd, stdout=subprocess.PIPE)
                self._procs.append(decoder)
                decoder_log = _LogDrain(decoder)

                frames, ended = self._pump(decoder, encoder, painter, request.timeline, fps)
                if not ended and decoder.poll() is None:
                    decoder.terminate()
                if self._cancelled.is_set() and encoder.poll() is None:
                    encoder.terminate()

                _finish(decoder)
                _finish(encoder)
                logs.extend(decoder_log.collect())
                logs.extend(encoder_log.collect())
                if self._cancelled.is_set():
                    output_path.unlink(missing_ok=True)
                    raise RenderCancelledError(
                        f"Render cancelled after {frames} frame(s).", logs=logs[-tail:]
                    )
                if encoder.returncode != 0:
                    raise RenderEngineError(
                        f"Encoder exited with status {encoder.returncode}.", logs=logs[-tail:]
                    )
                if not ended:
                    raise RenderEngineError(
                        f"Encoder stopped accepting frames after {frames} frame(s).", logs=logs[-tail:]
                    )
                if decoder.returncode != 0:
                    raise RenderEngineError(
                        f"Decoder exited with status {decoder.returncode}.", logs=logs[-tail:]
                    )
                log.info("Composited %d frame(s) at %.3f fps", frames, fps)
            finally:
                _stop(decoder)
                _stop(encoder)
                self._procs.clear()

            out_info = validate_output(engine, output_path, logs, tail=tail)

        return RenderResult(
            video_bytes=output_path.read_bytes(),
            logs=logs,
            output_format=self.output_format,
            duration_seconds=out_info.duration_seconds,
            width=width,
            height=height,
        )

    def _pump(
        self,
        decoder: subprocess.Popen,
        encoder: subprocess.Popen,
        painter: SubtitlePainter,
        timeline: tuple[SubtitleSegment, ...],
        fps: float,
    ) -> tuple[int, bool]:
        """Copy frames decoder -> painter -> encoder; returns (frames, reached end-of-stream)."""
        frame_bytes = painter.width * painter.height * 3
        size = (painter.width, painter.height)
        started = self._clock()
        index = 0
        while not self._cancelled.is_set():
            data = decoder.stdout.read(frame_bytes)
            if len(data) < frame_bytes:
                return index, True
            t = index / fps
            if self.settings.composite_realtime:
                delay = started + t - self._clock()
                if delay > 0:
                    self._sleep(delay)
            segment = active_at(timeline, t)
            if segment is not None and segment.text.strip():
                frame = painter.paint(Image.frombytes("RGB", size, data), segment)
                data = frame.tobytes()
            try:
                encoder.stdin.write(data)
            except BrokenPipeError:
                log.error("Encoder closed its input after %d frame(s)", index)
                return index, False
            index += 1
        return index, False
