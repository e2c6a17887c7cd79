"""
Pipeline orchestration for subburn.

The pipeline executes a single render job:

1) Validate input (video bytes, timeline)
2) Translate the timeline (optional)
3) Resolve the style
4) Render with the selected strategy
5) Write artifacts (output video, captions.srt, render.log, run.json)

Responsibilities:
- Reject bad input before any resource-intensive work
- Drive the job state machine: pending -> running -> completed | failed
- Leave a run manifest behind even when the job fails

Does NOT:
- Retry failed renders (callers own retry policy)
- Implement vendor-specific logic (OpenAI, ffmpeg)
- Own filesystem paths (Workspace does)
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from subburn.config.settings import Settings
from subburn.domain.render import RenderJob, RenderRequest
from subburn.domain.timeline import validate_timeline
from subburn.domain.workspace import Workspace
from subburn.exceptions import InputError
from subburn.renderers.base import FFmpegEngine, Renderer, create_renderer
from subburn.services.srt import encode_srt
from subburn.services.style import resolve_style
from subburn.services.translation import TranslationService, create_translation_service
from subburn.utils.logging import get_logger
from subburn.utils.manifest import write_run_manifest
from subburn.utils.timing import StepTimer, utc_now

log = get_logger(__name__)


def validate_request(request: RenderRequest) -> None:
    if not request.video_bytes:
        raise InputError("Source video is empty.")
    segments = validate_timeline(request.timeline)
    if not segments:
        raise InputError("Timeline is empty; nothing to burn in.")


class SubtitlePipeline:
    """
    Runs one render job end to end.

    Notes:
    - The renderer is created from settings when not injected.
    - The translator is created per-run, only when a target language is given,
      because it depends on runtime credentials.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        renderer: Renderer | None = None,
        engine: FFmpegEngine | None = None,
        translator: TranslationService | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.engine = engine or FFmpegEngine(self.settings.ffmpeg_binary)
        self.renderer = renderer or create_renderer(
            self.settings.renderer,
            settings=self.settings,
            engine=self.engine,
        )
        self.translator = translator

    def run(
        self,
        request: RenderRequest,
        *,
        workspace: Workspace | None = None,
        translate_to: str | None = None,
    ) -> RenderJob:
        timer = StepTimer(clock=utc_now)
        clock = timer.clock
        started_at = clock()

        ws = workspace or Workspace.create(self.settings.workdir)
        job = RenderJob(request=request)
        style = None
        artifacts: dict[str, Path | None] = {}
        log.info("Render job %s in %s (renderer=%s)", job.job_id, ws.root, self.renderer.name)

        try:
            with timer.step("validate_input"):
                validate_request(request)

            if translate_to:
                with timer.step("translate"):
                    translator = self.translator or create_translation_service(self.settings)
                    timeline = translator.translate(request.timeline, translate_to)
                    request = replace(request, timeline=timeline)
                    job.request = request

            with timer.step("resolve_style"):
                style = resolve_style(request.style)
                request = replace(request, style=style)

            job.start()
            with timer.step("render"):
                result = self.renderer.render(request, workspace=ws)

            with timer.step("write_artifacts"):
                output = ws.output_video(result.output_format)
                if not output.exists():
                    output.write_bytes(result.video_bytes)
                ws.subtitles_srt.write_text(encode_srt(request.timeline), encoding="utf-8")
                ws.render_log.write_text("\n".join(result.logs) + "\n", encoding="utf-8")
                artifacts = {
                    "video": output,
                    "subtitles": ws.subtitles_srt,
                    "render_log": ws.render_log,
                }

            job.complete(result)
            log.info(
                "Render job %s completed: %s (%.3fs)",
                job.job_id,
                artifacts["video"],
                result.duration_seconds or 0.0,
            )
            return job
        except Exception as exc:
            job.fail(exc)
            logs = getattr(exc, "logs", None)
            if logs:
                ws.render_log.write_text("\n".join(logs) + "\n", encoding="utf-8")
                artifacts["render_log"] = ws.render_log
            log.error("Render job %s failed: %s", job.job_id, exc)
            raise
        finally:
            finished_at = clock()
            try:
                write_run_manifest(
                    workspace=ws,
                    settings=self.settings,
                    job=job,
                    renderer=self.renderer.name,
                    style=style,
                    steps=timer.steps,
                    started_at=started_at,
                    finished_at=finished_at,
                    artifacts=artifacts,
                )
            except OSError as exc:
                log.warning("Failed to write run manifest for %s: %s", ws.run_id, exc)
