from __future__ import annotations

import functools
import json
import shutil
from pathlib import Path
from typing import Callable, List, TypeVar

import typer

from subburn.config.settings import Settings
from subburn.domain.render import RenderRequest
from subburn.domain.style import StyleSpec
from subburn.domain.workspace import Workspace
from subburn.exceptions import InputError, SubburnError
from subburn.pipeline import SubtitlePipeline
from subburn.services.srt import read_timeline, write_timeline
from subburn.services.style import StyleParseResult, parse_style_response, resolve_style
from subburn.services.style_analysis import create_style_analysis_service
from subburn.services.translation import create_translation_service
from subburn.utils.doctor import run_doctor
from subburn.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)

F = TypeVar("F", bound=Callable)


def _handle_errors(func: F) -> F:
    """Report SubburnError as "<label>: <detail>" on stderr with its exit code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):  # noqa: ANN002, ANN003
        try:
            return func(*args, **kwargs)
        except SubburnError as exc:
            typer.echo(f"{exc.label()}: {exc.detail()}", err=True)
            raise typer.Exit(code=exc.exit_code)

    return wrapper  # type: ignore[return-value]


def _resolve_workdir(workdir: str | None) -> Path:
    settings = Settings()
    return Path(workdir or settings.workdir).expanduser().resolve()


def _load_run_manifest(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def _list_runs(workdir: Path) -> list[Path]:
    if not workdir.exists():
        return []
    candidates = []
    for run_dir in workdir.iterdir():
        if not run_dir.is_dir():
            continue
        manifest = run_dir / "run.json"
        if not manifest.exists():
            continue
        candidates.append(run_dir)
    candidates.sort(key=lambda p: (p / "run.json").stat().st_mtime, reverse=True)
    return candidates


def _resolve_run_dir(workdir: Path, run_id: str) -> Path:
    if run_id == "latest":
        runs_list = _list_runs(workdir)
        if not runs_list:
            raise typer.BadParameter("No runs found.")
        return runs_list[0]
    return workdir / run_id


def _manifest_video_path(manifest: dict) -> str | None:
    try:
        return manifest.get("artifacts", {}).get("video", {}).get("path")
    except AttributeError:
        return None


def _read_json_file(path: Path) -> object:
    if not path.exists():
        raise InputError(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InputError(f"Invalid JSON in {path}: {exc}") from exc


def _load_style(style_path: Path | None, style_reply: Path | None) -> StyleSpec | None:
    if style_path is not None and style_reply is not None:
        raise typer.BadParameter("Use either --style or --style-reply, not both.")
    if style_path is not None:
        data = _read_json_file(style_path)
        if not isinstance(data, dict):
            raise InputError(f"Style file {style_path} must contain a JSON object.")
        return resolve_style(data)
    if style_reply is not None:
        if not style_reply.exists():
            raise InputError(f"File not found: {style_reply}")
        return parse_style_response(style_reply.read_text(encoding="utf-8")).style
    return None


def _style_payload(result: StyleParseResult) -> dict:
    return {
        "ok": result.ok,
        "confidence": result.confidence,
        "style": result.style.to_dict(),
        "issues": [{"field": i.field, "message": i.message} for i in result.issues],
    }


@app.command()
def config() -> None:
    """Print resolved config."""
    s = Settings()
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
@_handle_errors
def render(
    video: Path = typer.Argument(..., help="Source video file."),
    subtitles: Path = typer.Option(..., "--subtitles", "-s", help="Timeline file (.srt or .json)."),
    style: Path = typer.Option(None, help="Style JSON file (camelCase or snake_case keys)."),
    style_reply: Path = typer.Option(None, help="Saved style-analysis reply to parse (untrusted)."),
    renderer: str = typer.Option(None, help="Renderer: filtergraph or composite (overrides config)."),
    translate_to: str = typer.Option(None, help="Translate subtitles to this language first."),
    out: Path = typer.Option(None, help="Copy the rendered video here."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    realtime: bool = typer.Option(None, help="Pace compositing to playback speed (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Burn subtitles into a video."""
    settings = Settings()

    # Apply CLI overrides on top of env/.env settings
    if renderer is not None:
        settings.renderer = renderer
    if workdir is not None:
        settings.workdir = workdir
    if realtime is not None:
        settings.composite_realtime = realtime

    effective_level = log_level or settings.log_level
    configure_logging(effective_level)

    if not video.exists():
        raise InputError(f"Video not found: {video}")
    timeline = read_timeline(subtitles)
    request = RenderRequest(
        video_bytes=video.read_bytes(),
        timeline=timeline,
        style=_load_style(style, style_reply),
        filename=video.name,
    )

    workspace = Workspace.create(settings.workdir)
    pipeline = SubtitlePipeline(settings=settings)
    job = pipeline.run(request, workspace=workspace, translate_to=translate_to)

    output = workspace.output_video(job.result.output_format)
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(output, out)
        output = out
    typer.echo(f"✅ Done. run_id={workspace.run_id}")
    typer.echo(f"📦 Output: {output}")


@app.command()
@_handle_errors
def export(
    subtitles: Path = typer.Argument(..., help="Timeline file (.srt or .json)."),
    out: Path = typer.Option(..., help="Destination (.srt, .vtt or .json)."),
    lenient: bool = typer.Option(False, help="Skip malformed SRT blocks instead of failing."),
) -> None:
    """Export a timeline as SRT, WebVTT or JSON."""
    timeline = read_timeline(subtitles, strict=not lenient)
    out.parent.mkdir(parents=True, exist_ok=True)
    write_timeline(out, timeline)
    typer.echo(f"📦 {len(timeline)} segment(s) written to {out}")


@app.command()
@_handle_errors
def style(
    image: Path = typer.Argument(None, help="Reference image with subtitles."),
    reply: Path = typer.Option(None, help="Parse a saved model reply instead of calling the API."),
    prompt: str = typer.Option(None, help="Extra instructions for the vision model."),
    out: Path = typer.Option(None, help="Write the resolved style JSON here."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Extract a subtitle style from an image (or a saved model reply)."""
    settings = Settings()
    configure_logging(log_level or settings.log_level)

    if reply is not None:
        if not reply.exists():
            raise InputError(f"File not found: {reply}")
        result = parse_style_response(reply.read_text(encoding="utf-8"))
    elif image is not None:
        if not image.exists():
            raise InputError(f"Image not found: {image}")
        service = create_style_analysis_service(settings)
        result = service.analyze(image.read_bytes(), image.suffix, prompt=prompt)
    else:
        raise typer.BadParameter("Provide an IMAGE or --reply.")

    payload = _style_payload(result)
    if out is not None:
        out.write_text(json.dumps(payload["style"], indent=2), encoding="utf-8")
    typer.echo(json.dumps(payload, indent=2))


def _language_output(out: Path, language: str, many: bool) -> Path:
    if not many:
        return out
    return out.with_name(f"{out.stem}.{language}{out.suffix}")


@app.command()
@_handle_errors
def translate(
    subtitles: Path = typer.Argument(..., help="Timeline file (.srt or .json)."),
    to: List[str] = typer.Option(..., "--to", help="Target language (repeat for several)."),
    out: Path = typer.Option(..., help="Destination (.srt, .vtt or .json); suffixed per language when several."),
    source: str = typer.Option("auto", help="Source language."),
    instructions: str = typer.Option(None, help="Additional translation instructions."),
    preserve_formatting: bool = typer.Option(True, help="Keep punctuation and capitalization style."),
    maintain_timing: bool = typer.Option(True, help="Prefer concise lines that fit the original timing."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Translate a timeline, keeping every timestamp."""
    settings = Settings()
    configure_logging(log_level or settings.log_level)

    timeline = read_timeline(subtitles)
    service = create_translation_service(settings)
    results = service.translate_many(
        timeline,
        to,
        source_language=source,
        instructions=instructions,
        preserve_formatting=preserve_formatting,
        maintain_timing=maintain_timing,
    )
    out.parent.mkdir(parents=True, exist_ok=True)
    for language, translated in results.items():
        destination = _language_output(out, language, len(results) > 1)
        write_timeline(destination, translated)
        typer.echo(f"📦 {language}: {len(translated)} segment(s) written to {destination}")


@app.command()
def runs(
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    limit: int = typer.Option(5, help="Limit number of runs shown."),
    json_output: bool = typer.Option(False, "--json", help="Output runs as JSON."),
) -> None:
    """List recent runs."""
    root = _resolve_workdir(workdir)
    runs_list = _list_runs(root)
    if limit is not None and limit > 0:
        runs_list = runs_list[:limit]

    rows = []
    for run_dir in runs_list:
        manifest = _load_run_manifest(run_dir / "run.json")
        if not manifest:
            continue
        video_path = _manifest_video_path(manifest)
        rows.append(
            {
                "run_id": run_dir.name,
                "state": manifest.get("state"),
                "started_at": manifest.get("started_at"),
                "duration_seconds_total": manifest.get("duration_seconds_total"),
                "video_present": bool(video_path and Path(video_path).exists()),
                "video_path": video_path,
                "path": str(run_dir),
            }
        )

    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return

    typer.echo("run_id\tstate\tstarted_at\tduration_s\tvideo_present\tpath")
    for row in rows:
        duration = row["duration_seconds_total"]
        duration_str = f"{duration:.2f}" if isinstance(duration, (float, int)) else "n/a"
        typer.echo(
            f"{row['run_id']}\t{row['state'] or 'n/a'}\t{row['started_at'] or 'n/a'}\t"
            f"{duration_str}\t{'true' if row['video_present'] else 'false'}\t{row['path']}"
        )


@app.command()
def inspect(
    run_id: str = typer.Argument(..., help="Run id or 'latest'."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
) -> None:
    """Pretty-print run.json for a run."""
    root = _resolve_workdir(workdir)
    run_dir = _resolve_run_dir(root, run_id)

    manifest_path = run_dir / "run.json"
    manifest = _load_run_manifest(manifest_path)
    if manifest is None:
        raise typer.BadParameter(f"run.json not found for run_id '{run_dir.name}'.")
    typer.echo(json.dumps(manifest, indent=2))


@app.command()
@_handle_errors
def doctor() -> None:
    """Run environment diagnostics."""
    settings = Settings()
    code = run_doctor(settings)
    raise typer.Exit(code=code)


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
