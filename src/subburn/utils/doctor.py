from __future__ import annotations

import importlib
import subprocess
import sys
import tempfile
from pathlib import Path

from subburn.config.settings import Settings
from subburn.utils import ffmpeg


def _run_cmd(cmd: list[str]) -> tuple[int, str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        return 1, ""
    return proc.returncode, proc.stdout.strip() or proc.stderr.strip()


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except ImportError:
        return False
    return True


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("subburn")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def _ffmpeg_hint() -> str:
    if sys.platform.startswith("darwin"):
        return "Install ffmpeg with: brew install ffmpeg"
    if sys.platform.startswith("win"):
        return "Install ffmpeg with: winget install ffmpeg"
    return "Install ffmpeg with your package manager, e.g. apt install ffmpeg"


def run_doctor(settings: Settings) -> int:
    required_ok = True
    lines: list[str] = []

    lines.append("subburn doctor")
    lines.append("")

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "subburn version", f": {_get_version()}"))

    workdir = Path(settings.workdir).expanduser().resolve()
    writable = _check_writable(workdir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Workdir writable", f": {workdir}"))

    binary = settings.ffmpeg_binary
    ffmpeg_code, ffmpeg_out = _run_cmd([binary, "-version"])
    if ffmpeg_code != 0:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", " (not found)"))
        lines.append(f"   {_ffmpeg_hint()}")
    else:
        first_line = ffmpeg_out.splitlines()[0] if ffmpeg_out else "available"
        lines.append(_status_line(True, "ffmpeg", f": {first_line}"))

        _, filters_out = _run_cmd([binary, *ffmpeg.build_filters_cmd()[1:]])
        has_libass = "subtitles" in ffmpeg.parse_filters(filters_out.splitlines())
        if settings.renderer == "filtergraph" and not has_libass:
            required_ok = False
        lines.append(
            _status_line(has_libass, "subtitles filter (libass)", ": available" if has_libass else ": missing")
        )

        _, encoders_out = _run_cmd([binary, *ffmpeg.build_encoders_cmd()[1:]])
        codec = settings.composite_codec
        has_codec = codec in ffmpeg.parse_encoders(encoders_out.splitlines())
        if has_codec:
            lines.append(_status_line(True, f"{codec} encoder", " (available)"))
        elif settings.renderer == "composite":
            required_ok = False
            lines.append(_status_line(False, f"{codec} encoder", " (missing)"))
        else:
            lines.append(_warn_line(f"{codec} encoder", " (missing; composite renderer unavailable)"))

    if _module_available("PIL"):
        lines.append(_status_line(True, "Pillow", " (available)"))
    elif settings.renderer == "composite":
        required_ok = False
        lines.append(_status_line(False, "Pillow", " (not installed)"))
    else:
        lines.append(_warn_line("Pillow", " (not installed)"))

    if _module_available("openai"):
        lines.append(_status_line(True, "openai SDK", " (available)"))
    else:
        lines.append(_warn_line("openai SDK", " (not installed; translate/style unavailable)"))

    api_key = settings.openai_api_key
    if api_key:
        lines.append(_status_line(True, "OpenAI API key", ": set"))
    else:
        lines.append(_warn_line("OpenAI API key", ": missing"))

    lines.append(_status_line(True, "Renderer", f": {settings.renderer}"))

    print("\n".join(lines))
    return 0 if required_ok else 1
