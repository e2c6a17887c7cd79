from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from subburn.domain.style import Position, StyleSpec
from subburn.domain.timeline import SubtitleSegment, sort_timeline
from subburn.utils.colors import to_ass_color
from subburn.utils.timecode import format_ass_time

ALIGNMENT = {
    Position.BOTTOM: 2,
    Position.CENTER: 5,
    Position.TOP: 8,
}


def _escape_ass_value(value: str) -> str:
    return (
        value.replace("\\", r"\\")
        .replace(":", r"\:")
        .replace(",", r"\,")
        .replace("'", r"\'")
    )


def _escape_filter_path(value: str) -> str:
    return (
        value.replace("\\", r"\\")
        .replace(":", r"\:")
        .replace(",", r"\,")
        .replace("'", r"\'")
    )


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


# ---------------------------------------------------------------------
# Overlay style (ratio-aware)
# ---------------------------------------------------------------------
def overlay_style_params(style: StyleSpec, width: int, height: int) -> dict[str, int | str]:
    """
    Scale a StyleSpec to the frame so 480p through 4K read the same.

    The reference size (24px) maps to 4.5% of the frame height; the
    reference offset (50px) maps to 5%.
    """
    font_cap = min(96, max(28, round(height * 0.07)))
    font_size = _clamp(round(height * 0.045 * style.font_size / 24), 16, font_cap)
    margin_v = _clamp(round(height * 0.05 * style.position_offset / 50), 10, max(10, round(height * 0.10)))
    outline = _clamp(round(style.stroke_width * height / 720), 0, 10)
    shadow = max(1, round(height / 720)) if style.text_shadow else 0
    margin_lr = max(0, round(width * (1.0 - style.max_width_ratio) / 2))

    if style.has_background:
        box = to_ass_color(style.background_color, style.background_opacity / 100.0)
        border_style = 3
        outline_colour = box
        back_colour = box
    else:
        border_style = 1
        outline_colour = to_ass_color(style.stroke_color)
        back_colour = to_ass_color("#000000", 0.5)

    return {
        "font_name": style.font_family,
        "font_size": font_size,
        "primary_colour": to_ass_color(style.text_color),
        "outline_colour": outline_colour,
        "back_colour": back_colour,
        "bold": -1 if style.is_bold else 0,
        "border_style": border_style,
        "outline": outline,
        "shadow": shadow,
        "alignment": ALIGNMENT.get(style.position, 2),
        "margin_l": margin_lr,
        "margin_r": margin_lr,
        "margin_v": margin_v,
        "width": width,
        "height": height,
    }


def build_force_style(params: dict[str, int | str]) -> str:
    return (
        f"Fontname={params['font_name']},"
        f"Fontsize={params['font_size']},"
        f"PrimaryColour={params['primary_colour']},"
        f"OutlineColour={params['outline_colour']},"
        f"BackColour={params['back_colour']},"
        f"Bold={params['bold']},"
        f"BorderStyle={params['border_style']},"
        f"Outline={params['outline']},"
        f"Shadow={params['shadow']},"
        f"Alignment={params['alignment']},"
        f"MarginL={params['margin_l']},"
        f"MarginR={params['margin_r']},"
        f"MarginV={params['margin_v']}"
    )


def build_subtitles_filter(subtitles_path: str, *, params: dict[str, int | str] | None = None) -> str:
    path_value = _escape_filter_path(subtitles_path)
    if subtitles_path.lower().endswith((".ass", ".ssa")):
        return f"ass={path_value}"
    if params is None:
        return f"subtitles={path_value}"
    return f"subtitles={path_value}:force_style='{_escape_ass_value(build_force_style(params))}'"


def _escape_ass_text(text: str) -> str:
    return (
        text.replace("\\", r"\\")
        .replace("{", r"\{")
        .replace("}", r"\}")
        .replace("\n", r"\N")
    )


def write_ass(
    timeline: Iterable[SubtitleSegment],
    style: StyleSpec,
    path: Path,
    *,
    width: int,
    height: int,
) -> Path:
    params = overlay_style_params(style, width, height)
    lines = [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {width}",
        f"PlayResY: {height}",
        "WrapStyle: 0",
        "ScaledBorderAndShadow: yes",
        "",
        "[V4+ Styles]",
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
        "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, "
        "ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
        "Alignment, MarginL, MarginR, MarginV, Encoding",
        (
            "Style: Default,"
            f"{params['font_name']},"
            f"{params['font_size']},"
            f"{params['primary_colour']},&H000000FF,"
            f"{params['outline_colour']},{params['back_colour']},"
            f"{params['bold']},0,0,0,100,100,0,0,"
            f"{params['border_style']},{params['outline']},{params['shadow']},"
            f"{params['alignment']},"
            f"{params['margin_l']},{params['margin_r']},{params['margin_v']},1"
        ),
        "",
        "[Events]",
        "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text",
    ]

    for segment in sort_timeline(timeline):
        text = _escape_ass_text(style.apply_transform(segment.text))
        lines.append(
            f"Dialogue: 0,{format_ass_time(segment.start)},{format_ass_time(segment.end)},Default,,0,0,0,,{text}"
        )

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------
def build_burn_cmd(
    input_video: str,
    subtitles_filter: str,
    out: str,
    *,
    preset: str = "ultrafast",
    crf: int = 23,
) -> list[str]:
    return [
        "ffmpeg",
        "-y",
        "-hide_banner",
        "-i",
        input_video,
        "-vf",
        subtitles_filter,
        "-c:v",
        "libx264",
        "-preset",
        preset,
        "-crf",
        str(crf),
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "copy",
        "-movflags",
        "+faststart",
        out,
    ]


def build_probe_cmd(path: str | Path) -> list[str]:
    # No output file: ffmpeg prints stream info and exits non-zero.
    return ["ffmpeg", "-hide_banner", "-i", str(path)]


def build_encoders_cmd() -> list[str]:
    return ["ffmpeg", "-hide_banner", "-encoders"]


def build_filters_cmd() -> list[str]:
    return ["ffmpeg", "-hide_banner", "-filters"]


def build_decode_cmd(input_video: str | Path, *, fps: float) -> list[str]:
    return [
        "ffmpeg",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(input_video),
        "-an",
        "-r",
        f"{fps:g}",
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        "pipe:1",
    ]


def build_encode_cmd(
    out: str | Path,
    *,
    width: int,
    height: int,
    fps: float,
    codec: str = "libvpx-vp9",
    audio_source: str | Path | None = None,
) -> list[str]:
    cmd = [
        "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        "-s",
        f"{width}x{height}",
        "-r",
        f"{fps:g}",
        "-i",
        "pipe:0",
    ]
    if audio_source is not None:
        cmd += ["-i", str(audio_source), "-map", "0:v:0", "-map", "1:a:0?", "-c:a", "libopus"]
    cmd += [
        "-c:v",
        codec,
        "-b:v",
        "0",
        "-crf",
        "32",
        "-deadline",
        "realtime",
        "-cpu-used",
        "8",
        "-pix_fmt",
        "yuv420p",
        str(out),
    ]
    return cmd


def run_ffmpeg(cmd: list[str], *, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        cwd=str(cwd) if cwd is not None else None,
    )


def split_log(*chunks: str | None) -> list[str]:
    lines: list[str] = []
    for chunk in chunks:
        if chunk:
            lines.extend(line.rstrip() for line in chunk.splitlines() if line.strip())
    return lines


# ---------------------------------------------------------------------
# Diagnostic-log parsing
# ---------------------------------------------------------------------
_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_VIDEO_RE = re.compile(r"Stream #\S+.*?: Video: ([\w-]+).*?,\s*(\d{2,5})x(\d{2,5})")
_FPS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:fps|tbr)\b")
_AUDIO_RE = re.compile(r"Stream #\S+.*?: Audio: ")
_ENCODER_RE = re.compile(r"^\s*[VAS][A-Z.]{5}\s+(\S+)")
_FILTER_RE = re.compile(r"^\s*[A-Z.|]{2,3}\s+(\S+)\s+\S*->\S*")


@dataclass(frozen=True)
class MediaInfo:
    duration_seconds: float | None = None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    video_codec: str | None = None
    has_video: bool = False
    has_audio: bool = False

    def to_dict(self) -> dict:
        return {
            "duration_seconds": self.duration_seconds,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "video_codec": self.video_codec,
            "has_video": self.has_video,
            "has_audio": self.has_audio,
        }


def parse_duration(lines: Iterable[str]) -> float | None:
    for line in lines:
        match = _DURATION_RE.search(line)
        if match:
            h, m, s = match.groups()
            return int(h) * 3600 + int(m) * 60 + float(s)
    return None


def parse_probe_log(lines: Iterable[str]) -> MediaInfo:
    lines = list(lines)
    width = height = None
    fps = None
    codec = None
    has_video = has_audio = False
    for line in lines:
        if not has_video:
            match = _VIDEO_RE.search(line)
            if match:
                has_video = True
                codec = match.group(1)
                width, height = int(match.group(2)), int(match.group(3))
                rate = _FPS_RE.search(line[match.end() :])
                if rate:
                    fps = float(rate.group(1))
        if _AUDIO_RE.search(line):
            has_audio = True
    return MediaInfo(
        duration_seconds=parse_duration(lines),
        width=width,
        height=height,
        fps=fps,
        video_codec=codec,
        has_video=has_video,
        has_audio=has_audio,
    )


def parse_encoders(lines: Iterable[str]) -> set[str]:
    names: set[str] = set()
    for line in lines:
        match = _ENCODER_RE.match(line)
        if match and match.group(1) != "=":
            names.add(match.group(1))
    return names


def parse_filters(lines: Iterable[str]) -> set[str]:
    names: set[str] = set()
    for line in lines:
        match = _FILTER_RE.match(line)
        if match:
            names.add(match.group(1))
    return names
