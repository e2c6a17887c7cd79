from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for subburn.

    All settings are loaded from environment variables with the
    `SUBBURN_` prefix and optional `.env` support.

    This class is intentionally flat and explicit to keep runtime
    behavior predictable and debuggable.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUBBURN_",
        env_file=".env",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------
    workdir: str = Field(
        default=".subburn",
        description="Root directory for per-render workspaces.",
    )
    renderer: str = Field(
        default="filtergraph",
        description="Render strategy: filtergraph (ffmpeg overlay) or composite (frame-by-frame).",
    )
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        description="ffmpeg executable: a name looked up on PATH or an explicit path.",
    )

    # ------------------------------------------------------------------
    # Filter-graph overlay
    # ------------------------------------------------------------------
    preset: str = Field(
        default="ultrafast",
        description="libx264 preset used for the single-pass overlay encode.",
    )
    crf: int = Field(
        default=23,
        description="libx264 CRF used for the single-pass overlay encode.",
    )

    # ------------------------------------------------------------------
    # Frame-synchronous compositing
    # ------------------------------------------------------------------
    composite_codec: str = Field(
        default="libvpx-vp9",
        description="Encoder used to capture composited frames (WebM).",
    )
    composite_fps: float = Field(
        default=30.0,
        description="Frame rate used when the source frame rate cannot be probed.",
    )
    composite_realtime: bool = Field(
        default=False,
        description="Pace compositing to the source playback clock.",
    )
    composite_include_audio: bool = Field(
        default=True,
        description="Mux the source audio track into the composited output.",
    )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    log_tail_lines: int = Field(
        default=40,
        description="Number of ffmpeg log lines surfaced with render failures.",
    )

    # ------------------------------------------------------------------
    # Collaborators (LLM)
    # ------------------------------------------------------------------
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key for translation and style analysis.",
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="LLM model name used for subtitle translation.",
    )
    style_model: str = Field(
        default="gpt-4o",
        description="Vision model name used for subtitle style analysis.",
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature for LLM collaborators.",
    )
    max_tokens: int = Field(
        default=4000,
        description="Maximum tokens for LLM output.",
    )
    translation_fallback: bool = Field(
        default=False,
        description="Keep original text instead of failing on a translation line-count mismatch.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    # ------------------------------------------------------------------
    # Public / safe export
    # ------------------------------------------------------------------
    def to_public_dict(self) -> dict:
        """
        Return a dictionary of non-sensitive settings suitable
        for logging or CLI display.
        """
        return {
            "workdir": self.workdir,
            "renderer": self.renderer,
            "ffmpeg_binary": self.ffmpeg_binary,
            "preset": self.preset,
            "crf": self.crf,
            "composite_codec": self.composite_codec,
            "composite_fps": self.composite_fps,
            "composite_realtime": self.composite_realtime,
            "composite_include_audio": self.composite_include_audio,
            "log_tail_lines": self.log_tail_lines,
            "model": self.model,
            "style_model": self.style_model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "translation_fallback": self.translation_fallback,
            "openai_api_key_set": bool(self.openai_api_key),
            "log_level": self.log_level,
        }
