from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Workspace:
    root: Path
    run_id: str

    @classmethod
    def create(cls, workdir: str | Path, run_id: str | None = None) -> "Workspace":
        rid = run_id or uuid.uuid4().hex[:12]
        root = Path(workdir).expanduser().resolve() / rid
        root.mkdir(parents=True, exist_ok=True)
        (root / "tmp").mkdir(exist_ok=True)
        return cls(root=root, run_id=rid)

    def path(self, name: str) -> Path:
        p = self.root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        return p

    def input_video(self, suffix: str = ".mp4") -> Path:
        return self.path(f"input{suffix}")

    def output_video(self, fmt: str = "mp4") -> Path:
        return self.path(f"output.{fmt}")

    @property
    def subtitles_srt(self) -> Path:
        return self.path("captions.srt")

    @property
    def subtitles_ass(self) -> Path:
        return self.path("captions.ass")

    @property
    def render_log(self) -> Path:
        return self.path("render.log")

    @property
    def run_manifest(self) -> Path:
        return self.path("run.json")
