from __future__ import annotations

import hashlib
import json
import subprocess
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from subburn.utils.timing import StepTiming, iso

if TYPE_CHECKING:
    from subburn.config.settings import Settings
    from subburn.domain.render import RenderJob
    from subburn.domain.style import StyleSpec
    from subburn.domain.workspace import Workspace


def _artifact_entry(path: Path | None) -> dict[str, Any] | None:
    if path is None:
        return None
    entry: dict[str, Any] = {"path": str(path), "size_bytes": None, "sha256": None}
    if path.exists():
        data = path.read_bytes()
        entry["size_bytes"] = len(data)
        entry["sha256"] = hashlib.sha256(data).hexdigest()
    return entry


def _find_repo_root(start: Path) -> Path | None:
    current = start
    for _ in range(6):
        if (current / ".git").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return None


def _git_commit() -> str | None:
    root = _find_repo_root(Path(__file__).resolve())
    if root is None:
        return None
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(root),
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    value = proc.stdout.strip()
    return value or None


def write_run_manifest(
    *,
    workspace: "Workspace",
    settings: "Settings",
    job: "RenderJob",
    renderer: str | None,
    style: "StyleSpec | None",
    steps: Iterable[StepTiming],
    started_at: datetime,
    finished_at: datetime,
    artifacts: Mapping[str, Path | None],
) -> Path:
    result = job.result
    payload: dict[str, Any] = {
        "run_id": workspace.run_id,
        "job_id": job.job_id,
        "state": job.state.value,
        "error": job.error,
        "started_at": iso(started_at),
        "finished_at": iso(finished_at),
        "duration_seconds_total": (finished_at - started_at).total_seconds(),
        "git_commit": _git_commit(),
        "settings_public": settings.to_public_dict(),
        "renderer_id": renderer,
        "style": style.to_dict() if style is not None else None,
        "segment_count": len(job.request.timeline),
        "steps": [step.to_dict() for step in steps],
        "artifacts": {name: _artifact_entry(path) for name, path in artifacts.items()},
        "output_probe": (
            {
                "format": result.output_format,
                "duration_seconds": result.duration_seconds,
                "width": result.width,
                "height": result.height,
            }
            if result is not None
            else None
        ),
    }

    out = workspace.run_manifest
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out
