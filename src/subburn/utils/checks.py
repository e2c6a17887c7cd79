from __future__ import annotations

import os
import shutil
from pathlib import Path

from subburn.exceptions import DependencyMissingError


def require_binary(binary: str) -> str:
    """Return the executable for `binary`, a bare name on PATH or an explicit path."""
    if os.sep in binary or (os.altsep and os.altsep in binary):
        candidate = Path(binary).expanduser()
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        raise DependencyMissingError(f"Configured binary '{binary}' is not an executable file.")

    path = shutil.which(binary)
    if path is None:
        raise DependencyMissingError(
            f"Missing required dependency '{binary}'. Install it (see `subburn doctor`) and try again."
        )
    return path
