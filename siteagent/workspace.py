"""Output directory setup and reset."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_output_dir(directory: Path | str) -> Path:
    """Create the output directory (and parents) if missing."""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def clear_output_dir(directory: Path | str) -> int:
    """Remove everything directly under the output directory, keeping the root.

    A missing directory is not an error.

    Returns:
        Number of entries removed
    """
    path = Path(directory)
    if not path.is_dir():
        return 0

    removed = 0
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1

    logger.info(f"Directory {path} cleared ({removed} entries)")
    return removed
