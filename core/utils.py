"""Shared helpers for persisting run artifacts.

Provides corruption-safe JSON writes with backup rotation and atomic
replace, used for results exports that CI jobs pick up afterwards.
"""

import json
import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _rotate_backups(filepath: str, max_backups: int) -> None:
    backup_base = filepath + ".backup"
    for i in range(max_backups - 1, 0, -1):
        old = f"{backup_base}.{i}"
        if os.path.exists(old):
            os.replace(old, f"{backup_base}.{i + 1}")
    os.replace(filepath, f"{backup_base}.1")


def safe_json_write(
    filepath: str,
    data: Dict[str, Any],
    max_backups: int = 3,
) -> bool:
    """Atomically write *data* as indented JSON.

    The previous file (if any) becomes ``.backup.1``; the new content is
    written to a temporary file, re-read for validation and then moved
    into place.

    Args:
        filepath: Destination path.
        data: JSON-serialisable dictionary.
        max_backups: Number of backup generations to keep.

    Returns:
        ``True`` on success, ``False`` if the write failed (logged).
    """
    temp_file = filepath + ".tmp"
    try:
        dirpath = os.path.dirname(filepath)
        if dirpath:
            os.makedirs(dirpath, exist_ok=True)

        with open(temp_file, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)

        # Validate by re-reading before committing
        with open(temp_file, "r", encoding="utf-8") as fh:
            json.load(fh)

        if os.path.exists(filepath) and max_backups > 0:
            _rotate_backups(filepath, max_backups)
        os.replace(temp_file, filepath)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning(
            "Could not safely write JSON to %s: %s", filepath, e,
        )
        if os.path.exists(temp_file):
            os.remove(temp_file)
        return False
