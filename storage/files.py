"""File helpers shared by the JSON stores.

All whole-file writes go through write_json_atomic: the payload is written
to a temporary file in the same directory, fsynced, then moved into place
with os.replace. A crash mid-write leaves either the old file or the new
one, never a truncated mix.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from errors import StorageError

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, text: str) -> None:
    """Atomically replace path with text.

    Raises:
        StorageError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


def write_json_atomic(path: Path, payload: Any) -> None:
    """Atomically write payload as pretty-printed JSON."""
    write_text_atomic(path, json.dumps(payload, indent=2, ensure_ascii=False))


def read_json(path: Path) -> Any | None:
    """Read a JSON file, returning None if it does not exist.

    Raises:
        StorageError: If the file exists but cannot be read or parsed
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        raise StorageError(f"Failed to read {path}: {e}") from e
