"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "replace_text"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write ``content`` to ``path`` via a sibling temp file and ``os.replace``.

    Readers see either the old or the new file, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def replace_text(path: Path, content: str, *, encoding: str = "utf-8") -> bool:
    """Atomically write ``content`` unless the file already holds it.

    Returns True when the file was (re)written.
    """
    try:
        if path.read_text(encoding=encoding) == content:
            return False
    except FileNotFoundError:
        pass
    atomic_write_text(path, content, encoding=encoding)
    return True
