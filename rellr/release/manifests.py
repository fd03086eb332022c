"""Version substitution in package manifests.

Handles the three manifest shapes rellr knows about::

    Cargo.toml / Cargo.lock      package.json
    name = "demo"                "name": "demo",
    version = "1.2.3"            "version": "1.2.3",

Only the version that directly follows the project's own ``name`` entry is
rewritten, so dependency versions are left alone.
"""

from __future__ import annotations

import re
from pathlib import Path

from rellr.core.config import ProjectConfig
from rellr.core.result import Err, Ok, Result
from rellr.output.console import ConsoleProtocol, Style
from rellr.platform.files import replace_text

from .errors import ReleaseError

__all__ = ["substitute_version", "update_manifests"]


def _pattern(project: str) -> re.Pattern[str]:
    return re.compile(
        rf'("?name"?\s*[:=]\s*"{re.escape(project)}",?\s*"?version"?\s*[:=]\s*)"\d+\.\d+\.\d+"'
    )


def substitute_version(content: str, project: str, version: str) -> str | None:
    """Return ``content`` with the project's version replaced, or None if not found."""
    new, count = _pattern(project).subn(lambda m: f'{m.group(1)}"{version}"', content, count=1)
    if count == 0:
        return None
    return new


def update_manifests(
    *,
    root: Path,
    config: ProjectConfig,
    version: str,
    console: ConsoleProtocol,
) -> Result[list[str], ReleaseError]:
    """Rewrite every configured manifest under ``root``; return the paths that changed.

    Missing files (e.g. no Cargo.lock for a library) are skipped.
    """
    changed: list[str] = []
    for rel in config.manifest_paths():
        path = root / rel
        if not path.is_file():
            console.print(f"skip {rel} (not found)", Style.DIM)
            continue

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            return Err(ReleaseError(kind="io_failed", message=f"failed to read {rel}: {e}"))

        updated = substitute_version(content, config.name, version)
        if updated is None:
            console.warning(f"no version entry for '{config.name}' in {rel}")
            continue

        try:
            if replace_text(path, updated):
                console.print(f"{rel}: {version}", Style.DIM)
                changed.append(rel)
        except OSError as e:
            return Err(ReleaseError(kind="io_failed", message=f"failed to write {rel}: {e}"))

    return Ok(changed)
