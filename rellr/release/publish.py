from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from rellr.core.config import PackageManager
from rellr.core.result import Err, Ok, Result
from rellr.output.console import ConsoleProtocol, Style
from rellr.platform.process import run_silent

from .errors import ReleaseError

_PUBLISH_TIMEOUT_SECONDS = 3 * 60.0


def publish_command(manager: PackageManager) -> list[str]:
    match manager.kind:
        case "cargo":
            return ["cargo", "publish"]
        case "npm":
            return ["npm.cmd" if os.name == "nt" else "npm", "publish"]


def publish_all(
    *,
    root: Path,
    managers: Sequence[PackageManager],
    console: ConsoleProtocol,
) -> Result[list[str], ReleaseError]:
    """Run the publish step of every package manager with ``publish`` enabled."""
    published: list[str] = []
    for manager in managers:
        if not manager.publish:
            continue

        cmd = publish_command(manager)
        cwd = root / manager.path if manager.path else root
        console.print(f"{' '.join(cmd)} ({cwd})", Style.DIM)

        result = run_silent(cmd, cwd=cwd, timeout=_PUBLISH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="publish_failed",
                    message=f"{manager.kind} publish failed: {result.error}",
                    hint="the release commit and tag are in place; publish manually",
                )
            )
        published.append(manager.kind)

    return Ok(published)
