from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rellr.output.console import ConsoleProtocol, RichConsole
from rellr.release.service import ReleaseService


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    console: ConsoleProtocol

    def service(self) -> ReleaseService:
        return ReleaseService(root=self.root, console=self.console)


def build_context() -> CLIContext:
    return CLIContext(root=Path.cwd(), console=RichConsole())
