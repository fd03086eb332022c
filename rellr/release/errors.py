"""Service-level error for release commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rellr.core.config import CONFIG_FILE, ConfigError
from rellr.core.version import AlreadyStaged, InvalidVersion, NotStaged, VersionError
from rellr.git.repository import GitError

ReleaseErrorKind = Literal[
    "not_initialized",
    "already_initialized",
    "config_invalid",
    "not_a_repository",
    "release_not_set",
    "already_staged",
    "invalid_version",
    "merge_conflict",
    "merge_required",
    "tag_exists",
    "git_failed",
    "io_failed",
    "publish_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def is_recoverable(self) -> bool:
        """Reported as a warning; the command keeps its prior state."""
        return self.kind == "already_staged"

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def from_git(error: GitError) -> ReleaseError:
    match error.kind:
        case "conflict":
            kind: ReleaseErrorKind = "merge_conflict"
        case "merge_required":
            kind = "merge_required"
        case "tag_exists":
            kind = "tag_exists"
        case "release_not_set":
            kind = "release_not_set"
        case _:
            kind = "git_failed"
    return ReleaseError(kind=kind, message=error.message, hint=error.hint)


def from_config(error: ConfigError) -> ReleaseError:
    if error.missing:
        return ReleaseError(
            kind="not_initialized",
            message=f"the {CONFIG_FILE} configuration file is missing in the selected directory",
            hint="run: rellr init <project-name> --version <project-version>",
        )
    return ReleaseError(kind="config_invalid", message=error.message)


def from_version(error: VersionError) -> ReleaseError:
    match error:
        case AlreadyStaged():
            return ReleaseError(kind="already_staged", message=error.message)
        case NotStaged():
            return ReleaseError(
                kind="release_not_set",
                message=error.message,
                hint="run: rellr bump [patch|minor|major]",
            )
        case InvalidVersion():
            return ReleaseError(kind="invalid_version", message=error.message)
