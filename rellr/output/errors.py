"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rellr.core.errors import ErrorCode
from rellr.output.console import Style
from rellr.release.errors import ReleaseError

if TYPE_CHECKING:
    from rellr.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print a release error; recoverable ones are shown as warnings."""
    if error.is_recoverable:
        console.warning(error.message)
    else:
        console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    """Get exit code for a release error."""
    match error.kind:
        case "already_initialized" | "release_not_set" | "already_staged":
            return int(ErrorCode.USER_ERROR)
        case "invalid_version" | "merge_required":
            return int(ErrorCode.USER_ERROR)
        case "not_initialized" | "config_invalid" | "not_a_repository":
            return int(ErrorCode.ENV_ERROR)
        case "merge_conflict" | "tag_exists" | "git_failed":
            return int(ErrorCode.GIT_ERROR)
        case "publish_failed":
            return int(ErrorCode.PUBLISH_ERROR)
        case "io_failed":
            return int(ErrorCode.IO_ERROR)
