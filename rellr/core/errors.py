"""Process exit codes for rellr commands.

Only the CLI layer turns an error into one of these codes.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad input, nothing staged, already initialized)
    - 2: Environment error (missing config, not a git repository)
    - 3: Git error (merge conflict, missing ref, tag already exists)
    - 4: Publish error (cargo/npm publish failed)
    - 5: I/O error (config or manifest could not be read/written)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    PUBLISH_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
