"""Git operations.

Usage:
    from rellr.git import Repository

    repo = Repository(Path("."))
    history = repo.log().unwrap_or([])
"""

from rellr.git.repository import (
    Commit,
    GitError,
    GitErrorKind,
    MergeTree,
    Repository,
    TagRef,
)

__all__ = [
    "Commit",
    "GitError",
    "GitErrorKind",
    "MergeTree",
    "Repository",
    "TagRef",
]
