"""Release orchestration: branches, changelog, commit+tag and the command service."""

from .branches import BranchLifecycle, MergeAnalysis, MergeKind
from .changelog import ChangelogAssembler, Release, ReleaseChain
from .commit import CommitTagWriter
from .errors import ReleaseError, ReleaseErrorKind
from .service import ReleaseOutcome, ReleaseService

__all__ = [
    "BranchLifecycle",
    "ChangelogAssembler",
    "CommitTagWriter",
    "MergeAnalysis",
    "MergeKind",
    "Release",
    "ReleaseChain",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseOutcome",
    "ReleaseService",
]
