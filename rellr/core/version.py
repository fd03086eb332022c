"""Version state machine.

``VersionState`` tracks the released version (``current``), the staged one
(``next``) and the previously staged one (``prev``, kept only so the in-flight
branch can be renamed when the staged version changes before release).

    state = VersionState(current="1.2.3")
    state = state.bump("patch").unwrap()   # next=1.2.4, prev=None
    state = state.bump("minor").unwrap()   # next=1.3.0, prev=1.2.4
    state = state.promote().unwrap()       # current=1.3.0, next=None
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal

from .result import Err, Ok, Result

__all__ = [
    "AlreadyStaged",
    "BranchScheme",
    "BumpKind",
    "InvalidVersion",
    "NotStaged",
    "SemVer",
    "VersionError",
    "VersionState",
    "parse_version",
    "tag_name",
]

BumpKind = Literal["patch", "minor", "major"]

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
_BUMP_INDEX: dict[str, int] = {"major": 0, "minor": 1, "patch": 2}


class BranchScheme(Enum):
    """Branch name prefix for a version or topic branch."""

    RELEASE = "release"
    FEATURE = "feature"
    HOTFIX = "hotfix"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class AlreadyStaged:
    """The computed next version is already the staged one."""

    version: str

    @property
    def message(self) -> str:
        return f"release {self.version} already exists"


@dataclass(frozen=True, slots=True)
class NotStaged:
    """No release version is staged."""

    @property
    def message(self) -> str:
        return "the release version has not been set yet"


@dataclass(frozen=True, slots=True)
class InvalidVersion:
    value: str

    @property
    def message(self) -> str:
        return f"invalid version '{self.value}' (expected MAJOR.MINOR.PATCH)"


VersionError = AlreadyStaged | NotStaged | InvalidVersion


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def bump(self, kind: BumpKind) -> SemVer:
        """Increment the component for ``kind`` and zero everything to its right."""
        parts = [self.major, self.minor, self.patch]
        index = _BUMP_INDEX[kind]
        parts[index] += 1
        for i in range(index + 1, len(parts)):
            parts[i] = 0
        return SemVer(*parts)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(value: str) -> Result[SemVer, InvalidVersion]:
    m = _VERSION_RE.match(value.strip())
    if m is None:
        return Err(InvalidVersion(value))
    return Ok(SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3))))


def tag_name(version: str) -> str:
    return f"v{version}"


@dataclass(frozen=True, slots=True)
class VersionState:
    """Current/next/prev version triple plus the active branch scheme.

    Instances are immutable; every transition returns a new state.
    """

    current: str
    next: str | None = None
    prev: str | None = None
    branch_scheme: BranchScheme = BranchScheme.RELEASE

    @property
    def is_staged(self) -> bool:
        return self.next is not None

    def bump(self, kind: BumpKind) -> Result[VersionState, VersionError]:
        """Stage the next version computed from ``current``.

        Fails with AlreadyStaged (state unchanged) when the computed version
        equals the one already staged.
        """
        parsed = parse_version(self.current)
        if isinstance(parsed, Err):
            return parsed

        computed = str(parsed.value.bump(kind))
        if self.next == computed:
            return Err(AlreadyStaged(computed))

        return Ok(replace(self, prev=self.next, next=computed))

    def promote(self) -> Result[VersionState, VersionError]:
        """Make the staged version current after a successful merge and tag."""
        if self.next is None:
            return Err(NotStaged())
        return Ok(replace(self, current=self.next, next=None, prev=None))

    def with_scheme(self, scheme: BranchScheme) -> VersionState:
        return replace(self, branch_scheme=scheme)

    def branch_name(self, version: str) -> str:
        """``{scheme}/{version}``, e.g. ``release/1.3.0``."""
        return f"{self.branch_scheme}/{version}"

    @property
    def next_branch(self) -> str | None:
        if self.next is None:
            return None
        return self.branch_name(self.next)

    @property
    def prev_branch(self) -> str | None:
        if self.prev is None:
            return None
        return self.branch_name(self.prev)
