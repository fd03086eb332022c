"""Changelog assembly: partition commit history into a chain of releases.

Commits are walked oldest to newest. A commit carrying a version tag seals the
bucket it closes; the next bucket links back to it. The newest commit is
associated with the current version when it has no tag yet, so the release
being cut gets its own section before the tag physically exists.

The chain is an arena: ``ReleaseChain.releases`` is ordered oldest to newest
and ``Release.previous`` is an index into it, so walking newest to oldest is
an index decrement.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from rellr.core.config import ChangelogSettings
from rellr.core.result import Err, Ok, Result
from rellr.core.version import VersionState, tag_name
from rellr.git.repository import Commit, GitError, Repository, TagRef
from rellr.output.console import ConsoleProtocol
from rellr.platform.files import replace_text

from .render import render_changelog

__all__ = [
    "ChangelogAssembler",
    "Release",
    "ReleaseChain",
]


@dataclass(frozen=True, slots=True)
class Release:
    """A group of commits bounded by a version tag.

    ``version`` is None for commits newer than the last tag. ``synthetic``
    marks the zero-commit release that only records the tag preceding the
    oldest assembled release.
    """

    version: str | None = None
    commit_id: str | None = None
    timestamp: int = 0
    commits: tuple[Commit, ...] = ()
    previous: int | None = None
    synthetic: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseChain:
    releases: tuple[Release, ...] = field(default_factory=tuple)

    @property
    def head(self) -> Release | None:
        return self.releases[-1] if self.releases else None

    def newest_first(self) -> Iterator[Release]:
        """Follow ``previous`` links from the head to the terminal release."""
        index = len(self.releases) - 1 if self.releases else None
        while index is not None:
            release = self.releases[index]
            yield release
            index = release.previous

    def previous_of(self, release: Release) -> Release | None:
        if release.previous is None:
            return None
        return self.releases[release.previous]

    @property
    def commit_count(self) -> int:
        return sum(len(r.commits) for r in self.releases)


def _matches(pattern: str | None, name: str) -> bool:
    if pattern is None or not pattern.strip():
        return False
    return re.search(pattern, name) is not None


class ChangelogAssembler:
    """Builds the release chain for one or more repositories."""

    def __init__(
        self,
        state: VersionState,
        settings: ChangelogSettings,
        *,
        console: ConsoleProtocol,
    ) -> None:
        self.state = state
        self.settings = settings
        self.console = console

    def discover_tags(self, refs: Sequence[TagRef]) -> dict[str, TagRef]:
        """Map commit id -> tag, ordered by tagged-commit time.

        Tags matching ``skip_tags`` are kept (they still bound a release whose
        commits are dropped at render time); tags matching ``ignore_tags`` are
        removed unless they also match ``skip_tags``.
        """
        tags: dict[str, TagRef] = {}
        for ref in refs:
            if not _matches(self.settings.tag_pattern, ref.name):
                continue
            skip = _matches(self.settings.skip_tags, ref.name)
            ignore = _matches(self.settings.ignore_tags, ref.name)
            if skip or not ignore:
                tags[ref.commit] = ref
        return tags

    def assemble(self, commits: Sequence[Commit], refs: Sequence[TagRef]) -> ReleaseChain:
        """Partition ``commits`` (newest first, as git log yields them) into releases."""
        tags = self.discover_tags(refs)

        history = list(commits)
        limit = self.settings.limit_commits
        if limit is not None:
            history = history[:limit]
        if not history:
            return ReleaseChain()

        tip = history[0]
        existing = tags.get(tip.id)
        if existing is not None:
            self.console.warning(f"there is already a tag ({existing.name}) for {tip.short_id}")
        else:
            tags[tip.id] = TagRef(
                name=tag_name(self.state.current), commit=tip.id, timestamp=tip.timestamp
            )

        releases: list[Release] = []
        bucket: list[Commit] = []
        first_boundary: TagRef | None = None

        for commit in reversed(history):
            bucket.append(commit)
            tag = tags.get(commit.id)
            if tag is None:
                continue
            if first_boundary is None:
                first_boundary = tag
            releases.append(
                Release(
                    version=tag.name,
                    commit_id=commit.id,
                    timestamp=commit.timestamp,
                    commits=tuple(bucket),
                    previous=len(releases) - 1 if releases else None,
                )
            )
            bucket = []

        if bucket:
            releases.append(
                Release(
                    commits=tuple(bucket),
                    timestamp=bucket[-1].timestamp,
                    previous=len(releases) - 1 if releases else None,
                )
            )

        boundary = self._boundary(list(tags.values()), first_boundary)
        if boundary is None:
            return ReleaseChain(tuple(releases))

        # Boundary goes in front; every existing link shifts by one.
        shifted = [
            replace(r, previous=0 if r.previous is None else r.previous + 1) for r in releases
        ]
        return ReleaseChain((boundary, *shifted))

    def _boundary(self, ordered: list[TagRef], first: TagRef | None) -> Release | None:
        """Zero-commit release for the tag preceding the first boundary tag.

        Position is taken from the time-ordered tag list, not commit distance.
        Without any boundary tag the oldest known tag is used.
        """
        if first is None:
            candidate = ordered[0] if ordered else None
        else:
            position = next(i for i, ref in enumerate(ordered) if ref is first)
            candidate = ordered[position - 1] if position > 0 else None

        if candidate is None:
            return None
        return Release(
            version=candidate.name,
            commit_id=candidate.commit,
            timestamp=candidate.timestamp,
            synthetic=True,
        )

    def from_repository(self, repo: Repository) -> Result[ReleaseChain, GitError]:
        commits = repo.log()
        if isinstance(commits, Err):
            return commits
        refs = repo.tags()
        if isinstance(refs, Err):
            return refs
        return Ok(self.assemble(commits.value, refs.value))

    def build(self, repos: Sequence[Repository], output: Path) -> Result[str, GitError]:
        """Assemble and write the changelog; returns the written content.

        Over several repositories only the head version of each is listed.
        """
        chains: list[ReleaseChain] = []
        for repo in repos:
            chain = self.from_repository(repo)
            if isinstance(chain, Err):
                return chain
            chains.append(chain.value)

        if len(chains) > 1:
            versions = [c.head.version for c in chains if c.head and c.head.version]
            content = "\n".join(versions)
        else:
            chain = chains[0] if chains else ReleaseChain()
            content = render_changelog(chain, self.settings)

        try:
            replace_text(output, content)
        except OSError as e:
            return Err(GitError(command="changelog", message=f"failed to write {output}: {e}"))
        return Ok(content)
