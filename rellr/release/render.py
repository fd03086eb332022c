"""Markdown rendering of a release chain.

Releases are rendered newest first. Within a release, conventional commits
(``type(scope)!: description``) are grouped by category; everything else
lands under "Other". Release commits (a bare version as message) and merge
commits are left out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rellr.core.config import ChangelogSettings
from rellr.core.result import Ok
from rellr.core.version import parse_version
from rellr.git.repository import Commit

if TYPE_CHECKING:
    from .changelog import Release, ReleaseChain

__all__ = ["ConventionalCommit", "parse_conventional", "render_changelog", "render_release"]

_CONVENTIONAL_RE = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()]*)\))?(?P<breaking>!)?:\s+(?P<description>\S.*)$"
)
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

GROUPS: dict[str, str] = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "doc": "Documentation",
    "docs": "Documentation",
    "perf": "Performance",
    "refactor": "Refactor",
    "style": "Styling",
    "test": "Testing",
    "build": "Build",
    "ci": "CI",
    "chore": "Miscellaneous Tasks",
    "revert": "Reverts",
}
OTHER_GROUP = "Other"
_GROUP_ORDER = list(dict.fromkeys([*GROUPS.values(), OTHER_GROUP]))


@dataclass(frozen=True, slots=True)
class ConventionalCommit:
    type: str
    scope: str | None
    breaking: bool
    description: str

    @property
    def group(self) -> str:
        return GROUPS.get(self.type.lower(), OTHER_GROUP)


def parse_conventional(message: str) -> ConventionalCommit | None:
    """Parse the first line of ``message``; None if it is not conventional."""
    lines = message.strip().splitlines()
    if not lines:
        return None
    m = _CONVENTIONAL_RE.match(lines[0].strip())
    if m is None:
        return None
    scope = (m.group("scope") or "").strip() or None
    breaking = bool(m.group("breaking")) or _BREAKING_FOOTER_RE.search(message) is not None
    return ConventionalCommit(
        type=m.group("type"),
        scope=scope,
        breaking=breaking,
        description=m.group("description").strip(),
    )


def _is_noise(commit: Commit) -> bool:
    summary = commit.summary
    return summary.startswith("Merge ") or isinstance(parse_version(summary), Ok)


def _entry(commit: Commit) -> tuple[str, str]:
    parsed = parse_conventional(commit.message)
    if parsed is None:
        return OTHER_GROUP, f"- {commit.summary}"

    line = "- "
    if parsed.scope:
        line += f"*({parsed.scope})* "
    if parsed.breaking:
        line += "[**breaking**] "
    return parsed.group, line + parsed.description


def _title(release: Release) -> str:
    if release.version is None:
        return "## [unreleased]"
    version = release.version.removeprefix("v")
    date = datetime.fromtimestamp(release.timestamp, tz=UTC).strftime("%Y-%m-%d")
    return f"## [{version}] - {date}"


def render_release(release: Release) -> str | None:
    """Markdown section for one release, or None when nothing is worth listing."""
    grouped: dict[str, list[str]] = {}
    for commit in release.commits:
        if _is_noise(commit):
            continue
        group, line = _entry(commit)
        grouped.setdefault(group, []).append(line)

    if not grouped:
        return None

    out = [_title(release)]
    for group in _GROUP_ORDER:
        entries = grouped.get(group)
        if not entries:
            continue
        out.append("")
        out.append(f"### {group}")
        out.append("")
        out.extend(entries)
    return "\n".join(out)


def render_changelog(chain: ReleaseChain, settings: ChangelogSettings) -> str:
    sections = [settings.header.rstrip()]
    for release in chain.newest_first():
        if release.synthetic:
            continue
        if release.version is not None and settings.skip_tags:
            if re.search(settings.skip_tags, release.version):
                continue
        section = render_release(release)
        if section is not None:
            sections.append(section)
    return "\n\n".join(sections) + "\n"
