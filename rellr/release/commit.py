"""Atomic release commit + annotated tag.

Staging happens in a private copy of the index. The commit and tag objects are
written before any ref moves, and the branch is advanced with a
compare-and-swap ``update-ref``. Only then is the private index swapped in, so
a failure at any step leaves HEAD, the branch and the real index as they were.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path

from rellr.core.result import Err, Ok, Result
from rellr.core.version import tag_name
from rellr.git.repository import GitError, Repository
from rellr.output.console import ConsoleProtocol, Style

__all__ = ["CommitTagWriter"]


class CommitTagWriter:
    """Commits a set of paths as ``version`` and tags it ``v{version}``."""

    def __init__(self, repo: Repository, *, version: str, console: ConsoleProtocol) -> None:
        self.repo = repo
        self.version = version
        self.console = console

    @property
    def tag(self) -> str:
        return tag_name(self.version)

    def check(self) -> Result[None, GitError]:
        """Fail with ``tag_exists`` when the version was already released."""
        if self.repo.tag_exists(self.tag):
            return Err(
                GitError(
                    command="tag",
                    message=f"tag '{self.tag}' already exists",
                    kind="tag_exists",
                    hint=f"run `rellr reset {self.version}` to undo the previous release",
                )
            )
        return Ok(None)

    def commit(self, paths: Sequence[str]) -> Result[str, GitError]:
        """Stage ``paths``, commit and tag. Returns the new commit id.

        Fails with ``tag_exists`` (nothing written) when the tag is already
        there, so a second call for the same version is rejected.
        """
        checked = self.check()
        if isinstance(checked, Err):
            return checked

        index = self.repo.index_path()
        if isinstance(index, Err):
            return index

        head = self.repo.rev_parse("HEAD")
        parent = head.value if isinstance(head, Ok) else None
        branch = self.repo.current_branch()
        ref = f"refs/heads/{branch}" if branch else "HEAD"

        staged = sorted(set(paths))
        self.console.print(f"git add -- {' '.join(staged)}", Style.DIM)
        self.console.print(f"git commit -m {self.version}", Style.DIM)
        self.console.print(f"git tag -a {self.tag} -m {self.version}", Style.DIM)

        scratch = _scratch_index(index.value)
        try:
            return self._write(staged, scratch, index.value, parent, ref)
        finally:
            scratch.unlink(missing_ok=True)

    def _write(
        self,
        paths: list[str],
        scratch: Path,
        index: Path,
        parent: str | None,
        ref: str,
    ) -> Result[str, GitError]:
        added = self.repo.add(paths, index_file=scratch)
        if isinstance(added, Err):
            return added

        tree = self.repo.write_tree(index_file=scratch)
        if isinstance(tree, Err):
            return tree

        identity = self.repo.identity()
        commit = self.repo.commit_tree(
            tree.value,
            parents=[parent] if parent else [],
            message=self.version,
            identity=identity,
        )
        if isinstance(commit, Err):
            return commit

        tagged = self.repo.create_tag(
            self.tag, commit.value, message=self.version, identity=identity
        )
        if isinstance(tagged, Err):
            return tagged

        # "" as the old value means the ref must not exist yet (unborn branch)
        moved = self.repo.update_ref(ref, commit.value, parent or "")
        if isinstance(moved, Err):
            self.repo.delete_tag(self.tag)
            return moved

        os.replace(scratch, index)
        return Ok(commit.value)

    def reset(self) -> Result[str, GitError]:
        """Undo the release commit for ``version``: drop its tag and hard-reset to its parent.

        Refuses when the tag is not on HEAD, so older releases are never rewritten.
        """
        tagged = self.repo.rev_parse(self.tag)
        if isinstance(tagged, Err):
            return tagged
        head = self.repo.rev_parse("HEAD")
        if isinstance(head, Err):
            return head
        if tagged.value != head.value:
            return Err(
                GitError(
                    command="reset",
                    message=f"{self.tag} is not the last commit, refusing to reset",
                    kind="failed",
                )
            )

        self.console.print(f"git tag -d {self.tag}", Style.DIM)
        deleted = self.repo.delete_tag(self.tag)
        if isinstance(deleted, Err):
            return deleted

        self.console.print("git reset --hard HEAD~", Style.DIM)
        reset = self.repo.reset_hard("HEAD~")
        if isinstance(reset, Err):
            return reset
        return Ok(head.value)


def _scratch_index(index: Path) -> Path:
    """Private copy of the index next to the real one (missing index: empty)."""
    fd, name = tempfile.mkstemp(prefix="rellr-index.", dir=str(index.parent))
    os.close(fd)
    scratch = Path(name)
    if index.exists():
        shutil.copy2(index, scratch)
    else:
        # git rejects a zero-byte index but accepts a missing one
        scratch.unlink()
    return scratch
