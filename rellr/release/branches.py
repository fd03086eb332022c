"""Branch lifecycle for staged versions.

A release moves through three states:

- Stable: nothing staged, work tree on the main branch.
- Staged: ``{scheme}/{next}`` exists (created from main, or renamed from the
  previously staged version's branch so its commits are kept).
- Merging: the staged branch is being merged back into main. Fast-forwards
  are applied directly; genuine divergence is escalated unless a merge commit
  is explicitly allowed; conflicts are never auto-resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from rellr.core.result import Err, Ok, Result
from rellr.core.version import VersionState
from rellr.git.repository import GitError, Repository
from rellr.output.console import ConsoleProtocol, Style

__all__ = ["BranchLifecycle", "MergeAnalysis", "MergeKind"]

MergeKind = Literal["up_to_date", "fast_forward", "normal", "conflicted"]


@dataclass(frozen=True, slots=True)
class MergeAnalysis:
    """How the staged branch relates to main."""

    kind: MergeKind
    branch: str
    main_commit: str
    branch_commit: str
    tree: str | None = None
    conflicts: tuple[str, ...] = ()


class BranchLifecycle:
    """Creates, renames, checks out and merges the branch of the staged version."""

    def __init__(
        self,
        repo: Repository,
        state: VersionState,
        *,
        main_branch: str,
        console: ConsoleProtocol,
    ) -> None:
        self.repo = repo
        self.state = state
        self.main_branch = main_branch
        self.console = console

    def _staged_branch(self) -> Result[str, GitError]:
        branch = self.state.next_branch
        if branch is None:
            return Err(
                GitError(
                    command="branch",
                    message="the release version has not been set yet",
                    kind="release_not_set",
                    hint="run: rellr bump [patch|minor|major]",
                )
            )
        return Ok(branch)

    def ensure_branch(self) -> Result[str, GitError]:
        """Make sure the staged version has a branch; return its name.

        A branch left by the previously staged version is renamed in place so
        its commits survive a re-bump. Calling this again with the same state
        changes nothing.
        """
        staged = self._staged_branch()
        if isinstance(staged, Err):
            return staged
        branch = staged.value

        previous = self.state.prev_branch
        if previous is not None and previous != branch and self.repo.branch_exists(previous):
            self.console.print(f"git branch -m {previous} {branch}", Style.DIM)
            renamed = self.repo.rename_branch(previous, branch)
            if isinstance(renamed, Err):
                return renamed
            return Ok(branch)

        if self.repo.branch_exists(branch):
            return Ok(branch)

        return self._create_from_main(branch)

    def start_topic(self, name: str) -> Result[str, GitError]:
        """Create ``{scheme}/{name}`` from main if needed and check it out."""
        branch = self.state.branch_name(name)
        if not self.repo.branch_exists(branch):
            created = self._create_from_main(branch)
            if isinstance(created, Err):
                return created
        return self.checkout(name)

    def checkout(self, name: str | None) -> Result[str, GitError]:
        """Force-checkout the branch for ``name``, or main when ``name`` is None.

        A missing branch falls back to main. Uncommitted changes to tracked
        files are discarded. Returns the branch that was checked out.
        """
        target = self.main_branch
        if name is not None:
            candidate = self.state.branch_name(name)
            if self.repo.branch_exists(candidate):
                target = candidate
            else:
                self.console.warning(f"branch {candidate} not found, using {self.main_branch}")

        self.console.print(f"git checkout --force {target}", Style.DIM)
        result = self.repo.checkout(target, force=True)
        if isinstance(result, Err):
            return result
        return Ok(target)

    def classify_merge(self) -> Result[MergeAnalysis, GitError]:
        """Analyze merging the staged branch into main without changing anything."""
        staged = self._staged_branch()
        if isinstance(staged, Err):
            return staged
        branch = staged.value

        main_commit = self.repo.rev_parse(self.main_branch)
        if isinstance(main_commit, Err):
            return main_commit
        branch_commit = self.repo.rev_parse(branch)
        if isinstance(branch_commit, Err):
            return branch_commit

        ours, theirs = main_commit.value, branch_commit.value
        base = MergeAnalysis("up_to_date", branch, ours, theirs)
        if ours == theirs:
            return Ok(base)

        merged = self.repo.is_ancestor(theirs, ours)
        if isinstance(merged, Err):
            return merged
        if merged.value:
            return Ok(base)

        behind = self.repo.is_ancestor(ours, theirs)
        if isinstance(behind, Err):
            return behind
        if behind.value:
            return Ok(replace(base, kind="fast_forward"))

        tree = self.repo.merge_tree(ours, theirs)
        if isinstance(tree, Err):
            return tree
        if not tree.value.is_clean:
            conflicted = replace(
                base, kind="conflicted", tree=tree.value.tree, conflicts=tree.value.conflicts
            )
            return Ok(conflicted)
        return Ok(replace(base, kind="normal", tree=tree.value.tree))

    def merge(self, *, allow_merge_commit: bool = False) -> Result[MergeAnalysis, GitError]:
        """Merge the staged branch into main and delete it.

        - up to date: nothing to do
        - fast-forward: main moves to the branch tip
        - normal: escalated (main untouched) unless ``allow_merge_commit``
        - conflicted: always an error, nothing applied
        - branch missing: treated as up to date
        """
        staged = self._staged_branch()
        if isinstance(staged, Err):
            return staged
        branch = staged.value

        checked_out = self.checkout(None)
        if isinstance(checked_out, Err):
            return checked_out

        if not self.repo.branch_exists(branch):
            # Already merged and deleted by an interrupted release.
            self.console.info(f"{branch} not found, releasing {self.main_branch} as it is")
            main_commit = self.repo.rev_parse(self.main_branch)
            if isinstance(main_commit, Err):
                return main_commit
            return Ok(MergeAnalysis("up_to_date", branch, main_commit.value, main_commit.value))

        classified = self.classify_merge()
        if isinstance(classified, Err):
            return classified
        analysis = classified.value
        main_ref = f"refs/heads/{self.main_branch}"

        match analysis.kind:
            case "up_to_date":
                self.console.info(f"{self.main_branch} is already up to date with {branch}")
                return Ok(analysis)
            case "conflicted":
                files = ", ".join(analysis.conflicts) or "unknown files"
                return Err(
                    GitError(
                        command="merge",
                        message=f"merging {branch} into {self.main_branch} conflicts: {files}",
                        kind="conflict",
                        hint=f"resolve manually: git merge {branch}, then re-run rellr release",
                    )
                )
            case "normal" if not allow_merge_commit:
                return Err(
                    GitError(
                        command="merge",
                        message=f"{branch} and {self.main_branch} have diverged",
                        kind="merge_required",
                        hint=f"run `git merge {branch}` yourself or re-run with --merge-commit",
                    )
                )
            case "normal":
                self.console.print(f"git merge --no-ff {branch}", Style.DIM)
                assert analysis.tree is not None
                commit = self.repo.commit_tree(
                    analysis.tree,
                    parents=[analysis.main_commit, analysis.branch_commit],
                    message=f"Merge branch '{branch}'",
                    identity=self.repo.identity(),
                )
                if isinstance(commit, Err):
                    return commit
                target = commit.value
            case "fast_forward":
                self.console.print(f"git merge --ff-only {branch}", Style.DIM)
                target = analysis.branch_commit

        moved = self.repo.update_ref(main_ref, target, analysis.main_commit)
        if isinstance(moved, Err):
            return moved
        synced = self.repo.reset_hard(target)
        if isinstance(synced, Err):
            return synced

        self.console.print(f"git branch -d {branch}", Style.DIM)
        deleted = self.repo.delete_branch(branch)
        if isinstance(deleted, Err):
            return deleted
        return Ok(analysis)

    def _create_from_main(self, branch: str) -> Result[str, GitError]:
        main_commit = self.repo.rev_parse(self.main_branch)
        if isinstance(main_commit, Err):
            return main_commit
        self.console.print(f"git branch {branch} {self.main_branch}", Style.DIM)
        created = self.repo.create_branch(branch, main_commit.value)
        if isinstance(created, Err):
            return created
        return Ok(branch)
