"""Git repository abstraction.

``Repository`` wraps the ``git`` executable for a single working tree. Every
method that can fail returns a Result so the release services can decide what
is fatal.

Usage:
    repo = Repository(Path("."))

    match repo.rev_parse("main"):
        case Ok(sha):
            print(f"main is at {sha[:8]}")
        case Err(e):
            print(f"error: {e.message}")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from rellr.core.result import Err, Ok, Result
from rellr.core.version import parse_version
from rellr.platform.process import ProcessError
from rellr.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

# Field/record separators for machine-readable log output.
_FS = "\x1f"
_RS = "\x1e"

__all__ = [
    "Commit",
    "GitError",
    "GitErrorKind",
    "MergeTree",
    "Repository",
    "TagRef",
]

GitErrorKind = Literal[
    "failed",
    "not_found",
    "conflict",
    "merge_required",
    "tag_exists",
    "release_not_set",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git sub-command that failed (e.g. "merge-tree")
        message: Error message
        returncode: Process return code
        kind: Category used to pick the exit code and hint
    """

    command: str
    message: str
    returncode: int = 1
    kind: GitErrorKind = "failed"
    hint: str | None = None

    @classmethod
    def from_process(cls, command: str, error: ProcessError, fallback: str) -> GitError:
        return cls(
            command=command,
            message=error.stderr.strip() or error.stdout.strip() or fallback,
            returncode=error.returncode,
        )


@dataclass(frozen=True, slots=True)
class Commit:
    """Read-only projection of a git commit."""

    id: str
    message: str
    author: str
    timestamp: int

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def summary(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


@dataclass(frozen=True, slots=True)
class TagRef:
    """A tag and the commit it points at (annotated tags are peeled)."""

    name: str
    commit: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class MergeTree:
    """Outcome of an in-memory merge (``git merge-tree --write-tree``)."""

    tree: str
    conflicts: tuple[str, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.conflicts


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the working tree root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git working tree (``.git`` dir or file)."""
        return (self.path / ".git").exists()

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def current_branch(self) -> str | None:
        """Current branch name, None on detached HEAD or error."""
        result = self._run(["symbolic-ref", "--quiet", "--short", "HEAD"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve ``ref`` to a commit id."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="rev-parse",
                        message=f"reference not found: {ref}",
                        returncode=e.returncode,
                        kind="not_found",
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def branch_exists(self, name: str) -> bool:
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{name}"])
        return isinstance(result, Ok)

    def create_branch(self, name: str, start: str) -> Result[None, GitError]:
        return self._simple(["branch", name, start], "failed to create branch")

    def rename_branch(self, old: str, new: str) -> Result[None, GitError]:
        return self._simple(["branch", "-m", old, new], "failed to rename branch")

    def delete_branch(self, name: str) -> Result[None, GitError]:
        """Delete a branch that is already merged into HEAD."""
        return self._simple(["branch", "-d", name], "failed to delete branch")

    def checkout(self, name: str, *, force: bool = False) -> Result[None, GitError]:
        """Point HEAD at branch ``name`` and update the work tree.

        With ``force``, local modifications to tracked files are discarded.
        """
        args = ["checkout", "--quiet"]
        if force:
            args.append("--force")
        return self._simple([*args, name], "checkout failed")

    def update_ref(self, ref: str, new: str, old: str | None = None) -> Result[None, GitError]:
        """Move ``ref`` to ``new``; when ``old`` is given, only if it still points there."""
        args = ["update-ref", ref, new]
        if old is not None:
            args.append(old)
        return self._simple(args, "failed to update ref")

    def reset_hard(self, ref: str) -> Result[None, GitError]:
        return self._simple(["reset", "--quiet", "--hard", ref], "reset failed")

    # ------------------------------------------------------------------
    # Ancestry / merge analysis
    # ------------------------------------------------------------------

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(GitError.from_process("merge-base", e, "merge-base failed"))

    def merge_tree(self, ours: str, theirs: str) -> Result[MergeTree, GitError]:
        """Compute the merge of two commits without touching index or work tree.

        Requires git >= 2.38. Exit code 1 means the merge has conflicts.
        """
        result = self._run(
            ["merge-tree", "--write-tree", "--name-only", "--no-messages", ours, theirs]
        )
        match result:
            case Ok(stdout):
                lines = stdout.splitlines()
                return Ok(MergeTree(tree=lines[0].strip() if lines else ""))
            case Err(e) if e.returncode == 1:
                lines = [ln.strip() for ln in e.stdout.splitlines() if ln.strip()]
                tree = lines[0] if lines else ""
                conflicts = tuple(dict.fromkeys(lines[1:]))
                return Ok(MergeTree(tree=tree, conflicts=conflicts))
            case Err(e):
                return Err(GitError.from_process("merge-tree", e, "merge-tree failed"))

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def index_path(self) -> Result[Path, GitError]:
        result = self._run(["rev-parse", "--git-path", "index"])
        match result:
            case Err(e):
                return Err(GitError.from_process("rev-parse", e, "cannot locate index"))
            case Ok(stdout):
                path = Path(stdout.strip())
                return Ok(path if path.is_absolute() else self.path / path)

    def add(
        self, paths: Sequence[str], *, index_file: Path | None = None
    ) -> Result[None, GitError]:
        """Stage ``paths`` (into ``index_file`` instead of the real index when given)."""
        if not paths:
            return Ok(None)
        env = {"GIT_INDEX_FILE": str(index_file)} if index_file is not None else None
        return self._simple(["add", "--", *paths], "failed to stage files", env=env)

    def write_tree(self, *, index_file: Path | None = None) -> Result[str, GitError]:
        env = {"GIT_INDEX_FILE": str(index_file)} if index_file is not None else None
        result = self._run(["write-tree"], env=env)
        match result:
            case Err(e):
                return Err(GitError.from_process("write-tree", e, "failed to write tree"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def commit_tree(
        self,
        tree: str,
        *,
        parents: Sequence[str],
        message: str,
        identity: Mapping[str, str] | None = None,
    ) -> Result[str, GitError]:
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        args += ["-m", message]
        result = self._run(args, env=identity)
        match result:
            case Err(e):
                return Err(GitError.from_process("commit-tree", e, "failed to create commit"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def config_get(self, key: str) -> str | None:
        result = self._run(["config", "--get", key])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def identity(self) -> dict[str, str]:
        """Author/committer environment from ``user.name``/``user.email``.

        Unset values are left out so git applies its own defaults.
        """
        name = self.config_get("user.name") or ""
        email = self.config_get("user.email") or ""
        env: dict[str, str] = {}
        if name:
            env["GIT_AUTHOR_NAME"] = env["GIT_COMMITTER_NAME"] = name
        if email:
            env["GIT_AUTHOR_EMAIL"] = env["GIT_COMMITTER_EMAIL"] = email
        return env

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def tag_exists(self, name: str) -> bool:
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/tags/{name}"])
        return isinstance(result, Ok)

    def create_tag(
        self,
        name: str,
        target: str,
        *,
        message: str,
        identity: Mapping[str, str] | None = None,
    ) -> Result[None, GitError]:
        """Create annotated tag ``name`` on ``target``."""
        if self.tag_exists(name):
            return Err(
                GitError(command="tag", message=f"tag '{name}' already exists", kind="tag_exists")
            )
        return self._simple(
            ["tag", "--annotate", name, target, "-m", message],
            "failed to create tag",
            env=identity,
        )

    def delete_tag(self, name: str) -> Result[None, GitError]:
        return self._simple(["tag", "--delete", name], "failed to delete tag")

    def tags(self) -> Result[list[TagRef], GitError]:
        """All tags with the commit they point at, ordered by commit time."""
        fmt = _FS.join(
            [
                "%(refname:strip=2)",
                "%(objectname)",
                "%(*objectname)",
                "%(committerdate:unix)",
                "%(*committerdate:unix)",
            ]
        )
        result = self._run(["for-each-ref", f"--format={fmt}", "refs/tags"])
        if isinstance(result, Err):
            return Err(GitError.from_process("for-each-ref", result.error, "failed to list tags"))

        refs: list[TagRef] = []
        for line in result.value.splitlines():
            if not line.strip():
                continue
            name, obj, peeled, date, peeled_date = (line.split(_FS) + [""] * 5)[:5]
            commit = peeled or obj
            stamp = peeled_date or date
            refs.append(TagRef(name=name, commit=commit, timestamp=int(stamp) if stamp else 0))

        refs.sort(key=_tag_order)
        return Ok(refs)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def log(self, ref: str = "HEAD") -> Result[list[Commit], GitError]:
        """Commits reachable from ``ref``, newest first.

        An unborn branch yields an empty history.
        """
        if isinstance(self.rev_parse(ref), Err):
            return Ok([])

        fmt = _FS.join(["%H", "%an", "%ct", "%B"]) + _RS
        result = self._run(["log", "--topo-order", f"--format={fmt}", ref])
        if isinstance(result, Err):
            return Err(GitError.from_process("log", result.error, "failed to read history"))

        commits: list[Commit] = []
        for record in result.value.split(_RS):
            record = record.lstrip("\n")
            if not record:
                continue
            sha, author, stamp, message = (record.split(_FS, 3) + [""] * 4)[:4]
            commits.append(
                Commit(id=sha, message=message.rstrip("\n"), author=author, timestamp=int(stamp))
            )
        return Ok(commits)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _simple(
        self,
        args: list[str],
        fallback: str,
        *,
        env: Mapping[str, str] | None = None,
    ) -> Result[None, GitError]:
        result = self._run(args, env=env)
        match result:
            case Err(e):
                return Err(GitError.from_process(args[0], e, fallback))
            case Ok(_):
                return Ok(None)

    def _run(
        self,
        args: list[str],
        *,
        env: Mapping[str, str] | None = None,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            env=env,
            timeout=_GIT_TIMEOUT_SECONDS,
        )


def _tag_order(tag: TagRef) -> tuple[int, tuple[int, ...], str]:
    # Same-second tags fall back to version order, then name.
    parsed = parse_version(tag.name.removeprefix("v"))
    if isinstance(parsed, Err):
        return (tag.timestamp, (), tag.name)
    version = parsed.value
    return (tag.timestamp, (version.major, version.minor, version.patch), tag.name)
