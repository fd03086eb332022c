"""Branch lifecycle against real git repositories."""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path

import pytest

from rellr.core.result import Err, Ok
from rellr.core.version import BranchScheme, VersionState
from rellr.git.repository import Repository
from rellr.output.console import MockConsole
from rellr.release.branches import BranchLifecycle


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


def _git_version() -> tuple[int, int]:
    if shutil.which("git") is None:
        return (0, 0)
    out = subprocess.run(["git", "--version"], capture_output=True, text=True, check=False).stdout
    m = re.search(r"(\d+)\.(\d+)", out)
    return (int(m.group(1)), int(m.group(2))) if m else (0, 0)


pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")
needs_merge_tree = pytest.mark.skipif(
    _git_version() < (2, 38), reason="git merge-tree --write-tree needs git >= 2.38"
)


def _commit(repo: Path, name: str, content: str, message: str) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    _git(repo, "add", name)
    _git(repo, "commit", "-q", "-m", message)
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    _git(tmp_path, "init", "-b", "main")
    _git(tmp_path, "config", "user.email", "test@example.com")
    _git(tmp_path, "config", "user.name", "Test")
    _git(tmp_path, "config", "commit.gpgsign", "false")
    _commit(tmp_path, "README.md", "hello\n", "init")
    return tmp_path


def _lifecycle(
    path: Path, state: VersionState, console: MockConsole | None = None
) -> BranchLifecycle:
    return BranchLifecycle(
        Repository(path), state, main_branch="main", console=console or MockConsole()
    )


def _branches(path: Path) -> list[str]:
    out = _git(path, "for-each-ref", "--format=%(refname:short)", "refs/heads")
    return sorted(out.splitlines())


def _refs(path: Path) -> str:
    return _git(path, "for-each-ref", "--format=%(refname) %(objectname)")


STAGED = VersionState(current="1.0.0", next="1.0.1")


class TestEnsureBranch:
    def test_creates_from_main(self, repo: Path) -> None:
        console = MockConsole()
        result = _lifecycle(repo, STAGED, console).ensure_branch()
        assert result == Ok("release/1.0.1")
        assert _branches(repo) == ["main", "release/1.0.1"]
        assert _git(repo, "rev-parse", "release/1.0.1") == _git(repo, "rev-parse", "main")
        assert console.find("git branch release/1.0.1 main")

    def test_second_call_changes_nothing(self, repo: Path) -> None:
        lifecycle = _lifecycle(repo, STAGED)
        lifecycle.ensure_branch()
        before = _refs(repo)

        console = MockConsole()
        assert _lifecycle(repo, STAGED, console).ensure_branch() == Ok("release/1.0.1")
        assert _refs(repo) == before
        assert console.outputs == []

    def test_rebump_renames_and_keeps_commits(self, repo: Path) -> None:
        first = VersionState(current="1.0.0").bump("patch").unwrap()
        assert first is not None
        _lifecycle(repo, first).ensure_branch()
        _git(repo, "checkout", "-q", "release/1.0.1")
        work = _commit(repo, "feature.txt", "x\n", "feat: thing")

        second = first.bump("minor").unwrap()
        assert second is not None
        result = _lifecycle(repo, second).ensure_branch()

        assert result == Ok("release/1.1.0")
        assert _branches(repo) == ["main", "release/1.1.0"]
        assert _git(repo, "rev-parse", "release/1.1.0") == work

    def test_nothing_staged(self, repo: Path) -> None:
        result = _lifecycle(repo, VersionState(current="1.0.0")).ensure_branch()
        assert isinstance(result, Err)
        assert result.error.kind == "release_not_set"
        assert _branches(repo) == ["main"]


class TestCheckout:
    def test_checkout_staged_branch(self, repo: Path) -> None:
        lifecycle = _lifecycle(repo, STAGED)
        lifecycle.ensure_branch()
        assert lifecycle.checkout("1.0.1") == Ok("release/1.0.1")
        assert _git(repo, "symbolic-ref", "--short", "HEAD") == "release/1.0.1"

    def test_missing_branch_falls_back_to_main(self, repo: Path) -> None:
        console = MockConsole()
        _git(repo, "checkout", "-q", "-b", "other")
        assert _lifecycle(repo, STAGED, console).checkout("9.9.9") == Ok("main")
        assert _git(repo, "symbolic-ref", "--short", "HEAD") == "main"
        assert console.has_warning()

    def test_discards_local_changes(self, repo: Path) -> None:
        (repo / "README.md").write_text("dirty\n", encoding="utf-8")
        assert _lifecycle(repo, STAGED).checkout(None) == Ok("main")
        assert (repo / "README.md").read_text(encoding="utf-8") == "hello\n"

    def test_start_topic(self, repo: Path) -> None:
        state = VersionState(current="1.0.0").with_scheme(BranchScheme.FEATURE)
        assert _lifecycle(repo, state).start_topic("login") == Ok("feature/login")
        assert _git(repo, "symbolic-ref", "--short", "HEAD") == "feature/login"
        # existing topic branch is re-used
        assert _lifecycle(repo, state).start_topic("login") == Ok("feature/login")


@needs_merge_tree
class TestMerge:
    def _stage(self, repo: Path) -> BranchLifecycle:
        lifecycle = _lifecycle(repo, STAGED)
        lifecycle.ensure_branch()
        lifecycle.checkout("1.0.1")
        return lifecycle

    def test_fast_forward(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        tip = _commit(repo, "feature.txt", "x\n", "feat: thing")

        result = lifecycle.merge()

        assert isinstance(result, Ok)
        assert result.value.kind == "fast_forward"
        assert _git(repo, "rev-parse", "main") == tip
        assert _branches(repo) == ["main"]
        assert _git(repo, "symbolic-ref", "--short", "HEAD") == "main"
        assert (repo / "feature.txt").exists()

    def test_up_to_date(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        main = _git(repo, "rev-parse", "main")

        result = lifecycle.merge()

        assert isinstance(result, Ok)
        assert result.value.kind == "up_to_date"
        assert _git(repo, "rev-parse", "main") == main

    def test_branch_already_merged_and_deleted(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        tip = _commit(repo, "feature.txt", "x\n", "feat: thing")
        assert isinstance(lifecycle.merge(), Ok)

        console = MockConsole()
        result = _lifecycle(repo, STAGED, console).merge()

        assert isinstance(result, Ok)
        assert result.value.kind == "up_to_date"
        assert result.value.main_commit == tip
        assert _git(repo, "rev-parse", "main") == tip
        assert console.find("release/1.0.1 not found")

    def test_conflict_leaves_everything_in_place(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        branch_tip = _commit(repo, "README.md", "from branch\n", "edit on branch")
        _git(repo, "checkout", "-q", "main")
        main_tip = _commit(repo, "README.md", "from main\n", "edit on main")

        result = lifecycle.merge()

        assert isinstance(result, Err)
        assert result.error.kind == "conflict"
        assert "README.md" in result.error.message
        assert result.error.hint
        assert _git(repo, "rev-parse", "main") == main_tip
        assert _git(repo, "rev-parse", "release/1.0.1") == branch_tip
        assert _git(repo, "status", "--porcelain") == ""

    def test_divergence_is_escalated(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        _commit(repo, "feature.txt", "x\n", "feat: thing")
        _git(repo, "checkout", "-q", "main")
        main_tip = _commit(repo, "other.txt", "y\n", "fix: other")

        classified = lifecycle.classify_merge()
        assert isinstance(classified, Ok)
        assert classified.value.kind == "normal"

        result = lifecycle.merge()
        assert isinstance(result, Err)
        assert result.error.kind == "merge_required"
        assert _git(repo, "rev-parse", "main") == main_tip
        assert "release/1.0.1" in _branches(repo)

    def test_merge_commit_when_allowed(self, repo: Path) -> None:
        lifecycle = self._stage(repo)
        branch_tip = _commit(repo, "feature.txt", "x\n", "feat: thing")
        _git(repo, "checkout", "-q", "main")
        main_tip = _commit(repo, "other.txt", "y\n", "fix: other")

        result = lifecycle.merge(allow_merge_commit=True)

        assert isinstance(result, Ok)
        assert result.value.kind == "normal"
        parents = _git(repo, "rev-list", "--parents", "-n", "1", "main").split()[1:]
        assert parents == [main_tip, branch_tip]
        assert _git(repo, "log", "-1", "--format=%s", "main") == "Merge branch 'release/1.0.1'"
        assert (repo / "feature.txt").exists()
        assert (repo / "other.txt").exists()
        assert _branches(repo) == ["main"]

    def test_nothing_staged(self, repo: Path) -> None:
        result = _lifecycle(repo, VersionState(current="1.0.0")).merge()
        assert isinstance(result, Err)
        assert result.error.kind == "release_not_set"
