"""Release workflow service.

Sequences version state, branches, manifests, changelog and the release
commit for each CLI command. Steps run in a fixed order. Checks that can fail
run before the first mutation, and the staged version stays in ``rellr.json``
until the release commit is written, so re-running the command picks up from
the persisted state.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from rellr.core.config import (
    CHANGELOG_SETTINGS_FILE,
    CONFIG_FILE,
    ChangelogSettings,
    ProjectConfig,
    load_changelog_settings,
    load_config,
    save_config,
    to_path_str,
)
from rellr.core.result import Err, Ok, Result
from rellr.core.version import BranchScheme, BumpKind, VersionState, parse_version
from rellr.git.repository import Repository
from rellr.output.console import ConsoleProtocol

from .branches import BranchLifecycle
from .changelog import ChangelogAssembler
from .commit import CommitTagWriter
from .errors import ReleaseError, from_config, from_git, from_version
from .manifests import update_manifests
from .publish import publish_all


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    version: str
    commit: str
    files: tuple[str, ...]
    published: tuple[str, ...] = ()


class ReleaseService:
    """Release commands for the project rooted at ``root``.

    The configuration is passed in by value; methods that change it return
    the updated copy after persisting it.
    """

    def __init__(self, *, root: Path, console: ConsoleProtocol) -> None:
        self._root = root
        self._console = console
        self._repo = Repository(root)

    @property
    def config_path(self) -> Path:
        return self._root / CONFIG_FILE

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def load(self) -> Result[ProjectConfig, ReleaseError]:
        result = load_config(self.config_path)
        if isinstance(result, Err):
            return Err(from_config(result.error))
        return result

    def _save(self, config: ProjectConfig) -> Result[ProjectConfig, ReleaseError]:
        saved = save_config(config, self.config_path)
        if isinstance(saved, Err):
            return Err(ReleaseError(kind="io_failed", message=saved.error.message))
        return Ok(config)

    def init(self, name: str, version: str | None = None) -> Result[ProjectConfig, ReleaseError]:
        """Create ``rellr.json``; refuses to overwrite an existing one."""
        if self.config_path.exists():
            return Err(
                ReleaseError(
                    kind="already_initialized",
                    message=f"{CONFIG_FILE} already exists in {self._root}",
                )
            )

        current = "0.0.0"
        if version is not None:
            parsed = parse_version(version)
            if isinstance(parsed, Err):
                return Err(from_version(parsed.error))
            current = str(parsed.value)

        saved = self._save(ProjectConfig(name=name, current=current))
        if isinstance(saved, Err):
            return saved
        self._console.success(f"{CONFIG_FILE} was created ({name} {current})")
        return saved

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _require_repository(self) -> Result[None, ReleaseError]:
        if not self._repo.exists():
            return Err(
                ReleaseError(
                    kind="not_a_repository",
                    message=f"{self._root} is not a git repository",
                    hint="run: git init",
                )
            )
        return Ok(None)

    def _lifecycle(self, config: ProjectConfig, state: VersionState) -> BranchLifecycle:
        return BranchLifecycle(
            self._repo, state, main_branch=config.main_branch, console=self._console
        )

    def bump(self, config: ProjectConfig, kind: BumpKind) -> Result[ProjectConfig, ReleaseError]:
        """Stage the next version and switch to its branch.

        Bumping to the version already staged warns and re-uses the existing
        branch.
        """
        checked = self._require_repository()
        if isinstance(checked, Err):
            return checked

        state = config.version_state()
        bumped = state.bump(kind)
        if isinstance(bumped, Err):
            error = from_version(bumped.error)
            if not error.is_recoverable:
                return Err(error)
            self._console.warning(error.message)
        else:
            state = bumped.value

        lifecycle = self._lifecycle(config, state)
        ensured = lifecycle.ensure_branch()
        if isinstance(ensured, Err):
            return Err(from_git(ensured.error))
        checked_out = lifecycle.checkout(state.next)
        if isinstance(checked_out, Err):
            return Err(from_git(checked_out.error))

        # Saved after checkout: a forced checkout discards edits to tracked files.
        updated = self._save(config.with_versions(state))
        if isinstance(updated, Err):
            return updated
        self._console.success(f"next release: {state.next} (on {checked_out.value})")
        return updated

    def start_topic(
        self, config: ProjectConfig, name: str, scheme: BranchScheme
    ) -> Result[str, ReleaseError]:
        """Create and check out ``feature/<name>`` or ``hotfix/<name>``."""
        checked = self._require_repository()
        if isinstance(checked, Err):
            return checked

        state = config.version_state().with_scheme(scheme)
        result = self._lifecycle(config, state).start_topic(name)
        if isinstance(result, Err):
            return Err(from_git(result.error))
        self._console.success(f"switched to {result.value}")
        return result

    # -------------------------------------------------------------------------
    # Release
    # -------------------------------------------------------------------------

    def release(
        self,
        config: ProjectConfig,
        *,
        directory: Path | None = None,
        allow_merge_commit: bool = False,
        publish: bool = True,
    ) -> Result[ReleaseOutcome, ReleaseError]:
        """Merge the staged branch, promote, update files, commit+tag, publish.

        ``directory`` is where the package manifests live (default: root).
        Preconditions are checked before the merge. The promoted config is
        written just before the commit and restored if the commit fails, so a
        failed release can be re-run.
        """
        checked = self._require_repository()
        if isinstance(checked, Err):
            return checked

        state = config.version_state()
        promoted = state.promote()
        if isinstance(promoted, Err):
            return Err(from_version(promoted.error))
        version = promoted.value.current

        project_dir = (directory or self._root).resolve()
        try:
            prefix = project_dir.relative_to(self._root.resolve()).as_posix()
        except ValueError:
            return Err(
                ReleaseError(
                    kind="config_invalid",
                    message=f"{project_dir} is outside of {self._root}",
                )
            )

        settings = self._changelog_settings()
        if isinstance(settings, Err):
            return settings

        writer = CommitTagWriter(self._repo, version=version, console=self._console)
        unreleased = writer.check()
        if isinstance(unreleased, Err):
            return Err(from_git(unreleased.error))

        merged = self._lifecycle(config, state).merge(allow_merge_commit=allow_merge_commit)
        if isinstance(merged, Err):
            return Err(from_git(merged.error))

        # The forced checkout of main discards the staged rellr.json.
        restaged = self._save(config)
        if isinstance(restaged, Err):
            return restaged

        released = config.with_versions(promoted.value)
        manifests = update_manifests(
            root=project_dir, config=released, version=version, console=self._console
        )
        if isinstance(manifests, Err):
            return manifests

        changelog = self._write_changelog(released, [self._repo], settings.value)
        if isinstance(changelog, Err):
            return changelog

        saved = self._save(released)
        if isinstance(saved, Err):
            return saved

        files = (
            CONFIG_FILE,
            *(to_path_str(prefix, rel) for rel in manifests.value),
            released.changelog_path,
        )
        commit = writer.commit(files)
        if isinstance(commit, Err):
            restored = self._save(config)
            if isinstance(restored, Err):
                self._console.warning(f"could not restore {CONFIG_FILE}: {restored.error.message}")
            return Err(from_git(commit.error))
        self._console.success(f"released {version} ({writer.tag})")

        published: list[str] = []
        if publish:
            result = publish_all(
                root=project_dir,
                managers=released.package_managers,
                console=self._console,
            )
            if isinstance(result, Err):
                return result
            published = result.value

        return Ok(
            ReleaseOutcome(
                version=version,
                commit=commit.value,
                files=tuple(sorted(set(files))),
                published=tuple(published),
            )
        )

    def reset(self, config: ProjectConfig, version: str | None = None) -> Result[str, ReleaseError]:
        """Remove the release commit and tag for ``version`` (default: current)."""
        checked = self._require_repository()
        if isinstance(checked, Err):
            return checked

        target = version or config.current
        parsed = parse_version(target)
        if isinstance(parsed, Err):
            return Err(from_version(parsed.error))

        writer = CommitTagWriter(self._repo, version=str(parsed.value), console=self._console)
        result = writer.reset()
        if isinstance(result, Err):
            return Err(from_git(result.error))
        self._console.success(f"reset version {parsed.value}")
        return Ok(str(parsed.value))

    # -------------------------------------------------------------------------
    # Changelog
    # -------------------------------------------------------------------------

    def changelog(
        self, config: ProjectConfig, directories: Sequence[Path] = ()
    ) -> Result[str, ReleaseError]:
        """Regenerate the changelog for the root repository or the given ones."""
        repos = [Repository(d) for d in directories] or [self._repo]
        for repo in repos:
            if not repo.exists():
                return Err(
                    ReleaseError(
                        kind="not_a_repository",
                        message=f"{repo.path} is not a git repository",
                    )
                )
        settings = self._changelog_settings()
        if isinstance(settings, Err):
            return settings
        return self._write_changelog(config, repos, settings.value)

    def _changelog_settings(self) -> Result[ChangelogSettings, ReleaseError]:
        settings = load_changelog_settings(self._root / CHANGELOG_SETTINGS_FILE)
        if isinstance(settings, Err):
            return Err(from_config(settings.error))
        return settings

    def _write_changelog(
        self,
        config: ProjectConfig,
        repos: Sequence[Repository],
        settings: ChangelogSettings,
    ) -> Result[str, ReleaseError]:
        assembler = ChangelogAssembler(config.version_state(), settings, console=self._console)
        output = self._root / config.changelog_path
        result = assembler.build(repos, output)
        if isinstance(result, Err):
            return Err(from_git(result.error))
        self._console.print(f"wrote {config.changelog_path}")
        return result
