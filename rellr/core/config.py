"""Typed project configuration.

``rellr.json`` holds the project name, the released/staged versions, the main
branch and the package managers whose manifests carry the version. It is
loaded once per command and passed around by value.

``cliff.toml`` (optional) tunes changelog assembly; a missing file means the
built-in defaults.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from rellr.platform.files import atomic_write_text

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_list, get_str, get_table
from .version import VersionState, parse_version

__all__ = [
    "CHANGELOG_SETTINGS_FILE",
    "CONFIG_FILE",
    "DEFAULT_CHANGELOG",
    "DEFAULT_MAIN_BRANCH",
    "ChangelogSettings",
    "ConfigError",
    "PackageManager",
    "ProjectConfig",
    "load_changelog_settings",
    "load_config",
    "save_config",
]

CONFIG_FILE = "rellr.json"
CHANGELOG_SETTINGS_FILE = "cliff.toml"
DEFAULT_CHANGELOG = "CHANGELOG.md"
DEFAULT_MAIN_BRANCH = "main"
DEFAULT_TAG_PATTERN = r"v[0-9].*"
DEFAULT_HEADER = (
    "# Changelog\n\nAll notable changes to this project will be documented in this file.\n"
)

PackageManagerKind = Literal["cargo", "npm"]

_LEADING_DOT_SLASH = re.compile(r"^(\.?/)+")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded, parsed or written."""

    message: str
    path: Path | None = None
    missing: bool = False


def to_path_str(*parts: str) -> str:
    """Join path parts with '/' and drop leading './' or '/' segments."""
    joined = "/".join(parts).replace("\\", "/")
    return _LEADING_DOT_SLASH.sub("", joined)


@dataclass(frozen=True, slots=True)
class PackageManager:
    """A package manager whose manifests carry the project version."""

    kind: PackageManagerKind
    path: str = ""
    publish: bool = False

    @property
    def files(self) -> tuple[str, ...]:
        match self.kind:
            case "cargo":
                return ("Cargo.toml", "Cargo.lock")
            case "npm":
                return ("package.json",)

    def manifest_paths(self) -> list[str]:
        return [to_path_str(self.path, name) for name in self.files]

    def to_dict(self) -> StrDict:
        return {"type": self.kind, "path": self.path, "publish": self.publish}

    @classmethod
    def from_dict(cls, kind: str, data: Mapping[str, object]) -> PackageManager:
        if kind not in ("cargo", "npm"):
            raise ValueError(f"unknown package manager: {kind}")
        return cls(
            kind=kind,  # type: ignore[arg-type]
            path=get_str(data, "path") or "",
            publish=bool(get_bool(data, "publish")),
        )


def _parse_package_managers(data: Mapping[str, object]) -> tuple[PackageManager, ...]:
    # List form: [{"type": "npm", ...}]; object form: {"npm": {...}}
    items = get_list(data, "package_managers")
    if items is not None:
        managers: list[PackageManager] = []
        for item in items:
            entry = as_str_dict(item)
            if entry is None:
                raise ValueError("package_managers entries must be objects")
            managers.append(PackageManager.from_dict(get_str(entry, "type") or "", entry))
        return tuple(managers)

    table = get_table(data, "package_managers")
    if table is None:
        return ()
    return tuple(
        PackageManager.from_dict(kind, as_str_dict(entry) or {})
        for kind, entry in table.items()
        if entry is not None
    )


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Persisted project state (``rellr.json``)."""

    name: str
    current: str = "0.0.0"
    next: str | None = None
    main_branch: str = DEFAULT_MAIN_BRANCH
    changelog: str | None = None
    package_managers: tuple[PackageManager, ...] = field(default_factory=tuple)

    @property
    def changelog_path(self) -> str:
        return self.changelog or DEFAULT_CHANGELOG

    def version_state(self) -> VersionState:
        return VersionState(current=self.current, next=self.next)

    def with_versions(self, state: VersionState) -> ProjectConfig:
        """Copy with current/next taken from ``state`` (prev is never persisted)."""
        return replace(self, current=state.current, next=state.next)

    def manifest_paths(self) -> list[str]:
        paths: list[str] = []
        for manager in self.package_managers:
            paths.extend(manager.manifest_paths())
        return paths

    def to_dict(self) -> StrDict:
        data: StrDict = {"name": self.name, "current": self.current}
        if self.next is not None:
            data["next"] = self.next
        data["main_branch"] = self.main_branch
        if self.changelog is not None:
            data["changelog"] = self.changelog
        if self.package_managers:
            data["package_managers"] = [pm.to_dict() for pm in self.package_managers]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ProjectConfig:
        """Build from parsed JSON. Raises ValueError on invalid content."""
        name = get_str(data, "name")
        if name is None:
            raise ValueError("missing 'name'")

        current = get_str(data, "current")
        if current is None:
            raise ValueError("missing 'current'")
        next_version = get_str(data, "next")

        for version in (current, next_version):
            if version is not None and isinstance(parsed := parse_version(version), Err):
                raise ValueError(parsed.error.message)
        if next_version is not None and next_version == current:
            raise ValueError(f"'next' must differ from 'current' ({current})")

        return cls(
            name=name,
            current=current,
            next=next_version,
            main_branch=get_str(data, "main_branch") or DEFAULT_MAIN_BRANCH,
            changelog=get_str(data, "changelog"),
            package_managers=_parse_package_managers(data),
        )


def load_config(path: Path) -> Result[ProjectConfig, ConfigError]:
    """Load and validate ``rellr.json``.

    Returns:
        Ok(ProjectConfig) on success, Err(ConfigError) on failure
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path, missing=True))
    except OSError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    try:
        data = as_str_dict(json.loads(raw))
    except json.JSONDecodeError as e:
        return Err(ConfigError(f"Invalid JSON: {e}", path=path))
    if data is None:
        return Err(ConfigError("Config root must be a JSON object", path=path))

    try:
        return Ok(ProjectConfig.from_dict(data))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def save_config(config: ProjectConfig, path: Path) -> Result[None, ConfigError]:
    content = json.dumps(config.to_dict(), indent=2) + "\n"
    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(ConfigError(f"Error writing config: {e}", path=path))
    return Ok(None)


@dataclass(frozen=True, slots=True)
class ChangelogSettings:
    """Changelog assembly settings (``[git]`` / ``[changelog]`` in cliff.toml)."""

    tag_pattern: str = DEFAULT_TAG_PATTERN
    skip_tags: str | None = None
    ignore_tags: str | None = None
    limit_commits: int | None = None
    header: str = DEFAULT_HEADER

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ChangelogSettings:
        git: StrDict = get_table(data, "git") or {}
        changelog: StrDict = get_table(data, "changelog") or {}

        limit = get_int(git, "limit_commits")
        if limit is not None and limit < 0:
            raise ValueError("limit_commits must be >= 0")

        settings = cls(
            tag_pattern=get_str(git, "tag_pattern") or DEFAULT_TAG_PATTERN,
            skip_tags=get_str(git, "skip_tags"),
            ignore_tags=get_str(git, "ignore_tags"),
            limit_commits=limit,
            header=get_str(changelog, "header") or DEFAULT_HEADER,
        )
        for pattern in (settings.tag_pattern, settings.skip_tags, settings.ignore_tags):
            if pattern is not None:
                re.compile(pattern)
        return settings


def load_changelog_settings(path: Path) -> Result[ChangelogSettings, ConfigError]:
    """Load cliff.toml, or the defaults when the file does not exist."""
    import tomllib

    if not path.exists():
        return Ok(ChangelogSettings())

    try:
        data = as_str_dict(tomllib.loads(path.read_text(encoding="utf-8")))
    except OSError as e:
        return Err(ConfigError(f"Error reading changelog settings: {e}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    if data is None:
        return Err(ConfigError("Settings root must be a TOML table", path=path))

    try:
        return Ok(ChangelogSettings.from_dict(data))
    except (re.error, ValueError) as e:
        return Err(ConfigError(f"Invalid changelog settings: {e}", path=path))
