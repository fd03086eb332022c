"""Tests for rellr.core.config module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from rellr.core.config import (
    DEFAULT_TAG_PATTERN,
    ChangelogSettings,
    PackageManager,
    ProjectConfig,
    load_changelog_settings,
    load_config,
    save_config,
    to_path_str,
)
from rellr.core.result import Err, Ok
from rellr.core.version import VersionState


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestPackageManager:
    def test_cargo_files(self) -> None:
        pm = PackageManager(kind="cargo", path="crates/core")
        assert pm.manifest_paths() == ["crates/core/Cargo.toml", "crates/core/Cargo.lock"]

    def test_npm_files_at_root(self) -> None:
        assert PackageManager(kind="npm").manifest_paths() == ["package.json"]

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="unknown package manager"):
            PackageManager.from_dict("pip", {})

    @pytest.mark.parametrize(
        ("parts", "expected"),
        [
            (("", "Cargo.toml"), "Cargo.toml"),
            (("./npm", "package.json"), "npm/package.json"),
            (("/abs", "x"), "abs/x"),
            (("a\\b", "c"), "a/b/c"),
        ],
    )
    def test_to_path_str(self, parts: tuple[str, ...], expected: str) -> None:
        assert to_path_str(*parts) == expected


class TestLoadConfig:
    def test_minimal(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "rellr.json", {"name": "demo", "current": "0.1.0"})
        result = load_config(path)
        assert result == Ok(ProjectConfig(name="demo", current="0.1.0"))

    def test_full(self, tmp_path: Path) -> None:
        data = {
            "name": "demo",
            "current": "1.0.0",
            "next": "1.1.0",
            "main_branch": "master",
            "changelog": "docs/CHANGES.md",
            "package_managers": [
                {"type": "cargo", "path": "", "publish": True},
                {"type": "npm", "path": "npm"},
            ],
        }
        config = load_config(_write(tmp_path / "rellr.json", data)).unwrap()
        assert config is not None
        assert config.version_state() == VersionState(current="1.0.0", next="1.1.0")
        assert config.main_branch == "master"
        assert config.changelog_path == "docs/CHANGES.md"
        assert config.package_managers == (
            PackageManager(kind="cargo", publish=True),
            PackageManager(kind="npm", path="npm"),
        )
        assert config.manifest_paths() == ["Cargo.toml", "Cargo.lock", "npm/package.json"]

    def test_object_form_package_managers(self, tmp_path: Path) -> None:
        data = {
            "name": "demo",
            "current": "1.0.0",
            "package_managers": {"npm": {"path": "npm", "publish": True}},
        }
        config = load_config(_write(tmp_path / "rellr.json", data)).unwrap()
        assert config is not None
        assert config.package_managers == (PackageManager(kind="npm", path="npm", publish=True),)

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "rellr.json")
        assert isinstance(result, Err)
        assert result.error.missing is True

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "rellr.json"
        path.write_text("{not json", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid JSON" in result.error.message
        assert result.error.missing is False

    @pytest.mark.parametrize("current", ["1.2", "1.x.0", "one"])
    def test_malformed_version_is_rejected(self, tmp_path: Path, current: str) -> None:
        path = _write(tmp_path / "rellr.json", {"name": "demo", "current": current})
        result = load_config(path)
        assert isinstance(result, Err)
        assert "invalid version" in result.error.message

    def test_next_equal_to_current_is_rejected(self, tmp_path: Path) -> None:
        data = {"name": "demo", "current": "1.0.0", "next": "1.0.0"}
        path = _write(tmp_path / "rellr.json", data)
        assert isinstance(load_config(path), Err)

    def test_missing_name(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "rellr.json", {"current": "1.0.0"})
        result = load_config(path)
        assert isinstance(result, Err)
        assert "name" in result.error.message


class TestSaveConfig:
    def test_round_trip_without_prev(self, tmp_path: Path) -> None:
        path = tmp_path / "rellr.json"
        state = VersionState(current="1.0.0").bump("patch").unwrap()
        assert state is not None
        state = state.bump("minor").unwrap()
        assert state is not None and state.prev == "1.0.1"

        config = ProjectConfig(
            name="demo",
            package_managers=(PackageManager(kind="npm", path="npm"),),
        ).with_versions(state)
        assert save_config(config, path) == Ok(None)

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert "prev" not in raw
        assert "branch_scheme" not in raw
        assert raw["next"] == "1.1.0"
        assert load_config(path) == Ok(config)

    def test_pretty_printed(self, tmp_path: Path) -> None:
        path = tmp_path / "rellr.json"
        save_config(ProjectConfig(name="demo"), path)
        text = path.read_text(encoding="utf-8")
        assert text.startswith('{\n  "name": "demo"')
        assert text.endswith("}\n")


class TestChangelogSettings:
    def test_defaults_when_missing(self, tmp_path: Path) -> None:
        result = load_changelog_settings(tmp_path / "cliff.toml")
        assert result == Ok(ChangelogSettings())
        assert ChangelogSettings().tag_pattern == DEFAULT_TAG_PATTERN

    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "cliff.toml"
        path.write_text(
            "\n".join(
                [
                    "[changelog]",
                    'header = "# History"',
                    "",
                    "[git]",
                    'tag_pattern = "v[0-9]+"',
                    'skip_tags = "beta"',
                    'ignore_tags = "rc"',
                    "limit_commits = 50",
                    "",
                ]
            ),
            encoding="utf-8",
        )
        settings = load_changelog_settings(path).unwrap()
        assert settings == ChangelogSettings(
            tag_pattern="v[0-9]+",
            skip_tags="beta",
            ignore_tags="rc",
            limit_commits=50,
            header="# History",
        )

    def test_invalid_regex(self, tmp_path: Path) -> None:
        path = tmp_path / "cliff.toml"
        path.write_text('[git]\nskip_tags = "("\n', encoding="utf-8")
        result = load_changelog_settings(path)
        assert isinstance(result, Err)
        assert "Invalid changelog settings" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "cliff.toml"
        path.write_text("[git\n", encoding="utf-8")
        result = load_changelog_settings(path)
        assert isinstance(result, Err)
        assert "TOML" in result.error.message

    def test_negative_limit(self) -> None:
        with pytest.raises(ValueError, match="limit_commits"):
            ChangelogSettings.from_dict({"git": {"limit_commits": -1}})
