"""Tests for rellr.core.version module."""

from __future__ import annotations

import pytest

from rellr.core.result import Err, Ok
from rellr.core.version import (
    AlreadyStaged,
    BranchScheme,
    InvalidVersion,
    NotStaged,
    SemVer,
    VersionState,
    parse_version,
    tag_name,
)


class TestParseVersion:
    def test_valid(self) -> None:
        assert parse_version("1.2.3") == Ok(SemVer(1, 2, 3))

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert parse_version(" 0.10.0\n") == Ok(SemVer(0, 10, 0))

    @pytest.mark.parametrize("value", ["", "1.2", "1.2.3.4", "1.x.3", "v1.2.3", "01.2.3", "-1.0.0"])
    def test_malformed_is_rejected(self, value: str) -> None:
        result = parse_version(value)
        assert isinstance(result, Err)
        assert result.error == InvalidVersion(value)
        assert value in result.error.message or value == ""


class TestSemVerBump:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            ("patch", SemVer(1, 2, 4)),
            ("minor", SemVer(1, 3, 0)),
            ("major", SemVer(2, 0, 0)),
        ],
    )
    def test_bump(self, kind: str, expected: SemVer) -> None:
        assert SemVer(1, 2, 3).bump(kind) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("current", ["0.0.0", "1.2.3", "9.99.999", "10.0.7"])
    def test_incremented_by_one_and_zeroed_to_the_right(self, current: str) -> None:
        base = parse_version(current).unwrap()
        assert base is not None
        for index, kind in enumerate(("major", "minor", "patch")):
            bumped = base.bump(kind)  # type: ignore[arg-type]
            before = [base.major, base.minor, base.patch]
            after = [bumped.major, bumped.minor, bumped.patch]
            assert after[:index] == before[:index]
            assert after[index] == before[index] + 1
            assert all(part == 0 for part in after[index + 1 :])


class TestVersionState:
    def test_bump_stages_next(self) -> None:
        state = VersionState(current="1.2.3").bump("patch")
        assert state == Ok(VersionState(current="1.2.3", next="1.2.4", prev=None))

    def test_rebump_keeps_previous_for_rename(self) -> None:
        state = VersionState(current="1.2.3").bump("patch").unwrap()
        assert state is not None
        rebumped = state.bump("minor")
        assert rebumped == Ok(VersionState(current="1.2.3", next="1.3.0", prev="1.2.4"))

    def test_bump_to_staged_version_is_rejected(self) -> None:
        state = VersionState(current="1.2.3", next="1.2.4")
        result = state.bump("patch")
        assert result == Err(AlreadyStaged("1.2.4"))
        assert state.next == "1.2.4"
        assert state.prev is None

    def test_bump_invalid_current(self) -> None:
        result = VersionState(current="1.two.3").bump("patch")
        assert result == Err(InvalidVersion("1.two.3"))

    def test_promote(self) -> None:
        state = VersionState(current="1.2.3", next="1.3.0", prev="1.2.4")
        assert state.promote() == Ok(VersionState(current="1.3.0"))

    def test_second_promote_fails_and_keeps_current(self) -> None:
        promoted = VersionState(current="1.2.3", next="1.2.4").promote().unwrap()
        assert promoted is not None
        again = promoted.promote()
        assert again == Err(NotStaged())
        assert promoted.current == "1.2.4"

    def test_promote_without_bump(self) -> None:
        assert isinstance(VersionState(current="0.1.0").promote(), Err)

    def test_end_to_end(self) -> None:
        """patch then minor: the staged branch is renamed, not re-created."""
        state = VersionState(current="1.2.3")
        state = state.bump("patch").unwrap()
        assert state is not None
        assert (state.current, state.next, state.prev) == ("1.2.3", "1.2.4", None)
        state = state.bump("minor").unwrap()
        assert state is not None
        assert (state.current, state.next, state.prev) == ("1.2.3", "1.3.0", "1.2.4")
        assert state.prev_branch == "release/1.2.4"
        assert state.next_branch == "release/1.3.0"


class TestNames:
    def test_branch_names_follow_scheme(self) -> None:
        state = VersionState(current="1.0.0", next="1.1.0")
        assert state.next_branch == "release/1.1.0"
        assert state.with_scheme(BranchScheme.FEATURE).branch_name("login") == "feature/login"
        assert state.with_scheme(BranchScheme.HOTFIX).branch_name("crash") == "hotfix/crash"

    def test_no_branch_when_nothing_staged(self) -> None:
        state = VersionState(current="1.0.0")
        assert state.next_branch is None
        assert state.prev_branch is None
        assert state.is_staged is False

    def test_tag_name(self) -> None:
        assert tag_name("2.0.1") == "v2.0.1"
