"""Core domain types: results, exit codes, versions and configuration."""

from .config import (
    ChangelogSettings,
    ConfigError,
    PackageManager,
    ProjectConfig,
    load_changelog_settings,
    load_config,
    save_config,
)
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .version import (
    AlreadyStaged,
    BranchScheme,
    BumpKind,
    InvalidVersion,
    NotStaged,
    VersionError,
    VersionState,
)

__all__ = [
    # config
    "ChangelogSettings",
    "ConfigError",
    "PackageManager",
    "ProjectConfig",
    "load_changelog_settings",
    "load_config",
    "save_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # version
    "AlreadyStaged",
    "BranchScheme",
    "BumpKind",
    "InvalidVersion",
    "NotStaged",
    "VersionError",
    "VersionState",
]
