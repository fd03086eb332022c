"""rellr - semantic-version release workflow for git repositories."""

__version__ = "0.3.0"
