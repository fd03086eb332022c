"""Platform layer: subprocess execution and filesystem helpers."""

from .files import atomic_write_text
from .process import ProcessError, run, run_silent

__all__ = [
    "ProcessError",
    "atomic_write_text",
    "run",
    "run_silent",
]
