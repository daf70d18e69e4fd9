"""Adapters — bindings for the external tools the bundler drives.

Public re-exports for convenient access.
"""

from appdir_conda.adapters.base import Adapter
from appdir_conda.adapters.mock import MockAdapter
from appdir_conda.adapters.shell.command import ShellCommandAdapter

__all__ = [
    "Adapter",
    "MockAdapter",
    "ShellCommandAdapter",
]
