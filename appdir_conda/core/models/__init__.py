"""
Domain models — Pydantic types for the bundler.

    from appdir_conda.core.models import BuildConfig, Action, Receipt
"""

from appdir_conda.core.models.action import Action, Receipt
from appdir_conda.core.models.config import (
    DEFAULT_CHANNEL,
    BuildConfig,
    CleanupCategory,
    CleanupFlagSet,
    EnvironmentSpec,
)

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # config.py
    "DEFAULT_CHANNEL",
    "BuildConfig",
    "CleanupCategory",
    "CleanupFlagSet",
    "EnvironmentSpec",
]
