"""
Error taxonomy — every fatal condition the bundler can raise.

The CLI maps all of these to exit code 1. Advisory conditions are
never raised; they are logged as warnings and the run continues.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from appdir_conda.core.models.action import Receipt


class BundleError(Exception):
    """Base class for all fatal bundling errors."""


class UsageError(BundleError):
    """Bad or missing CLI argument, or an unknown cleanup token."""


class ConfigurationError(BundleError):
    """Configuration that cannot be acted on (e.g. unsupported arch)."""


class ExternalToolError(BundleError):
    """An external tool (installer, conda, pip, wget, strip) failed."""

    def __init__(self, receipt: Receipt):
        self.receipt = receipt
        super().__init__(f"{receipt.action_id}: {receipt.error or 'failed'}")
