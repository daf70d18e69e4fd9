"""
Bundle use case — the full pipeline from config to relocatable AppDir.

    acquire installer → install environment → link executables
        → relocate paths → clean up

Stages run strictly in that order, each only after the previous one's
side effects are on disk. The first fatal error stops the run and
leaves the AppDir as it is; perform a clean build before releasing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from appdir_conda.adapters.base import Adapter
from appdir_conda.adapters.shell.command import ShellCommandAdapter
from appdir_conda.core.errors import BundleError
from appdir_conda.core.models.config import BuildConfig
from appdir_conda.core.services.acquisition import fetch_installer
from appdir_conda.core.services.cleanup import CleanupReport, run_cleanup
from appdir_conda.core.services.environment import (
    LinkResult,
    install_environment,
    link_executables,
)
from appdir_conda.core.services.relocation import RelocationReport, relocate

logger = logging.getLogger(__name__)


@dataclass
class BundleResult:
    """Result of one bundling run."""

    config: BuildConfig | None = None
    installer: Path | None = None
    links: LinkResult | None = None
    relocation: RelocationReport | None = None
    cleanup: CleanupReport | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def warn(self, message: str) -> None:
        """Record an advisory condition; the run continues."""
        logger.warning("WARNING: %s", message)
        self.warnings.append(message)

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok, "warnings": self.warnings}
        if self.error:
            result["error"] = self.error
        if self.config:
            result["appdir"] = str(self.config.appdir)
        if self.installer:
            result["installer"] = str(self.installer)
        if self.links:
            result["links"] = {"linked": self.links.linked, "skipped": self.links.skipped}
        if self.relocation:
            result["relocation"] = self.relocation.to_dict()
        if self.cleanup:
            result["cleanup"] = self.cleanup.to_dict()
            if self.config:
                result["cleanup"]["flags"] = self.config.cleanup.as_dict()
        return result


def build_bundle(config: BuildConfig, adapter: Adapter | None = None) -> BundleResult:
    """Run the whole pipeline for ``config``.

    Args:
        config: Validated build configuration.
        adapter: Runs external tools (default: ShellCommandAdapter).

    Returns:
        BundleResult; ``error`` is set if a stage failed.
    """
    adapter = adapter or ShellCommandAdapter()
    result = BundleResult(config=config)

    try:
        _run_stages(config, adapter, result)
    except (BundleError, OSError) as e:
        logger.error("ERROR: %s", e)
        result.error = str(e)

    return result


def _run_stages(config: BuildConfig, adapter: Adapter, result: BundleResult) -> None:
    config.appdir.mkdir(parents=True, exist_ok=True)

    # ── Acquire + install ────────────────────────────────────────
    if config.skip_install:
        logger.info("Skipping Miniconda installation")
    else:
        if not config.environment.packages:
            result.warn("$CONDA_PACKAGES not set, no packages will be installed!")

        if config.prefix.is_dir():
            result.warn(
                f"conda prefix directory exists: {config.prefix}. "
                "Please make sure you perform a clean build before releases "
                "to make sure your process works properly."
            )

        logger.info("Using download directory: %s", config.download_dir)
        result.installer = fetch_installer(config.arch, config.download_dir, adapter)

        install_environment(result.installer, config.prefix, config.environment, adapter)

        result.links = link_executables(config.prefix, config.bin_dir)
        for name in result.links.skipped:
            result.warnings.append(f"symlink exists, will not be touched: usr/bin/{name}")

    # ── Relocate (before cleanup, after every install step) ─────
    if config.skip_adjust_paths:
        logger.info("Skipping absolute path adjustment (set CONDA_SKIP_ADJUST_PATHS=0 to enable)")
    else:
        result.relocation = relocate(config.appdir)

    # ── Clean up ─────────────────────────────────────────────────
    result.cleanup = run_cleanup(config.prefix, config.cleanup, adapter)
