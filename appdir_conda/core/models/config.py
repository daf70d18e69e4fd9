"""
Build configuration models — the immutable record every stage reads.

The configuration is parsed exactly once (environment variables plus
an optional YAML file) into a frozen BuildConfig, which is then passed
to each pipeline stage. No stage mutates it.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# conda-forge hosts most of the packages people bundle, so it is always
# registered first.
DEFAULT_CHANNEL = "conda-forge"


class CleanupCategory(StrEnum):
    """Categories of bulk removed from the prefix after installation."""

    CONDA_PKGS = "conda-pkgs"
    PYCACHE = "__pycache__"
    STRIP = "strip"
    STATIC_LIBS = ".a"
    CMAKE = "cmake"
    DOC = "doc"
    MAN = "man"
    SITE_PACKAGES = "site-packages"


class CleanupFlagSet(BaseModel):
    """Which cleanup passes to skip.

    ``skip_all`` wins over the per-category set.
    """

    model_config = ConfigDict(frozen=True)

    skip_all: bool = False
    skipped: frozenset[CleanupCategory] = frozenset()

    def skips(self, category: CleanupCategory) -> bool:
        """Whether the pass for ``category`` must not run."""
        return self.skip_all or category in self.skipped

    def as_dict(self) -> dict[str, bool]:
        """Category name → skip flag, for every known category."""
        return {c.value: self.skips(c) for c in CleanupCategory}


class EnvironmentSpec(BaseModel):
    """What to install into the conda prefix, in order."""

    model_config = ConfigDict(frozen=True)

    channels: tuple[str, ...] = ()
    python_version: str | None = None
    packages: tuple[str, ...] = ()
    pip_requirements: tuple[str, ...] = ()
    pip_prefix: str | None = None
    pip_workdir: Path | None = None
    pip_verbose: bool = False

    @property
    def all_channels(self) -> tuple[str, ...]:
        """Channels in registration (priority) order, default first."""
        return (DEFAULT_CHANNEL, *self.channels)


class BuildConfig(BaseModel):
    """Everything one bundling run needs."""

    model_config = ConfigDict(frozen=True)

    appdir: Path
    arch: str
    download_dir: Path
    environment: EnvironmentSpec = Field(default_factory=EnvironmentSpec)
    skip_install: bool = False
    skip_adjust_paths: bool = True
    cleanup: CleanupFlagSet = Field(default_factory=CleanupFlagSet)

    @property
    def prefix(self) -> Path:
        """The isolated conda prefix inside the AppDir."""
        return self.appdir / "usr" / "conda"

    @property
    def bin_dir(self) -> Path:
        """The AppDir's merged executable directory."""
        return self.appdir / "usr" / "bin"
