"""
Tests for core models — Action, Receipt and the build configuration records.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from appdir_conda.core.models import (
    Action,
    BuildConfig,
    CleanupCategory,
    CleanupFlagSet,
    EnvironmentSpec,
    Receipt,
)


class TestAction:
    def test_defaults(self):
        action = Action(id="x", argv=["true"])
        assert action.name == ""
        assert action.cwd is None
        assert action.env is None
        assert action.stream is True

    def test_argv_required(self):
        with pytest.raises(ValidationError):
            Action(id="x")


class TestReceipt:
    def test_success(self):
        receipt = Receipt.success(adapter="shell", action_id="a", output="done", return_code=0)
        assert receipt.ok
        assert not receipt.failed
        assert receipt.output == "done"
        assert receipt.error is None

    def test_failure(self):
        receipt = Receipt.failure(adapter="shell", action_id="a", error="boom", return_code=2)
        assert receipt.failed
        assert not receipt.ok
        assert receipt.error == "boom"
        assert receipt.return_code == 2

    def test_failure_without_exit_code(self):
        receipt = Receipt.failure(adapter="shell", action_id="a", error="not found")
        assert receipt.return_code is None

    def test_timestamps_set(self):
        receipt = Receipt.success(adapter="shell", action_id="a")
        assert receipt.started_at
        assert receipt.ended_at


class TestCleanupFlagSet:
    def test_default_skips_nothing(self):
        flags = CleanupFlagSet()
        assert not any(flags.skips(c) for c in CleanupCategory)

    def test_skip_all_wins(self):
        flags = CleanupFlagSet(skip_all=True)
        assert all(flags.skips(c) for c in CleanupCategory)

    def test_individual(self):
        flags = CleanupFlagSet(skipped=frozenset({CleanupCategory.STRIP}))
        assert flags.skips(CleanupCategory.STRIP)
        assert not flags.skips(CleanupCategory.MAN)

    def test_as_dict_lists_every_category(self):
        flags = CleanupFlagSet(skipped=frozenset({CleanupCategory.MAN}))
        assert flags.as_dict() == {
            "conda-pkgs": False,
            "__pycache__": False,
            "strip": False,
            ".a": False,
            "cmake": False,
            "doc": False,
            "man": True,
            "site-packages": False,
        }


class TestEnvironmentSpec:
    def test_default_channel_first(self):
        spec = EnvironmentSpec(channels=("bioconda", "conda-forge"))
        assert spec.all_channels == ("conda-forge", "bioconda", "conda-forge")

    def test_frozen(self):
        spec = EnvironmentSpec()
        with pytest.raises(ValidationError):
            spec.packages = ("numpy",)


class TestBuildConfig:
    def test_derived_paths(self):
        config = BuildConfig(appdir=Path("/build/AppDir"), arch="x86_64", download_dir=Path("/tmp/c"))
        assert config.prefix == Path("/build/AppDir/usr/conda")
        assert config.bin_dir == Path("/build/AppDir/usr/bin")

    def test_defaults(self):
        config = BuildConfig(appdir=Path("/a"), arch="x86_64", download_dir=Path("/c"))
        assert config.skip_install is False
        assert config.skip_adjust_paths is True
        assert config.environment == EnvironmentSpec()
        assert config.cleanup == CleanupFlagSet()
