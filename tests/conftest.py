"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from appdir_conda.adapters.mock import MockAdapter
from appdir_conda.core.models.action import Action

# Environment variables the loader reads; cleared for every test.
_CONFIG_VARS = (
    "CONDA_CHANNELS",
    "CONDA_PACKAGES",
    "CONDA_PYTHON_VERSION",
    "PIP_REQUIREMENTS",
    "PIP_PREFIX",
    "PIP_WORKDIR",
    "PIP_VERBOSE",
    "ARCH",
    "CONDA_DOWNLOAD_DIR",
    "CONDA_SKIP_INSTALL",
    "CONDA_SKIP_ADJUST_PATHS",
    "CONDA_SKIP_CLEANUP",
    "DEBUG",
    "APPDIR_CONDA_LOG_LEVEL",
    "APPDIR_CONDA_LOG_FILE",
    "APPDIR_CONDA_LOG_FILE_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's CONDA_*/PIP_* settings out of the tests."""
    for var in _CONFIG_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def appdir(tmp_path: Path) -> Path:
    """An empty AppDir with an absolute, symlink-free path."""
    path = tmp_path.resolve() / "AppDir"
    path.mkdir()
    return path


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter()


def populate_prefix(prefix: Path) -> None:
    """Lay out a small but realistic conda prefix baked for ``prefix``.

    Safe to call on an existing prefix, like ``bash Miniconda3-*.sh -f``.

    The build root (the AppDir) is two levels above the prefix.
    """
    root = str(prefix.parent.parent)
    bin_dir = prefix / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    (prefix / "condabin").mkdir(exist_ok=True)
    profile = prefix / "etc" / "profile.d"
    profile.mkdir(parents=True, exist_ok=True)
    fish = prefix / "etc" / "fish" / "conf.d"
    fish.mkdir(parents=True, exist_ok=True)

    (profile / "conda.sh").write_text(
        f"export CONDA_EXE='{root}/usr/conda/bin/conda'\n"
        f"export _CE_M=''\n"
        f"export CONDA_PYTHON_EXE='{root}/usr/conda/bin/python'\n"
        f"__conda_hashr() {{ PATH={root}/usr/conda/condabin:$PATH; }}\n"
    )
    (profile / "conda.csh").write_text(
        f'setenv CONDA_EXE "{root}/usr/conda/bin/conda"\n'
    )
    (fish / "conda.fish").write_text(
        f'set -gx CONDA_EXE "{root}/usr/conda/bin/conda"\n'
    )

    python = bin_dir / "python3.11"
    python.write_bytes(b"\x7fELF\x02\x01\x01\x00" + root.encode() + b"\x00\x00")
    python.chmod(0o755)
    for alias in ("python3", "python"):
        if not os.path.lexists(bin_dir / alias):
            (bin_dir / alias).symlink_to("python3.11")

    conda = bin_dir / "conda"
    conda.write_text(
        f"#!{root}/usr/conda/bin/python\n"
        "import sys\n"
        "from conda.cli import main\n"
        "sys.exit(main())\n"
    )
    conda.chmod(0o755)
    if not os.path.lexists(prefix / "condabin" / "conda"):
        (prefix / "condabin" / "conda").symlink_to("../bin/conda")

    (bin_dir / "python3-config").write_text(
        "#!/bin/sh\n"
        f'prefix_real={root}/usr/conda\n'
        f'exec_prefix_real="{root}/usr/conda"\n'
        f"echo -I{root}/usr/conda/include\n"
    )
    (bin_dir / "python3-config").chmod(0o755)


def fake_installer(action: Action) -> None:
    """MockAdapter side effect standing in for ``bash Miniconda3-*.sh -b -p PREFIX``."""
    prefix = Path(action.argv[action.argv.index("-p") + 1])
    populate_prefix(prefix)


@pytest.fixture
def conda_prefix(appdir: Path) -> Path:
    """An AppDir with a populated ``usr/conda`` prefix."""
    prefix = appdir / "usr" / "conda"
    populate_prefix(prefix)
    return prefix


def env_dict(**overrides: str) -> dict[str, str]:
    """A minimal environment mapping for the loader."""
    base = {"ARCH": "x86_64"}
    base.update(overrides)
    return base


@pytest.fixture
def cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test from inside ``tmp_path``."""
    monkeypatch.chdir(tmp_path)
    return Path(os.getcwd())


@pytest.fixture
def restore_logging():
    """Put the root logger back after code that calls setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    noisy_level = logging.getLogger("filelock").level
    raise_exceptions = logging.raiseExceptions
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("filelock").setLevel(noisy_level)
    logging.raiseExceptions = raise_exceptions
