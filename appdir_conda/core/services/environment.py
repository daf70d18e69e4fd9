"""
Environment installer — Miniconda + packages into ``usr/conda``.

The prefix lives in ``usr/conda`` rather than ``usr`` so the libraries
conda ships cannot shadow libraries other linuxdeploy plugins bundle.
Every step is fatal: a half-installed prefix is not resumable, so the
first failing tool aborts the run.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.config.loader import ENV_KEYS
from appdir_conda.core.engine.executor import run_step
from appdir_conda.core.models.action import Action
from appdir_conda.core.models.config import EnvironmentSpec

logger = logging.getLogger(__name__)

_SETTING_VARS = frozenset(ENV_KEYS.values())


@dataclass
class LinkResult:
    """Outcome of merging ``usr/conda/bin`` into ``usr/bin``."""

    linked: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def without_settings(base: Mapping[str, str]) -> dict[str, str]:
    """Copy of ``base`` minus the variables the bundler itself reads."""
    return {k: v for k, v in base.items() if k not in _SETTING_VARS}


def activated_env(
    prefix: Path,
    home: Path,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Child environment equivalent to sourcing ``<prefix>/bin/activate``.

    ``HOME`` points at a scratch directory so conda never reads or
    writes the host user's ``.condarc``. The bundler's own settings are
    dropped: pip and conda read ``PIP_*``/``CONDA_*`` variables as their
    own configuration, and those values already live in the EnvironmentSpec.
    """
    env = without_settings(os.environ if base is None else base)
    bin_dir = str(prefix / "bin")
    env["PATH"] = os.pathsep.join(p for p in (bin_dir, env.get("PATH", "")) if p)
    env["CONDA_PREFIX"] = str(prefix)
    env["CONDA_DEFAULT_ENV"] = "base"
    env["HOME"] = str(home)
    env.pop("PYTHONHOME", None)
    return env


def install_actions(prefix: Path, spec: EnvironmentSpec, env: dict[str, str]) -> list[Action]:
    """Conda/pip steps after the base installer, in execution order."""
    conda = str(prefix / "bin" / "conda")
    python = str(prefix / "bin" / "python")
    actions: list[Action] = []

    # first registered channel wins ties during resolution
    for i, channel in enumerate(spec.all_channels):
        mode = "--add" if i == 0 else "--append"
        actions.append(Action(
            id=f"channel-{channel}",
            name=f"Registering channel {channel}",
            argv=[conda, "config", mode, "channels", channel],
            env=env,
        ))

    if spec.python_version:
        actions.append(Action(
            id="python-version",
            name=f"Installing Python {spec.python_version}",
            argv=[conda, "install", "-y", f"python={spec.python_version}"],
            env=env,
        ))

    for package in spec.packages:
        actions.append(Action(
            id=f"conda-install-{package}",
            name=f"Installing {package}",
            argv=[conda, "install", "-y", package],
            env=env,
        ))

    actions.append(Action(
        id="pip-upgrade",
        name="Upgrading pip",
        argv=[python, "-m", "pip", "install", "-U", "pip"],
        env=env,
    ))

    if spec.pip_requirements:
        argv = [python, "-m", "pip", "install", "-U", *spec.pip_requirements]
        if spec.pip_prefix:
            argv.append(f"--prefix={spec.pip_prefix}")
        if spec.pip_verbose:
            argv.append("-v")
        actions.append(Action(
            id="pip-requirements",
            name="Installing pip requirements",
            argv=argv,
            cwd=str(spec.pip_workdir) if spec.pip_workdir else None,
            env=env,
        ))

    return actions


def install_environment(
    installer: Path,
    prefix: Path,
    spec: EnvironmentSpec,
    adapter: Adapter,
) -> None:
    """Run the Miniconda installer, then every conda/pip step.

    Raises:
        ExternalToolError: On the first failing step.
    """
    run_step(
        adapter,
        Action(
            id="install-miniconda",
            name=f"Installing Miniconda into {prefix}",
            argv=["bash", str(installer), "-b", "-p", str(prefix), "-f"],
            env=without_settings(os.environ),
        ),
    )

    with tempfile.TemporaryDirectory(prefix="appdir-conda-home-") as home:
        env = activated_env(prefix, Path(home))
        for action in install_actions(prefix, spec, env):
            run_step(adapter, action)


def link_executables(prefix: Path, bin_dir: Path) -> LinkResult:
    """Symlink every entry of ``<prefix>/bin`` into ``bin_dir``.

    Existing names in ``bin_dir`` win; they are reported and left alone.
    Links are relative so they survive moving the AppDir.
    """
    result = LinkResult()
    source_dir = prefix / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)

    if not source_dir.is_dir():
        logger.warning("WARNING: no executables to link, %s does not exist", source_dir)
        return result

    for entry in sorted(source_dir.iterdir()):
        link = bin_dir / entry.name
        if os.path.lexists(link):
            logger.warning("WARNING: symlink exists, will not be touched: %s", link)
            result.skipped.append(entry.name)
            continue
        link.symlink_to(Path(os.path.relpath(entry, bin_dir)))
        result.linked.append(entry.name)

    logger.debug("Linked %d executables into %s", len(result.linked), bin_dir)
    return result
