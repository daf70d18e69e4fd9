"""
Configuration loader — environment variables (+ optional YAML) → BuildConfig.

Settings come from the same environment variables the linuxdeploy conda
plugin has always read (CONDA_PACKAGES, PIP_REQUIREMENTS, ...). A YAML
file passed via ``--config`` may provide the same settings under
lower-case keys; environment variables override file values.

Everything is validated here, before the AppDir is touched: an unknown
cleanup token or an unsupported architecture aborts the run up front.
"""

from __future__ import annotations

import logging
import os
import platform
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from appdir_conda.core.errors import ConfigurationError
from appdir_conda.core.models.config import BuildConfig, EnvironmentSpec
from appdir_conda.core.services.acquisition import installer_filename, resolve_download_dir
from appdir_conda.core.services.cleanup import parse_skip_cleanup

logger = logging.getLogger(__name__)

# Values accepted as "yes" for boolean switches.
TRUTHY = frozenset({"1", "true", "y", "yes"})

# YAML key → environment variable that overrides it
ENV_KEYS = {
    "channels": "CONDA_CHANNELS",
    "packages": "CONDA_PACKAGES",
    "python_version": "CONDA_PYTHON_VERSION",
    "pip_requirements": "PIP_REQUIREMENTS",
    "pip_prefix": "PIP_PREFIX",
    "pip_workdir": "PIP_WORKDIR",
    "pip_verbose": "PIP_VERBOSE",
    "arch": "ARCH",
    "download_dir": "CONDA_DOWNLOAD_DIR",
    "skip_install": "CONDA_SKIP_INSTALL",
    "skip_adjust_paths": "CONDA_SKIP_ADJUST_PATHS",
    "skip_cleanup": "CONDA_SKIP_CLEANUP",
}


def split_list(raw: Any, sep: str = ";") -> tuple[str, ...]:
    """Split a ``sep``-delimited string (or pass a YAML list through).

    Empty items are dropped.
    """
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        items = [str(item).strip() for item in raw]
    else:
        items = [item.strip() for item in str(raw).split(sep)]
    return tuple(item for item in items if item)


def is_truthy(raw: Any) -> bool:
    """Interpret a switch value from the environment or YAML."""
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    return str(raw).strip().lower() in TRUTHY


def load_config_file(path: Path) -> dict[str, Any]:
    """Read the optional YAML settings file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    logger.debug("Loading build config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    unknown = sorted(set(data) - set(ENV_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown keys in {path}: {', '.join(unknown)}")

    return data


def collect_settings(
    environ: Mapping[str, str],
    config_path: Path | None = None,
) -> dict[str, Any]:
    """Merge file settings with environment overrides.

    An environment variable that is set but empty counts as unset, the
    same way the shell plugin treated ``$VAR == ""``.
    """
    settings: dict[str, Any] = load_config_file(config_path) if config_path else {}

    for key, var in ENV_KEYS.items():
        value = environ.get(var)
        if value:
            settings[key] = value

    return settings


def load_build_config(
    appdir: Path | str,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> BuildConfig:
    """Build the immutable configuration record for one run.

    Args:
        appdir: The target AppDir (relative paths are made absolute).
        environ: Environment to read (default: ``os.environ``).
        config_path: Optional YAML settings file.

    Raises:
        UsageError: Unknown CONDA_SKIP_CLEANUP token.
        ConfigurationError: Unsupported architecture or bad config file.
    """
    if environ is None:
        environ = os.environ

    settings = collect_settings(environ, config_path)

    arch = str(settings.get("arch") or platform.machine())
    installer_filename(arch)  # reject unsupported architectures early

    cleanup = parse_skip_cleanup(settings.get("skip_cleanup"))

    pip_requirements = settings.get("pip_requirements")
    if isinstance(pip_requirements, str):
        pip_requirements = shlex.split(pip_requirements)

    pip_workdir = settings.get("pip_workdir")
    pip_prefix = settings.get("pip_prefix")
    python_version = settings.get("python_version")

    try:
        spec = EnvironmentSpec(
            channels=split_list(settings.get("channels")),
            python_version=str(python_version) if python_version else None,
            packages=split_list(settings.get("packages")),
            pip_requirements=tuple(pip_requirements or ()),
            pip_prefix=str(pip_prefix) if pip_prefix else None,
            pip_workdir=Path(pip_workdir) if pip_workdir else None,
            pip_verbose=is_truthy(settings.get("pip_verbose")),
        )
        config = BuildConfig(
            appdir=Path(os.path.abspath(appdir)),
            arch=arch,
            download_dir=resolve_download_dir(settings.get("download_dir")),
            environment=spec,
            skip_install=is_truthy(settings.get("skip_install")),
            # relocation is opt-in
            skip_adjust_paths=is_truthy(settings.get("skip_adjust_paths", "1")),
            cleanup=cleanup,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid build configuration: {e}") from e

    logger.debug("Build config: %s", config.model_dump_json())
    return config
