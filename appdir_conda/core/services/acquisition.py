"""
Acquisition cache manager — fetch the Miniconda installer once per cache.

The installer is downloaded into a cache directory that survives across
runs. ``wget -N -c`` only re-transfers when the remote file changed, and
a per-file advisory lock serialises concurrent runs sharing the cache so
none of them reads a half-written installer.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.engine.executor import run_step
from appdir_conda.core.errors import ConfigurationError
from appdir_conda.core.models.action import Action

logger = logging.getLogger(__name__)

MINICONDA_BASE_URL = "https://repo.anaconda.com/miniconda/"

# `uname -m` value → installer published for it
INSTALLER_FILENAMES = {
    "x86_64": "Miniconda3-latest-Linux-x86_64.sh",
    "i386": "Miniconda3-latest-Linux-x86.sh",
    "i686": "Miniconda3-latest-Linux-x86.sh",
}


def installer_filename(arch: str) -> str:
    """Map an architecture tag to the Miniconda installer filename.

    Raises:
        ConfigurationError: If no installer exists for ``arch``.
    """
    try:
        return INSTALLER_FILENAMES[arch]
    except KeyError:
        raise ConfigurationError(
            f"Unknown Miniconda arch: {arch} "
            f"(supported values: {', '.join(INSTALLER_FILENAMES)})"
        ) from None


def installer_url(arch: str) -> str:
    return MINICONDA_BASE_URL + installer_filename(arch)


def default_download_dir() -> Path:
    """Per-user directory with a predictable name, reused across runs."""
    return Path(tempfile.gettempdir()) / f"appdir-conda-{os.getuid()}"


def resolve_download_dir(raw: str | os.PathLike[str] | None) -> Path:
    """Absolute download directory for a user setting (or the default)."""
    if raw:
        return Path(os.path.abspath(raw))
    return default_download_dir()


@contextmanager
def cache_lock(cache_dir: Path, filename: str) -> Iterator[FileLock]:
    """Hold the exclusive advisory lock for one cached file.

    The lock lives in a sibling ``<filename>.lock`` so locking never
    truncates the artifact itself. It is released on every exit path.
    """
    lock = FileLock(str(cache_dir / f"{filename}.lock"))
    logger.debug("Waiting for lock on %s", lock.lock_file)
    with lock:
        yield lock


def _touch_epoch(path: Path) -> None:
    """Create ``path`` with mtime 0 if it does not exist yet.

    An epoch timestamp makes the first timestamping fetch always
    transfer, while later runs compare against the server's own date.
    """
    if path.exists():
        return
    path.touch()
    os.utime(path, (0, 0))


def fetch_installer(arch: str, cache_dir: Path, adapter: Adapter) -> Path:
    """Make sure the installer for ``arch`` is present and current.

    Returns:
        Path to the installer inside ``cache_dir``.

    Raises:
        ConfigurationError: Unsupported architecture.
        ExternalToolError: The download failed.
    """
    filename = installer_filename(arch)
    url = installer_url(arch)

    cache_dir.mkdir(parents=True, exist_ok=True)
    target = cache_dir / filename
    _touch_epoch(target)

    with cache_lock(cache_dir, filename):
        run_step(
            adapter,
            Action(
                id="fetch-installer",
                name=f"Fetching {url}",
                argv=["wget", "-N", "-c", url],
                cwd=str(cache_dir),
            ),
        )

    return target
