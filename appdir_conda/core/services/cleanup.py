"""
Cleanup selector — drop what the bundled prefix does not need at run time.

CONDA_SKIP_CLEANUP is a ``;``-separated, case-insensitive list of pass
names to skip. ``all`` (and, for compatibility with older plugin
versions that accepted any value, ``1``/``true``/``y``/``yes``) skips
everything. An unknown token is an error: silently running every pass
would delete something the user asked to keep.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.errors import BundleError, ExternalToolError, UsageError
from appdir_conda.core.models.action import Action
from appdir_conda.core.models.config import CleanupCategory, CleanupFlagSet

logger = logging.getLogger(__name__)

SKIP_ALL_TOKENS = frozenset({"all", "1", "true", "y", "yes"})


def parse_skip_cleanup(raw: str | list[str] | tuple[str, ...] | None) -> CleanupFlagSet:
    """Parse a skip list into a CleanupFlagSet.

    Raises:
        UsageError: On a token that names no cleanup pass.
    """
    if raw is None:
        return CleanupFlagSet()

    if isinstance(raw, str):
        tokens = raw.split(";")
    else:
        tokens = [str(t) for t in raw]

    skip_all = False
    skipped: set[CleanupCategory] = set()

    for token in tokens:
        lowered = token.strip().lower()
        if not lowered:
            continue
        if lowered in SKIP_ALL_TOKENS:
            skip_all = True
            continue
        try:
            skipped.add(CleanupCategory(lowered))
        except ValueError:
            raise UsageError(f"Unknown CONDA_SKIP_CLEANUP value: {token}") from None

    return CleanupFlagSet(skip_all=skip_all, skipped=frozenset(skipped))


@dataclass
class CleanupReport:
    """Per-pass record of what was removed or stripped."""

    removed: dict[str, list[str]] = field(default_factory=dict)
    stripped: list[str] = field(default_factory=list)
    strip_failures: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "removed": self.removed,
            "stripped": self.stripped,
            "strip_failures": self.strip_failures,
            "skipped": self.skipped,
        }


# ── Matching helpers ────────────────────────────────────────────


def _walk(root: Path) -> Iterator[Path]:
    """Every path below ``root`` (top-down, symlinks not followed)."""
    yield from root.rglob("*")


def _iname(path: Path, pattern: str) -> bool:
    """Case-insensitive name match, like ``find -iname``."""
    return fnmatch.fnmatchcase(path.name.lower(), pattern.lower())


def _is_regular_file(path: Path) -> bool:
    return path.is_file() and not path.is_symlink()


def _remove(path: Path) -> None:
    """Delete a file or directory tree; a missing path is not an error.

    Raises:
        BundleError: If the path exists but cannot be removed.
    """
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            return
    except OSError as e:
        raise BundleError(f"Cannot remove {path}: {e}") from e
    logger.debug("removed %s", path)


def _remove_all(paths: list[Path], prefix: Path) -> list[str]:
    removed = []
    for path in paths:
        if not (path.exists() or path.is_symlink()):
            continue
        _remove(path)
        removed.append(str(path.relative_to(prefix)))
    return removed


# ── Passes ──────────────────────────────────────────────────────


def _conda_pkgs(prefix: Path) -> list[Path]:
    return [prefix / "pkgs"]


def _pycache(prefix: Path) -> list[Path]:
    return [p for p in _walk(prefix) if p.is_dir() and not p.is_symlink() and _iname(p, "__pycache__")]


def _static_libs(prefix: Path) -> list[Path]:
    return [p for p in _walk(prefix) if _is_regular_file(p) and _iname(p, "*.a")]


def _cmake(prefix: Path) -> list[Path]:
    return [prefix / "lib" / "cmake"]


def _doc(prefix: Path) -> list[Path]:
    return [prefix / "share" / "gtk-doc", prefix / "share" / "doc"]


def _man(prefix: Path) -> list[Path]:
    return [prefix / "share" / "man"]


def _site_packages(prefix: Path) -> list[Path]:
    paths = []
    for site_packages in sorted((prefix / "lib").glob("python*/site-packages")):
        paths += [site_packages / "setuptools", site_packages / "pip"]
    return paths


REMOVAL_PASSES: dict[CleanupCategory, Callable[[Path], list[Path]]] = {
    CleanupCategory.CONDA_PKGS: _conda_pkgs,
    CleanupCategory.PYCACHE: _pycache,
    CleanupCategory.STATIC_LIBS: _static_libs,
    CleanupCategory.CMAKE: _cmake,
    CleanupCategory.DOC: _doc,
    CleanupCategory.MAN: _man,
    CleanupCategory.SITE_PACKAGES: _site_packages,
}

# Execution order of all passes
PASS_ORDER = (
    CleanupCategory.CONDA_PKGS,
    CleanupCategory.PYCACHE,
    CleanupCategory.STRIP,
    CleanupCategory.STATIC_LIBS,
    CleanupCategory.CMAKE,
    CleanupCategory.DOC,
    CleanupCategory.MAN,
    CleanupCategory.SITE_PACKAGES,
)


def shared_objects(prefix: Path) -> list[Path]:
    """Regular files matching ``*.so*`` (case-insensitive)."""
    return sorted(p for p in _walk(prefix) if _is_regular_file(p) and _iname(p, "*.so*"))


def strip_shared_objects(prefix: Path, adapter: Adapter, report: CleanupReport) -> None:
    """Strip debug symbols in place, one file at a time.

    A file that strip refuses (linker scripts, foreign formats) is logged
    and skipped. A strip tool that cannot run at all is fatal.
    """
    for path in shared_objects(prefix):
        relpath = str(path.relative_to(prefix))
        receipt = adapter.execute(Action(
            id="strip",
            name=f"Stripping {relpath}",
            argv=["strip", str(path)],
            stream=False,
        ))
        if receipt.ok:
            report.stripped.append(relpath)
            continue
        if receipt.return_code is None:
            raise ExternalToolError(receipt)
        logger.warning("WARNING: strip failed for %s: %s", relpath, receipt.error)
        report.strip_failures.append(relpath)


def run_cleanup(prefix: Path, flags: CleanupFlagSet, adapter: Adapter) -> CleanupReport:
    """Run every pass ``flags`` does not skip against ``prefix``.

    Raises:
        BundleError: A matched entry could not be removed.
        ExternalToolError: strip could not be executed.
    """
    report = CleanupReport()

    if flags.skip_all:
        logger.info("Skipping cleanup")
        report.skipped = [c.value for c in PASS_ORDER]
        return report

    if not prefix.is_dir():
        logger.warning("WARNING: nothing to clean up, %s does not exist", prefix)
        return report

    logger.info("Removing unneeded files from %s", prefix)

    for category in PASS_ORDER:
        if flags.skips(category):
            logger.debug("Skipping cleanup pass %s", category.value)
            report.skipped.append(category.value)
            continue

        if category is CleanupCategory.STRIP:
            strip_shared_objects(prefix, adapter, report)
            continue

        removed = _remove_all(REMOVAL_PASSES[category](prefix), prefix)
        report.removed[category.value] = removed
        if removed:
            logger.info("cleanup %s: removed %d entries", category.value, len(removed))

    return report
