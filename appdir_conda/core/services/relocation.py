"""
Relocation engine — make the conda prefix independent of the build path.

conda bakes the absolute install path into activation scripts, script
shebangs and a handful of helper scripts. Each of those references is
rewritten to go through ``$APPDIR``, which the generated AppRun hook
exports at run time (falling back to the directory of the running entry
point).

Rules are applied as an explicit, ordered list. The order matters:
narrow rules must see the text before broader ones do, otherwise a path
is substituted twice or loses its quoting.

    ActivationScriptRule   conda.sh: quote-aware, then plain
    ShellDialectRule       conda.csh / conda.fish
    ExecutableRule         usr/conda/{bin,condabin}/*: shebang, Perl, shell
    NamedFileRule          python3-config, ncursesw6-config

Files no rule targets, binaries, and files without a match are never
written, so they stay byte-identical.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

RUNTIME_VARIABLE = "APPDIR"

HOOK_PATH = Path("apprun-hooks") / "linuxdeploy-plugin-conda-hook.sh"

HOOK_SCRIPT = f"""\
# generated by appdir-conda

# export {RUNTIME_VARIABLE} variable to allow for running from extracted AppDir as well
export {RUNTIME_VARIABLE}="${{{RUNTIME_VARIABLE}:-$(readlink -f "$(dirname "$0")")}}"
# export PATH to allow /usr/bin/env shebangs to use the supplied applications
export PATH="${RUNTIME_VARIABLE}"/usr/bin:"$PATH"
"""

# Reference forms per syntax
SH_REF = f"${{{RUNTIME_VARIABLE}}}"
FISH_REF = f"${RUNTIME_VARIABLE}"
PERL_REF = f"$ENV{{{RUNTIME_VARIABLE}}}"

PREFIX_RELPATH = Path("usr") / "conda"


class PathRule(ABC):
    """One class of path rewrite.

    ``targets`` answers "does this rule apply, and to which files";
    ``apply`` rewrites the text of one of those files.
    """

    name: str = ""

    @abstractmethod
    def targets(self, appdir: Path) -> Iterator[Path]:
        """Existing files under ``appdir`` this rule handles."""

    @abstractmethod
    def apply(self, text: str, build_root: str) -> str:
        """Return ``text`` with ``build_root`` references rewritten."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class _FileListRule(PathRule):
    """Rule bound to a fixed list of AppDir-relative files."""

    def __init__(self, *relpaths: Path | str):
        self.relpaths = tuple(Path(p) for p in relpaths)

    def targets(self, appdir: Path) -> Iterator[Path]:
        for relpath in self.relpaths:
            path = appdir / relpath
            if path.is_file():
                yield path


class ActivationScriptRule(_FileListRule):
    """``conda.sh``: keep single-quoted strings valid.

    ``'<root>/x'`` becomes ``"${APPDIR}"'/x'``: the variable is spliced in
    just before the quote opens. Whatever is left is replaced bare.
    """

    name = "activation-script"

    def __init__(self) -> None:
        super().__init__(PREFIX_RELPATH / "etc" / "profile.d" / "conda.sh")

    def apply(self, text: str, build_root: str) -> str:
        text = text.replace(f"'{build_root}", f'"{SH_REF}"\'')
        return text.replace(build_root, SH_REF)


class ShellDialectRule(_FileListRule):
    """Single-pass replacement for a non-POSIX shell startup file."""

    def __init__(self, name: str, relpath: Path | str, reference: str):
        super().__init__(relpath)
        self.name = name
        self.reference = reference

    def apply(self, text: str, build_root: str) -> str:
        return text.replace(build_root, self.reference)


class ExecutableRule(PathRule):
    """Scripts in the prefix's executable directories.

    a. ``#!<root>/usr/conda/bin/python`` → ``#!/usr/bin/env python``
       (first line only).
    b. Perl ``my $x = "<root>/..."`` → ``my $x = $ENV{APPDIR} . "/..."``.
    c. ``VAR="<root>/..."`` → ``VAR="${APPDIR}/..."``.

    (b) must run before (c): (c)'s pattern also matches Perl lines and
    would leave a ``${APPDIR}`` that Perl interpolates as its own variable.
    """

    name = "executables"

    directories = (PREFIX_RELPATH / "bin", PREFIX_RELPATH / "condabin")

    def targets(self, appdir: Path) -> Iterator[Path]:
        for relpath in self.directories:
            directory = appdir / relpath
            if not directory.is_dir():
                continue
            for entry in sorted(directory.iterdir()):
                if entry.is_file():
                    yield entry

    def apply(self, text: str, build_root: str) -> str:
        root = re.escape(build_root)

        shebang = f"#!{build_root}/{PREFIX_RELPATH}/bin/"
        if text.startswith(shebang):
            text = "#!/usr/bin/env " + text[len(shebang):]

        # [^\S\n] is whitespace that never crosses a line
        text = re.sub(
            rf'^(my.*=[^\S\n]*)"{root}',
            lambda m: f'{m.group(1)}{PERL_REF} . "',
            text,
            flags=re.MULTILINE,
        )
        return re.sub(
            rf'(=[^\S\n]*"){root}',
            lambda m: f"{m.group(1)}{SH_REF}",
            text,
        )


class NamedFileRule(_FileListRule):
    """Known helper scripts: replace every remaining occurrence."""

    name = "named-files"

    def apply(self, text: str, build_root: str) -> str:
        return text.replace(build_root, SH_REF)


DEFAULT_RULES: tuple[PathRule, ...] = (
    ActivationScriptRule(),
    ShellDialectRule("csh", PREFIX_RELPATH / "etc" / "profile.d" / "conda.csh", SH_REF),
    ShellDialectRule("fish", PREFIX_RELPATH / "etc" / "fish" / "conf.d" / "conda.fish", FISH_REF),
    ExecutableRule(),
    NamedFileRule(
        PREFIX_RELPATH / "bin" / "python3-config",
        PREFIX_RELPATH / "bin" / "ncursesw6-config",
    ),
)


@dataclass
class RelocationReport:
    """What the engine changed."""

    build_root: str = ""
    rewritten: list[Path] = field(default_factory=list)
    residual: list[Path] = field(default_factory=list)
    hook: Path | None = None

    def to_dict(self) -> dict:
        return {
            "build_root": self.build_root,
            "rewritten": [str(p) for p in self.rewritten],
            "residual": [str(p) for p in self.residual],
            "hook": str(self.hook) if self.hook else None,
        }


def _read_text(path: Path) -> str | None:
    """File contents as text, or None for binaries."""
    data = path.read_bytes()
    if b"\0" in data:
        return None
    # surrogateescape keeps undecodable bytes intact on write-back
    return data.decode("utf-8", errors="surrogateescape")


def _resolve_target(path: Path, appdir: Path) -> Path | None:
    """Follow symlinks; refuse targets outside the AppDir."""
    real = path.resolve()
    if not real.is_relative_to(appdir.resolve()):
        logger.debug("Skipping %s, link target %s is outside the AppDir", path, real)
        return None
    return real


def apply_rule(rule: PathRule, appdir: Path, build_root: str) -> list[Path]:
    """Apply one rule to all of its targets; return the files changed."""
    changed: list[Path] = []
    seen: set[Path] = set()

    for path in rule.targets(appdir):
        real = _resolve_target(path, appdir)
        if real is None or real in seen:
            continue
        seen.add(real)

        text = _read_text(real)
        if text is None or build_root not in text:
            continue

        new_text = rule.apply(text, build_root)
        if new_text == text:
            continue

        real.write_bytes(new_text.encode("utf-8", errors="surrogateescape"))
        logger.debug("[%s] rewrote %s", rule.name, path)
        changed.append(path)

    return changed


def find_residual(appdir: Path, build_root: str, rules: Sequence[PathRule]) -> list[Path]:
    """Text files the rules handle that still mention ``build_root``."""
    residual: list[Path] = []
    seen: set[Path] = set()

    for rule in rules:
        for path in rule.targets(appdir):
            real = _resolve_target(path, appdir)
            if real is None or real in seen:
                continue
            seen.add(real)
            text = _read_text(real)
            if text is not None and build_root in text:
                residual.append(path)

    return residual


def write_hook(appdir: Path) -> Path:
    """Emit the AppRun hook that exports APPDIR and PATH."""
    hook = appdir / HOOK_PATH
    hook.parent.mkdir(parents=True, exist_ok=True)
    hook.write_text(HOOK_SCRIPT, encoding="utf-8")
    return hook


def relocate(
    appdir: Path,
    build_root: str | None = None,
    rules: Sequence[PathRule] = DEFAULT_RULES,
) -> RelocationReport:
    """Rewrite build-time absolute paths under ``appdir``.

    Args:
        appdir: The AppDir (absolute).
        build_root: The path string baked in at install time
            (default: ``str(appdir)``).
        rules: Rules in application order.
    """
    root = build_root or str(appdir)
    report = RelocationReport(build_root=root)

    logger.info("Adjusting absolute paths under %s", appdir)

    for rule in rules:
        report.rewritten.extend(apply_rule(rule, appdir, root))

    report.hook = write_hook(appdir)
    report.residual = find_residual(appdir, root, rules)

    for path in report.residual:
        logger.warning("WARNING: %s still references %s", path, root)

    logger.info(
        "Rewrote %d files, hook written to %s",
        len(report.rewritten),
        report.hook,
    )
    return report
