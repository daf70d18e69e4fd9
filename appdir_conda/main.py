"""
appdir-conda — CLI entrypoint (linuxdeploy plugin interface).

Usage:
    appdir-conda --appdir AppDir
    appdir-conda --plugin-api-version
    python -m appdir_conda.main --help
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from appdir_conda import __version__
from appdir_conda.core.observability.logging_config import resolve_level, setup_logging

PLUGIN_API_VERSION = "0"


class PluginCommand(click.Command):
    """Command whose usage errors exit with 1, as linuxdeploy expects."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def _print_api_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(PLUGIN_API_VERSION)
    ctx.exit(0)


def _usage_error(ctx: click.Context, message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    click.echo(err=True)
    click.echo(ctx.get_help(), err=True)
    sys.exit(1)


@click.command(cls=PluginCommand)
@click.version_option(version=__version__, prog_name="appdir-conda")
@click.argument("appdir_arg", metavar="[APPDIR]", required=False, type=click.Path())
@click.option("--appdir", "appdir_opt", type=click.Path(), default=None, help="Path to the AppDir.")
@click.option(
    "--plugin-api-version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_print_api_version,
    help="Print the linuxdeploy plugin API version and exit.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="YAML file with build settings (environment variables override it).",
)
@click.option("--verbose", "-v", is_flag=True, help="Timestamped log output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the run result as JSON.")
@click.pass_context
def cli(
    ctx: click.Context,
    appdir_arg: str | None,
    appdir_opt: str | None,
    config_path: str | None,
    verbose: bool,
    debug: bool,
    as_json: bool,
) -> None:
    """Bundles software available as conda packages into an AppDir.

    \b
    Variables:
      CONDA_CHANNELS="channelA;channelB;..."
      CONDA_PACKAGES="packageA;packageB;..."
      CONDA_PYTHON_VERSION="3.11"
      PIP_REQUIREMENTS="packageA packageB -r requirements.txt -e git+https://..."
      PIP_PREFIX="AppDir/usr/share/conda"
      PIP_WORKDIR="path/to/project"
      PIP_VERBOSE="1"
      ARCH="x86_64" (supported values: x86_64, i386, i686)
      CONDA_DOWNLOAD_DIR="path/to/cache"
      CONDA_SKIP_INSTALL="1" (default: install)
      CONDA_SKIP_ADJUST_PATHS="1" (default: skip)
      CONDA_SKIP_CLEANUP="[all;][conda-pkgs;][__pycache__;][strip;][.a;][cmake;][doc;][man;][site-packages;]"
    """
    from appdir_conda.core.config.loader import load_build_config
    from appdir_conda.core.errors import ConfigurationError, UsageError
    from appdir_conda.core.use_cases.bundle import build_bundle

    # ── Logging setup (once, at process start) ──────────────────
    level = resolve_level(debug, os.environ)

    setup_logging(
        level=level,
        log_file=os.environ.get("APPDIR_CONDA_LOG_FILE"),
        log_file_level=os.environ.get("APPDIR_CONDA_LOG_FILE_LEVEL"),
        timestamps=verbose,
        quiet_third_party=level != "DEBUG",
    )

    if appdir_arg and appdir_opt and appdir_arg != appdir_opt:
        _usage_error(ctx, "Give the AppDir either as --appdir or as argument, not both")

    appdir = appdir_opt or appdir_arg
    if not appdir:
        _usage_error(ctx, "Missing AppDir (--appdir <path>)")

    try:
        config = load_build_config(
            appdir,
            config_path=Path(config_path) if config_path else None,
        )
    except UsageError as e:
        _usage_error(ctx, str(e))
    except ConfigurationError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    result = build_bundle(config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.ok:
        click.secho(f"✅ Bundled conda environment into {config.appdir}", fg="green", bold=True)
        if result.relocation and result.relocation.hook:
            click.echo(f"   Hook: {result.relocation.hook}")
        if result.warnings:
            click.secho(f"   ⚠️  {len(result.warnings)} warning(s)", fg="yellow")
    else:
        click.secho(f"❌ {result.error}", fg="red", err=True)

    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
