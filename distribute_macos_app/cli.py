"""Command-line interface for distribute-macos-app."""

import sys
import traceback
from pathlib import Path
from typing import Any, Callable, Optional

import click  # type: ignore[import]
from rich.panel import Panel  # type: ignore[import]

from . import __version__
from . import console as output
from .appcast import validate_appcast
from .changelog import changelog_to_html
from .config import Config, load_config
from .console import Icons, console, escape, set_verbosity
from .errors import ReleaseError
from .sparkle import sparkle


def run_step(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a release step, reporting failures the same way everywhere"""
    try:
        return func(*args, **kwargs)
    except ReleaseError as e:
        if not output.QUIET:
            error_panel = Panel(
                f"[bold red]Release Failed[/bold red]\n\n{escape(str(e))}",
                border_style="red",
                padding=(1, 2),
            )
            console.print()
            console.print(error_panel)
        else:
            console.print(f"\n{Icons.ERROR} Error: {escape(str(e))}")
        sys.exit(1)
    except KeyboardInterrupt:
        if not output.QUIET:
            console.print(f"\n{Icons.WARNING} Release cancelled by user")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n{Icons.ERROR} Unexpected error: {escape(str(e))}")
        if output.DEBUG:
            traceback.print_exc()
        else:
            console.print("\nRun with --debug flag for full stack trace")
        sys.exit(1)


def _config(ctx: click.Context) -> Config:
    return ctx.obj if isinstance(ctx.obj, Config) else Config()


def _require(value: Optional[Any], option: str, key: str) -> Any:
    if value is None:
        raise click.UsageError(
            f"Missing option '{option}' (or '{key}' in release.yaml)."
        )
    return value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Path to configuration file (default: release.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed command output")
@click.option(
    "--quiet", "-q", is_flag=True, help="Only show critical errors and final result"
)
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Distribute macOS applications with Sparkle updates."""
    set_verbosity(verbose=verbose, quiet=quiet, debug=debug)
    ctx.obj = run_step(load_config, config_path)


@cli.command("changelog")
@click.argument(
    "changelog_path", type=click.Path(path_type=Path, exists=True, dir_okay=False)
)
@click.option("--app-name", help="Application name used in the HTML filenames")
@click.option(
    "--out-dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory for the generated HTML files",
)
@click.pass_context
def changelog_command(
    ctx: click.Context,
    changelog_path: Path,
    app_name: Optional[str],
    out_dir: Optional[Path],
) -> None:
    """Convert a YAML changelog to HTML release notes."""
    config = _config(ctx)
    app_name = _require(app_name or config.get("app_name"), "--app-name", "app_name")
    out_dir = _require(out_dir or config.path("out_dir"), "--out-dir", "out_dir")

    paths = run_step(changelog_to_html, changelog_path, app_name, out_dir)
    if not output.QUIET:
        for path in paths:
            console.print(f"{Icons.SUCCESS} Wrote {escape(str(path))}")


@cli.command("validate-appcast")
@click.argument(
    "appcast_path", type=click.Path(path_type=Path, exists=True, dir_okay=False)
)
def validate_appcast_command(appcast_path: Path) -> None:
    """Check that an appcast lists releases newest to oldest."""
    versions = run_step(validate_appcast, appcast_path)
    if not output.QUIET:
        console.print(
            f"{Icons.SUCCESS} {escape(str(appcast_path))}: "
            f"{len(versions)} versions in order"
        )


@cli.command("sparkle")
@click.option(
    "--out-dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory for Sparkle files",
)
@click.option(
    "--src-dir",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
    help="Source directory containing CHANGELOG.yaml (default: current directory)",
)
@click.option(
    "--dmg-path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Path to the DMG file",
)
@click.option("--full-release-notes-url", help="URL for full release notes")
@click.option("--app-homepage", help="App homepage URL")
@click.pass_context
def sparkle_command(
    ctx: click.Context,
    out_dir: Optional[Path],
    src_dir: Optional[Path],
    dmg_path: Optional[Path],
    full_release_notes_url: Optional[str],
    app_homepage: Optional[str],
) -> None:
    """Generate release notes and the Sparkle appcast."""
    config = _config(ctx)
    out_dir = _require(out_dir or config.path("out_dir"), "--out-dir", "out_dir")
    src_dir = src_dir or config.path("src_dir") or Path.cwd()

    output.rule("Sparkle Update")
    appcast_path = run_step(
        sparkle,
        src_dir,
        out_dir,
        dmg_path=dmg_path,
        full_release_notes_url=full_release_notes_url
        or config.get("full_release_notes_url"),
        app_homepage=app_homepage or config.get("app_homepage"),
        derived_data_path=config.path("derived_data_path"),
        app_name=config.get("app_name"),
    )
    if not output.QUIET:
        console.print(
            f"\n{Icons.SUCCESS} Sparkle files written to "
            f"{escape(str(appcast_path.parent))}"
        )


def main() -> None:
    """Main entry point"""
    cli(prog_name="distribute-macos-app")
