"""Sparkle step: release notes, DMG copy, appcast generation."""

import glob
import shutil
from pathlib import Path
from typing import List, Optional

from . import console as output
from .appcast import validate_appcast
from .changelog import changelog_to_html
from .console import Icons, console, escape, success
from .errors import ReleaseError
from .process import run_command

SPARKLE_KEY_LABEL = "Private key for signing Sparkle updates"
CHANGELOG_FILENAME = "CHANGELOG.yaml"
APPCAST_FILENAME = "appcast.xml"
GENERATE_APPCAST_PATH = Path("SourcePackages/artifacts/sparkle/Sparkle/bin/generate_appcast")


def check_sparkle_private_key() -> None:
    """Make sure the Sparkle EdDSA key is in the keychain"""
    try:
        run_command(
            ["security", "find-generic-password", "-l", SPARKLE_KEY_LABEL],
            show_output=False,
        )
    except ReleaseError as e:
        raise ReleaseError(
            "Sparkle private key not found. Run `generate_keys -f PRIVATE_KEY_PATH` "
            "to add an existing key to your keychain."
        ) from e


def generate_appcast_command(
    appcast_tool: Path,
    out_dir: Path,
    full_release_notes_url: Optional[str] = None,
    app_homepage: Optional[str] = None,
) -> List[str]:
    cmd = [str(appcast_tool)]
    if app_homepage:
        cmd.extend(["--link", app_homepage])
    if full_release_notes_url:
        cmd.extend(["--full-release-notes-url", full_release_notes_url])
    cmd.extend(["--auto-prune-update-files", str(out_dir)])
    return cmd


def delete_partial_release_notes(out_dir: Path, app_name: str) -> List[Path]:
    """Remove per-version release notes, keeping "<app_name>.html" """
    deleted = []
    for path in sorted(out_dir.glob(f"{glob.escape(app_name)} *.html")):
        path.unlink()
        deleted.append(path)
    return deleted


def sparkle(
    src_dir: Path,
    out_dir: Path,
    dmg_path: Optional[Path] = None,
    full_release_notes_url: Optional[str] = None,
    app_homepage: Optional[str] = None,
    derived_data_path: Optional[Path] = None,
    app_name: Optional[str] = None,
) -> Path:
    """Generate release notes and the Sparkle appcast into out_dir.

    Returns the path of the generated appcast.
    """
    src_dir = Path(src_dir)
    out_dir = Path(out_dir)
    app_name = app_name or src_dir.resolve().name
    derived_data_path = (
        Path(derived_data_path) if derived_data_path else src_dir / ".build" / "DerivedData"
    )

    with console.status("Checking Sparkle private key..."):
        check_sparkle_private_key()
    success("Sparkle private key found")

    changelog_path = src_dir / CHANGELOG_FILENAME
    if not changelog_path.exists():
        raise ReleaseError(f"No {CHANGELOG_FILENAME} found (looked for {changelog_path})")

    with console.status("Generating release notes..."):
        changelog_to_html(changelog_path, app_name, out_dir)
    success(f"Generated release notes for {app_name}")

    out_dir.mkdir(parents=True, exist_ok=True)

    if dmg_path:
        dmg_path = Path(dmg_path)
        target_dmg_path = out_dir / dmg_path.name
        if not output.QUIET:
            console.print(f"{Icons.PROGRESS} Copying DMG to {escape(str(target_dmg_path))}...")
        shutil.copyfile(dmg_path, target_dmg_path)
    elif not output.QUIET:
        console.print(f"{Icons.INFO} No DMG given, skipping copy")

    appcast_tool = derived_data_path / GENERATE_APPCAST_PATH
    if not appcast_tool.exists():
        raise ReleaseError(
            f"Couldn't find the Sparkle generate_appcast tool at {appcast_tool}. "
            "Make sure Sparkle framework is built."
        )

    with console.status(f"Generating {APPCAST_FILENAME}..."):
        run_command(
            generate_appcast_command(
                appcast_tool, out_dir, full_release_notes_url, app_homepage
            )
        )

    appcast_path = out_dir / APPCAST_FILENAME
    if appcast_path.exists():
        validate_appcast(appcast_path)
        success(f"Validated {APPCAST_FILENAME} version ordering")

    for path in delete_partial_release_notes(out_dir, app_name):
        if output.VERBOSE:
            console.print(f"[dim]Deleted {escape(str(path))}[/dim]")
    success(f"Generated {APPCAST_FILENAME}")

    return appcast_path
