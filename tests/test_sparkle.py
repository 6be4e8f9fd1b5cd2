import subprocess
from pathlib import Path

import pytest

from distribute_macos_app import sparkle as sparkle_module
from distribute_macos_app.errors import AppcastError, ReleaseError
from distribute_macos_app.sparkle import (
    GENERATE_APPCAST_PATH,
    delete_partial_release_notes,
    generate_appcast_command,
    sparkle,
)

from .conftest import appcast_xml

CHANGELOG = """\
- version: 1.1.0
  date: 2024-02-01
  new:
    - Shiny thing
- version: 1.0.0
  date: 2024-01-01
  fix:
    - Old bug
"""


@pytest.fixture
def src_dir(tmp_path):
    src = tmp_path / "Foo"
    src.mkdir()
    (src / "CHANGELOG.yaml").write_text(CHANGELOG, encoding="utf-8")
    tool = src / ".build" / "DerivedData" / GENERATE_APPCAST_PATH
    tool.parent.mkdir(parents=True)
    tool.write_text("#!/bin/sh\n", encoding="utf-8")
    return src


class FakeCommands:
    """Stands in for run_command; generate_appcast writes the given appcast"""

    def __init__(self, appcast_versions=("3", "2"), key_found=True):
        self.calls = []
        self.appcast_versions = appcast_versions
        self.key_found = key_found
        self.notes_seen = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        if cmd[0] == "security" and not self.key_found:
            raise ReleaseError(f"Command failed: {' '.join(cmd)}")
        if cmd[0].endswith("generate_appcast"):
            out_dir = Path(cmd[-1])
            self.notes_seen = sorted(p.name for p in out_dir.glob("*.html"))
            (out_dir / "appcast.xml").write_text(
                appcast_xml(*self.appcast_versions), encoding="utf-8"
            )
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def commands(monkeypatch):
    fake = FakeCommands()
    monkeypatch.setattr(sparkle_module, "run_command", fake)
    return fake


def test_sparkle_generates_appcast_and_cleans_up(tmp_path, src_dir, commands):
    out_dir = tmp_path / "release"
    dmg = tmp_path / "Foo_v1.1.0.dmg"
    dmg.write_bytes(b"disk image")

    appcast_path = sparkle(
        src_dir,
        out_dir,
        dmg_path=dmg,
        full_release_notes_url="https://example.com/changelog",
        app_homepage="https://example.com",
    )

    assert appcast_path == out_dir / "appcast.xml"
    assert commands.calls[0] == [
        "security",
        "find-generic-password",
        "-l",
        "Private key for signing Sparkle updates",
    ]
    tool = src_dir / ".build" / "DerivedData" / GENERATE_APPCAST_PATH
    assert commands.calls[1] == [
        str(tool),
        "--link",
        "https://example.com",
        "--full-release-notes-url",
        "https://example.com/changelog",
        "--auto-prune-update-files",
        str(out_dir),
    ]
    # generate_appcast saw the per-version notes, which are removed afterwards
    assert commands.notes_seen == ["Foo 1.0.0.html", "Foo 1.1.0.html", "Foo.html"]
    assert sorted(p.name for p in out_dir.iterdir()) == [
        "Foo.html",
        "Foo_v1.1.0.dmg",
        "appcast.xml",
    ]
    assert (out_dir / "Foo_v1.1.0.dmg").read_bytes() == b"disk image"


def test_sparkle_uses_explicit_app_name_and_derived_data(tmp_path, src_dir, commands):
    derived = tmp_path / "DerivedData"
    tool = derived / GENERATE_APPCAST_PATH
    tool.parent.mkdir(parents=True)
    tool.write_text("", encoding="utf-8")

    sparkle(src_dir, tmp_path / "out", derived_data_path=derived, app_name="Foo Pro")

    assert commands.calls[1] == [str(tool), "--auto-prune-update-files", str(tmp_path / "out")]
    assert "Foo Pro 1.1.0.html" in commands.notes_seen
    assert (tmp_path / "out" / "Foo Pro.html").exists()


def test_sparkle_requires_private_key(tmp_path, src_dir, monkeypatch):
    monkeypatch.setattr(sparkle_module, "run_command", FakeCommands(key_found=False))

    with pytest.raises(ReleaseError, match="Sparkle private key not found"):
        sparkle(src_dir, tmp_path / "out")

    assert not (tmp_path / "out").exists()


def test_sparkle_requires_changelog(tmp_path, src_dir, commands):
    (src_dir / "CHANGELOG.yaml").unlink()

    with pytest.raises(ReleaseError, match="No CHANGELOG.yaml found"):
        sparkle(src_dir, tmp_path / "out")


def test_sparkle_requires_generate_appcast(tmp_path, src_dir, commands):
    with pytest.raises(ReleaseError, match="generate_appcast tool"):
        sparkle(src_dir, tmp_path / "out", derived_data_path=tmp_path / "missing")

    assert len(commands.calls) == 1


def test_sparkle_rejects_misordered_appcast(tmp_path, src_dir, monkeypatch):
    monkeypatch.setattr(sparkle_module, "run_command", FakeCommands(appcast_versions=("2", "3")))

    with pytest.raises(AppcastError, match="position 2"):
        sparkle(src_dir, tmp_path / "out")


def test_sparkle_stops_on_changelog_errors(tmp_path, src_dir, commands):
    (src_dir / "CHANGELOG.yaml").write_text("- version: nope\n  date: 2024-01-01\n", encoding="utf-8")

    with pytest.raises(ReleaseError, match="Failed to convert changelog to HTML"):
        sparkle(src_dir, tmp_path / "out")

    assert len(commands.calls) == 1


def test_generate_appcast_command_without_options(tmp_path):
    assert generate_appcast_command(tmp_path / "tool", tmp_path) == [
        str(tmp_path / "tool"),
        "--auto-prune-update-files",
        str(tmp_path),
    ]


def test_delete_partial_release_notes_keeps_aggregate(tmp_path):
    for name in ["App 1.0.0.html", "App 2.0.0.html", "App.html", "Other 1.0.0.html"]:
        (tmp_path / name).write_text("", encoding="utf-8")

    deleted = delete_partial_release_notes(tmp_path, "App")

    assert [p.name for p in deleted] == ["App 1.0.0.html", "App 2.0.0.html"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["App.html", "Other 1.0.0.html"]


def test_delete_partial_release_notes_escapes_glob_characters(tmp_path):
    for name in ["App [beta] 1.0.0.html", "Appb 1.0.0.html"]:
        (tmp_path / name).write_text("", encoding="utf-8")

    deleted = delete_partial_release_notes(tmp_path, "App [beta]")

    assert [p.name for p in deleted] == ["App [beta] 1.0.0.html"]
