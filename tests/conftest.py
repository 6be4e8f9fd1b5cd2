from pathlib import Path
from typing import Callable

import pytest

from distribute_macos_app.console import set_verbosity


@pytest.fixture(autouse=True)
def reset_verbosity():
    set_verbosity()
    yield
    set_verbosity()


@pytest.fixture
def write_changelog(tmp_path: Path) -> Callable[[str], Path]:
    def write(text: str, name: str = "CHANGELOG.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return write


def appcast_xml(*versions: str) -> str:
    items = "\n".join(
        f"""    <item>
      <title>Version {version}</title>
      <sparkle:version>{version}</sparkle:version>
      <sparkle:shortVersionString>1.0.{version}</sparkle:shortVersionString>
    </item>"""
        for version in versions
    )
    return f"""<?xml version="1.0" encoding="utf-8"?>
<rss xmlns:sparkle="http://www.andymatuschak.org/xml-namespaces/sparkle" version="2.0">
  <channel>
    <title>Foo</title>
{items}
  </channel>
</rss>
"""
