"""Sanity checks for a generated Sparkle appcast."""

import re
from pathlib import Path
from typing import List

from .errors import AppcastError

VERSION_TAG_PATTERN = re.compile(r"<sparkle:version>([^<]+)</sparkle:version>")


def read_versions(xml_content: str) -> List[int]:
    """Extract sparkle:version build numbers in document order"""
    versions = []
    for position, match in enumerate(VERSION_TAG_PATTERN.finditer(xml_content), 1):
        token = match.group(1).strip()
        try:
            versions.append(int(token))
        except ValueError:
            raise AppcastError(
                f'Malformed sparkle:version "{token}" at position {position}: '
                "expected a numeric build number"
            ) from None
    return versions


def check_version_order(versions: List[int]) -> None:
    """Require strictly descending versions, newest first"""
    for i in range(1, len(versions)):
        previous_version = versions[i - 1]
        current_version = versions[i]
        if current_version >= previous_version:
            raise AppcastError(
                f'Invalid version ordering: sparkle:version "{current_version}" '
                f"at position {i + 1} should be less than previous version "
                f'"{previous_version}" (items should be ordered newest to oldest)'
            )


def validate_appcast(appcast_path: Path) -> List[int]:
    """Validate that appcast.xml lists its items newest to oldest.

    The file is scanned as text rather than parsed as XML. Returns the
    versions found.
    """
    with open(appcast_path, "r", encoding="utf-8") as f:
        xml_content = f.read()

    versions = read_versions(xml_content)
    check_version_order(versions)
    return versions
