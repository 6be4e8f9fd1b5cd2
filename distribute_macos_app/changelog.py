"""Convert a YAML changelog into per-version and aggregate HTML release notes.

The changelog is a top-level YAML list, newest release first by convention::

    - version: 1.2.0
      date: 2024-03-01
      note:
        - Thanks to everyone who reported bugs!
      new:
        - Added **dark mode**
        - Sync:
            - iCloud support
            - Conflict resolution
      fix:
        - Fixed a crash on launch

Each entry is rendered to ``"<app name> <version>.html"``, which
``generate_appcast`` picks up as that version's release notes, and all
entries together are rendered to ``"<app name>.html"``.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import yaml  # type: ignore[import]

from .errors import ChangelogError
from .markup import Markdown2Renderer, MarkdownRenderer, format_html

SECTION_TITLES: Dict[str, str] = {
    "new": "New",
    "change": "Changes",
    "fix": "Fixes",
    "issue": "Known Issues",
}

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)(?:\.(0|[1-9]\d*)(?:\.(0|[1-9]\d*))?)?"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][\da-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][\da-zA-Z-]*))*))?"
    r"(?:\+([\da-zA-Z-]+(?:\.[\da-zA-Z-]+)*))?$"
)

DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y"]

MONTH_ABBREVIATIONS = (
    "Jan Feb Mar Apr May Jun Jul Aug Sep Oct Nov Dec".split()
)

INVALID_ITEM_MESSAGE = (
    "List items must be strings or objects with string keys and array values"
)


class ChangelogLoader(yaml.SafeLoader):
    """SafeLoader that keeps dotted numbers such as 1.10 as strings"""


ChangelogLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag != "tag:yaml.org,2002:float"
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass(frozen=True)
class Leaf:
    """A plain list item"""

    text: str


@dataclass(frozen=True)
class Group:
    """A labelled item holding a nested list"""

    label: str
    items: Tuple["ListItem", ...]


ListItem = Union[Leaf, Group]


@dataclass(frozen=True)
class ReleaseEntry:
    version: str
    date: date
    notes: Tuple[str, ...] = ()
    new: Tuple[ListItem, ...] = ()
    change: Tuple[ListItem, ...] = ()
    fix: Tuple[ListItem, ...] = ()
    issue: Tuple[ListItem, ...] = ()

    def section(self, kind: str) -> Tuple[ListItem, ...]:
        return getattr(self, kind)


@dataclass(frozen=True)
class RenderedEntry:
    version: str
    date: date
    content: str


def is_valid_semver(version: str) -> bool:
    """Check MAJOR[.MINOR[.PATCH]][-PRERELEASE][+BUILD]"""
    return bool(SEMVER_PATTERN.fullmatch(version))


def parse_date(value: Any) -> date:
    """Parse a changelog date; YAML may already have produced a date object"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise ValueError(f'Unrecognized date "{text}"')


def parse_list_items(raw: Any) -> Tuple[ListItem, ...]:
    """Convert one raw YAML list item into zero or more ListItems.

    A mapping produces one Group per key, in key order.
    """
    if isinstance(raw, str):
        return (Leaf(raw),)

    if isinstance(raw, dict):
        groups: List[ListItem] = []
        for key, value in raw.items():
            if not isinstance(value, list):
                raise TypeError(f'Value for key "{key}" must be an array')
            groups.append(Group(str(key), parse_list(value)))
        return tuple(groups)

    raise TypeError(INVALID_ITEM_MESSAGE)


def parse_list(raw_items: List[Any]) -> Tuple[ListItem, ...]:
    items: List[ListItem] = []
    for raw in raw_items:
        items.extend(parse_list_items(raw))
    return tuple(items)


def parse_entry(raw: Any, index: int) -> ReleaseEntry:
    """Validate one raw changelog entry and build a ReleaseEntry"""
    if not isinstance(raw, dict):
        raise TypeError(f"Entry at index {index} must be a mapping")

    version = raw.get("version")
    entry_date = raw.get("date")
    if not version or not entry_date:
        raise ValueError(f"Entry at index {index} must have version and date fields")

    # YAML reads `version: 2` as an integer
    if isinstance(version, int) and not isinstance(version, bool):
        version = str(version)

    if not isinstance(version, str) or not is_valid_semver(version):
        raise ValueError(
            f'Invalid version format at index {index}: "{version}". '
            "Must follow semver format (e.g., 1.0.0 or 1.16)"
        )

    try:
        parsed_date = parse_date(entry_date)
    except ValueError as e:
        raise ValueError(f"Invalid date at index {index}: {e}") from e

    notes: Tuple[str, ...] = ()
    if raw.get("note"):
        if not isinstance(raw["note"], list):
            raise TypeError(f"Note must be an array at index {index}")
        if not all(isinstance(note, str) for note in raw["note"]):
            raise TypeError(f"Notes must be strings at index {index}")
        notes = tuple(raw["note"])

    sections: Dict[str, Tuple[ListItem, ...]] = {}
    for kind in SECTION_TITLES:
        items = raw.get(kind)
        # Anything but a non-empty list is treated as an absent section
        sections[kind] = parse_list(items) if isinstance(items, list) else ()

    return ReleaseEntry(version=version, date=parsed_date, notes=notes, **sections)


def load_changelog(text: str) -> List[Any]:
    """Load the raw changelog document; the root must be a list"""
    document = yaml.load(text, Loader=ChangelogLoader)
    if not isinstance(document, list):
        raise TypeError("Changelog YAML must be a top-level array")
    return document


def iter_entries(document: List[Any]) -> Iterator[ReleaseEntry]:
    """Validate entries lazily, in document order"""
    for index, raw in enumerate(document):
        yield parse_entry(raw, index)


def parse_changelog(text: str) -> List[ReleaseEntry]:
    return list(iter_entries(load_changelog(text)))


# --- Rendering ---------------------------------------------------------------


def render_item(item: ListItem, renderer: MarkdownRenderer) -> str:
    if isinstance(item, Leaf):
        return f"<li>{renderer.render_inline(item.text)}</li>"

    if isinstance(item, Group):
        nested = "".join(render_item(child, renderer) for child in item.items)
        return f"<li>{renderer.render_inline(item.label)}:<ul>{nested}</ul></li>"

    raise TypeError(INVALID_ITEM_MESSAGE)


def render_section(
    kind: str, items: Tuple[ListItem, ...], renderer: MarkdownRenderer
) -> str:
    if not items:
        return ""

    list_items = "".join(render_item(item, renderer) for item in items)
    return f"""
    <div class="entry">
      <p class="entry-label entry-label__{kind}">{SECTION_TITLES[kind]}</p>
      <ul class="entry-list entry-list__{kind}">
        {list_items}
      </ul>
    </div>
  """.strip()


def render_notes(notes: Tuple[str, ...], renderer: MarkdownRenderer) -> str:
    if not notes:
        return ""
    content = "".join(renderer.render(note) for note in notes)
    return f'<div class="note">{content}</div>'


def render_entry(
    entry: ReleaseEntry, renderer: Optional[MarkdownRenderer] = None
) -> RenderedEntry:
    """Render one entry's release notes as a formatted HTML fragment"""
    renderer = renderer or Markdown2Renderer()
    parts = [render_notes(entry.notes, renderer)]
    parts.extend(
        render_section(kind, entry.section(kind), renderer) for kind in SECTION_TITLES
    )
    content = format_html("\n".join(parts))
    return RenderedEntry(version=entry.version, date=entry.date, content=content)


def iter_rendered(
    document: List[Any], renderer: Optional[MarkdownRenderer] = None
) -> Iterator[RenderedEntry]:
    renderer = renderer or Markdown2Renderer()
    for entry in iter_entries(document):
        yield render_entry(entry, renderer)


def format_display_date(value: date) -> str:
    """Format a date like "Mar 1, 2024" """
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}, {value.year}"


def render_aggregate(entries: List[RenderedEntry]) -> str:
    """Compose every rendered entry into one document, in the given order"""
    sections = []
    for entry in entries:
        sections.append(
            f"""
        <section class="changelog-section">
          <header class="changelog-section__header">
            <h2>{entry.version}</h2>
            <time datetime="{entry.date.isoformat()}" class="changelog-section__date">{format_display_date(entry.date)}</time>
          </header>
          <div class="changelog-section__content">
            {entry.content}
          </div>
        </section>
      """.strip()
        )
    return format_html("\n".join(sections))


# --- Output ------------------------------------------------------------------


def release_notes_filename(app_name: str, version: str) -> str:
    return f"{app_name} {version}.html"


def write_release_notes(
    entries: Iterator[RenderedEntry], app_name: str, out_dir: Path
) -> List[RenderedEntry]:
    """Write each entry's file as soon as it is rendered"""
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for entry in entries:
        path = out_dir / release_notes_filename(app_name, entry.version)
        with open(path, "w", encoding="utf-8") as f:
            f.write(entry.content)
        written.append(entry)
    return written


def changelog_to_html(
    changelog_path: Path,
    app_name: str,
    out_dir: Path,
    renderer: Optional[MarkdownRenderer] = None,
) -> List[Path]:
    """Convert a YAML changelog into HTML release notes.

    Writes ``"<app_name> <version>.html"`` per entry and ``"<app_name>.html"``
    with every entry, all inside ``out_dir``. Returns the written paths, the
    aggregate last.

    Raises ChangelogError on any parse or validation failure. Files already
    written for entries before the failing one are left in place.
    """
    changelog_path = Path(changelog_path)
    out_dir = Path(out_dir)

    try:
        with open(changelog_path, "r", encoding="utf-8") as f:
            document = load_changelog(f.read())

        written = write_release_notes(
            iter_rendered(document, renderer), app_name, out_dir
        )

        aggregate_path = out_dir / f"{app_name}.html"
        with open(aggregate_path, "w", encoding="utf-8") as f:
            f.write(render_aggregate(written))
    except (ValueError, TypeError, yaml.YAMLError, OSError) as e:
        raise ChangelogError(f"Failed to convert changelog to HTML: {e}") from e

    paths = [out_dir / release_notes_filename(app_name, entry.version) for entry in written]
    paths.append(aggregate_path)
    return paths
