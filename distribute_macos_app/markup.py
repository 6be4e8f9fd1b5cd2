"""Markdown rendering and HTML pretty-printing for release notes."""

from typing import Iterable, Optional, Protocol

import markdown2  # type: ignore[import]
from lxml import etree  # type: ignore[import]
from lxml import html as lxml_html  # type: ignore[import]

from .console import warn

MARKDOWN_EXTRAS = (
    "strike",
    "target-blank-links",
    "smarty-pants",
)

INDENT = "  "

# Elements laid out on their own lines. Everything else, and anything inside
# <pre>, keeps its whitespace exactly as rendered.
BLOCK_TAGS = frozenset(
    {
        "article", "blockquote", "dd", "div", "dl", "dt", "footer", "h1", "h2",
        "h3", "h4", "h5", "h6", "header", "hr", "li", "ol", "p", "pre",
        "section", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)


class MarkdownRenderer(Protocol):
    """Anything that can turn markdown into HTML, block or inline"""

    def render(self, text: str) -> str: ...

    def render_inline(self, text: str) -> str: ...


class Markdown2Renderer:
    """Markdown renderer backed by markdown2"""

    def __init__(self, extras: Optional[Iterable[str]] = None):
        extras = MARKDOWN_EXTRAS if extras is None else extras
        self._markdown = markdown2.Markdown(extras=list(extras))

    def render(self, text: str) -> str:
        return str(self._markdown.convert(text))

    def render_inline(self, text: str) -> str:
        """Render markdown without the enclosing paragraph.

        markdown2 has no inline mode, so a single wrapping ``<p>`` is
        stripped. Text that renders to several blocks is returned as is.
        """
        rendered = self.render(text).strip()
        if (
            rendered.startswith("<p>")
            and rendered.endswith("</p>")
            and rendered.count("<p>") == 1
        ):
            return rendered[len("<p>") : -len("</p>")]
        return rendered


def _is_block(node) -> bool:
    return isinstance(node.tag, str) and node.tag in BLOCK_TAGS


def indent_blocks(node, level: int = 0) -> None:
    """Indent the block-level children of node in place.

    Only elements holding nothing but block children (and blank text) are
    re-indented, so inline siblings and <pre> contents are never split.
    """
    if node.tag == "pre":
        return

    children = list(node)
    if not children:
        return

    only_blocks = (
        all(_is_block(child) for child in children)
        and not (node.text and node.text.strip())
        and not any(child.tail and child.tail.strip() for child in children)
    )
    if only_blocks:
        node.text = "\n" + INDENT * (level + 1)
        for child in children:
            child.tail = "\n" + INDENT * (level + 1)
        children[-1].tail = "\n" + INDENT * level

    for child in children:
        if _is_block(child):
            indent_blocks(child, level + 1)


def prettify(fragment: str) -> str:
    """Re-indent an HTML fragment. Raises on markup lxml cannot handle."""
    if not fragment.strip():
        return ""

    parser = lxml_html.HTMLParser(remove_blank_text=True)
    pieces = []
    for node in lxml_html.fragments_fromstring(fragment, parser=parser):
        # Leading text comes back as a plain string
        if isinstance(node, str):
            pieces.append(node.strip())
            continue

        indent_blocks(node)
        pieces.append(
            etree.tostring(node, method="html", encoding="unicode", with_tail=False)
        )
        if node.tail and node.tail.strip():
            pieces.append(node.tail.strip())

    return "\n".join(pieces) + "\n"


def format_html(fragment: str) -> str:
    """Pretty-print HTML, falling back to the input if formatting fails"""
    try:
        return prettify(fragment)
    except Exception as e:
        warn(f"Failed to format HTML: {e}")
        return fragment
