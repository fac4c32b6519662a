"""
Section isolation: tab panes, heading regions and titled cards.

The page is parsed once into an element tree (BeautifulSoup + lxml) and
sections are isolated by tree traversal. When the tree walk finds
nothing, the textual heuristic is tried: slice from the start marker to
the next marker of the same kind. That heuristic assumes sibling markers
are not nested inside each other, which holds for the targeted templates.
"""
import copy
import re
from functools import lru_cache
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from creaturerealm.parsers.blocks import extract_all_blocks, extract_block, has_class
from creaturerealm.utils.text import html_to_text, normalize_whitespace

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

_OPEN_TAG_RE = re.compile(r"<([a-zA-Z][\w-]*)\b[^>]*>")
_HEADING_RE = re.compile(r"<h([1-6])\b[^>]*>([\s\S]*?)</h\1\s*>", re.I)
_CARD_TITLE_RE = re.compile(
    r"""<h\d\b[^>]*class\s*=\s*["'][^"']*\bcard-title\b[^"']*["'][^>]*>([\s\S]*?)</h\d\s*>""",
    re.I,
)
_TABLE_OPEN_RE = re.compile(r"<table\b[^>]*>", re.I)
_TABLE_CLOSE_RE = re.compile(r"</table\s*>", re.I)


def _label(text: Optional[str]) -> str:
    return normalize_whitespace(text).lower()


@lru_cache(maxsize=16)
def _soup(html: str) -> BeautifulSoup:
    """Parsed tree of a page; shared read-only between section lookups."""
    return BeautifulSoup(html, "lxml")


def _heading_level(tag: Tag) -> int:
    return int(tag.name[1])


def _is_heading_wrapper(tag: Optional[Tag]) -> bool:
    """Wiki renderers may wrap a heading in `<div class="mw-heading">`."""
    return tag is not None and tag.name == "div" and "mw-heading" in (tag.get("class") or [])


def _level_of(tag: Tag) -> Optional[int]:
    if tag.name in HEADING_TAGS:
        return _heading_level(tag)
    if _is_heading_wrapper(tag):
        inner = tag.find(HEADING_TAGS)
        return _heading_level(inner) if inner is not None else None
    return None


def _heading_label(heading: Tag) -> str:
    """Heading text without wiki `[edit]` links; the `mw-headline` span wins when present."""
    headline = heading.find(class_="mw-headline")
    if headline is not None:
        return _label(headline.get_text(" "))
    heading = copy.copy(heading)
    for edit in heading.find_all(class_="mw-editsection"):
        edit.decompose()
    return _label(heading.get_text(" "))


def _heading_region(heading: Tag) -> str:
    """The heading plus its following siblings up to the next heading of equal or higher level."""
    level = _heading_level(heading)
    anchor = heading.parent if _is_heading_wrapper(heading.parent) else heading
    parts: List[str] = [str(anchor)]
    for sibling in anchor.next_siblings:
        if isinstance(sibling, Tag):
            sibling_level = _level_of(sibling)
            if sibling_level is not None and sibling_level <= level:
                break
        parts.append(str(sibling))
    return "".join(parts)


# -----------------------------
# Tab panes (element by id)
# -----------------------------

def _is_tab_pane(tag: Tag) -> bool:
    return tag.name is not None and tag.has_attr("id") and "tab-pane" in (tag.get("class") or [])


def _tab_pane_from_tree(html: str, pane_id: str) -> Optional[str]:
    element = _soup(html).find(id=pane_id)
    if element is None:
        return None
    heading = element if element.name in HEADING_TAGS else element.find_parent(HEADING_TAGS)
    if heading is not None:
        return _heading_region(heading)
    if not _is_tab_pane(element):
        return str(element)
    # an unclosed pane makes the parser nest the following panes inside it
    pane = copy.copy(element)
    for nested in pane.find_all(_is_tab_pane):
        nested.decompose()
    return str(pane)


def _tab_pane_from_text(html: str, pane_id: str) -> Optional[str]:
    id_re = re.compile(rf"""\bid\s*=\s*(?:"{re.escape(pane_id)}"|'{re.escape(pane_id)}'|{re.escape(pane_id)}(?=[\s>]))""", re.I)
    start = None
    start_tag = ""
    for m in _OPEN_TAG_RE.finditer(html):
        if id_re.search(m.group(0)):
            start = m.start()
            start_tag = m.group(0)
            break
    if start is None:
        return None

    tag_name = _OPEN_TAG_RE.match(start_tag).group(1).lower()
    kind_token = "tab-pane" if has_class(start_tag, "tab-pane") else None
    for m in _OPEN_TAG_RE.finditer(html, start + len(start_tag)):
        candidate = m.group(0)
        if m.group(1).lower() != tag_name or not re.search(r"\bid\s*=", candidate, re.I):
            continue
        if kind_token and not has_class(candidate, kind_token):
            continue
        return html[start:m.start()]
    return html[start:]


def extract_tab_pane(html: Optional[str], pane_id: str) -> Optional[str]:
    """
    Markup of the element carrying `id=pane_id`, or `None`.

    When that element is a heading, or sits inside one (wiki `mw-headline`
    anchors), the whole heading region is returned instead.
    """
    if not html or not pane_id:
        return None
    return _tab_pane_from_tree(html, pane_id) or _tab_pane_from_text(html, pane_id)


# -----------------------------
# Heading regions
# -----------------------------

def _heading_from_tree(html: str, label: str) -> Optional[str]:
    wanted = _label(label)
    for heading in _soup(html).find_all(HEADING_TAGS):
        if _heading_label(heading) == wanted:
            return _heading_region(heading)
    return None


def _without_edit_links(fragment: str) -> str:
    for block in extract_all_blocks(fragment, "mw-editsection", tag="span"):
        fragment = fragment.replace(block, "")
    return fragment


def _heading_from_text(html: str, label: str) -> Optional[str]:
    wanted = _label(label)
    for m in _HEADING_RE.finditer(html):
        if _label(html_to_text(_without_edit_links(m.group(2)))) != wanted:
            continue
        level = int(m.group(1))
        stop_re = re.compile(rf"<h[1-{level}]\b", re.I)
        stop = stop_re.search(html, m.end())
        return html[m.start():stop.start() if stop else len(html)]
    return None


def extract_heading_section(html: Optional[str], label: str) -> Optional[str]:
    """
    A heading whose text equals `label` plus everything up to the next
    heading of equal or higher level.
    """
    if not html or not label:
        return None
    return _heading_from_tree(html, label) or _heading_from_text(html, label)


def extract_named_section(html: Optional[str], section_id: str) -> Optional[str]:
    """
    Isolate a named subsection: an element carrying the id, otherwise a
    heading region with that label. `None` when neither marker exists.
    """
    return extract_tab_pane(html, section_id) or extract_heading_section(html, section_id)


# -----------------------------
# Titled cards
# -----------------------------

def _card_from_tree(html: str, needle: str) -> Optional[str]:
    for title in _soup(html).find_all(HEADING_TAGS, class_="card-title"):
        if needle not in _label(title.get_text(" ")):
            continue
        card = title.find_parent(lambda t: t.name == "div" and "card" in (t.get("class") or []))
        if card is not None:
            return str(card)
    return None


def _card_from_text(html: str, needle: str) -> Optional[str]:
    for card in _iter_cards_text(html):
        m = _CARD_TITLE_RE.search(card)
        if m and needle in _label(html_to_text(m.group(1))):
            return card
    return None


def _iter_cards_text(html: str):
    """Every `card` block, nested cards before the card that wraps them."""
    for card in extract_all_blocks(html, "card"):
        inner_start = card.find(">") + 1
        yield from _iter_cards_text(card[inner_start:])
        yield card


def extract_card_by_title(html: Optional[str], title: str) -> Optional[str]:
    """
    The innermost `card` containing a `card-title` heading whose text
    contains `title` (case-insensitive).
    """
    needle = _label(title)
    if not html or not needle:
        return None
    return _card_from_tree(html, needle) or _card_from_text(html, needle)


# -----------------------------
# Tables inside a section
# -----------------------------

def extract_first_table(html: Optional[str], class_token: Optional[str] = "table") -> Optional[str]:
    """
    First `<table>` carrying `class_token`.

    A table whose `</table>` is missing runs to the end of the input
    instead of being dropped.
    """
    if not html:
        return None
    block = extract_block(html, class_token, tag="table")
    if block:
        return block
    for m in _TABLE_OPEN_RE.finditer(html):
        if has_class(m.group(0), class_token):
            rest = html[m.start():]
            close = _TABLE_CLOSE_RE.search(rest)
            return rest[:close.end()] if close else rest
    return None
