"""
Dependency ("produced from") tree extraction.

Two page encodings are recognised:

1. a `data-treant` attribute carrying the tree as entity-encoded JSON
   (`{link: {href}, image, text: {name: <qty>}, children: [...]}`);
2. a nested list container (`class="tree"`) where each `<li>` holds one
   reference and an optional nested `<ul>`/`<ol>` of its inputs.

Recursion keeps the slugs seen on the current path; a repeated slug or
a path deeper than `max_depth` becomes a leaf with `truncated=True`.
"""
import json
import re
from typing import Any, FrozenSet, Optional

from bs4 import BeautifulSoup, Tag

from creaturerealm.config import config
from creaturerealm.models.records import TreeNode
from creaturerealm.parsers.refs import get_attr, parse_item_ref, parse_quantity
from creaturerealm.utils.text import abs_url, normalize_slug, normalize_whitespace, to_int

_TREANT_ATTR_RE = re.compile(r"""<[^>]*\bdata-treant\s*=\s*(?:"[^"]*"|'[^']*')[^>]*>""", re.I)


def slug_to_display_name(slug: Optional[str]) -> Optional[str]:
    """`Pal_Metal_Ingot` -> `Pal Metal Ingot`."""
    name = normalize_whitespace((slug or "").replace("_", " "))
    return name or None


def _truncated(slug: Optional[str], name: Optional[str], icon_url: Optional[str], quantity: Optional[int]) -> TreeNode:
    return TreeNode(slug=slug, name=name, icon_url=icon_url, quantity=quantity, truncated=True)


# -----------------------------
# data-treant JSON
# -----------------------------

def _treant_payload(html: str) -> Optional[Any]:
    m = _TREANT_ATTR_RE.search(html)
    if not m:
        return None
    raw = get_attr(m.group(0), "data-treant")
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _treant_node(node: Any, path: FrozenSet[str], depth: int, max_depth: int) -> TreeNode:
    node = node if isinstance(node, dict) else {}
    link = node.get("link") if isinstance(node.get("link"), dict) else {}
    href = link.get("href") or link.get("url")
    slug = normalize_slug(str(href)) if href else None
    slug = slug or None
    image = node.get("image")
    icon_url = abs_url(str(image)) if image else None
    text = node.get("text") if isinstance(node.get("text"), dict) else {}
    quantity = to_int(text.get("name"))
    name = slug_to_display_name(slug)

    if (slug and slug in path) or depth >= max_depth:
        return _truncated(slug, name, icon_url, quantity)

    child_path = path | {slug} if slug else path
    children = node.get("children") if isinstance(node.get("children"), list) else []
    return TreeNode(
        slug=slug,
        name=name,
        icon_url=icon_url,
        quantity=quantity,
        children=[_treant_node(child, child_path, depth + 1, max_depth) for child in children],
    )


# -----------------------------
# Nested list container
# -----------------------------

def _own_markup(li: Tag) -> str:
    """Markup of an `<li>` without its nested lists."""
    return "".join(
        str(child) for child in li.children
        if not (isinstance(child, Tag) and child.name in ("ul", "ol"))
    )


def _list_items(container: Tag):
    """Direct `<li>` items of the first nested list level under `container`."""
    for lst in container.find_all(["ul", "ol"], recursive=False):
        yield from lst.find_all("li", recursive=False)


def _list_node(li: Tag, path: FrozenSet[str], depth: int, max_depth: int) -> Optional[TreeNode]:
    markup = _own_markup(li)
    ref = parse_item_ref(markup)
    if ref is None:
        return None
    quantity = parse_quantity(markup)
    qty = quantity.value if quantity else None

    if ref.slug in path or depth >= max_depth:
        return _truncated(ref.slug, ref.name, ref.icon_url, qty)

    child_path = path | {ref.slug}
    children = []
    for child_li in _list_items(li):
        child = _list_node(child_li, child_path, depth + 1, max_depth)
        if child is not None:
            children.append(child)
    return TreeNode(slug=ref.slug, name=ref.name, icon_url=ref.icon_url, quantity=qty, children=children)


def _list_tree(html: str, max_depth: int) -> Optional[TreeNode]:
    soup = BeautifulSoup(html, "lxml")
    container = soup.find(class_="tree")
    if container is None:
        return None
    items = list(container.find_all("li", recursive=False)) if container.name in ("ul", "ol") else list(_list_items(container))
    for li in items:
        node = _list_node(li, frozenset(), 0, max_depth)
        if node is not None:
            return node
    return None


def parse_tree(detail_html: Optional[str], max_depth: Optional[int] = None) -> Optional[TreeNode]:
    """
    Dependency tree of a detail page, or `None` when the page has none.

    Most categories have no tree; `None` is the common outcome.
    """
    if not detail_html:
        return None
    limit = max_depth if max_depth is not None else config.MAX_TREE_DEPTH

    payload = _treant_payload(detail_html)
    if isinstance(payload, dict):
        return _treant_node(payload, frozenset(), 0, limit)

    return _list_tree(detail_html, limit)
