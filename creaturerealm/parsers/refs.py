"""
Reference and quantity extraction from anchor + image markup.

Every resolver tries the richest markup first and plain text last:
icon from a responsive candidate set, then a plain source attribute;
name from image alt, anchor title, then anchor text.
"""
import re
from typing import List, Optional

from creaturerealm.models.records import IngredientRef, ItemRef, Quantity, QuantitySource
from creaturerealm.parsers.blocks import has_class, tag_attrs
from creaturerealm.utils.text import (
    abs_url,
    decode_entities,
    dedupe_by,
    html_to_text,
    last_number,
    normalize_slug,
    normalize_whitespace,
    to_int,
)

WORK_SLUG = "__work__"
WORK_ICON_MARKER = "T_icon_status_05"

_ANCHOR_RE = re.compile(r"<a\b[^>]*>", re.I)
_ANCHOR_CLOSE_RE = re.compile(r"</a\s*>", re.I)
_IMG_RE = re.compile(r"<img\b[^>]*>", re.I)

_QTY_LABEL_RE = re.compile(
    r"""<(\w+)\b[^>]*class\s*=\s*["'][^"']*\bitemQuantity\b[^"']*["'][^>]*>([\s\S]*?)</\1\s*>""",
    re.I,
)
_TRAILING_DIV_QTY_RE = re.compile(r"</a\s*>\s*(?:</div\s*>\s*)?<div\b[^>]*>\s*([0-9][0-9,]*)\s*</div\s*>", re.I)
_INLINE_X_QTY_RE = re.compile(r"(?:(?:^|(?<=\s))[x×]\s*([0-9][0-9,]*)\b|\b([0-9][0-9,]*)\s*[x×](?=\s|$))", re.I)
_NUMBER_RE = re.compile(r"[0-9][0-9,]*")


def get_attr(tag_html: Optional[str], attr: str) -> Optional[str]:
    """Attribute value from one opening tag; any quoting style; entity-decoded."""
    if not tag_html:
        return None
    value = tag_attrs(tag_html).get(attr.lower())
    if value is None:
        return None
    value = decode_entities(value).strip()
    return value or None


def pick_srcset_candidate(srcset: Optional[str]) -> Optional[str]:
    """Last (highest resolution) URL of an image candidate set."""
    if not srcset:
        return None
    candidates = [part.strip().split()[0] for part in srcset.split(",") if part.strip()]
    return candidates[-1] if candidates else None


def image_url(img_tag: Optional[str]) -> Optional[str]:
    """Resolve an `<img>` tag to an absolute icon URL."""
    if not img_tag:
        return None
    for attr in ("srcset", "data-srcset"):
        candidate = pick_srcset_candidate(get_attr(img_tag, attr))
        if candidate:
            return abs_url(candidate)
    for attr in ("src", "data-src", "data-lazy-src", "data-original"):
        value = get_attr(img_tag, attr)
        if value:
            return abs_url(value)
    return None


def _first_anchor(fragment: str, class_token: Optional[str] = None):
    """(open tag, inner markup, end index) of the first matching anchor."""
    for m in _ANCHOR_RE.finditer(fragment):
        open_tag = m.group(0)
        if not has_class(open_tag, class_token):
            continue
        close = _ANCHOR_CLOSE_RE.search(fragment, m.end())
        end = close.start() if close else len(fragment)
        after = close.end() if close else len(fragment)
        return open_tag, fragment[m.end():end], after
    return None


def _ref_from_anchor(open_tag: str, inner: str, fragment: str) -> Optional[ItemRef]:
    href = get_attr(open_tag, "href")
    slug = normalize_slug(href)
    if not slug:
        return None

    inner_img = _IMG_RE.search(inner)
    img_m = inner_img or _IMG_RE.search(fragment)
    img_tag = img_m.group(0) if img_m else None
    alt = get_attr(inner_img.group(0), "alt") if inner_img else None

    name = (
        normalize_whitespace(alt)
        or normalize_whitespace(get_attr(open_tag, "title"))
        or html_to_text(inner)
        or slug.replace("_", " ")
    )

    return ItemRef(slug=slug, name=name, icon_url=image_url(img_tag))


def parse_item_ref(fragment_html: Optional[str], class_token: Optional[str] = None) -> Optional[ItemRef]:
    """
    Reference of the first anchor in a fragment.

    Returns `None` only when the fragment has no (usable) anchor at all.
    """
    fragment = fragment_html or ""
    found = _first_anchor(fragment, class_token)
    if not found:
        return None
    open_tag, inner, _ = found
    return _ref_from_anchor(open_tag, inner, fragment)


def parse_quantity(fragment_html: Optional[str]) -> Optional[Quantity]:
    """
    Quantity shown next to a reference.

    Explicit markers are tried first: an `itemQuantity` label, a numeric
    `<div>` right after the anchor, then an inline `x3` / `3x` in the
    text. Failing those, the last bare number of the fragment text is
    returned with `source=INFERRED`; that fallback can pick up unrelated
    numbers and callers should weigh it accordingly.
    """
    fragment = fragment_html or ""
    if not fragment:
        return None

    label = _QTY_LABEL_RE.search(fragment)
    if label:
        text = html_to_text(label.group(2))
        number = _NUMBER_RE.search(text)
        if number:
            return Quantity(value=to_int(number.group(0)), text=text, source=QuantitySource.EXPLICIT)

    trailing = _TRAILING_DIV_QTY_RE.search(fragment)
    if trailing:
        raw = trailing.group(1)
        return Quantity(value=to_int(raw), text=raw, source=QuantitySource.EXPLICIT)

    text = html_to_text(fragment)
    inline = _INLINE_X_QTY_RE.search(text)
    if inline:
        raw = inline.group(1) or inline.group(2)
        return Quantity(value=to_int(raw), text=f"x{raw}", source=QuantitySource.EXPLICIT)

    value = last_number(text)
    if value is None:
        return None
    return Quantity(value=value, text=str(value), source=QuantitySource.INFERRED)


def ingredient_from(ref: ItemRef, quantity: Optional[Quantity]) -> IngredientRef:
    return IngredientRef(
        slug=ref.slug,
        name=ref.name,
        icon_url=ref.icon_url,
        quantity=quantity.value if quantity else None,
        quantity_text=quantity.text if quantity else None,
        quantity_source=quantity.source if quantity else None,
    )


def parse_ingredient(fragment_html: Optional[str]) -> Optional[IngredientRef]:
    """Reference plus its quantity, or the "Work" pseudo-ingredient."""
    fragment = fragment_html or ""
    ref = parse_item_ref(fragment)
    if ref is None:
        return _parse_work_ingredient(fragment)
    return ingredient_from(ref, parse_quantity(fragment))


def _parse_work_ingredient(fragment: str) -> Optional[IngredientRef]:
    for m in _IMG_RE.finditer(fragment):
        icon = image_url(m.group(0))
        if icon and WORK_ICON_MARKER in icon:
            return ingredient_from(
                ItemRef(slug=WORK_SLUG, name="Work", icon_url=icon),
                parse_quantity(fragment),
            )
    return None


def is_work_ingredient(ref: Optional[ItemRef]) -> bool:
    """True for the crafting "Work" pseudo-ingredient."""
    if ref is None:
        return False
    return ref.slug == WORK_SLUG or WORK_ICON_MARKER in (ref.icon_url or "")


def parse_item_links(html: Optional[str], class_token: Optional[str] = "itemname") -> List[ItemRef]:
    """Every anchor carrying `class_token`, deduped by slug (first wins)."""
    src = html or ""
    refs: List[ItemRef] = []
    pos = 0
    while True:
        found = _first_anchor(src[pos:], class_token)
        if not found:
            break
        open_tag, inner, after = found
        ref = _ref_from_anchor(open_tag, inner, open_tag + inner)
        if ref:
            refs.append(ref)
        pos += after
    return dedupe_by(refs, key=lambda r: r.slug)


def parse_ingredient_list(html: Optional[str], class_token: Optional[str] = "itemname") -> List[IngredientRef]:
    """
    Several anchor + quantity pairs packed into one cell.

    Each anchor's quantity is read from the markup between the end of
    that anchor and the start of the next one.
    """
    src = html or ""
    anchors = []
    pos = 0
    while True:
        found = _first_anchor(src[pos:], class_token)
        if not found:
            break
        open_tag, inner, after = found
        anchors.append((open_tag, inner, pos + after))
        pos += after

    out: List[IngredientRef] = []
    for i, (open_tag, inner, end) in enumerate(anchors):
        ref = _ref_from_anchor(open_tag, inner, open_tag + inner)
        if ref is None:
            continue
        next_start = _next_anchor_start(src, end) if i + 1 < len(anchors) else len(src)
        quantity = parse_explicit_quantity(src[end:next_start])
        out.append(ingredient_from(ref, quantity))
    return dedupe_by(out, key=lambda r: r.slug)


def _next_anchor_start(src: str, pos: int) -> int:
    m = _ANCHOR_RE.search(src, pos)
    return m.start() if m else len(src)


def parse_explicit_quantity(fragment: Optional[str]) -> Optional[Quantity]:
    """`parse_quantity` restricted to explicit markers."""
    q = parse_quantity(fragment)
    if q is None or q.source != QuantitySource.EXPLICIT:
        return None
    return q
