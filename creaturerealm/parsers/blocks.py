"""
Balanced block extraction.

Finds a container element by class token and returns its full span,
counting nested opens/closes of the same element type so that
`<div class="card">` wrapping further `<div>`s is returned whole.
"""
import re
from functools import lru_cache
from typing import Dict, List, Optional, Set, Tuple

_TAG_NAME_RE = re.compile(r"<\s*[\w:-]+")
_ATTR_RE = re.compile(r"""\s*([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?""")


def tag_attrs(open_tag: Optional[str]) -> Dict[str, str]:
    """
    Raw attribute values of one opening tag, keyed by lowercase name.

    Attributes are read left to right and quoted values are consumed
    whole, so `title="class=card"` never reads as a class attribute.
    The first occurrence of a repeated attribute wins.
    """
    attrs: Dict[str, str] = {}
    m = _TAG_NAME_RE.match(open_tag or "")
    if not m:
        return attrs
    pos = m.end()
    while pos < len(open_tag) and open_tag[pos] != ">":
        attr = _ATTR_RE.match(open_tag, pos)
        if not attr:
            pos += 1
            continue
        value = next((g for g in attr.groups()[1:] if g is not None), "")
        attrs.setdefault(attr.group(1).lower(), value)
        pos = attr.end()
    return attrs


@lru_cache(maxsize=None)
def _tag_patterns(tag: str) -> Tuple["re.Pattern[str]", "re.Pattern[str]"]:
    name = re.escape(tag)
    open_re = re.compile(rf"<{name}\b[^>]*>", re.I)
    any_re = re.compile(rf"<{name}\b[^>]*>|</{name}\s*>", re.I)
    return open_re, any_re


def class_tokens(open_tag: str) -> Set[str]:
    """Set of lowercase class words declared on an opening tag."""
    value = tag_attrs(open_tag).get("class", "")
    return {c.lower() for c in value.split()}


def has_class(open_tag: str, class_token: Optional[str]) -> bool:
    """
    True when every word of `class_token` is a whole class on the tag.

    An empty token matches any tag. `card` matches `class="card mt-3"`
    but neither `cardinal` nor `card-title`.
    """
    wanted = {c.lower() for c in (class_token or "").split()}
    if not wanted:
        return True
    return wanted <= class_tokens(open_tag)


def _is_self_closing(open_tag: str) -> bool:
    return open_tag.rstrip().endswith("/>")


def _find_close(html: str, open_end: int, tag: str) -> Optional[int]:
    """Index right after the close tag matching an open tag that ends at `open_end`."""
    _, any_re = _tag_patterns(tag)
    depth = 1
    for m in any_re.finditer(html, open_end):
        token = m.group(0)
        if token.startswith("</"):
            depth -= 1
            if depth == 0:
                return m.end()
        elif not _is_self_closing(token):
            depth += 1
    return None


def _find_block(html: str, class_token: Optional[str], tag: str, start: int) -> Optional[Tuple[int, int]]:
    open_re, _ = _tag_patterns(tag)
    for m in open_re.finditer(html, start):
        open_tag = m.group(0)
        if not has_class(open_tag, class_token):
            continue
        if _is_self_closing(open_tag):
            return m.start(), m.end()
        end = _find_close(html, m.end(), tag)
        if end is None:
            return None
        return m.start(), end
    return None


def extract_block(html: Optional[str], class_token: Optional[str], tag: str = "div") -> Optional[str]:
    """
    Return the first `<tag>` carrying `class_token`, open tag through its
    correctly nested close tag.

    `None` when no such tag exists or its close is missing (truncated
    page); callers treat that as "section absent".
    """
    if not html:
        return None
    span = _find_block(html, class_token, tag, 0)
    if span is None:
        return None
    return html[span[0]:span[1]]


def extract_all_blocks(html: Optional[str], class_token: Optional[str], tag: str = "div") -> List[str]:
    """All top-level matches; scanning resumes after each found block."""
    if not html:
        return []
    out: List[str] = []
    pos = 0
    while pos < len(html):
        span = _find_block(html, class_token, tag, pos)
        if span is None:
            break
        out.append(html[span[0]:span[1]])
        pos = span[1]
    return out


def block_inner(block: Optional[str]) -> str:
    """Inner markup of a block returned by `extract_block`."""
    if not block:
        return ""
    open_end = block.find(">")
    if open_end < 0:
        return ""
    close_start = block.rfind("</")
    if close_start <= open_end:
        return ""
    return block[open_end + 1:close_start]


def child_blocks(block: Optional[str], tag: str = "div", class_token: Optional[str] = None) -> List[str]:
    """Direct child `<tag>` blocks of a block."""
    return extract_all_blocks(block_inner(block), class_token, tag)
