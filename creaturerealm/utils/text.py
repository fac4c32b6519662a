"""
Text utilities shared by every extraction primitive.

All helpers accept `None` and degrade to an empty/absent result so that
call sites can chain them over optional regex captures.
"""
import math
import re
from typing import Any, Callable, Hashable, Iterable, List, Optional, TypeVar, Union
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup

from creaturerealm.config import config

T = TypeVar("T")

_WS_RE = re.compile(r"\s+")
_NUMBER_TOKEN_RE = re.compile(r"[0-9][0-9,]*")
_ABSOLUTE_URL_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.I)
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#]")

_ENTITIES = {
    "&amp;": "&",
    "&#38;": "&",
    "&lt;": "<",
    "&#60;": "<",
    "&gt;": ">",
    "&#62;": ">",
    "&quot;": '"',
    "&#34;": '"',
    "&#39;": "'",
    "&nbsp;": " ",
}
_ENTITY_RE = re.compile("|".join(re.escape(k) for k in _ENTITIES))

_CDN_PREFIXES = ("image/", "cache/", "img/")


def normalize_whitespace(s: Optional[str]) -> str:
    """Collapse runs of whitespace (NBSP included) into single spaces and trim."""
    if not s:
        return ""
    return _WS_RE.sub(" ", str(s).replace("\u00a0", " ")).strip()


def decode_entities(s: Optional[str]) -> str:
    """
    Reverse the handful of entities the source pages actually emit.

    Deliberately minimal. Replacement is single-pass, so `&amp;lt;`
    decodes to `&lt;` rather than `<`.
    """
    if not s:
        return ""
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(0)], str(s))


def _slug_pass(s: str) -> str:
    s = s.strip()
    if _ABSOLUTE_URL_RE.match(s) or s.startswith("/"):
        path = urlsplit(s).path
    else:
        # bare ids keep namespace colons (`Category:Armor`)
        path = _QUERY_OR_FRAGMENT_RE.split(s, 1)[0]
    segments = [seg for seg in path.split("/") if seg.strip()]
    if not segments:
        return ""
    return unquote(segments[-1]).strip()


def normalize_slug(value: Optional[str]) -> str:
    """
    Reduce an absolute URL, root-relative path or bare identifier to a bare slug.

    Scheme, host, query and fragment are dropped and the last non-empty
    path segment is percent-decoded. Passes repeat until the value stops
    changing, which makes the function idempotent even for encoded
    separators like `%2F` or `%3F`.
    """
    current = normalize_whitespace(value)
    while current:
        nxt = _slug_pass(current)
        if nxt == current:
            break
        current = nxt
    return current


def to_number(raw: Any) -> Optional[float]:
    """Coerce to float, stripping thousands separators; `None` on failure, never NaN."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        s = normalize_whitespace(str(raw)).replace(",", "").replace(" ", "")
        if not s:
            return None
        try:
            value = float(s)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def to_int(raw: Any) -> Optional[int]:
    """Like `to_number` but truncated to int."""
    value = to_number(raw)
    return int(value) if value is not None else None


def first_number(text: Optional[str]) -> Optional[int]:
    """First `1,234`-style token in text as int."""
    m = _NUMBER_TOKEN_RE.search(text or "")
    return to_int(m.group(0)) if m else None


def last_number(text: Optional[str]) -> Optional[int]:
    """Last `1,234`-style token in text as int."""
    tokens = _NUMBER_TOKEN_RE.findall(text or "")
    return to_int(tokens[-1]) if tokens else None


def first_match(text: Optional[str], pattern: Union[str, "re.Pattern[str]"], flags: int = re.I) -> Optional[str]:
    """
    Return group 1 of the first match (group 0 if the pattern has no group),
    stripped; `None` when there is no match or the capture is blank.
    """
    if not text:
        return None
    rx = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, flags)
    m = rx.search(text)
    if not m:
        return None
    value = m.group(1) if rx.groups else m.group(0)
    value = (value or "").strip()
    return value or None


def html_to_text(html: Optional[str]) -> str:
    """Readable single-line text of a markup fragment."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return normalize_whitespace(text)


def abs_url(path_or_url: Optional[str]) -> Optional[str]:
    """
    Resolve a page or asset reference against the configured site.

    - absolute URLs are returned as-is
    - protocol-relative `//host/...` gets `https:`
    - `/image/`, `/cache/` and `/img/` assets live on the CDN
    - any other relative path is resolved against the site base
    """
    s = normalize_whitespace(decode_entities(path_or_url))
    if not s:
        return None
    lowered = s.lower()
    if lowered.startswith("http://") or lowered.startswith("https://"):
        return s
    if s.startswith("//"):
        return f"https:{s}"
    bare = s.lstrip("/")
    if bare.startswith(_CDN_PREFIXES):
        return f"{config.CDN_BASE_URL}/{bare}"
    return f"{config.SITE_BASE_URL}/{bare}"


def dedupe_by(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Order-preserving dedup; the first item for each key wins."""
    seen = set()
    out: List[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out
