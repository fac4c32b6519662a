"""
Merge Layer for the CreatureRealm extraction toolkit.
Backfills a detail record's identity fields from the index listing.

Detail pages often omit what the index card shows (icon, rarity,
recipe). Merging is pure: the input record is never mutated and
applying the merge twice gives the same result as applying it once.
"""
from typing import Iterable, List, Optional, Tuple

from creaturerealm.models.records import VARIANT_SEPARATOR, DetailRecord, IndexRecord
from creaturerealm.utils.text import normalize_slug, to_int

IDENTITY_FIELDS = ("name", "icon_url", "rarity", "tier", "description", "effects", "is_available", "recipe")


def split_variant_key(text: Optional[str]) -> Tuple[str, Optional[str], Optional[int], Optional[str]]:
    """
    Split `slug::rarity::tier::icon` into its parts.

    A plain slug, path or URL is accepted too and yields only the slug.
    The icon part keeps any remaining text verbatim.
    """
    raw = (text or "").strip()
    if VARIANT_SEPARATOR not in raw:
        return normalize_slug(raw), None, None, None

    parts = raw.split(VARIANT_SEPARATOR, 3)
    parts += [""] * (4 - len(parts))
    slug, rarity, tier, icon = parts
    return (
        normalize_slug(slug),
        rarity.strip() or None,
        to_int(tier) if tier.strip() else None,
        icon.strip() or None,
    )


def _is_empty(value) -> bool:
    return value is None or value == "" or value == []


def _agrees(entry: IndexRecord, rarity: Optional[str], tier: Optional[int], icon_url: Optional[str]) -> bool:
    if rarity and entry.rarity != rarity:
        return False
    if tier is not None and entry.tier != tier:
        return False
    if icon_url and entry.icon_url != icon_url:
        return False
    return True


def find_index_match(
    detail: DetailRecord,
    index_records: Iterable[IndexRecord],
    variant_key: Optional[str] = None,
) -> Optional[IndexRecord]:
    """
    Index entry for the detail's slug.

    Prefers the first entry agreeing with every known variant part (from
    `variant_key` when given, else from the detail itself), then falls
    back to the first entry with the same slug.
    """
    candidates: List[IndexRecord] = [r for r in index_records if r.slug == detail.slug]
    if not candidates:
        return None

    if variant_key:
        _, rarity, tier, icon_url = split_variant_key(variant_key)
    else:
        rarity, tier, icon_url = detail.rarity, detail.tier, detail.icon_url

    for entry in candidates:
        if _agrees(entry, rarity, tier, icon_url):
            return entry
    return candidates[0]


def merge_detail_with_index(
    detail: DetailRecord,
    index_records: Iterable[IndexRecord],
    variant_key: Optional[str] = None,
) -> DetailRecord:
    """
    Fill empty identity fields of `detail` from its matching index entry.

    Fields the detail page already provided win. Detail-only sections
    are never touched. Returns `detail` itself when nothing matches.
    """
    match = find_index_match(detail, index_records, variant_key)
    if match is None:
        return detail

    updates = {}
    for field in IDENTITY_FIELDS:
        if _is_empty(getattr(detail, field)) and not _is_empty(getattr(match, field)):
            value = getattr(match, field)
            updates[field] = list(value) if isinstance(value, list) else value

    if not updates:
        return detail
    return detail.model_copy(update=updates)
