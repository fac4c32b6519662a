"""
Catalog Layer for the CreatureRealm extraction toolkit.
Turns category index pages and item detail pages into records.

Flow per request:
1. fetch (via the cache) the index pages of a category, following pagination
2. fetch (via the cache) one detail page
3. isolate each titled card and parse its rows
4. backfill the detail's identity fields from the cached index
"""
import re
from typing import Callable, List, Optional, TypeVar
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from creaturerealm.adapters.fetcher import HtmlFetcher
from creaturerealm.config import config
from creaturerealm.layers.cache import ResourceCache
from creaturerealm.layers.merge import merge_detail_with_index, split_variant_key
from creaturerealm.models.records import (
    VARIANT_SEPARATOR,
    DetailRecord,
    DropRow,
    IndexRecord,
    IngredientRef,
    KeyValueRow,
    MerchantRow,
    RecipeRow,
    ResearchRow,
    ResourceKind,
    SoulUpgradeRow,
    TreasureBoxRow,
    variant_key_of,
)
from creaturerealm.parsers.blocks import child_blocks, class_tokens, extract_all_blocks, extract_block, has_class
from creaturerealm.parsers.refs import (
    image_url,
    ingredient_from,
    is_work_ingredient,
    parse_explicit_quantity,
    parse_ingredient,
    parse_ingredient_list,
    parse_item_links,
    parse_item_ref,
)
from creaturerealm.parsers.sections import extract_card_by_title, extract_first_table
from creaturerealm.parsers.tables import parse_table
from creaturerealm.parsers.tree import parse_tree, slug_to_display_name
from creaturerealm.utils.logger import LayerLogger
from creaturerealm.utils.text import abs_url, dedupe_by, first_match, html_to_text, normalize_whitespace, to_int

R = TypeVar("R")

INDEX_KEY_PREFIX = "index:"
DETAIL_KEY_PREFIX = "detail:"

SECTION_TABLE_CLASS = "table mb-0"
ROW_CLASS = "d-flex justify-content-between"
PRODUCED_AT_GRID_CLASS = "row row-cols-1 row-cols-lg-2 g-2"
SKILL_BAR_CLASS = "item_skill_bar"

_DIV_OPEN_RE = re.compile(r"<div\b[^>]*>", re.I)
_IMG_RE = re.compile(r"<img\b[^>]*>", re.I)
_RARITY_RE = re.compile(
    r"""<span\b[^>]*class\s*=\s*["'][^"']*\bhover_text_rarity\d+\b[^"']*["'][^>]*>([\s\S]*?)</span\s*>""",
    re.I,
)
_TIER_RE = re.compile(r"Technology\s*(?:</span\s*>\s*)*<span\b[^>]*>\s*([0-9]+)\s*</span\s*>", re.I)
_INVENTORY_ICON_RE = re.compile(
    r"""(https?://[^"'\s>]*/(?:InventoryItemIcon/|[^"'\s>]*T_itemicon_)[^"'\s>]+\.(?:png|jpg|jpeg|webp))""",
    re.I,
)
_OG_IMAGE_RE = re.compile(
    r"""<meta\b[^>]*property\s*=\s*["']og:image["'][^>]*content\s*=\s*["']([^"']+)["']""",
    re.I,
)
_H2_RE = re.compile(r"<h2\b[^>]*>([\s\S]*?)</h2\s*>", re.I)
_UNAVAILABLE_RE = re.compile(r"fa-sack-xmark|Not available", re.I)

parser_logger = LayerLogger("catalog_parser")


# -----------------------------
# Shared field extractors
# -----------------------------

def _size128_icon(html: str) -> Optional[str]:
    for m in _IMG_RE.finditer(html):
        if any("size128" in token for token in class_tokens(m.group(0))):
            return image_url(m.group(0))
    return None


def _inventory_icon(html: str) -> Optional[str]:
    return first_match(html, _INVENTORY_ICON_RE)


def _rarity(html: str) -> Optional[str]:
    raw = first_match(html, _RARITY_RE)
    if not raw:
        return None
    return html_to_text(raw) or None


def _tier(html: str) -> Optional[int]:
    return to_int(first_match(html, _TIER_RE))


def _description(html: str) -> Optional[str]:
    """Text of the first class-less `<div>` directly inside a `card-body`."""
    body = extract_block(html, "card-body")
    if not body:
        return None
    for child in child_blocks(body):
        if class_tokens(child[:child.find(">") + 1]):
            continue
        return html_to_text(child) or None
    return None


def _is_unavailable(html: str) -> bool:
    return bool(_UNAVAILABLE_RE.search(html))


def parse_effects(html: Optional[str]) -> List[str]:
    """Text of every `item_skill_bar` (passive effect) block, deduped in page order."""
    texts = [html_to_text(bar) for bar in extract_all_blocks(html, SKILL_BAR_CLASS)]
    return dedupe_by([t for t in texts if t], key=lambda t: t)


def strip_skill_bars(html: str) -> str:
    """Page markup without effect blocks, so they never leak into the description."""
    for bar in extract_all_blocks(html, SKILL_BAR_CLASS):
        html = html.replace(bar, " ")
    return html


# -----------------------------
# Index pages
# -----------------------------

def _index_cards(html: str) -> List[str]:
    """
    Every `itemPopup` card of an index page.

    A card whose closing tags are missing runs up to the next card.
    """
    starts = [m.start() for m in _DIV_OPEN_RE.finditer(html) if has_class(m.group(0), "itemPopup")]
    cards = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i + 1 < len(starts) else len(html)
        chunk = html[start:end]
        cards.append(extract_block(chunk, "itemPopup") or chunk)
    return cards


def parse_index_recipe(card_html: Optional[str]) -> List[IngredientRef]:
    """Recipe snippet rows (`recipes` block) of an index card, deduped by slug."""
    recipes = extract_block(card_html, "recipes")
    if not recipes:
        return []
    rows = extract_all_blocks(recipes, ROW_CLASS)
    ingredients = [ing for ing in (parse_ingredient(row) for row in rows) if ing is not None]
    return dedupe_by(ingredients, key=lambda r: r.slug)


def parse_index_card(card_html: str) -> Optional[IndexRecord]:
    """One index card, or `None` when it carries no item link."""
    ref = parse_item_ref(card_html, "itemname")
    if ref is None:
        return None

    return IndexRecord(
        slug=ref.slug,
        name=ref.name,
        icon_url=_size128_icon(card_html) or _inventory_icon(card_html) or ref.icon_url,
        rarity=_rarity(card_html),
        tier=_tier(card_html),
        description=_description(strip_skill_bars(card_html)),
        effects=parse_effects(card_html),
        is_available=not _is_unavailable(card_html),
        recipe=parse_index_recipe(card_html),
    )


def parse_index_page(html: Optional[str]) -> List[IndexRecord]:
    """
    Parse a category index page into records.

    Entries are deduplicated by variant key; the first listing wins.
    """
    src = html or ""
    if not src:
        return []

    records = [rec for rec in (parse_index_card(card) for card in _index_cards(src)) if rec is not None]
    records = dedupe_by(records, key=lambda r: r.variant_key)
    parser_logger.log_extraction("index_cards", len(records))
    return records


def find_next_page_url(html: Optional[str], current_url: str) -> Optional[str]:
    """
    Absolute URL of the next index page, or `None` on the last page.

    Looks for a `rel="next"` link first, then a `pagination` control.
    """
    if not html:
        return None
    soup = BeautifulSoup(html, "lxml")

    link = soup.find(["a", "link"], rel="next", href=True)
    if link is None:
        link = soup.select_one(
            ".pagination .next a[href], .pagination a.next[href], "
            ".pagination a[aria-label=Next][href], .pagination a[aria-label=next][href]"
        )
    if link is None:
        return None

    href = (link.get("href") or "").strip()
    if not href or href.startswith("#") or href.lower().startswith("javascript:"):
        return None
    next_url = urljoin(current_url, href)
    return None if next_url == current_url else next_url


# -----------------------------
# Detail section row parsers
# -----------------------------

def _table_rows(table_html: Optional[str], min_cells: int, build: Callable[[List[str]], Optional[R]]) -> List[R]:
    out: List[R] = []
    for cells in parse_table(table_html):
        if len(cells) < min_cells:
            continue
        row = build(cells)
        if row is not None:
            out.append(row)
    return out


def _cell_text(cell: str) -> Optional[str]:
    return html_to_text(cell) or None


def parse_key_value_rows(card_html: Optional[str]) -> List[KeyValueRow]:
    """
    Key/value rows of a Stats/Others style card.

    Each row is a `d-flex justify-content-between` container holding a
    key `<div>` and a value `<div>`; either side may hold an item link.
    """
    out: List[KeyValueRow] = []
    for row in extract_all_blocks(card_html, ROW_CLASS):
        cells = child_blocks(row)
        if len(cells) < 2:
            continue
        key_html, value_html = cells[0], cells[1]

        key_item = parse_item_ref(key_html)
        key = normalize_whitespace(key_item.name if key_item else html_to_text(key_html))
        if not key:
            continue

        key_img = _IMG_RE.search(key_html)
        out.append(KeyValueRow(
            key=key,
            value_text=_cell_text(value_html),
            key_item=key_item,
            value_item=parse_item_ref(value_html),
            key_icon_url=key_item.icon_url if key_item and key_item.icon_url else image_url(key_img.group(0) if key_img else None),
        ))
    return out


def parse_materials_cell(cell_html: Optional[str]) -> List[IngredientRef]:
    """
    Ingredients packed into one recipe cell, "Work" included.

    Each ingredient normally sits in its own `<span>`; cells without
    spans are read as a run of anchor + quantity pairs.
    """
    src = cell_html or ""
    spans = extract_all_blocks(src, None, tag="span")
    if not spans:
        return parse_ingredient_list(src, None)

    out = [ing for ing in (parse_ingredient(span) for span in spans) if ing is not None]
    if not out:
        return parse_ingredient_list(src, None)
    return dedupe_by(out, key=lambda r: r.slug)


def _cell_ingredient(cell_html: str) -> Optional[IngredientRef]:
    ref = parse_item_ref(cell_html)
    if ref is None:
        return None
    return ingredient_from(ref, parse_explicit_quantity(cell_html))


def parse_recipe_table(table_html: Optional[str]) -> List[RecipeRow]:
    """Rows of `materials | product | schematic` tables."""
    def build(cells: List[str]) -> RecipeRow:
        return RecipeRow(
            materials=parse_materials_cell(cells[0]),
            product=_cell_ingredient(cells[1]),
            schematic_text=_cell_text(cells[2]) if len(cells) > 2 else None,
        )
    return _table_rows(table_html, 2, build)


def parse_research_table(table_html: Optional[str]) -> List[ResearchRow]:
    """
    Rows of `materials | result` research tables.

    The materials cell packs several `itemname` anchors, each followed by
    its own `itemQuantity` label. Rows with neither side are skipped.
    """
    def build(cells: List[str]) -> Optional[ResearchRow]:
        materials = parse_ingredient_list(cells[0], "itemname")
        product_text = _cell_text(cells[1])
        if not materials and product_text is None:
            return None
        return ResearchRow(materials=materials, product_text=product_text)
    return _table_rows(table_html, 2, build)


def parse_dropped_by_table(table_html: Optional[str]) -> List[DropRow]:
    """Rows of `source | quantity | probability` tables."""
    def build(cells: List[str]) -> DropRow:
        return DropRow(
            source=parse_item_ref(cells[0]),
            quantity_text=_cell_text(cells[1]),
            probability_text=_cell_text(cells[2]),
        )
    return _table_rows(table_html, 3, build)


def parse_merchant_table(table_html: Optional[str]) -> List[MerchantRow]:
    """Rows of `item | merchant` tables."""
    def build(cells: List[str]) -> MerchantRow:
        return MerchantRow(item=parse_item_ref(cells[0]), source_text=_cell_text(cells[1]))
    return _table_rows(table_html, 2, build)


def parse_treasure_box_table(table_html: Optional[str]) -> List[TreasureBoxRow]:
    """Rows of `item (with quantity label) | box` tables."""
    def build(cells: List[str]) -> TreasureBoxRow:
        quantity = parse_explicit_quantity(cells[0])
        return TreasureBoxRow(
            item=parse_item_ref(cells[0]),
            quantity_text=quantity.text if quantity else None,
            source_text=_cell_text(cells[1]),
        )
    return _table_rows(table_html, 2, build)


def parse_soul_upgrade_table(table_html: Optional[str]) -> List[SoulUpgradeRow]:
    """Rows of `material xN | rank` tables; fully empty rows are skipped."""
    def build(cells: List[str]) -> Optional[SoulUpgradeRow]:
        material = parse_item_ref(cells[0])
        quantity = parse_explicit_quantity(cells[0])
        rank_text = _cell_text(cells[1])
        if material is None and rank_text is None and quantity is None:
            return None
        return SoulUpgradeRow(
            material=material,
            quantity=quantity.value if quantity else None,
            quantity_text=quantity.text if quantity else None,
            rank_text=rank_text,
        )
    return _table_rows(table_html, 2, build)


def filter_work_from_recipe_rows(rows: List[RecipeRow]) -> List[RecipeRow]:
    """
    Drop the "Work" pseudo-ingredient from every row.

    A row survives if it still has materials, a product or schematic text.
    """
    out: List[RecipeRow] = []
    for row in rows:
        materials = [m for m in row.materials if not is_work_ingredient(m)]
        if materials or row.product is not None or row.schematic_text:
            out.append(row.model_copy(update={"materials": materials}))
    return out


# -----------------------------
# Detail pages
# -----------------------------

def _card_table(html: str, title: str) -> Optional[str]:
    card = extract_card_by_title(html, title)
    if not card:
        return None
    return extract_first_table(card, SECTION_TABLE_CLASS)


def _detail_name(html: str) -> str:
    """Page heading text; empty when the page has no `<h2>` so the index name can fill it."""
    raw = first_match(html, _H2_RE)
    return html_to_text(raw) if raw else ""


def _with_display_name(record: DetailRecord) -> DetailRecord:
    """Last-resort name derived from the slug, applied after the merge."""
    if record.name:
        return record
    return record.model_copy(update={"name": slug_to_display_name(record.slug) or record.slug})


def _detail_icon(html: str) -> Optional[str]:
    return _size128_icon(html) or abs_url(first_match(html, _OG_IMAGE_RE)) or _inventory_icon(html)


def parse_detail_page(html: Optional[str], slug: str) -> DetailRecord:
    """
    Parse an item detail page.

    Every section is isolated and parsed independently; one that is
    missing or malformed leaves its list empty and never affects the
    others.
    """
    src = html or ""

    production_card = extract_card_by_title(src, "production")
    produced_at_grid = extract_block(production_card, PRODUCED_AT_GRID_CLASS) if production_card else None
    production_table = extract_first_table(production_card, SECTION_TABLE_CLASS) if production_card else None

    record = DetailRecord(
        slug=slug,
        name=_detail_name(src),
        icon_url=_detail_icon(src),
        rarity=_rarity(src),
        tier=_tier(src),
        description=_description(strip_skill_bars(src)),
        effects=parse_effects(src),
        is_available=False if _is_unavailable(src) else None,
        stats=parse_key_value_rows(extract_card_by_title(src, "stats")),
        others=parse_key_value_rows(extract_card_by_title(src, "others")),
        foods=parse_key_value_rows(extract_card_by_title(src, "foods")),
        produced_at=parse_item_links(produced_at_grid) if produced_at_grid else [],
        production=parse_recipe_table(production_table),
        crafting_materials=parse_recipe_table(_card_table(src, "crafting materials")),
        research=parse_research_table(_card_table(src, "research")),
        dependency_tree=parse_tree(src),
        dropped_by=parse_dropped_by_table(_card_table(src, "dropped by")),
        merchant_offers=parse_merchant_table(_card_table(src, "wandering merchant")),
        treasure_box=parse_treasure_box_table(_card_table(src, "treasure box")),
        soul_upgrade=parse_soul_upgrade_table(_card_table(src, "soul upgrade")),
    )

    for section in ("stats", "others", "foods", "effects", "produced_at", "production", "crafting_materials",
                    "research", "dropped_by", "merchant_offers", "treasure_box", "soul_upgrade"):
        parser_logger.log_extraction(section, len(getattr(record, section)), slug=slug)

    return record


# -----------------------------
# Scraper service
# -----------------------------

def _normalize_category(category: str) -> str:
    return (category or "").strip().lower()


class CatalogScraper:
    """
    Fetches, caches and merges catalog records.

    Cached values are the parsed records of one page (or one paginated
    index); merging happens on read so a detail fetched before its
    index still picks up identity fields once the index is cached.
    """

    def __init__(self, fetcher: Optional[HtmlFetcher] = None, cache: Optional[ResourceCache] = None):
        self.fetcher = fetcher if fetcher is not None else HtmlFetcher()
        self.cache = cache if cache is not None else ResourceCache()
        self.logger = LayerLogger("catalog")

    @staticmethod
    def index_key(category: str) -> str:
        return f"{INDEX_KEY_PREFIX}{_normalize_category(category)}"

    @staticmethod
    def detail_key(variant_key: str) -> str:
        return f"{DETAIL_KEY_PREFIX}{variant_key}"

    async def fetch_index(self, category: str, force: bool = False) -> List[IndexRecord]:
        """
        Records of every index page of a category.

        Raises:
            KeyError: if the category is not configured
            httpx.HTTPError: if the fetch fails and nothing is cached
        """
        name = _normalize_category(category)
        url = config.index_url(name)

        async def scrape() -> List[IndexRecord]:
            return await self._scrape_index(name, url)

        return await self.cache.get_or_fetch(
            self.index_key(name), config.INDEX_TTL_MS, scrape, force=force, kind=ResourceKind.INDEX
        )

    async def _scrape_index(self, category: str, url: str) -> List[IndexRecord]:
        records: List[IndexRecord] = []
        visited = set()
        current: Optional[str] = url
        pages = 0

        while current and current not in visited and pages < config.MAX_INDEX_PAGES:
            visited.add(current)
            html = await self.fetcher.fetch_html(current)
            records.extend(parse_index_page(html))
            pages += 1
            current = find_next_page_url(html, current)

        if current and current not in visited and pages >= config.MAX_INDEX_PAGES:
            self.logger.log_decision(
                "stop_pagination",
                "max_pages_reached",
                url=current,
                category=category,
                pages=pages,
            )

        records = dedupe_by(records, key=lambda r: r.variant_key)
        self.logger.log_action("scrape_index", "completed", category=category, pages=pages, count=len(records))
        return records

    async def fetch_detail(
        self,
        item_id: str,
        category: Optional[str] = None,
        force: bool = False,
    ) -> DetailRecord:
        """
        Detail record for a slug, href or variant key.

        The record is merged with the cached index of `category`, or of
        every cached category when none is given.

        Raises:
            ValueError: if no slug can be read from `item_id`
            KeyError: if `category` is given but not configured
            httpx.HTTPError: if the fetch fails and nothing is cached
        """
        raw = (item_id or "").strip()
        slug, rarity, tier, icon_url = split_variant_key(raw)
        if not slug:
            raise ValueError(f"Unable to read a slug from {item_id!r}")
        if category is not None:
            config.index_url(category)

        variant_key = variant_key_of(slug, rarity, tier, icon_url)
        url = config.detail_url(slug)

        async def scrape() -> DetailRecord:
            html = await self.fetcher.fetch_html(url)
            return parse_detail_page(html, slug)

        detail = await self.cache.get_or_fetch(
            self.detail_key(variant_key), config.DETAIL_TTL_MS, scrape, force=force, kind=ResourceKind.DETAIL
        )
        requested = raw if VARIANT_SEPARATOR in raw else None
        merged = merge_detail_with_index(detail, self.cached_index_records(category), variant_key=requested)
        return _with_display_name(merged)

    def cached_index_records(self, category: Optional[str] = None) -> List[IndexRecord]:
        """Index records currently cached (fresh or stale)."""
        if category is not None:
            return list(self.cache.peek(self.index_key(category)) or [])
        records: List[IndexRecord] = []
        for key in self.cache.keys():
            if key.startswith(INDEX_KEY_PREFIX):
                records.extend(self.cache.peek(key) or [])
        return records

    async def warm_index(self, category: str) -> bool:
        """Populate the index cache; never raises. True on success."""
        try:
            await self.fetch_index(category)
            return True
        except Exception as e:
            self.logger.log_error(
                f"Failed to warm index: {str(e)}",
                error_type=type(e).__name__,
                category=category,
            )
            return False
