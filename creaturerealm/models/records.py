"""
Catalog record models for the CreatureRealm extraction toolkit.
These are the plain data objects handed to UI collaborators; no raw
markup ever crosses this boundary.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

VARIANT_SEPARATOR = "::"


class QuantitySource(str, Enum):
    """How a quantity was read from the markup."""
    EXPLICIT = "explicit"  # dedicated quantity label next to the reference
    INFERRED = "inferred"  # last bare number in the fragment text


class ResourceKind(str, Enum):
    """Logical resource type held by the cache."""
    INDEX = "index"
    DETAIL = "detail"


def variant_key_of(
    slug: str,
    rarity: Optional[str] = None,
    tier: Optional[int] = None,
    icon_url: Optional[str] = None,
) -> str:
    """Composite identity of one catalog variant: `slug::rarity::tier::icon`."""
    return VARIANT_SEPARATOR.join([
        (slug or "").strip(),
        (rarity or "").strip(),
        str(tier) if tier is not None else "",
        (icon_url or "").strip(),
    ])


class ItemRef(BaseModel):
    """Reference to an item, pal, skill or NPC page."""
    slug: str
    name: str
    icon_url: Optional[str] = None


class Quantity(BaseModel):
    """A quantity reading together with its provenance."""
    value: Optional[int] = None
    text: Optional[str] = None
    source: QuantitySource = QuantitySource.EXPLICIT


class IngredientRef(ItemRef):
    """An edge in a recipe, resolved against the catalog by slug."""
    quantity: Optional[int] = None
    quantity_text: Optional[str] = None
    quantity_source: Optional[QuantitySource] = None


class KeyValueRow(BaseModel):
    """One row of a Stats/Others style key/value card."""
    key: str
    value_text: Optional[str] = None
    key_item: Optional[ItemRef] = None
    value_item: Optional[ItemRef] = None
    key_icon_url: Optional[str] = None


class RecipeRow(BaseModel):
    """One row of a production or crafting-materials table."""
    materials: List[IngredientRef] = Field(default_factory=list)
    product: Optional[IngredientRef] = None
    schematic_text: Optional[str] = None


class ResearchRow(BaseModel):
    """One row of a research table: materials spent and the unlocked result."""
    materials: List[IngredientRef] = Field(default_factory=list)
    product_text: Optional[str] = None


class DropRow(BaseModel):
    """One row of a "Dropped By" table."""
    source: Optional[ItemRef] = None
    quantity_text: Optional[str] = None
    probability_text: Optional[str] = None


class MerchantRow(BaseModel):
    """One row of a merchant offers table."""
    item: Optional[ItemRef] = None
    source_text: Optional[str] = None


class TreasureBoxRow(BaseModel):
    """One row of a treasure box table."""
    item: Optional[ItemRef] = None
    quantity_text: Optional[str] = None
    source_text: Optional[str] = None


class SoulUpgradeRow(BaseModel):
    """One row of a soul upgrade table."""
    material: Optional[ItemRef] = None
    quantity: Optional[int] = None
    quantity_text: Optional[str] = None
    rank_text: Optional[str] = None


class TreeNode(BaseModel):
    """
    Node of a "produced from" dependency tree.

    `truncated` is set on a leaf that was cut short because its slug
    already appeared on the path from the root, or because the depth
    bound was reached.
    """
    slug: Optional[str] = None
    name: Optional[str] = None
    icon_url: Optional[str] = None
    quantity: Optional[int] = None
    children: List["TreeNode"] = Field(default_factory=list)
    truncated: bool = False

    def walk(self):
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


TreeNode.model_rebuild()


class IndexRecord(BaseModel):
    """One catalog entry as listed on a category index page."""
    slug: str
    name: str
    icon_url: Optional[str] = None
    rarity: Optional[str] = None
    tier: Optional[int] = None
    description: Optional[str] = None
    is_available: bool = True
    recipe: List[IngredientRef] = Field(default_factory=list)
    effects: List[str] = Field(default_factory=list)

    @property
    def variant_key(self) -> str:
        """Dedup identity: the same slug can be listed once per variant."""
        return variant_key_of(self.slug, self.rarity, self.tier, self.icon_url)


class DetailRecord(BaseModel):
    """
    Full detail page record.

    Carries the identity fields of `IndexRecord` plus every detail-only
    section. Sections are always lists; an empty list means the section
    was absent on the page and must not be rendered. `is_available` is
    `None` when the detail page gives no signal either way.
    """
    slug: str
    name: str = ""
    icon_url: Optional[str] = None
    rarity: Optional[str] = None
    tier: Optional[int] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None
    recipe: List[IngredientRef] = Field(default_factory=list)
    effects: List[str] = Field(default_factory=list)

    stats: List[KeyValueRow] = Field(default_factory=list)
    others: List[KeyValueRow] = Field(default_factory=list)
    foods: List[KeyValueRow] = Field(default_factory=list)
    produced_at: List[ItemRef] = Field(default_factory=list)
    production: List[RecipeRow] = Field(default_factory=list)
    crafting_materials: List[RecipeRow] = Field(default_factory=list)
    research: List[ResearchRow] = Field(default_factory=list)
    dependency_tree: Optional[TreeNode] = None
    dropped_by: List[DropRow] = Field(default_factory=list)
    merchant_offers: List[MerchantRow] = Field(default_factory=list)
    treasure_box: List[TreasureBoxRow] = Field(default_factory=list)
    soul_upgrade: List[SoulUpgradeRow] = Field(default_factory=list)

    @property
    def variant_key(self) -> str:
        return variant_key_of(self.slug, self.rarity, self.tier, self.icon_url)

    def non_empty_sections(self) -> List[str]:
        """Return the names of detail-only sections that have content."""
        sections = [
            "stats",
            "others",
            "foods",
            "produced_at",
            "production",
            "crafting_materials",
            "research",
            "dropped_by",
            "merchant_offers",
            "treasure_box",
            "soul_upgrade",
        ]
        present = [name for name in sections if getattr(self, name)]
        if self.dependency_tree is not None:
            present.append("dependency_tree")
        return present


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Immutable cache snapshot; replaced wholesale, never mutated."""
    fetched_at_millis: float
    value: T

    def age_millis(self, now_millis: float) -> float:
        return now_millis - self.fetched_at_millis

    def is_fresh(self, now_millis: float, ttl_millis: float) -> bool:
        return self.age_millis(now_millis) < ttl_millis
