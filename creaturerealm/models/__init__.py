"""Models package initialization."""
from creaturerealm.models.records import (
    CacheEntry,
    DetailRecord,
    DropRow,
    IndexRecord,
    IngredientRef,
    ItemRef,
    KeyValueRow,
    MerchantRow,
    Quantity,
    QuantitySource,
    RecipeRow,
    ResearchRow,
    ResourceKind,
    SoulUpgradeRow,
    TreasureBoxRow,
    TreeNode,
    variant_key_of,
)

__all__ = [
    "CacheEntry",
    "DetailRecord",
    "DropRow",
    "IndexRecord",
    "IngredientRef",
    "ItemRef",
    "KeyValueRow",
    "MerchantRow",
    "Quantity",
    "QuantitySource",
    "RecipeRow",
    "ResearchRow",
    "ResourceKind",
    "SoulUpgradeRow",
    "TreasureBoxRow",
    "TreeNode",
    "variant_key_of",
]
