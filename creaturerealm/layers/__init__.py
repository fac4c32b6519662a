"""Layers package initialization."""
from creaturerealm.layers.cache import ResourceCache
from creaturerealm.layers.catalog import (
    CatalogScraper,
    filter_work_from_recipe_rows,
    find_next_page_url,
    parse_detail_page,
    parse_index_page,
)
from creaturerealm.layers.merge import merge_detail_with_index, split_variant_key

__all__ = [
    "ResourceCache",
    "CatalogScraper",
    "filter_work_from_recipe_rows",
    "find_next_page_url",
    "parse_detail_page",
    "parse_index_page",
    "merge_detail_with_index",
    "split_variant_key",
]
