"""Parsers package initialization."""
from creaturerealm.parsers.blocks import block_inner, child_blocks, extract_all_blocks, extract_block, has_class
from creaturerealm.parsers.refs import (
    is_work_ingredient,
    parse_ingredient,
    parse_ingredient_list,
    parse_item_links,
    parse_explicit_quantity,
    parse_item_ref,
    parse_quantity,
)
from creaturerealm.parsers.sections import (
    extract_card_by_title,
    extract_first_table,
    extract_heading_section,
    extract_named_section,
    extract_tab_pane,
)
from creaturerealm.parsers.tables import parse_table, split_cells, split_rows, table_body
from creaturerealm.parsers.tree import parse_tree

__all__ = [
    "block_inner",
    "child_blocks",
    "extract_all_blocks",
    "extract_block",
    "has_class",
    "is_work_ingredient",
    "parse_ingredient",
    "parse_ingredient_list",
    "parse_item_links",
    "parse_explicit_quantity",
    "parse_item_ref",
    "parse_quantity",
    "extract_card_by_title",
    "extract_first_table",
    "extract_heading_section",
    "extract_named_section",
    "extract_tab_pane",
    "parse_table",
    "split_cells",
    "split_rows",
    "table_body",
    "parse_tree",
]
