"""Tests for balanced block extraction."""

from creaturerealm.parsers.blocks import (
    block_inner,
    child_blocks,
    class_tokens,
    tag_attrs,
    extract_all_blocks,
    extract_block,
    has_class,
)


NESTED = (
    '<section>'
    '<div class="card mt-3"><div class="card-body"><div>inner</div></div></div>'
    '<div class="card"><p>second</p></div>'
    '</section>'
)


class TestClassMatching:
    """Test whole-word class token matching."""

    def test_class_tokens(self):
        assert class_tokens('<div class="Card  mt-3">') == {"card", "mt-3"}
        assert class_tokens("<div class='a b'>") == {"a", "b"}
        assert class_tokens("<div class=solo>") == {"solo"}
        assert class_tokens("<div>") == set()

    def test_whole_word_only(self):
        assert has_class('<div class="card mt-3">', "card")
        assert not has_class('<div class="cardinal">', "card")
        assert not has_class('<div class="card-title">', "card")

    def test_multi_token(self):
        assert has_class('<table class="table table-sm mb-0">', "table mb-0")
        assert not has_class('<table class="table">', "table mb-0")

    def test_empty_token_matches_any(self):
        assert has_class("<div>", None)
        assert has_class("<div>", "")

    def test_data_class_is_not_class(self):
        assert not has_class('<div data-class="card">', "card")

    def test_class_text_inside_other_attribute_is_ignored(self):
        assert not has_class('<div title="class=card" class="x">', "card")
        assert class_tokens('<div title="a class=\'card\'" class="x">') == {"x"}

    def test_tag_attrs_reads_attributes_in_order(self):
        attrs = tag_attrs('<img alt="a > b" src=/en/Ore data-x=\'y\' hidden/>')
        assert attrs == {"alt": "a > b", "src": "/en/Ore", "data-x": "y", "hidden": ""}


class TestExtractBlock:
    """Test balanced extraction of nested containers."""

    def test_nested_block_returned_whole(self):
        block = extract_block(NESTED, "card")
        assert block == '<div class="card mt-3"><div class="card-body"><div>inner</div></div></div>'

    def test_round_trip_inside_larger_document(self):
        block = '<div class="card"><div><div>deep</div></div><div>x</div></div>'
        doc = f"<body><div>before</div>{block}<div>after</div></body>"
        assert extract_block(doc, "card") == block

    def test_missing_close_is_absent(self):
        assert extract_block('<div class="card"><div>open', "card") is None

    def test_skips_tag_with_class_text_in_another_attribute(self):
        html = '<div title="class=card" class="x"><p>a</p></div><div class="card">B</div>'
        assert extract_block(html, "card") == '<div class="card">B</div>'

    def test_no_match(self):
        assert extract_block(NESTED, "missing") is None
        assert extract_block("", "card") is None
        assert extract_block(None, "card") is None

    def test_other_tag(self):
        html = '<table class="table mb-0"><tr><td><table><tr><td>x</td></tr></table></td></tr></table>'
        assert extract_block(html, "table", tag="table") == html


class TestExtractAllBlocks:
    """Test sequential extraction."""

    def test_top_level_matches(self):
        blocks = extract_all_blocks(NESTED, "card")
        assert len(blocks) == 2
        assert blocks[1] == '<div class="card"><p>second</p></div>'

    def test_inner_and_children(self):
        block = extract_block(NESTED, "card")
        assert block_inner(block) == '<div class="card-body"><div>inner</div></div>'
        children = child_blocks(block)
        assert children == ['<div class="card-body"><div>inner</div></div>']
