"""Tests for section isolation."""

from creaturerealm.parsers.sections import (
    extract_card_by_title,
    extract_first_table,
    extract_heading_section,
    extract_named_section,
    extract_tab_pane,
)


TABS = (
    '<div class="tab-content">'
    '<div class="tab-pane" id="Stats">Stats body</div>'
    '<div class="tab-pane" id="Drops">Drops body</div>'
    "</div>"
)

TABS_UNCLOSED = (
    '<div class="tab-content">'
    '<div class="tab-pane" id="Stats">Stats body '
    '<div class="tab-pane" id="Drops">Drops body</div>'
    "</div>"
)

HEADINGS = (
    "<h2>Stats</h2><p>one</p><h3>Sub</h3><p>two</p>"
    "<h2>Drops</h2><p>three</p>"
)

EDIT_LINK = (
    '<span class="mw-editsection"><span class="mw-editsection-bracket">[</span>'
    '<a href="/w/index.php?action=edit&amp;section=1">edit</a>'
    '<span class="mw-editsection-bracket">]</span></span>'
)

WIKI = (
    '<div class="mw-parser-output"><p>Lead text.</p>'
    f'<h2><span class="mw-headline" id="Overview">Overview</span>{EDIT_LINK}</h2>'
    "<p>Overview body.</p>"
    f'<h2><span class="mw-headline" id="Types_of_islands">Types of islands</span>{EDIT_LINK}</h2>'
    "<p>Islands body.</p>"
    f'<h3><span class="mw-headline" id="Fruit_islands">Fruit islands</span>{EDIT_LINK}</h3>'
    '<table class="wikitable"><tr><td>Peach</td></tr></table>'
    f'<h2><span class="mw-headline" id="Trivia">Trivia</span>{EDIT_LINK}</h2>'
    "<p>Trivia body.</p></div>"
)

WIKI_WRAPPED_HEADINGS = (
    '<div class="mw-parser-output">'
    f'<div class="mw-heading mw-heading2"><h2 id="Habitat">Habitat</h2>{EDIT_LINK}</div>'
    "<p>Habitat body.</p>"
    f'<div class="mw-heading mw-heading2"><h2 id="Trivia">Trivia</h2>{EDIT_LINK}</div>'
    "<p>Trivia body.</p></div>"
)

NESTED_CARDS = (
    '<div class="card"><div class="card-body"><h5 class="card-title">Outer things</h5>'
    '<div class="card"><h5 class="card-title">Dropped By</h5>'
    '<table class="table mb-0"><tbody><tr><td>x</td></tr></tbody></table>'
    "</div></div></div>"
)


class TestTabPane:
    """Test id-addressed panes."""

    def test_pane_by_id(self):
        pane = extract_tab_pane(TABS, "Stats")
        assert "Stats body" in pane
        assert "Drops body" not in pane

    def test_unclosed_pane_excludes_following_pane(self):
        pane = extract_tab_pane(TABS_UNCLOSED, "Stats")
        assert "Stats body" in pane
        assert "Drops body" not in pane
        assert "Drops body" in extract_tab_pane(TABS_UNCLOSED, "Drops")

    def test_missing(self):
        assert extract_tab_pane(TABS, "Missing") is None
        assert extract_tab_pane("", "Stats") is None


class TestHeadingSection:
    """Test heading-delimited regions."""

    def test_region_stops_at_same_level(self):
        region = extract_heading_section(HEADINGS, "stats")
        assert "one" in region
        assert "two" in region
        assert "three" not in region

    def test_named_section_prefers_id(self):
        assert "Stats body" in extract_named_section(TABS, "Stats")
        assert "three" in extract_named_section(HEADINGS, "Drops")
        assert extract_named_section(HEADINGS, "Nothing") is None


class TestWikiSections:
    """Test sections addressed by wiki headline anchors."""

    def test_headline_id_selects_whole_region(self):
        section = extract_named_section(WIKI, "Types_of_islands")
        assert section.startswith("<h2")
        assert "Islands body." in section
        assert "Peach" in section
        assert "Overview body." not in section
        assert "Trivia body." not in section

    def test_headline_label_ignores_edit_link(self):
        assert extract_named_section(WIKI, "Types of islands") == extract_named_section(WIKI, "Types_of_islands")
        overview = extract_heading_section(WIKI, "Overview")
        assert "Overview body." in overview
        assert "Islands body." not in overview

    def test_subsection_stops_at_higher_heading(self):
        section = extract_named_section(WIKI, "Fruit_islands")
        assert "Peach" in section
        assert "Islands body." not in section
        assert "Trivia body." not in section

    def test_wrapped_heading(self):
        section = extract_named_section(WIKI_WRAPPED_HEADINGS, "Habitat")
        assert section.startswith('<div class="mw-heading mw-heading2">')
        assert "Habitat body." in section
        assert "Trivia body." not in section
        assert "Trivia body." in extract_heading_section(WIKI_WRAPPED_HEADINGS, "Trivia")


class TestCardByTitle:
    """Test titled card lookup."""

    def test_innermost_card(self):
        card = extract_card_by_title(NESTED_CARDS, "DROPPED BY")
        assert "Dropped By" in card
        assert "Outer things" not in card

    def test_missing(self):
        assert extract_card_by_title(NESTED_CARDS, "treasure box") is None
        assert extract_card_by_title(None, "stats") is None


class TestFirstTable:
    """Test table isolation inside a section."""

    def test_balanced_table(self):
        html = '<div><table class="table mb-0"><tr><td>x</td></tr></table><p>after</p></div>'
        assert extract_first_table(html, "table mb-0") == '<table class="table mb-0"><tr><td>x</td></tr></table>'

    def test_unclosed_table_runs_to_end(self):
        html = '<div><table class="table mb-0"><tr><td>x'
        assert extract_first_table(html, "table mb-0") == '<table class="table mb-0"><tr><td>x'

    def test_class_mismatch(self):
        assert extract_first_table('<table class="other"></table>', "table") is None
