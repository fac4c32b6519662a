"""Tests for tolerant table parsing."""

from creaturerealm.parsers.tables import parse_table, split_cells, split_rows, table_body, table_rows_text


WELL_FORMED = """
<table class="table">
<thead><tr><th>A</th><th>B</th></tr></thead>
<tbody>
<tr><td>1</td><td><b>one</b></td></tr>
<tr><td>2</td><td>two</td></tr>
</tbody>
</table>
"""

NO_CLOSES = """
<table class="table">
<thead><tr><th>A</th><th>B</th></tr></thead>
<tbody>
<tr><td>1<td><b>one</b>
<tr><td>2<td>two
</table>
"""

NO_TBODY = """
<table>
<thead><tr><th>A</th><th>B</th></tr></thead>
<tr><td>1</td><td><b>one</b></td></tr>
<tr><td>2</td><td>two</td></tr>
</table>
"""


class TestTableBody:
    """Test row container isolation."""

    def test_tbody_inner(self):
        body = table_body(WELL_FORMED)
        assert "<th>" not in body
        assert body.count("<tr>") == 2

    def test_unclosed_tbody_stops_at_table_close(self):
        body = table_body(NO_CLOSES + "<p>after</p>")
        assert "after" not in body

    def test_thead_dropped_without_tbody(self):
        body = table_body(NO_TBODY)
        assert "<th>" not in body

    def test_empty(self):
        assert table_body(None) == ""


class TestRowsAndCells:
    """Test loose row and cell splitting."""

    def test_split_rows_without_close(self):
        rows = split_rows("<tr><td>a<tr><td>b")
        assert rows == ["<td>a", "<td>b"]

    def test_split_cells_trims_closes(self):
        assert split_cells("<td> a </td><td>b</td></tr>") == ["a", "b"]
        assert split_cells("<td>a<td>b") == ["a", "b"]


class TestParseTable:
    """Test malformed and well-formed tables agree."""

    def test_same_rows_regardless_of_closing_tags(self):
        expected = [["1", "<b>one</b>"], ["2", "two"]]
        assert parse_table(WELL_FORMED) == expected
        assert parse_table(NO_CLOSES) == expected
        assert parse_table(NO_TBODY) == expected

    def test_rows_text(self):
        assert table_rows_text(NO_CLOSES) == [["1", "one"], ["2", "two"]]

    def test_no_rows_is_empty_list(self):
        assert parse_table("<table><tbody></tbody></table>") == []
        assert parse_table("") == []
