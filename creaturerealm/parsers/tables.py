"""
Tolerant table parsing.

Source pages omit `</tbody>`, `</tr>` and `</td>` inconsistently, so rows
and cells are delimited by the next opening marker (or the enclosing
close tag, or end of input) instead of their own closing tag.
"""
import re
from typing import List, Optional

from creaturerealm.utils.text import html_to_text

_TBODY_OPEN_RE = re.compile(r"<tbody\b[^>]*>", re.I)
_TBODY_CLOSE_RE = re.compile(r"</tbody\s*>", re.I)
_TABLE_OPEN_RE = re.compile(r"<table\b[^>]*>", re.I)
_TABLE_CLOSE_RE = re.compile(r"</table\s*>", re.I)
_THEAD_RE = re.compile(r"<thead\b[^>]*>[\s\S]*?(?:</thead\s*>|(?=<tbody\b)|(?=<tr\b[^>]*>\s*<td\b))", re.I)

_ROW_RE = re.compile(r"<tr\b[^>]*>([\s\S]*?)(?=<tr\b|</tbody\b|</table\b|$)", re.I)
_CELL_RE = re.compile(r"<td\b[^>]*>([\s\S]*?)(?=<td\b|</tr\b|$)", re.I)
_TRAILING_CLOSE_RE = re.compile(r"\s*</t[dr]\s*>\s*$", re.I)


def _cut_at_table_close(s: str) -> str:
    m = _TABLE_CLOSE_RE.search(s)
    return s[:m.start()] if m else s


def table_body(table_html: Optional[str]) -> str:
    """
    Row container of a table.

    `<tbody>` inner markup when present (up to `</tbody>`, or `</table>`
    / end of input when the close is missing); otherwise the table
    content with any `<thead>` region removed.
    """
    s = table_html or ""
    if not s:
        return ""

    open_m = _TBODY_OPEN_RE.search(s)
    if open_m:
        rest = s[open_m.end():]
        close_m = _TBODY_CLOSE_RE.search(rest)
        if close_m:
            return rest[:close_m.start()]
        return _cut_at_table_close(rest)

    table_m = _TABLE_OPEN_RE.search(s)
    content = s[table_m.end():] if table_m else s
    content = _cut_at_table_close(content)
    return _THEAD_RE.sub("", content)


def split_rows(body_html: Optional[str]) -> List[str]:
    """Inner markup of every `<tr>`; a row never needs its own `</tr>`."""
    return [m.group(1) for m in _ROW_RE.finditer(body_html or "")]


def split_cells(row_html: Optional[str]) -> List[str]:
    """Inner markup of every `<td>` in a row, trailing `</td>` trimmed."""
    cells = []
    for m in _CELL_RE.finditer(row_html or ""):
        cells.append(_TRAILING_CLOSE_RE.sub("", m.group(1)).strip())
    return cells


def parse_table(table_html: Optional[str]) -> List[List[str]]:
    """
    Split a table into rows of raw cell markup.

    Returns `[]` for a table with no data rows. That is "no data", not a
    parse failure.
    """
    rows: List[List[str]] = []
    for row in split_rows(table_body(table_html)):
        cells = split_cells(row)
        if cells:
            rows.append(cells)
    return rows


def table_rows_text(table_html: Optional[str]) -> List[List[str]]:
    """`parse_table` with every cell reduced to its text."""
    return [[html_to_text(cell) for cell in row] for row in parse_table(table_html)]
