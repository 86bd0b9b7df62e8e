"""
Table extraction helpers for WebKiosk pages.

The portal marks its data tables inconsistently: some pages carry a fixed table
id, others only a bare ``<table>`` somewhere in the layout. Each scraper picks a
locator strategy and gets back a ``TableLookup`` whose rows are produced
lazily as lists of cell texts, header row excluded.
"""

import logging
import re
from typing import Iterator, List, Optional, Sequence, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger("markup_extractor")

TABLE_NOT_FOUND = "Table not found"

_INT_PATTERN = re.compile(r"\d+")
_LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT_PATTERN = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_html(html: str) -> BeautifulSoup:
    """Parse a page into a BeautifulSoup document."""
    return BeautifulSoup(html or "", "html.parser")


def cell_text(cell: Tag) -> str:
    return cell.get_text().strip()


class TableById:
    """Locate the single table carrying a fixed id."""

    def __init__(self, table_id: str):
        self.table_id = table_id

    def locate(self, soup: BeautifulSoup) -> List[Tag]:
        table = soup.find("table", id=self.table_id)
        return [table] if table is not None else []

    def __repr__(self) -> str:
        return f"TableById({self.table_id!r})"


class AllTables:
    """Locate every table on the page, in document order."""

    def locate(self, soup: BeautifulSoup) -> List[Tag]:
        return soup.find_all("table")

    def __repr__(self) -> str:
        return "AllTables()"


TableLocator = Union[TableById, AllTables]


def own_rows(table: Tag) -> List[Tag]:
    """Rows belonging to ``table`` itself, excluding rows of nested tables."""
    return [row for row in table.find_all("tr") if row.find_parent("table") is table]


def iter_table_rows(table: Tag, cell_tags: Sequence[str] = ("td",),
                    skip_header: bool = True) -> Iterator[List[str]]:
    """
    Yield the rows of a table as lists of stripped cell texts.

    Args:
        table: The table element
        cell_tags: Tag names that count as cells
        skip_header: Whether to skip the first row of the table

    Yields:
        List of cell texts for each row
    """
    for index, row in enumerate(own_rows(table)):
        if skip_header and index == 0:
            continue
        cells = row.find_all(list(cell_tags), recursive=False)
        yield [cell_text(cell) for cell in cells]


class TableLookup:
    """Result of locating tables on a page."""

    def __init__(self, tables: List[Tag], cell_tags: Sequence[str] = ("td",),
                 reason: Optional[str] = None):
        self.tables = tables
        self.cell_tags = tuple(cell_tags)
        self.reason = reason

    @property
    def found(self) -> bool:
        return bool(self.tables)

    def rows(self) -> Iterator[List[str]]:
        """Lazily yield data rows of every located table, header rows excluded."""
        for table in self.tables:
            yield from iter_table_rows(table, self.cell_tags)


def extract_table(html_or_soup: Union[str, BeautifulSoup], locator: TableLocator,
                  cell_tags: Sequence[str] = ("td",)) -> TableLookup:
    """
    Locate tables in a page using the given strategy.

    A missing table is reported through ``TableLookup.found`` and
    ``TableLookup.reason`` rather than raised, since the portal regularly
    renders empty shells.

    Args:
        html_or_soup: Raw HTML or an already parsed document
        locator: Strategy used to find the table(s)
        cell_tags: Tag names that count as cells

    Returns:
        TableLookup for the located tables
    """
    soup = html_or_soup if isinstance(html_or_soup, BeautifulSoup) else parse_html(html_or_soup)
    tables = locator.locate(soup)
    if not tables:
        logger.warning(f"No table located with {locator!r}")
        return TableLookup([], cell_tags, reason=TABLE_NOT_FOUND)
    logger.debug(f"Located {len(tables)} table(s) with {locator!r}")
    return TableLookup(tables, cell_tags)


def describe_tables(soup: BeautifulSoup) -> List[dict]:
    """Summarize the tables of a page for diagnostic logging."""
    summary = []
    for index, table in enumerate(soup.find_all("table")):
        summary.append({
            "index": index,
            "id": table.get("id") or "no-id",
            "class": " ".join(table.get("class") or []) or "no-class",
            "rows": len(own_rows(table)),
        })
    return summary


def first_int(text: str) -> int:
    """First run of digits in ``text`` as an int, 0 when there is none."""
    match = _INT_PATTERN.search(text or "")
    return int(match.group(0)) if match else 0


def leading_int(text: str) -> Optional[int]:
    """Integer prefix of ``text`` (like JavaScript parseInt), None if absent."""
    match = _LEADING_INT_PATTERN.match(text or "")
    return int(match.group(1)) if match else None


def leading_float(text: str) -> Optional[float]:
    """Numeric prefix of ``text`` (like JavaScript parseFloat), None if absent."""
    match = _LEADING_FLOAT_PATTERN.match(text or "")
    return float(match.group(1)) if match else None


def split_subject_label(label: str, separator: str = " - "):
    """
    Split a ``"NAME - CODE"`` label on the first separator.

    Returns:
        Tuple of (name, code); code is empty when the separator is missing
    """
    name, _, rest = label.partition(separator)
    code = rest.split(separator)[0]
    name = name.strip()
    return (name or label.strip()), code.strip()
