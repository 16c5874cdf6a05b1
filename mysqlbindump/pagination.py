"""
Chunked retrieval state for MySQL Binary Dumper.
"""

from typing import Optional


class PaginationCursor:
    """
    Tracks LIMIT/OFFSET paging for one (table, filter variant) pair.

    A chunk size of zero (or less) disables chunking: the select is issued once
    without LIMIT/OFFSET. Otherwise paging stops only when a fetch returns no rows,
    so a completely full page is always followed by one more fetch.
    """

    def __init__(self, table: str, filter_variant: str = "", chunk_size: int = 0):
        self.table = table
        self.filter_variant = filter_variant
        self.chunk_size = chunk_size
        self.offset = 0
        self.fetches = 0

    @property
    def chunked(self) -> bool:
        return self.chunk_size > 0

    def next_query(self) -> tuple[str, Optional[tuple[int, int]]]:
        """Build the select for the current page and count it as a fetch."""
        query = f"SELECT * FROM `{self.table}`{self.filter_variant}"
        self.fetches += 1
        if self.chunked:
            return f"{query} LIMIT %s OFFSET %s", (self.chunk_size, self.offset)
        return query, None

    def advance(self, got_rows: bool) -> bool:
        """Move to the next page. Returns False once the variant is exhausted."""
        if not got_rows or not self.chunked:
            return False
        self.offset += self.chunk_size
        return True
