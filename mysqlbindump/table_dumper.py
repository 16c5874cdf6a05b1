"""
Table dumping functionality for MySQL Binary Dumper.
"""

import logging
from typing import Any, Callable, Optional

from .connection import ConnectionProvider
from .errors import ColumnMismatchError, NoColumnsError, UnsupportedValueError
from .filters import FilterRegistry
from .models import Row, TableDescriptor, TableHeader, TableStats, Value
from .pagination import PaginationCursor
from .pause import PauseGate
from .schema import SchemaReader
from .writer import BinaryStreamWriter


class TableDumper:
    """Writes one table's header and rows, page by page and filter by filter."""

    def __init__(
        self,
        connection: ConnectionProvider,
        writer: BinaryStreamWriter,
        filters: FilterRegistry,
        chunk_size: int = 0,
        gate: Optional[PauseGate] = None
    ):
        self.connection = connection
        self.writer = writer
        self.filters = filters
        self.chunk_size = chunk_size
        self.gate = gate if gate is not None else PauseGate()
        self.schema_reader = SchemaReader(connection)

        # Rows arrive as the server's raw column bytes; nothing is reinterpreted.
        self._type_formatters: dict[type, Callable[[Any], Value]] = {
            type(None): lambda v: None,
            str: lambda v: v,
            bytes: lambda v: v,
            bytearray: bytes,
        }

    def dump_table(self, table: str, schema: str) -> TableStats:
        """
        Dump a table into the stream.

        The pause gate is consulted before the table is described, so a held
        gate blocks the catalog queries and the header as well as the rows.

        Args:
            table: Name of the table to dump.
            schema: Owning schema, used for column lookup and filter selection.

        Returns:
            TableStats with row and fetch counts.
        """
        stats = TableStats(table=table)

        self.gate.wait()
        descriptor = self.schema_reader.describe(table, schema)
        self.writer.write_table_header(TableHeader.from_descriptor(descriptor))
        logging.info(f"Read table information for {table}")

        variants = self.filters.variants_for(schema, table)
        if not variants:
            logging.info(f"Skipping row data for table {table}")

        for variant in variants:
            cursor = PaginationCursor(table, variant, self.chunk_size)
            self._dump_variant(descriptor, cursor, stats)
            stats.fetches += cursor.fetches

        return stats

    def _dump_variant(
        self,
        descriptor: TableDescriptor,
        cursor: PaginationCursor,
        stats: TableStats
    ) -> None:
        """Run the pagination loop for one filter variant."""
        while True:
            self.gate.wait()

            logging.info(f"Reading row data for table {descriptor.name}, offset = {cursor.offset}")
            query, params = cursor.next_query()
            logging.debug(f"{query} {params or ''}".rstrip())

            got_rows = self._dump_page(descriptor, query, params, stats)

            if not cursor.advance(got_rows):
                break
            logging.info(f"Wrote rows for table {descriptor.name}, next offset = {cursor.offset}")

    def _dump_page(
        self,
        descriptor: TableDescriptor,
        query: str,
        params: Optional[tuple],
        stats: TableStats
    ) -> bool:
        """Stream one page of rows into the writer. Returns whether any row was read."""
        got_rows = False
        with self.connection.stream_query(query, params) as result:
            if not result.columns:
                raise NoColumnsError(descriptor.name)
            if len(result.columns) != len(descriptor.columns):
                raise ColumnMismatchError(len(descriptor.columns), len(result.columns))

            for raw in result.rows:
                got_rows = True
                row = Row(descriptor.columns, tuple(self._format_value(v) for v in raw))
                self.writer.write_row(row)
                stats.rows_dumped += 1

        return got_rows

    def _format_value(self, value: Any) -> Value:
        """Pass a raw column value through as NULL, text or bytes.

        Anything else means the cursor converted the value to a Python type,
        which would not reproduce the server's bytes.
        """
        formatter = self._type_formatters.get(type(value))
        if formatter:
            return formatter(value)
        raise UnsupportedValueError(value)
