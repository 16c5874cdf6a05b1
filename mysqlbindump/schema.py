"""
Table schema lookups for MySQL Binary Dumper.
"""

import logging

from .connection import ConnectionProvider
from .errors import NoColumnsError, SchemaMismatchError
from .models import TableDescriptor


def _as_text(value) -> str:
    """Some driver versions return catalog strings as bytes; NULL reads as empty."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


class SchemaReader:
    """Reads table DDL and column order."""

    COLUMNS_QUERY = (
        "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
        "WHERE TABLE_NAME = %s AND TABLE_SCHEMA = {schema} "
        "ORDER BY ORDINAL_POSITION"
    )

    def __init__(self, connection: ConnectionProvider):
        self.connection = connection

    def describe(self, table: str, schema: str) -> TableDescriptor:
        """
        Build the descriptor for a table.

        Args:
            table: Table name.
            schema: Owning schema. Empty means the connection's current database.

        Raises:
            SchemaMismatchError: SHOW CREATE TABLE echoed another table.
            NoColumnsError: The catalog lists no columns for the table.
        """
        create_statement = self.get_create_table(table)
        columns = self.get_columns(table, schema)
        logging.debug(f"Table '{table}' has {len(columns)} column(s)")
        return TableDescriptor(
            name=table,
            schema=schema,
            create_statement=create_statement,
            columns=tuple(columns),
        )

    def get_create_table(self, table: str) -> str:
        """Get CREATE TABLE statement."""
        row = self.connection.query_row(f"SHOW CREATE TABLE `{table}`")
        if row is None:
            raise SchemaMismatchError(table, None)
        returned, create_statement = _as_text(row[0]), _as_text(row[1])
        if returned != table:
            raise SchemaMismatchError(table, returned)
        return create_statement

    def get_columns(self, table: str, schema: str) -> list[str]:
        """Get column names in ordinal order."""
        if schema:
            query = self.COLUMNS_QUERY.format(schema="%s")
            params = (table, schema)
        else:
            query = self.COLUMNS_QUERY.format(schema="DATABASE()")
            params = (table,)

        columns = [_as_text(row[0]) for row in self.connection.execute_query(query, params)]
        if not columns:
            raise NoColumnsError(table)
        return columns
