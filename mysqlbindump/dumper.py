"""
Dump engine for MySQL Binary Dumper.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .connection import ConnectionProvider
from .errors import DumpError, TableDumpError
from .filters import FilterRegistry
from .models import StreamHeader, TableStats
from .pause import PauseGate
from .table_dumper import TableDumper
from .writer import BinaryStreamWriter


class Dumper:
    """
    Exports the schema and rows of a set of tables into one framed stream.

    The stream header is written once, then every table gets a header frame
    followed by its rows. The first failing table aborts the whole export;
    frames already written are left in place.
    """

    def __init__(
        self,
        connection: ConnectionProvider,
        writer: BinaryStreamWriter,
        chunk_size: int = 0,
        filters: Optional[FilterRegistry] = None,
        gate: Optional[PauseGate] = None
    ):
        self.connection = connection
        self.writer = writer
        self.chunk_size = chunk_size
        self.filters = filters if filters is not None else FilterRegistry()
        self.gate = gate if gate is not None else PauseGate()

    def dump(self, db_name: str, tables: list[str]) -> list[TableStats]:
        """
        Dump one or more tables.

        If db_name is not empty, a USE statement is sent before the dump starts.
        An empty table list writes nothing at all.
        """
        if not tables:
            logging.info("No tables requested, nothing to dump")
            return []

        server_version = self.get_server_version()
        self.use(db_name)

        self.writer.write_stream_header(StreamHeader(
            server_version=server_version,
            database_name=db_name,
            started_at=datetime.now(timezone.utc),
        ))

        table_dumper = TableDumper(
            self.connection, self.writer, self.filters, self.chunk_size, self.gate
        )

        results = []
        for table in tables:
            try:
                results.append(table_dumper.dump_table(table, db_name))
            except (DumpError, OSError) as e:
                logging.error(f"Error dumping table '{table}': {e}")
                raise TableDumpError(table, e) from e
        return results

    def dump_all_tables(self, db_name: str) -> list[TableStats]:
        """Dump every table of a database."""
        self.use(db_name)
        tables = self.connection.get_tables()
        logging.info(f"Found {len(tables)} table(s) in '{db_name or 'current database'}'")
        return self.dump(db_name, tables)

    def use(self, db_name: str) -> None:
        """Switch the connection to db_name, if given."""
        if db_name:
            self.connection.execute(f"USE `{db_name}`")

    def get_server_version(self) -> str:
        version = self.connection.query_scalar("SELECT VERSION()")
        return "" if version is None else str(version)
