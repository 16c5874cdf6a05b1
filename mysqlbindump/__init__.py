"""
MySQL Binary Dumper
===================
Exports the schema and rows of MySQL tables into a single framed binary stream:
- Multiple database instances
- Chunked (LIMIT/OFFSET) row retrieval
- Per-table filter variants, including schema-only tables
- Cooperative pausing between chunks
- Compression support
"""

from .config import ConfigLoader
from .connection import ConnectionProvider, DatabaseConnection, ResultSet
from .database_dumper import DatabaseDumper
from .dumper import Dumper
from .errors import (
    ColumnMismatchError,
    DumpConnectionError,
    DumpError,
    FrameOrderError,
    NoColumnsError,
    SchemaMismatchError,
    TableDumpError,
    UnsupportedValueError,
)
from .filters import DEFAULT_FILTERS, FilterRegistry
from .main import main
from .models import (
    DatabaseStats,
    DumpStats,
    Row,
    StreamHeader,
    TableDescriptor,
    TableHeader,
    TableStats,
)
from .pagination import PaginationCursor
from .pause import PauseGate
from .schema import SchemaReader
from .table_dumper import TableDumper
from .utils import print_dry_run_info, setup_logging
from .writer import BinaryStreamWriter, open_output

__version__ = "1.0.0"

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigLoader",
    "ConnectionProvider",
    "DatabaseConnection",
    "DatabaseDumper",
    "Dumper",
    "TableDumper",
    "SchemaReader",
    "PaginationCursor",
    "PauseGate",
    "FilterRegistry",
    "DEFAULT_FILTERS",
    "BinaryStreamWriter",
    "open_output",
    "ResultSet",
    # Models
    "DatabaseStats",
    "DumpStats",
    "Row",
    "StreamHeader",
    "TableDescriptor",
    "TableHeader",
    "TableStats",
    # Errors
    "DumpError",
    "DumpConnectionError",
    "SchemaMismatchError",
    "NoColumnsError",
    "ColumnMismatchError",
    "FrameOrderError",
    "TableDumpError",
    "UnsupportedValueError",
    # Utilities
    "print_dry_run_info",
    "setup_logging",
]
