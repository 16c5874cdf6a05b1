"""
Data models for MySQL Binary Dumper.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Union

from .errors import ColumnMismatchError

Value = Optional[Union[str, bytes]]


@dataclass(frozen=True)
class TableDescriptor:
    """Schema metadata captured once per exported table."""
    name: str
    schema: str
    create_statement: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class Row:
    """A row tuple bound to the column list it was read with.

    Raises ColumnMismatchError when the value count differs from the column count.
    """
    columns: tuple[str, ...]
    values: tuple[Value, ...]

    def __post_init__(self):
        if len(self.values) != len(self.columns):
            raise ColumnMismatchError(len(self.columns), len(self.values))

    def __len__(self) -> int:
        return len(self.values)

    def as_dict(self) -> dict[str, Value]:
        return dict(zip(self.columns, self.values))


@dataclass(frozen=True)
class StreamHeader:
    """First frame of every dump stream."""
    server_version: str
    database_name: str
    started_at: datetime


@dataclass(frozen=True)
class TableHeader:
    """Frame announcing a table and the column order of its rows."""
    name: str
    create_statement: str
    columns: tuple[str, ...]

    @classmethod
    def from_descriptor(cls, descriptor: TableDescriptor) -> "TableHeader":
        return cls(
            name=descriptor.name,
            create_statement=descriptor.create_statement,
            columns=descriptor.columns,
        )


@dataclass
class TableStats:
    """Statistics for a single table dump."""
    table: str
    rows_dumped: int = 0
    fetches: int = 0


@dataclass
class DatabaseStats:
    """Statistics for a single database dump."""
    name: str
    instance: str
    file_path: str = ""
    tables: list[TableStats] = field(default_factory=list)
    total_rows: int = 0
    success: bool = False
    error: Optional[str] = None


@dataclass
class DumpStats:
    """Overall dump statistics."""
    databases: list[DatabaseStats] = field(default_factory=list)
    total_tables: int = 0
    total_rows: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
