"""
Exceptions raised by MySQL Binary Dumper.
"""

from typing import Optional


class DumpError(Exception):
    """Base class for all dump failures."""


class DumpConnectionError(DumpError):
    """A statement could not be executed or its results could not be read."""


class SchemaMismatchError(DumpError):
    """SHOW CREATE TABLE answered for a different table than requested."""

    def __init__(self, requested: str, returned: Optional[str]):
        self.requested = requested
        self.returned = returned
        super().__init__(
            f"returned table '{returned}' is not the same as requested table '{requested}'"
        )


class NoColumnsError(DumpError):
    """A table reports zero columns."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"no columns in table '{table}'")


class ColumnMismatchError(DumpError):
    """A row does not line up with its column list."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"row has {actual} value(s) but {expected} column(s) were declared")


class FrameOrderError(DumpError):
    """A frame was written out of stream order."""


class TableDumpError(DumpError):
    """Wraps the failure of a single table with its name."""

    def __init__(self, table: str, cause: Exception):
        self.table = table
        self.cause = cause
        super().__init__(f"table '{table}': {cause}")


class UnsupportedValueError(DumpError):
    """A column value is not NULL, text or raw bytes."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"unsupported column value of type {type(value).__name__}")
