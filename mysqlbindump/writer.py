"""
Framed binary output for MySQL Binary Dumper.

Layout (all integers little-endian):

    preamble      b"MYBD" + uint16 format version
    frame         uint8 kind + payload
    string        uint32 length + UTF-8 bytes
    nullable      int32 length (-1 for NULL) + bytes
    timestamp     int64 microseconds since the Unix epoch, UTC

    STREAM_HEADER string server_version, string database_name, timestamp started_at
    TABLE_HEADER  string name, string create_statement, uint32 count + strings
    ROW           uint32 count + nullable values
"""

import gzip
import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import ColumnMismatchError, FrameOrderError
from .models import Row, StreamHeader, TableHeader, Value

MAGIC = b"MYBD"
FORMAT_VERSION = 1

FRAME_STREAM_HEADER = 1
FRAME_TABLE_HEADER = 2
FRAME_ROW = 3

NULL_LENGTH = -1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def open_output(output_path: Path, compress: bool = False) -> tuple[Path, BinaryIO]:
    """Open output file with optional compression."""
    if compress:
        output_path = Path(str(output_path) + '.gz')
        return output_path, gzip.open(output_path, 'wb')
    return output_path, open(output_path, 'wb')


class BinaryStreamWriter:
    """Serializes dump frames to a binary file-like object, strictly in order."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.frames_written = 0
        self.rows_written = 0
        self._stream_started = False
        self._table: Optional[TableHeader] = None

    def write_stream_header(self, header: StreamHeader) -> None:
        if self._stream_started:
            raise FrameOrderError("stream header already written")

        payload = (
            self._string(header.server_version)
            + self._string(header.database_name)
            + self._timestamp(header.started_at)
        )
        self.stream.write(MAGIC + struct.pack("<H", FORMAT_VERSION))
        self._write_frame(FRAME_STREAM_HEADER, payload)
        self._stream_started = True

    def write_table_header(self, header: TableHeader) -> None:
        if not self._stream_started:
            raise FrameOrderError(f"table header for '{header.name}' before stream header")

        payload = [
            self._string(header.name),
            self._string(header.create_statement),
            struct.pack("<I", len(header.columns)),
        ]
        payload.extend(self._string(column) for column in header.columns)
        self._write_frame(FRAME_TABLE_HEADER, b"".join(payload))
        self._table = header

    def write_row(self, row: Row) -> None:
        if self._table is None:
            raise FrameOrderError("row written before any table header")
        if len(row) != len(self._table.columns):
            raise ColumnMismatchError(len(self._table.columns), len(row))

        payload = [struct.pack("<I", len(row))]
        payload.extend(self._nullable(value) for value in row.values)
        self._write_frame(FRAME_ROW, b"".join(payload))
        self.rows_written += 1

    def flush(self) -> None:
        self.stream.flush()

    def _write_frame(self, kind: int, payload: bytes) -> None:
        # one write per frame so a frame is never split by other output
        self.stream.write(struct.pack("<B", kind) + payload)
        self.frames_written += 1

    @staticmethod
    def _string(value: str) -> bytes:
        data = value.encode("utf-8")
        return struct.pack("<I", len(data)) + data

    @staticmethod
    def _nullable(value: Value) -> bytes:
        if value is None:
            return struct.pack("<i", NULL_LENGTH)
        data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        return struct.pack("<i", len(data)) + data

    @staticmethod
    def _timestamp(value: datetime) -> bytes:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
        return struct.pack("<q", micros)
