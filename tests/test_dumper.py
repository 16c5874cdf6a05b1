"""
Unit tests for dumper.py
"""

import io
import math
import os
import subprocess
import sys
from datetime import timezone
from pathlib import Path

import pytest

from fakes import FakeConnection, FakeTable, RecordingWriter, read_frames
from mysqlbindump.dumper import Dumper
from mysqlbindump.errors import (
    ColumnMismatchError,
    DumpConnectionError,
    NoColumnsError,
    SchemaMismatchError,
    TableDumpError,
    UnsupportedValueError,
)
from mysqlbindump.filters import FilterRegistry
from mysqlbindump.writer import BinaryStreamWriter

USERS_ROWS = [("1", "a"), ("2", "b"), ("3", "c")]

TESTS_DIR = Path(__file__).resolve().parent

# Dumps a table holding SET and BIT columns as the raw cursor returns them
# and prints the stream as hex.
SET_COLUMN_DUMP = """
import io
import sys

from fakes import FakeConnection, FakeTable
from mysqlbindump.dumper import Dumper
from mysqlbindump.writer import BinaryStreamWriter

conn = FakeConnection({
    "palette": FakeTable(
        ["id", "colours", "mask"],
        [(bytearray(b"1"), bytearray(b"blue,green,red"), bytearray(b"\\x05"))],
    ),
})
buffer = io.BytesIO()
Dumper(conn, BinaryStreamWriter(buffer)).dump("db", ["palette"])
sys.stdout.write(buffer.getvalue().hex())
"""


def make_users_connection(rows=USERS_ROWS):
    return FakeConnection({
        "users": FakeTable(["id", "name"], list(rows), "CREATE TABLE `users` (...)"),
    })


class TestDumpStream:
    """Tests for stream-level framing."""

    def test_empty_table_list_writes_nothing(self):
        """An empty table list is a successful no-op."""
        conn = make_users_connection()
        writer = RecordingWriter()

        result = Dumper(conn, writer).dump("shop", [])

        assert result == []
        assert writer.frames == []
        assert conn.statements == []
        assert conn.selects == []

    def test_stream_header_first_and_once(self):
        conn = FakeConnection({
            "users": FakeTable(["id"], [("1",)]),
            "orders": FakeTable(["id"], [("9",)]),
        }, version="8.0.36-log")
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=10).dump("shop", ["users", "orders"])

        assert writer.kinds()[0] == "stream"
        assert writer.kinds().count("stream") == 1
        header = writer.frames[0][1]
        assert header.server_version == "8.0.36-log"
        assert header.database_name == "shop"
        assert header.started_at.tzinfo == timezone.utc

    def test_use_statement_sent_for_database(self):
        conn = make_users_connection()
        Dumper(conn, RecordingWriter()).dump("shop", ["users"])
        assert "USE `shop`" in conn.statements

    def test_no_use_statement_without_database(self):
        conn = make_users_connection()
        Dumper(conn, RecordingWriter()).dump("", ["users"])
        assert not any(s.startswith("USE") for s in conn.statements)

    def test_table_headers_in_request_order(self):
        conn = FakeConnection({
            "a": FakeTable(["id"], [("1",)]),
            "b": FakeTable(["id"], []),
            "c": FakeTable(["id", "x"], [("1", None)]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer).dump("db", ["c", "a", "b"])

        headers = writer.of_kind("table")
        assert [h.name for h in headers] == ["c", "a", "b"]
        assert headers[0].columns == ("id", "x")

    def test_rows_follow_their_table_header(self):
        conn = FakeConnection({
            "a": FakeTable(["id"], [("1",), ("2",)]),
            "b": FakeTable(["id", "name"], [("3", "z")]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=1).dump("db", ["a", "b"])

        assert writer.kinds() == ["stream", "table", "row", "row", "table", "row"]
        assert writer.rows_by_table() == {"a": [("1",), ("2",)], "b": [("3", "z")]}

    def test_every_row_matches_header_width(self):
        conn = FakeConnection({
            "a": FakeTable(["id", "name", "email"], [("1", "x", None), ("2", None, "y@z")]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=1).dump("db", ["a"])

        header = writer.of_kind("table")[0]
        for row in writer.of_kind("row"):
            assert len(row.values) == len(header.columns)
            assert row.columns == header.columns

    def test_returns_table_stats(self):
        conn = make_users_connection()
        stats = Dumper(conn, RecordingWriter(), chunk_size=2).dump("db", ["users"])

        assert len(stats) == 1
        assert stats[0].table == "users"
        assert stats[0].rows_dumped == 3
        assert stats[0].fetches == 3

    def test_dump_all_tables(self):
        conn = FakeConnection({
            "a": FakeTable(["id"], [("1",)]),
            "b": FakeTable(["id"], [("2",)]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer).dump_all_tables("db")

        assert "SHOW TABLES" in conn.statements
        assert [h.name for h in writer.of_kind("table")] == ["a", "b"]

    def test_rerun_produces_identical_frames(self):
        """Only the start timestamp differs between two runs on unchanged data."""
        outputs = []
        for _ in range(2):
            buffer = io.BytesIO()
            Dumper(make_users_connection(), BinaryStreamWriter(buffer), chunk_size=2).dump(
                "db", ["users"]
            )
            outputs.append(read_frames(buffer.getvalue())[1])

        first, second = outputs
        assert first[1:] == second[1:]
        assert first[0][1][:2] == second[0][1][:2]

    def test_set_and_bit_columns_identical_across_hash_seeds(self):
        """SET and BIT values are written as the server sent them, whatever the hash seed."""
        outputs = []
        for seed in ("1", "2", "12345"):
            env = dict(os.environ)
            env["PYTHONHASHSEED"] = seed
            env["PYTHONPATH"] = os.pathsep.join([str(TESTS_DIR), str(TESTS_DIR.parent)])
            result = subprocess.run(
                [sys.executable, "-c", SET_COLUMN_DUMP],
                env=env, capture_output=True, text=True, check=True
            )
            outputs.append(read_frames(bytes.fromhex(result.stdout))[1])

        assert outputs[0][1:] == outputs[1][1:] == outputs[2][1:]
        assert outputs[0][2] == ("row", [b"1", b"blue,green,red", b"\x05"])


class TestPagination:
    """Tests for chunked retrieval."""

    def test_chunked_scenario(self):
        """Three rows with chunk size 2 take fetches at offsets 0, 2 and 4."""
        conn = make_users_connection()
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=2).dump("db", ["users"])

        assert conn.selects == [
            ("SELECT * FROM `users` LIMIT %s OFFSET %s", (2, 0)),
            ("SELECT * FROM `users` LIMIT %s OFFSET %s", (2, 2)),
            ("SELECT * FROM `users` LIMIT %s OFFSET %s", (2, 4)),
        ]
        assert [r.values for r in writer.of_kind("row")] == USERS_ROWS

    def test_exact_multiple_fetches_once_more(self):
        rows = [(str(i), "x") for i in range(4)]
        conn = make_users_connection(rows)

        Dumper(conn, RecordingWriter(), chunk_size=2).dump("db", ["users"])

        assert [params for _, params in conn.selects] == [(2, 0), (2, 2), (2, 4)]

    @pytest.mark.parametrize("row_count,chunk_size", [
        (0, 1), (1, 1), (5, 2), (6, 3), (7, 10), (10, 10), (11, 10),
    ])
    def test_fetch_count(self, row_count, chunk_size):
        rows = [(str(i), "x") for i in range(row_count)]
        conn = make_users_connection(rows)
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=chunk_size).dump("db", ["users"])

        if row_count % chunk_size == 0:
            expected = row_count // chunk_size + 1
        else:
            expected = math.ceil((row_count + 1) / chunk_size)
        assert len(conn.selects) == expected
        assert len(writer.of_kind("row")) == row_count

    def test_unchunked_single_fetch(self):
        conn = make_users_connection()
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=0).dump("db", ["users"])

        assert conn.selects == [("SELECT * FROM `users`", None)]
        assert len(writer.of_kind("row")) == 3

    def test_unchunked_single_fetch_even_when_empty(self):
        conn = make_users_connection(rows=[])
        Dumper(conn, RecordingWriter(), chunk_size=0).dump("db", ["users"])
        assert len(conn.selects) == 1

    def test_null_and_binary_values_kept(self):
        conn = FakeConnection({
            "blobs": FakeTable(["id", "data", "note"], [(bytearray(b"1"), bytearray(b"\x00\xff"), None)]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer).dump("db", ["blobs"])

        assert writer.of_kind("row")[0].values == (b"1", b"\x00\xff", None)

    def test_converted_value_aborts(self):
        """A value the cursor turned into a Python object is refused, not guessed at."""
        conn = FakeConnection({
            "tags": FakeTable(["id", "flags"], [(b"1", {"a", "b"})]),
        })
        writer = RecordingWriter()

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, writer).dump("db", ["tags"])

        assert isinstance(exc_info.value.__cause__, UnsupportedValueError)
        assert writer.of_kind("row") == []


class TestFilters:
    """Tests for filter variants applied by the engine."""

    def test_schema_only_table(self):
        """rate_limit_request_log in iot-api is exported without rows."""
        conn = FakeConnection({
            "rate_limit_request_log": FakeTable(["id", "ip"], [("1", "10.0.0.1"), ("2", "10.0.0.2")]),
        })
        writer = RecordingWriter()

        stats = Dumper(conn, writer, chunk_size=1).dump("iot-api", ["rate_limit_request_log"])

        assert writer.kinds() == ["stream", "table"]
        assert conn.selects == []
        assert stats[0].rows_dumped == 0

    def test_event_log_variants_in_order(self):
        """event_log in iot-api runs three independent paginations, in order."""
        registry = FilterRegistry()
        variants = registry.variants_for("iot-api", "event_log")
        conn = FakeConnection({
            "event_log": FakeTable(["id", "event"], rows_by_filter={
                variants[0]: [("1", "geofence-in"), ("2", "geofence-in")],
                variants[1]: [("3", "geofence-out")],
                variants[2]: [("517837446", "move")],
            }),
        })
        writer = RecordingWriter()

        Dumper(conn, writer, chunk_size=2, filters=registry).dump("iot-api", ["event_log"])

        assert [(q, p) for q, p in conn.selects] == [
            (f"SELECT * FROM `event_log`{variants[0]} LIMIT %s OFFSET %s", (2, 0)),
            (f"SELECT * FROM `event_log`{variants[0]} LIMIT %s OFFSET %s", (2, 2)),
            (f"SELECT * FROM `event_log`{variants[1]} LIMIT %s OFFSET %s", (2, 0)),
            (f"SELECT * FROM `event_log`{variants[1]} LIMIT %s OFFSET %s", (2, 2)),
            (f"SELECT * FROM `event_log`{variants[2]} LIMIT %s OFFSET %s", (2, 0)),
            (f"SELECT * FROM `event_log`{variants[2]} LIMIT %s OFFSET %s", (2, 2)),
        ]
        assert [r.values[0] for r in writer.of_kind("row")] == ["1", "2", "3", "517837446"]
        assert writer.kinds().count("table") == 1

    def test_filter_only_applies_to_its_schema(self):
        conn = FakeConnection({
            "rate_limit_request_log": FakeTable(["id"], [("1",)]),
        })
        writer = RecordingWriter()

        Dumper(conn, writer).dump("other", ["rate_limit_request_log"])

        assert conn.selects == [("SELECT * FROM `rate_limit_request_log`", None)]
        assert len(writer.of_kind("row")) == 1

    def test_custom_registry(self):
        registry = FilterRegistry({"db": {"users": ["WHERE id > 1"]}})
        conn = make_users_connection()

        Dumper(conn, RecordingWriter(), filters=registry).dump("db", ["users"])

        assert conn.selects == [("SELECT * FROM `users` WHERE id > 1", None)]


class TestFailures:
    """Tests for fail-fast error handling."""

    def test_schema_mismatch_aborts(self):
        conn = FakeConnection({
            "users": FakeTable(["id"], [("1",)]),
            "orders": FakeTable(["id"], [("2",)]),
        })
        conn.echo_names["users"] = "Users"
        writer = RecordingWriter()

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, writer).dump("db", ["users", "orders"])

        assert exc_info.value.table == "users"
        assert isinstance(exc_info.value.__cause__, SchemaMismatchError)
        assert writer.kinds() == ["stream"]

    def test_no_columns_aborts(self):
        conn = FakeConnection({"empty": FakeTable([], [])})

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, RecordingWriter()).dump("db", ["empty"])

        assert isinstance(exc_info.value.__cause__, NoColumnsError)

    def test_result_column_mismatch_aborts(self):
        conn = FakeConnection({
            "users": FakeTable(["id", "name"], [("1",)], result_columns=["id"]),
        })
        writer = RecordingWriter()

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, writer).dump("db", ["users"])

        assert isinstance(exc_info.value.__cause__, ColumnMismatchError)
        assert writer.of_kind("row") == []

    def test_short_row_aborts(self):
        conn = FakeConnection({"users": FakeTable(["id", "name"], [("1", "a"), ("2",)])})
        writer = RecordingWriter()

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, writer).dump("db", ["users"])

        assert isinstance(exc_info.value.__cause__, ColumnMismatchError)
        assert len(writer.of_kind("row")) == 1

    def test_later_table_failure_keeps_written_frames(self):
        conn = FakeConnection({
            "users": FakeTable(["id"], [("1",)]),
            "orders": FakeTable(["id"], [("2",)]),
            "items": FakeTable(["id"], [("3",)]),
        })
        conn.failures["FROM `orders`"] = DumpConnectionError("Lost connection to MySQL server")
        writer = RecordingWriter()

        with pytest.raises(TableDumpError) as exc_info:
            Dumper(conn, writer).dump("db", ["users", "orders", "items"])

        assert exc_info.value.table == "orders"
        assert "Lost connection" in str(exc_info.value)
        assert writer.kinds() == ["stream", "table", "row", "table"]
        assert not any("items" in q for q, _ in conn.selects)

    def test_version_failure_writes_nothing(self):
        conn = make_users_connection()
        conn.failures["VERSION()"] = DumpConnectionError("gone away")
        writer = RecordingWriter()

        with pytest.raises(DumpConnectionError):
            Dumper(conn, writer).dump("db", ["users"])

        assert writer.frames == []
