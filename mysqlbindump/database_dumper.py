"""
Main database dumping orchestration for MySQL Binary Dumper.
"""

import fnmatch
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .config import ConfigLoader
from .connection import DatabaseConnection
from .dumper import Dumper
from .errors import DumpError
from .filters import FilterRegistry
from .models import DatabaseStats, DumpStats
from .pause import PauseGate
from .writer import BinaryStreamWriter, open_output

OUTPUT_EXTENSION = "bin"


class DatabaseDumper:
    """Runs one dump stream per configured database."""

    def __init__(self, config: ConfigLoader, gate: Optional[PauseGate] = None):
        self.config = config
        self.output_settings = config.get_output_settings()
        self.defaults = config.get_defaults()
        self.filters = FilterRegistry.from_config(config.get_filters())
        self.gate = gate if gate is not None else PauseGate()
        self.stats = DumpStats()

    def _compile_exclusion_patterns(self, exclude_patterns: list[str]) -> list[re.Pattern]:
        """
        Pre-compile exclusion patterns to regex for faster matching.

        Converts fnmatch patterns to compiled regex patterns.
        """
        return [re.compile(fnmatch.translate(pattern)) for pattern in exclude_patterns]

    def _is_table_excluded(
        self,
        table_name: str,
        exclude_patterns: list[str],
        compiled_patterns: Optional[list[re.Pattern]] = None
    ) -> bool:
        """
        Check if a table should be excluded based on patterns.

        Supports exact matches ('users_backup') and wildcards ('*_old', 'tmp_*').
        """
        if compiled_patterns:
            for i, compiled in enumerate(compiled_patterns):
                if compiled.match(table_name):
                    logging.debug(f"Table '{table_name}' excluded by pattern '{exclude_patterns[i]}'")
                    return True
        else:
            for pattern in exclude_patterns:
                if fnmatch.fnmatch(table_name, pattern):
                    logging.debug(f"Table '{table_name}' excluded by pattern '{pattern}'")
                    return True
        return False

    def run(
        self,
        database_filter: Optional[str] = None,
        instance_filter: Optional[str] = None
    ) -> DumpStats:
        """Run the dump process for all configured databases.

        Args:
            database_filter: If specified, only dump this database name
            instance_filter: If specified, only dump databases from this instance
        """
        output_dir = Path(self.output_settings.get('directory', './dumps'))
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        databases = self._filter_databases(database_filter, instance_filter)

        logging.info(f"Starting dump of {len(databases)} database(s)")

        for db_config in databases:
            self._dump_database(db_config, output_dir, timestamp)

        return self.stats

    def _filter_databases(
        self,
        database_filter: Optional[str],
        instance_filter: Optional[str]
    ) -> list[dict[str, Any]]:
        """Filter databases based on provided filters."""
        databases = self.config.get_databases()

        if database_filter:
            databases = [db for db in databases if db['name'] == database_filter]
            if not databases:
                logging.warning(f"No database named '{database_filter}' found in configuration")

        if instance_filter:
            databases = [db for db in databases if db.get('instance', 'primary') == instance_filter]
            if not databases:
                logging.warning(f"No databases found for instance '{instance_filter}'")

        return databases

    def _output_path(self, output_dir: Path, db_name: str, timestamp: str) -> Path:
        if self.output_settings.get('timestamp_suffix', True):
            return output_dir / f"{db_name}_{timestamp}.{OUTPUT_EXTENSION}"
        return output_dir / f"{db_name}.{OUTPUT_EXTENSION}"

    def _dump_database(
        self,
        db_config: dict[str, Any],
        output_dir: Path,
        timestamp: str
    ) -> None:
        """Dump a single database into its own stream file."""
        db_name = db_config['name']
        instance_name = db_config.get('instance', 'primary')

        db_stats = DatabaseStats(name=db_name, instance=instance_name)

        try:
            instance_config = self.config.get_instance(instance_name)
            chunk_size = self.config.get_chunk_size(db_config)

            with DatabaseConnection(
                host=instance_config['host'],
                port=instance_config.get('port', DatabaseConnection.DEFAULT_PORT),
                user=instance_config['user'],
                password=instance_config['password'],
                database=db_name
            ) as conn:
                tables = self._get_tables_to_dump(conn, db_config)
                logging.info(f"Dumping {len(tables)} table(s) from '{db_name}'")

                output_path = self._output_path(output_dir, db_name, timestamp)
                output_path, handle = open_output(
                    output_path, self.output_settings.get('compress', False)
                )
                db_stats.file_path = str(output_path)

                with handle:
                    writer = BinaryStreamWriter(handle)
                    dumper = Dumper(
                        conn,
                        writer,
                        chunk_size=chunk_size,
                        filters=self.filters,
                        gate=self.gate,
                    )
                    table_stats = dumper.dump(db_name, tables)
                    writer.flush()

            db_stats.tables.extend(table_stats)
            db_stats.total_rows = sum(t.rows_dumped for t in table_stats)
            db_stats.success = True
            self.stats.total_tables += len(table_stats)
            self.stats.total_rows += db_stats.total_rows

            for t in table_stats:
                logging.info(f"  ✓ {t.table}: {t.rows_dumped} rows in {t.fetches} fetch(es)")

        except (DumpError, ValueError, KeyError, OSError) as e:
            db_stats.error = str(e)
            logging.error(f"Error dumping database '{db_name}': {e}")
            self.stats.errors.append({
                'database': db_name,
                'table': getattr(e, 'table', None),
                'error': str(e)
            })

        self.stats.databases.append(db_stats)

    def _get_tables_to_dump(
        self,
        conn: DatabaseConnection,
        db_config: dict[str, Any]
    ) -> list[str]:
        """Get list of tables to dump, applying exclusion patterns."""
        tables_config = db_config.get('tables', '*')
        exclude_patterns = db_config.get('exclude_tables', [])
        compiled_patterns = self._compile_exclusion_patterns(exclude_patterns) if exclude_patterns else None

        if tables_config == '*':
            table_names = conn.get_tables()
        else:
            table_names = [t['name'] if isinstance(t, dict) else t for t in tables_config]

        if exclude_patterns:
            original_count = len(table_names)
            table_names = [
                t for t in table_names
                if not self._is_table_excluded(t, exclude_patterns, compiled_patterns)
            ]
            excluded_count = original_count - len(table_names)
            if excluded_count > 0:
                logging.info(f"Excluded {excluded_count} table(s) matching exclusion patterns")

        return table_names
