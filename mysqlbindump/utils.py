"""
Utility functions for MySQL Binary Dumper.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from .filters import FilterRegistry


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def print_dry_run_info(
    databases: list[dict[str, Any]],
    defaults: dict[str, Any],
    filters: FilterRegistry
) -> None:
    """Print information about what would be dumped in dry-run mode."""
    for db in databases:
        logging.info(f"Would dump database: {db['name']} from instance: {db.get('instance', 'primary')}")

        chunk_size = db.get('chunk_size', defaults.get('chunk_size', 0))
        logging.info(f"  Chunk size: {format_chunk_size(chunk_size)}")

        tables = db.get('tables', '*')
        if tables == '*':
            logging.info("  - All tables")
            for pattern in db.get('exclude_tables', []):
                logging.info(f"    excluding '{pattern}'")
            continue

        for t in tables:
            name = t['name'] if isinstance(t, dict) else t
            logging.info(f"  - {name} ({format_filter_display(filters, db['name'], name)})")


def format_chunk_size(chunk_size: int) -> str:
    if not chunk_size or chunk_size <= 0:
        return "unchunked"
    return f"{chunk_size} rows per fetch"


def format_filter_display(filters: FilterRegistry, schema: str, table: str) -> str:
    """Describe how a table's rows will be selected."""
    variants = filters.variants_for(schema, table)
    if not variants:
        return "schema only"
    if variants == ("",):
        return "all rows"
    return "; ".join(f"where='{v.strip()}'" for v in variants)
