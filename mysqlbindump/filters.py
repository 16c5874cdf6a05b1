"""
Per-table row filters for MySQL Binary Dumper.

A filter variant is a clause appended verbatim to ``SELECT * FROM `table```.
Each table maps to an ordered list of variants, every one of them exported
as an independent pagination run. An empty list exports the schema only.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

UNFILTERED = ("",)

DEFAULT_FILTERS: dict[str, dict[str, list[str]]] = {
    "iot-api": {
        # skip data before 01-10-2021 except for geofences
        "event_log": [
            " WHERE event = 'geofence-in' AND id < 517837446",
            " WHERE event = 'geofence-out' AND id < 517837446",
            " WHERE id >= 517837446",
        ],
        # skip all data
        "rate_limit_request_log": [],
    },
}


def normalize_variant(variant: str) -> str:
    """Make sure a non-empty variant is separated from the table name by one space."""
    variant = variant.strip()
    if not variant:
        return ""
    return f" {variant}"


class FilterRegistry:
    """Immutable lookup of filter variants keyed by (schema, table)."""

    def __init__(self, filters: Optional[Mapping[str, Mapping[str, Any]]] = None):
        if filters is None:
            filters = DEFAULT_FILTERS

        frozen = {}
        for schema, tables in filters.items():
            frozen[schema] = MappingProxyType({
                table: tuple(normalize_variant(v) for v in (variants or []))
                for table, variants in (tables or {}).items()
            })
        self._filters = MappingProxyType(frozen)

    @classmethod
    def from_config(cls, overrides: Optional[Mapping[str, Mapping[str, Any]]]) -> "FilterRegistry":
        """
        Build a registry from the built-in filters with a configuration section merged on top.

        Overrides replace the built-in variants table by table; other tables of
        the same schema keep their built-in entries.
        """
        merged: dict[str, dict[str, Any]] = {
            schema: dict(tables) for schema, tables in DEFAULT_FILTERS.items()
        }
        for schema, tables in (overrides or {}).items():
            if not isinstance(tables, Mapping):
                raise ValueError(f"Filters for schema '{schema}' must be a mapping of table names")
            for table, variants in tables.items():
                if variants is not None and not isinstance(variants, (list, tuple)):
                    raise ValueError(f"Filters for '{schema}.{table}' must be a list of clauses")
                merged.setdefault(schema, {})[table] = variants
                logging.debug(f"Filter override for '{schema}.{table}': {variants}")
        return cls(merged)

    def variants_for(self, schema: str, table: str) -> tuple[str, ...]:
        """Return the filter variants for a table, in export order."""
        tables = self._filters.get(schema)
        if tables is None or table not in tables:
            return UNFILTERED
        return tables[table]

    def is_registered(self, schema: str, table: str) -> bool:
        return table in self._filters.get(schema, {})

    def schemas(self) -> list[str]:
        return list(self._filters)
