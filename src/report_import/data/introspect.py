import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Protocol

from report_import.domain.models import TargetSchema
from report_import.exceptions import SchemaUnavailable

logger = logging.getLogger(__name__)

JSON_TYPES = {"json", "jsonb"}


class ColumnSource(Protocol):
    def get_table_columns(self, table: str) -> Any:
        """Rows of ``{column_name, data_type}`` for the table."""


def is_json_type(data_type: Any) -> bool:
    return str(data_type or "").strip().lower() in JSON_TYPES


class SchemaIntrospector:
    """
    Discovers a table's physical column layout at call time.
    With ``cache=True`` results are kept until ``clear()``; ``batch()`` scopes a cache
    to one block of imports.
    """

    def __init__(self, source: ColumnSource, cache: bool = False):
        self.source = source
        self.cache_enabled = cache
        self._cache: Dict[str, TargetSchema] = {}

    def describe(self, table: str) -> TargetSchema:
        if self.cache_enabled and table in self._cache:
            return self._cache[table]

        try:
            rows = self.source.get_table_columns(table)
        except SchemaUnavailable:
            raise
        except Exception as exc:
            raise SchemaUnavailable(f"Schema lookup failed for {table}: {exc}") from exc
        if not isinstance(rows, list):
            raise SchemaUnavailable(f"Schema lookup for {table} returned {type(rows).__name__}, expected a list")

        columns: list[str] = []
        json_columns: list[str] = []
        for row in rows:
            if not isinstance(row, dict) or not row.get("column_name"):
                continue
            name = str(row["column_name"])
            columns.append(name)
            if is_json_type(row.get("data_type")):
                json_columns.append(name)

        schema = TargetSchema(columns=columns, jsonb_columns=json_columns)
        logger.debug(
            "Described table",
            extra={"table": table, "columns": len(columns), "json_columns": len(json_columns)},
        )
        if self.cache_enabled:
            self._cache[table] = schema
        return schema

    def clear(self, table: Optional[str] = None) -> None:
        if table is None:
            self._cache.clear()
        else:
            self._cache.pop(table, None)

    @contextmanager
    def batch(self) -> Iterator["SchemaIntrospector"]:
        previous = self.cache_enabled
        self.cache_enabled = True
        try:
            yield self
        finally:
            self.cache_enabled = previous
            if not previous:
                self._cache.clear()
