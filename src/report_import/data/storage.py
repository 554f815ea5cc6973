import json
import logging
import re
import sqlite3
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from report_import.data.assembler import DEFAULT_COLUMN_MAP
from report_import.domain.models import JobContext
from report_import.exceptions import InsertError, SecondaryLinkWarning
from report_import.importers.specs import ReportSpec

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_JSON_DECLTYPES = {"json", "jsonb"}
_PLAIN_COLUMNS = {"status"}

logger = logging.getLogger(__name__)


def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


class Database:
    """
    Thin wrapper over sqlite3 for local report storage.
    Declared JSON/JSONB columns hold serialized documents; ``PRAGMA table_info`` stands in
    for the hosted database's column introspection procedure.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self):
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self):
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS customers (
                    id TEXT PRIMARY KEY,
                    name TEXT,
                    company_name TEXT,
                    address TEXT
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    job_number TEXT,
                    title TEXT,
                    customer_id TEXT,
                    FOREIGN KEY (customer_id) REFERENCES customers(id)
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS assets (
                    id TEXT PRIMARY KEY,
                    name TEXT,
                    file_url TEXT,
                    user_id TEXT,
                    created_at TEXT
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS job_assets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id TEXT,
                    asset_id TEXT,
                    user_id TEXT,
                    created_at TEXT,
                    FOREIGN KEY (asset_id) REFERENCES assets(id)
                );
                """
            )
            conn.commit()

    # ------------------------------------------------------------- introspection
    def get_table_columns(self, table: str) -> List[Dict[str, str]]:
        """Rows shaped like the hosted procedure: ``{column_name, data_type}``."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(f"PRAGMA table_info({_identifier(table)})")
            rows = cur.fetchall()
        columns = []
        for _, name, decltype, *_rest in rows:
            declared = (decltype or "").strip().lower()
            columns.append({
                "column_name": name,
                "data_type": "jsonb" if declared in _JSON_DECLTYPES else declared or "text",
            })
        return columns

    @staticmethod
    def _layout_columns(spec: ReportSpec, layout: str) -> Dict[str, str]:
        columns: Dict[str, str] = {}
        if layout == "blob" and spec.blob_columns:
            columns[spec.blob_columns[0]] = "JSONB"
        else:
            for name in spec.columns or DEFAULT_COLUMN_MAP:
                columns[name] = "TEXT" if name in _PLAIN_COLUMNS else "JSONB"
        for name in spec.required_columns:
            if name not in ("job_id", "user_id"):
                columns.setdefault(name, "JSONB")
        return columns

    def provision_report_table(
        self, spec: ReportSpec, layout: str = "blob", shared_with: Iterable[ReportSpec] = ()
    ) -> str:
        """
        Create the report's target table if missing. ``blob`` uses its first preferred blob column (reports without one are always partitioned);
        ``partitioned`` creates one JSON column per mapped record part. Columns of every spec in
        ``shared_with`` that writes the same table are included, and columns missing from an
        existing table are added.
        """
        if layout not in ("blob", "partitioned"):
            raise ValueError(f"Unknown table layout: {layout}")
        columns: Dict[str, str] = {}
        for each in [spec, *shared_with]:
            if each.table != spec.table:
                continue
            for name, decl in self._layout_columns(each, layout).items():
                columns.setdefault(name, decl)

        body = ",\n".join(f"    {_identifier(name)} {decl}" for name, decl in columns.items())
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_identifier(spec.table)} (
                    id TEXT PRIMARY KEY,
                    job_id TEXT,
                    user_id TEXT,
                    created_at TEXT,
                {body}
                );
                """
            )
            conn.commit()

        existing = {c["column_name"] for c in self.get_table_columns(spec.table)}
        missing = [name for name in columns if name not in existing]
        if missing:
            with self._connect() as conn:
                cur = conn.cursor()
                for name in missing:
                    cur.execute(
                        f"ALTER TABLE {_identifier(spec.table)} ADD COLUMN {_identifier(name)} {columns[name]}"
                    )
                conn.commit()
            logger.info("Added report table columns", extra={"table": spec.table, "columns": missing})
        return spec.table

    def provision_report_tables(self, specs: Iterable[ReportSpec], layout: str = "blob") -> List[str]:
        """One table per distinct target, carrying the union of its specs' columns."""
        by_table: Dict[str, List[ReportSpec]] = {}
        for spec in specs:
            by_table.setdefault(spec.table, []).append(spec)
        for group in by_table.values():
            self.provision_report_table(group[0], layout=layout, shared_with=group[1:])
        return list(by_table)

    # -------------------------------------------------------------------- writes
    def insert_report(self, table: str, row: Dict[str, Any]) -> str:
        described = self.get_table_columns(table)
        existing = {c["column_name"] for c in described}
        json_columns = {c["column_name"] for c in described if c["data_type"] == "jsonb"}
        values = dict(row)
        if "id" in existing and not values.get("id"):
            values["id"] = uuid4().hex
        if "created_at" in existing:
            values.setdefault("created_at", datetime.now(UTC).isoformat())

        names = list(values.keys())
        params = [self._serialize(values[n], n in json_columns) for n in names]
        sql = (
            f"INSERT INTO {_identifier(table)} ({', '.join(_identifier(n) for n in names)}) "
            f"VALUES ({', '.join('?' for _ in names)})"
        )
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(sql, params)
                conn.commit()
                rowid = cur.lastrowid
        except sqlite3.Error as exc:
            raise InsertError(f"Insert into {table} failed: {exc}") from exc
        return str(values.get("id") or rowid)

    def create_asset(self, name: str, file_url: str, user_id: Optional[str]) -> str:
        asset_id = uuid4().hex
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO assets (id, name, file_url, user_id, created_at) VALUES (?, ?, ?, ?, ?)",
                    (asset_id, name, file_url, user_id, datetime.now(UTC).isoformat()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise SecondaryLinkWarning(f"Asset creation failed: {exc}") from exc
        return asset_id

    def link_job_asset(self, job_id: str, asset_id: str, user_id: Optional[str]) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO job_assets (job_id, asset_id, user_id, created_at) VALUES (?, ?, ?, ?)",
                    (job_id, asset_id, user_id, datetime.now(UTC).isoformat()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise SecondaryLinkWarning(f"Job asset link failed: {exc}") from exc

    def upsert_job(
        self,
        job_id: str,
        job_number: str = "",
        customer_name: str = "",
        customer_address: str = "",
    ) -> None:
        customer_id = f"cust-{job_id}"
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT OR REPLACE INTO customers (id, name, company_name, address) VALUES (?, ?, ?, ?)",
                (customer_id, customer_name, customer_name, customer_address),
            )
            cur.execute(
                "INSERT OR REPLACE INTO jobs (id, job_number, customer_id) VALUES (?, ?, ?)",
                (job_id, job_number, customer_id),
            )
            conn.commit()

    # --------------------------------------------------------------------- reads
    def fetch_job_context(self, job_id: str) -> Optional[JobContext]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT j.job_number, COALESCE(c.company_name, c.name), c.address
                FROM jobs j
                LEFT JOIN customers c ON c.id = j.customer_id
                WHERE j.id = ?
                """,
                (job_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return JobContext(job_number=row[0] or "", customer_name=row[1] or "", customer_address=row[2] or "")

    def fetch_report(self, table: str, report_id: str) -> Optional[Dict[str, Any]]:
        json_columns = {c["column_name"] for c in self.get_table_columns(table) if c["data_type"] == "jsonb"}
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            cur = conn.cursor()
            cur.execute(f"SELECT * FROM {_identifier(table)} WHERE id = ?", (report_id,))
            row = cur.fetchone()
        if row is None:
            return None
        result = dict(row)
        for name in json_columns:
            if isinstance(result.get(name), str):
                result[name] = json.loads(result[name])
        return result

    def job_assets(self, job_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            cur = conn.cursor()
            cur.execute(
                """
                SELECT a.id, a.name, a.file_url, ja.user_id
                FROM job_assets ja
                JOIN assets a ON a.id = ja.asset_id
                WHERE ja.job_id = ?
                ORDER BY ja.id
                """,
                (job_id,),
            )
            return [dict(r) for r in cur.fetchall()]

    @staticmethod
    def _serialize(value: Any, as_json: bool = False) -> Any:
        if as_json or isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value
