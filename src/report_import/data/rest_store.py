import logging
from typing import Any, Dict, List, Optional

import requests

from report_import.domain.models import JobContext
from report_import.exceptions import ConfigError, InsertError, SchemaUnavailable, SecondaryLinkWarning

logger = logging.getLogger(__name__)


class RestReportStore:
    """
    Report storage behind a PostgREST-style gateway.
    Introspection goes through the ``get_table_columns`` RPC; inserts ask for the
    created row back so its id can be reported.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        schema: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ConfigError("storage.rest_url must be configured for the rest backend.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.schema = schema
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, write: bool = False) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        if self.schema:
            headers["Content-Profile" if write else "Accept-Profile"] = self.schema
        if write:
            headers["Prefer"] = "return=representation"
        return headers

    def _post(self, path: str, body: Any, write: bool = True) -> requests.Response:
        return self.session.post(
            f"{self.base_url}/{path}", json=body, headers=self._headers(write=write), timeout=self.timeout
        )

    @staticmethod
    def _first_row(resp: requests.Response) -> Dict[str, Any]:
        data = resp.json()
        if isinstance(data, list):
            data = data[0] if data else {}
        return data if isinstance(data, dict) else {}

    def get_table_columns(self, table: str) -> Any:
        try:
            resp = self._post("rpc/get_table_columns", {"table_name": table}, write=False)
        except requests.RequestException as exc:
            raise SchemaUnavailable(f"Schema lookup for {table} failed: {exc}") from exc
        if resp.status_code == 404:
            raise SchemaUnavailable("Introspection procedure get_table_columns is not installed")
        if resp.status_code != 200:
            raise SchemaUnavailable(f"Schema lookup for {table} failed: {resp.status_code} {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as exc:
            raise SchemaUnavailable(f"Invalid schema response for {table}: {exc}") from exc

    def insert_report(self, table: str, row: Dict[str, Any]) -> str:
        try:
            resp = self._post(table, row)
        except requests.RequestException as exc:
            raise InsertError(f"Insert into {table} failed: {exc}") from exc
        if resp.status_code not in (200, 201):
            raise InsertError(f"Insert into {table} failed: {resp.status_code} {resp.text[:200]}")
        try:
            created = self._first_row(resp)
        except ValueError as exc:
            raise InsertError(f"Insert into {table} returned an unreadable body: {exc}") from exc
        if created.get("id") is None:
            raise InsertError(f"Insert into {table} returned no id")
        return str(created["id"])

    def create_asset(self, name: str, file_url: str, user_id: Optional[str]) -> str:
        try:
            resp = self._post("assets", {"name": name, "file_url": file_url, "user_id": user_id})
            if resp.status_code not in (200, 201):
                raise SecondaryLinkWarning(f"Asset creation failed: {resp.status_code}")
            asset_id = self._first_row(resp).get("id")
        except (requests.RequestException, ValueError) as exc:
            raise SecondaryLinkWarning(f"Asset creation failed: {exc}") from exc
        if asset_id is None:
            raise SecondaryLinkWarning("Asset creation returned no id")
        return str(asset_id)

    def link_job_asset(self, job_id: str, asset_id: str, user_id: Optional[str]) -> None:
        try:
            resp = self._post("job_assets", {"job_id": job_id, "asset_id": asset_id, "user_id": user_id})
        except requests.RequestException as exc:
            raise SecondaryLinkWarning(f"Job asset link failed: {exc}") from exc
        if resp.status_code not in (200, 201):
            raise SecondaryLinkWarning(f"Job asset link failed: {resp.status_code}")

    def fetch_job_context(self, job_id: str) -> Optional[JobContext]:
        params = {
            "id": f"eq.{job_id}",
            "select": "job_number,customers(name,company_name,address)",
        }
        resp = self.session.get(
            f"{self.base_url}/jobs", params=params, headers=self._headers(), timeout=self.timeout
        )
        if resp.status_code != 200:
            logger.warning("Job lookup failed", extra={"job_id": job_id, "status": resp.status_code})
            return None
        rows: List[Dict[str, Any]] = resp.json() or []
        if not rows:
            return None
        job = rows[0]
        customer = job.get("customers") or {}
        return JobContext(
            job_number=job.get("job_number") or "",
            customer_name=customer.get("company_name") or customer.get("name") or "",
            customer_address=customer.get("address") or "",
        )
