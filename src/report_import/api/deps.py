from __future__ import annotations

from typing import Generator, Optional, Union

from fastapi import Header, HTTPException

from report_import.config import settings
from report_import.data.import_service import ImportOrchestrator
from report_import.data.introspect import SchemaIntrospector
from report_import.data.rest_store import RestReportStore
from report_import.data.storage import Database
from report_import.exceptions import ConfigError
from report_import.importers.registry import ImporterRegistry, build_default_registry

# Global/Cached instances
_store_instance: Optional[Union[Database, RestReportStore]] = None
_store_backend: Optional[str] = None
_registry_instance: Optional[ImporterRegistry] = None


def reset_instances() -> None:
    global _store_instance, _store_backend, _registry_instance
    _store_instance = None
    _store_backend = None
    _registry_instance = None


def get_store() -> Union[Database, RestReportStore]:
    global _store_instance, _store_backend
    backend = (settings.storage.backend or "sqlite").strip().lower()
    if _store_instance is None or _store_backend != backend:
        if backend == "rest":
            _store_instance = RestReportStore(
                base_url=settings.storage.rest_url or "",
                api_key=settings.storage.rest_api_key,
                schema=settings.storage.rest_schema,
                timeout=settings.storage.timeout_seconds,
            )
        elif backend == "sqlite":
            _store_instance = Database(settings.storage.db_path)
        else:
            raise ConfigError(f"Unknown storage backend: {backend}")
        _store_backend = backend
    return _store_instance


def get_registry() -> ImporterRegistry:
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = build_default_registry(config_path=settings.imports.importer_config_path)
    return _registry_instance


def get_orchestrator() -> Generator[ImportOrchestrator, None, None]:
    store = get_store()
    yield ImportOrchestrator(
        store=store,
        registry=get_registry(),
        introspector=SchemaIntrospector(store, cache=False),
    )


def require_auth(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
):
    token = settings.security.api_token
    if not token:
        return
    if authorization == f"Bearer {token}" or authorization == f"Token {token}" or x_api_key == token:
        return
    raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
