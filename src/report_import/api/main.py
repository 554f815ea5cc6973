import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from report_import.config import settings
from report_import.exceptions import ReportImportError
from report_import.api import deps
from report_import.api.middleware import add_request_id, enforce_body_size, log_requests

# Routers
from report_import.api.routers import imports, system

# Configure logging
logging.basicConfig(level=getattr(logging, settings.logging.level.upper(), logging.INFO))
logger = logging.getLogger("report_import.api")


def _error_payload(request: Request, error: str, detail: str) -> dict:
    payload = {"error": error, "detail": detail}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return payload


def create_app(db_path: Optional[Path] = None) -> FastAPI:
    """
    Factory to build the FastAPI application.
    A custom db_path switches the sqlite backend to that file and drops cached instances.
    """
    if db_path:
        settings.storage.backend = "sqlite"
        settings.storage.db_path = Path(db_path)
        deps.reset_instances()

    app = FastAPI(title="Report Import API", version=settings.app.version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom Middleware
    app.middleware("http")(enforce_body_size)
    if settings.logging.log_requests:
        app.middleware("http")(log_requests)
    app.middleware("http")(add_request_id)

    app.include_router(system.router)
    app.include_router(imports.router)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(ReportImportError)
    async def import_exception_handler(request: Request, exc: ReportImportError):
        return JSONResponse(status_code=422, content=_error_payload(request, exc.code, str(exc)))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", extra={"path": str(request.url), "request_id": rid})
        return JSONResponse(status_code=500, content=_error_payload(request, "internal_error", "Unexpected server error"))

    return app


# Module-level app for uvicorn entrypoint
app = create_app()
