import time
import logging
from uuid import uuid4
from fastapi import Request
from fastapi.responses import JSONResponse
from report_import.config import settings

logger = logging.getLogger("report_import.api")

_GUARDED_METHODS = {"POST", "PUT", "PATCH"}


async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


async def enforce_body_size(request: Request, call_next):
    """Reject oversized report uploads from the Content-Length header before reading the body."""
    if request.method not in _GUARDED_METHODS:
        return await call_next(request)
    limit_mb = settings.security.max_upload_mb
    header_val = request.headers.get("content-length", "")
    if limit_mb and header_val.isdigit() and int(header_val) > limit_mb * 1024 * 1024:
        payload = {"error": "request_too_large", "detail": f"Max upload size is {limit_mb}MB"}
        rid = getattr(request.state, "request_id", None)
        if rid:
            payload["request_id"] = rid
        return JSONResponse(status_code=413, content=payload)
    return await call_next(request)


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        status = getattr(response, "status_code", 500)
        logger.log(
            logging.WARNING if status >= 400 else logging.INFO,
            "%s %s -> %s",
            request.method,
            request.url.path,
            status,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "request_id": getattr(request.state, "request_id", None),
            },
        )
