import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from report_import.config import settings
from report_import.data.import_service import ImportOrchestrator
from report_import.domain.models import ImportResult
from report_import.api.deps import get_orchestrator, get_registry, require_auth

router = APIRouter(prefix="/imports", tags=["Imports"])


class ImportRequest(BaseModel):
    payload: Dict[str, Any]
    job_id: str
    user_id: str
    filename: Optional[str] = None


class BatchEntry(BaseModel):
    source: str
    payload: Dict[str, Any]


class BatchRequest(BaseModel):
    items: List[BatchEntry] = Field(default_factory=list)
    job_id: str
    user_id: str


def _result_response(result: ImportResult) -> JSONResponse:
    return JSONResponse(status_code=201 if result.success else 422, content=result.model_dump())


def _read_upload(upload: UploadFile) -> Dict[str, Any]:
    max_bytes = settings.security.max_upload_mb * 1024 * 1024
    content = upload.file.read()
    if max_bytes and len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large; max {settings.security.max_upload_mb}MB")
    try:
        raw = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise HTTPException(status_code=400, detail=f"Upload is not a JSON report export: {exc}")
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="Report export must be a JSON object")
    return raw


@router.post("/reports")
def import_report(
    body: ImportRequest,
    svc: ImportOrchestrator = Depends(get_orchestrator),
    _auth=Depends(require_auth),
):
    result = svc.import_report(body.payload, body.job_id, body.user_id, filename=body.filename)
    return _result_response(result)


@router.post("/reports/file")
def import_report_file(
    file: UploadFile = File(...),
    job_id: str = Form(...),
    user_id: str = Form(...),
    svc: ImportOrchestrator = Depends(get_orchestrator),
    _auth=Depends(require_auth),
):
    raw = _read_upload(file)
    result = svc.import_report(raw, job_id, user_id, filename=file.filename)
    return _result_response(result)


@router.post("/batch")
def import_batch(
    body: BatchRequest,
    svc: ImportOrchestrator = Depends(get_orchestrator),
    _auth=Depends(require_auth),
):
    report = svc.batch_import(((item.source, item.payload) for item in body.items), body.job_id, body.user_id)
    return {
        "total": report.total,
        "successful": [item.model_dump() for item in report.successful],
        "failed": [item.model_dump() for item in report.failed],
    }


@router.get("/importers")
def list_importers(_auth=Depends(require_auth)):
    registry = get_registry()
    return [
        {
            "slug": importer.slug,
            "table": importer.table,
            "title": importer.spec.title,
            "match": importer.spec.match.model_dump(),
            "aliases": importer.spec.aliases,
        }
        for importer in registry.importers
    ]
