from fastapi import APIRouter

from report_import.config import settings
from report_import.api.deps import get_registry

router = APIRouter()


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": settings.app.version,
        "backend": settings.storage.backend,
        "importers": len(get_registry().importers),
    }
