from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cargodock.api.deps.request_identity import get_request_identity_with_db
from cargodock.core.config import settings
from cargodock.db.session import get_db
from cargodock.models.mixins import SYSTEM_USER
from cargodock.schemas.request_identity import RequestIdentity
from cargodock.services.imports.pipeline import ImportService
from cargodock.services.imports.registry import get_import_service, list_imports
from cargodock.services.imports.templates import template_response

router = APIRouter(prefix="/imports", tags=["imports"])


def _ensure_enabled() -> None:
    if not settings.IMPORTS_ENABLED:
        raise HTTPException(status_code=404, detail="Imports are disabled")


def _require_service(import_key: str) -> ImportService:
    service = get_import_service(import_key)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Unknown import '{import_key}'")
    return service


@router.get("")
def list_import_types():
    _ensure_enabled()
    return {"imports": list_imports()}


@router.get("/{import_key}/template.xlsx")
def download_import_template(import_key: str):
    _ensure_enabled()
    return template_response(_require_service(import_key).config)


@router.post("/{import_key}")
def upload_import(
    import_key: str,
    payload: bytes = Body(...),
    filename: str = Query("upload.xlsx"),
    identity: RequestIdentity = Depends(get_request_identity_with_db),
    db: Session = Depends(get_db),
):
    _ensure_enabled()
    service = _require_service(import_key)
    service.ensure_authorized(identity.role_names)

    filename = (filename or "").strip()
    if not filename.lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Only .xlsx files are supported.")

    result = service.run(db, payload, user_email=identity.email or SYSTEM_USER)
    return result.to_dict(max_errors=settings.IMPORT_MAX_REPORTED_ERRORS)
