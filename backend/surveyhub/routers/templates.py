"""Template management router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from surveyhub.database import get_db
from surveyhub.schemas.form import TemplateResults
from surveyhub.schemas.template import TemplateResponse, TemplatePage
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import get_current_principal, get_optional_principal
from surveyhub.services.results import ResultsService
from surveyhub.services.storage import FileStorage, UploadedFile, get_storage
from surveyhub.services.template import TemplateService

router = APIRouter()


def _uploads(
    image: Optional[UploadFile],
    question_attachments: Optional[List[UploadFile]],
):
    return (
        UploadedFile.from_upload(image) if image is not None else None,
        [UploadedFile.from_upload(f) for f in question_attachments or []],
    )


@router.get("", response_model=TemplatePage)
async def list_templates(
    view: str = "public",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_optional_principal)
):
    """
    List templates.

    ``view`` is one of ``public``, ``mine``, ``latest`` or ``top``.
    """
    return TemplateService(db).list_templates(principal, view, page, limit)


@router.get("/search", response_model=TemplatePage)
async def search_templates(
    q: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_optional_principal)
):
    """Search the templates the caller can read."""
    return TemplateService(db).search_templates(principal, q, page, limit)


@router.get("/owned/results", response_model=List[TemplateResults])
async def owned_results(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Per-question summaries for every template the caller owns."""
    return ResultsService(db).get_owned_results(principal)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_optional_principal)
):
    """Get a template by ID."""
    template = TemplateService(db).get_template(template_id, principal)
    return TemplateResponse.model_validate(template)


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: str = Form(..., description="Template definition as JSON"),
    image: Optional[UploadFile] = File(None),
    question_attachments: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(get_current_principal)
):
    """Create a template from a multipart request."""
    image_file, attachments = _uploads(image, question_attachments)
    template = TemplateService(db, storage=storage).create_template(
        principal, payload, image_file, attachments
    )
    return TemplateResponse.model_validate(template)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    payload: str = Form(..., description="Complete template definition as JSON"),
    image: Optional[UploadFile] = File(None),
    question_attachments: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(get_current_principal)
):
    """Replace a template's definition (owner or admin)."""
    image_file, attachments = _uploads(image, question_attachments)
    template = TemplateService(db, storage=storage).update_template(
        template_id, principal, payload, image_file, attachments
    )
    return TemplateResponse.model_validate(template)


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a template and everything attached to it (owner or admin)."""
    TemplateService(db).delete_template(template_id, principal)
    return {"success": True, "message": "Template deleted successfully"}


@router.get("/{template_id}/results", response_model=TemplateResults)
async def template_results(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Submissions and statistics for a template (owner or admin)."""
    return ResultsService(db).get_template_results(template_id, principal)
