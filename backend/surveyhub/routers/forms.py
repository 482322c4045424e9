"""Form submission router."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from surveyhub.database import get_db
from surveyhub.schemas.form import FormSubmit, FormResponse, UserFormResponse
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import get_current_principal
from surveyhub.services.form import FormService, form_response
from surveyhub.services.notifications import EmailSender, get_email_sender

router = APIRouter()


@router.post("", response_model=FormResponse, status_code=status.HTTP_201_CREATED)
async def submit_form(
    form_data: FormSubmit,
    db: Session = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    principal: Principal = Depends(get_current_principal)
):
    """Submit a filled-out form, optionally emailing a copy to the submitter."""
    form = FormService(db, email_sender=email_sender).submit_form(principal, form_data)
    return form_response(form)


@router.get("/owned/results", response_model=List[UserFormResponse])
async def my_forms(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """The caller's own submissions, newest first."""
    return FormService(db).get_user_forms(principal)


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    form_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Get one submission (submitter, template owner or admin)."""
    return form_response(FormService(db).get_form(form_id, principal))
