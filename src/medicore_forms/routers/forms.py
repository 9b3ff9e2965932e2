"""Doctor API for managing saved forms"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from medicore_forms.auth.dependencies import get_current_doctor
from medicore_forms.auth.models import Doctor
from medicore_forms.config import config
from medicore_forms.exceptions import FormEngineError
from medicore_forms.models.database import get_db
from medicore_forms.models.field_type import FieldTypeRegistry
from medicore_forms.routers.dependencies import get_field_registry, http_error
from medicore_forms.services.form_service import FormService
from medicore_forms.services.submission_query_service import SubmissionQueryService
from medicore_forms.services.submission_viewer import SubmissionViewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Forms"])


class FormSettingsPatch(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    is_active: Optional[bool] = None
    requires_patient_info: Optional[bool] = None
    success_message: Optional[str] = None
    notification_email: Optional[str] = None
    allow_multiple_submissions: Optional[bool] = None


def _public_url(slug: str) -> str:
    return f"{config['app_base_url'].rstrip('/')}/forms/{slug}"


@router.get("/field-types")
async def list_field_types(
    registry: FieldTypeRegistry = Depends(get_field_registry),
):
    """The field type catalog offered by the builder palette"""
    return [definition.model_dump(mode="json") for definition in registry.definitions()]


@router.get("/forms")
async def list_forms(
    q: Optional[str] = None,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    form_service = FormService(db, doctor.doctor_id)
    try:
        forms = form_service.list_forms(search=q)
    except FormEngineError as e:
        raise http_error(e)

    return [
        {
            "id": form.id,
            "title": form.title,
            "description": form.description,
            "slug": form.slug,
            "is_active": form.is_active,
            "submission_count": form.submission_count,
            "created_at": form.created_at,
            "public_url": _public_url(form.slug),
        }
        for form in forms
    ]


@router.get("/forms/{form_id}")
async def get_form(
    form_id: uuid.UUID,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    form_service = FormService(db, doctor.doctor_id)
    try:
        form, fields = form_service.get_form_with_fields(form_id)
    except FormEngineError as e:
        raise http_error(e)

    return {"form": form, "fields": fields, "public_url": _public_url(form.slug)}


@router.patch("/forms/{form_id}")
async def update_form(
    form_id: uuid.UUID,
    request: FormSettingsPatch,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    """Change form-level settings such as is_active without opening a builder session"""
    form_service = FormService(db, doctor.doctor_id)
    try:
        form = form_service.update_settings(
            form_id, request.model_dump(exclude_unset=True)
        )
    except FormEngineError as e:
        raise http_error(e)

    return {"form": form, "public_url": _public_url(form.slug)}


@router.delete("/forms/{form_id}")
async def delete_form(
    form_id: uuid.UUID,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    form_service = FormService(db, doctor.doctor_id)
    try:
        form_service.delete_form(form_id)
    except FormEngineError as e:
        raise http_error(e)

    return {"success": True, "form_id": str(form_id)}


@router.get("/forms/{form_id}/submissions/export")
async def export_submissions(
    form_id: uuid.UUID,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_registry),
):
    """Every submission of a form as flat rows keyed by column name"""
    form_service = FormService(db, doctor.doctor_id)
    query_service = SubmissionQueryService(db, doctor.doctor_id)
    viewer = SubmissionViewer(registry)
    try:
        form, fields = form_service.get_form_with_fields(form_id)
        submissions = query_service.list_submissions(form_id=form.id)
    except FormEngineError as e:
        raise http_error(e)

    rows = [viewer.flatten_for_export(submission, fields) for submission in submissions]
    logger.info(f"Exported {len(rows)} submissions of form {form.id}")
    return {"form_id": str(form.id), "title": form.title, "rows": rows}
