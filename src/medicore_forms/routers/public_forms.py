"""Public form serving and submission endpoints"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session
from starlette.datastructures import UploadFile

from medicore_forms.backends.blob_client import BlobClient
from medicore_forms.config import config
from medicore_forms.exceptions import NotFoundError, StorageError, ValidationError
from medicore_forms.models.database import get_db
from medicore_forms.models.field_type import FieldType, FieldTypeRegistry
from medicore_forms.models.form import DEFAULT_SUCCESS_MESSAGE, Form
from medicore_forms.models.form_field import FormField
from medicore_forms.routers.dependencies import get_email_service, get_field_registry
from medicore_forms.services.email_service import EmailService
from medicore_forms.services.form_service import PublicFormService
from medicore_forms.services.storage_service import get_blob_client
from medicore_forms.services.submission_service import (
    StagedFile,
    SubmissionService,
    SubmissionSession,
)

router = APIRouter(include_in_schema=False)

# Get template directory relative to this file
template_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = "We could not submit your form. Please try again."


def _render_fields(
    fields: List[FormField], registry: FieldTypeRegistry
) -> List[Dict[str, Any]]:
    """Template context for each field: its resolved type and input name"""
    rendered = []
    for field in fields:
        definition = registry.lookup(field.field_type)
        rendered.append(
            {
                "field": field,
                "name": str(field.id),
                "type": definition.type.value,
                "placeholder": field.placeholder or definition.default_placeholder,
                "options": field.options or [],
            }
        )
    return rendered


def _not_found(request: Request):
    return templates.TemplateResponse(request, "not_found.html", {}, status_code=404)


def _form_page(
    request: Request,
    form: Form,
    fields: List[FormField],
    registry: FieldTypeRegistry,
    values: Optional[Dict[str, Any]] = None,
    patient: Optional[Dict[str, str]] = None,
    error: Optional[str] = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "form.html",
        {
            "form": form,
            "fields": _render_fields(fields, registry),
            "values": values or {},
            "patient": patient or {"name": "", "email": "", "phone": ""},
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/forms/{slug}")
async def serve_form(
    request: Request,
    slug: str,
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_registry),
):
    """Serve the public form HTML for a slug"""
    public_service = PublicFormService(db)
    try:
        form = public_service.get_active_form_by_slug(slug)
        fields = public_service.get_fields(form.id)
    except NotFoundError:
        return _not_found(request)
    except StorageError as e:
        logger.error(f"Failed to load form {slug}: {e}")
        return _not_found(request)

    return _form_page(request, form, fields, registry)


@router.post("/forms/{slug}")
async def submit_form(
    request: Request,
    slug: str,
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_registry),
    blob_client: Optional[BlobClient] = Depends(get_blob_client),
    email_service: EmailService = Depends(get_email_service),
):
    """Handle a multipart form submission"""
    public_service = PublicFormService(db)
    try:
        form = public_service.get_active_form_by_slug(slug)
        fields = public_service.get_fields(form.id)
        session = SubmissionSession(
            form, fields, registry, max_upload_bytes=config["max_upload_bytes"]
        )
    except NotFoundError:
        return _not_found(request)
    except StorageError as e:
        logger.error(f"Failed to load form {slug}: {e}")
        return _not_found(request)

    form_data = await request.form()
    values: Dict[str, Any] = {}
    for field in session.fields:
        name = str(field.id)
        field_type = registry.lookup(field.field_type).type
        if field_type == FieldType.FILE:
            upload = form_data.get(name)
            if isinstance(upload, UploadFile) and upload.filename:
                # One byte past the limit is enough for validation to reject it
                data = await upload.read(session.max_upload_bytes + 1)
                if data:
                    session.stage_file(
                        name,
                        StagedFile(
                            file_name=upload.filename,
                            content_type=upload.content_type or "application/octet-stream",
                            data=data,
                        ),
                    )
        elif field_type == FieldType.CHECKBOX:
            values[name] = [str(v) for v in form_data.getlist(name)]
        else:
            raw = form_data.get(name)
            values[name] = raw.strip() if isinstance(raw, str) else ""

    for name, value in values.items():
        session.set_response(name, value)

    patient = {
        "name": str(form_data.get("patient_name") or ""),
        "email": str(form_data.get("patient_email") or ""),
        "phone": str(form_data.get("patient_phone") or ""),
    }
    session.set_patient_info(patient["name"], patient["email"], patient["phone"])

    submission_service = SubmissionService(db, blob_client, email_service)
    client_host = request.client.host if request.client else None
    try:
        await submission_service.submit(
            session,
            ip_address=client_host,
            user_agent=request.headers.get("user-agent"),
        )
    except ValidationError as e:
        logger.info(f"Rejected submission for form {slug}: {e}")
        return _form_page(
            request, form, fields, registry, values, patient, str(e), status_code=400
        )
    except StorageError as e:
        logger.error(f"Failed to store submission for form {slug}: {e}")
        return _form_page(
            request,
            form,
            fields,
            registry,
            values,
            patient,
            SUBMIT_FAILED_MESSAGE,
            status_code=502,
        )

    return RedirectResponse(url=f"/forms/{slug}/success", status_code=303)


@router.get("/forms/{slug}/success")
async def submission_success(
    request: Request,
    slug: str,
    message: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Confirmation page shown after a successful submission"""
    try:
        form = PublicFormService(db).get_form_by_slug(slug)
    except NotFoundError:
        return _not_found(request)

    return templates.TemplateResponse(
        request,
        "success.html",
        {
            "form": form,
            "message": message or form.success_message or DEFAULT_SUCCESS_MESSAGE,
            "allow_another": form.allow_multiple_submissions and form.is_active,
        },
    )
