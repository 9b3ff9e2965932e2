"""Doctor API for reading submissions"""

import uuid
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from medicore_forms.auth.dependencies import get_current_doctor
from medicore_forms.auth.models import Doctor
from medicore_forms.exceptions import FormEngineError
from medicore_forms.models.database import get_db
from medicore_forms.models.field_type import FieldTypeRegistry
from medicore_forms.routers.dependencies import get_field_registry, http_error
from medicore_forms.services.form_field_service import FormFieldService
from medicore_forms.services.submission_query_service import SubmissionQueryService
from medicore_forms.services.submission_viewer import SubmissionViewer

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


class ReadStatus(str, Enum):
    READ = "read"
    UNREAD = "unread"


@router.get("")
async def list_submissions(
    form_id: Optional[uuid.UUID] = None,
    status: Optional[ReadStatus] = None,
    q: Optional[str] = None,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    """Submissions newest first, searchable by patient name, patient email or form title"""
    query_service = SubmissionQueryService(db, doctor.doctor_id)
    is_read = None if status is None else status == ReadStatus.READ
    try:
        submissions = query_service.list_submissions(
            form_id=form_id, is_read=is_read, search=q
        )
        titles = query_service.form_titles()
    except FormEngineError as e:
        raise http_error(e)

    return [
        {
            "id": submission.id,
            "form_id": submission.form_id,
            "form_title": titles.get(submission.form_id),
            "patient_name": submission.patient_name,
            "patient_email": submission.patient_email,
            "submitted_at": submission.submitted_at,
            "is_read": submission.is_read,
            "attachment_count": len(submission.attachments or []),
        }
        for submission in submissions
    ]


@router.get("/{submission_id}")
async def get_submission(
    submission_id: uuid.UUID,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_registry),
):
    """A submission paired with its form's fields; opening it marks it read"""
    query_service = SubmissionQueryService(db, doctor.doctor_id)
    try:
        submission = query_service.mark_read(submission_id)
        fields = FormFieldService(db).get_fields_by_form_id(submission.form_id)
    except FormEngineError as e:
        raise http_error(e)

    return SubmissionViewer(registry).reconstruct(submission, fields)
